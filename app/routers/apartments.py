from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import success
from app.schemas import ApartmentCreate, ApartmentUpdate
from app.services.apartment_service import (
    apartment_to_dict,
    create_apartment,
    delete_apartment,
    get_apartment,
    list_apartments,
    update_apartment,
)

router = APIRouter(prefix='/api/v1/apartments', tags=['apartments'])


@router.get('')
def apartments_index(db: Session = Depends(get_db)):
    return success('Apartments retrieved successfully', list_apartments(db))


@router.post('', status_code=201)
def apartments_create(payload: ApartmentCreate, db: Session = Depends(get_db)):
    apartment = create_apartment(
        db,
        code=payload.code,
        name=payload.name,
        address=payload.address,
        description=payload.description,
    )
    db.commit()
    return success('Apartment created successfully', apartment_to_dict(apartment))


@router.get('/{apartment_id}')
def apartments_show(apartment_id: int, db: Session = Depends(get_db)):
    return success('Apartment retrieved successfully', apartment_to_dict(get_apartment(db, apartment_id)))


@router.patch('/{apartment_id}')
def apartments_update(apartment_id: int, payload: ApartmentUpdate, db: Session = Depends(get_db)):
    apartment = update_apartment(db, apartment_id=apartment_id, **payload.model_dump(exclude_unset=True))
    db.commit()
    return success('Apartment updated successfully', apartment_to_dict(apartment))


@router.delete('/{apartment_id}')
def apartments_delete(apartment_id: int, db: Session = Depends(get_db)):
    deleted = delete_apartment(db, apartment_id=apartment_id)
    db.commit()
    return success('Apartment deleted successfully', deleted)

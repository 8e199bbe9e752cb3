from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import success
from app.schemas import AssignRoom, CustomerCreate, CustomerUpdate
from app.services.customer_service import (
    assign_room,
    create_customer,
    delete_customer,
    describe_customer,
    list_customers,
    update_customer,
)

router = APIRouter(prefix='/api/v1/customers', tags=['customers'])


@router.get('')
def customers_index(
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    room_id: int | None = None,
    apartment_id: int | None = None,
    db: Session = Depends(get_db),
):
    data = list_customers(
        db, page=page, limit=limit, search=search, room_id=room_id, apartment_id=apartment_id
    )
    return success('Customers retrieved successfully', data)


@router.post('', status_code=201)
def customers_create(payload: CustomerCreate, db: Session = Depends(get_db)):
    customer = create_customer(db, **payload.model_dump())
    db.commit()
    return success('Customer created successfully', describe_customer(db, customer.id))


@router.get('/{customer_id}')
def customers_show(customer_id: int, db: Session = Depends(get_db)):
    return success('Customer retrieved successfully', describe_customer(db, customer_id))


@router.patch('/{customer_id}')
def customers_update(customer_id: int, payload: CustomerUpdate, db: Session = Depends(get_db)):
    customer = update_customer(db, customer_id=customer_id, **payload.model_dump(exclude_unset=True))
    db.commit()
    return success('Customer updated successfully', describe_customer(db, customer.id))


@router.post('/{customer_id}/assign-room')
def customers_assign_room(customer_id: int, payload: AssignRoom, db: Session = Depends(get_db)):
    customer, moved = assign_room(db, customer_id=customer_id, room_id=payload.room_id)
    db.commit()
    message = 'Customer moved to new room' if moved else 'Customer assigned to room'
    return success(message, describe_customer(db, customer.id))


@router.delete('/{customer_id}')
def customers_delete(customer_id: int, db: Session = Depends(get_db)):
    deleted = delete_customer(db, customer_id=customer_id)
    db.commit()
    return success('Customer deleted successfully', deleted)

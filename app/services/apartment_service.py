from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Apartment, Customer, Room


def apartment_to_dict(apartment: Apartment) -> dict:
    return {
        'id': apartment.id,
        'code': apartment.code,
        'name': apartment.name,
        'address': apartment.address,
        'description': apartment.description,
        'created_at': apartment.created_at,
        'updated_at': apartment.updated_at,
    }


def get_apartment(db: Session, apartment_id: int) -> Apartment:
    apartment = db.get(Apartment, apartment_id)
    if not apartment:
        raise NotFoundError('Apartment not found')
    return apartment


def find_apartment_by_code(db: Session, code: str) -> Apartment | None:
    return db.execute(select(Apartment).where(Apartment.code == code)).scalar_one_or_none()


def list_apartments(db: Session) -> dict:
    rows = db.execute(select(Apartment).order_by(Apartment.created_at.desc(), Apartment.id.desc())).scalars().all()
    return {'rows': [apartment_to_dict(apartment) for apartment in rows], 'total': len(rows)}


def create_apartment(
    db: Session,
    *,
    code: str,
    name: str = '',
    address: str = '',
    description: str = '',
) -> Apartment:
    clean_code = code.strip()
    if not clean_code:
        raise ValidationError('Apartment code is required')
    if find_apartment_by_code(db, clean_code):
        raise ConflictError(f'Apartment code {clean_code} already exists')

    apartment = Apartment(
        code=clean_code,
        name=name.strip(),
        address=address.strip(),
        description=description.strip(),
    )
    db.add(apartment)
    db.flush()
    return apartment


def update_apartment(
    db: Session,
    *,
    apartment_id: int,
    code: str | None = None,
    name: str | None = None,
    address: str | None = None,
    description: str | None = None,
) -> Apartment:
    apartment = get_apartment(db, apartment_id)
    if code is not None:
        clean_code = code.strip()
        if not clean_code:
            raise ValidationError('Apartment code cannot be empty')
        existing = find_apartment_by_code(db, clean_code)
        if existing and existing.id != apartment.id:
            raise ConflictError(f'Apartment code {clean_code} already exists')
        apartment.code = clean_code
    if name is not None:
        apartment.name = name.strip()
    if address is not None:
        apartment.address = address.strip()
    if description is not None:
        apartment.description = description.strip()
    db.flush()
    return apartment


def delete_apartment(db: Session, *, apartment_id: int) -> dict:
    apartment = get_apartment(db, apartment_id)
    room_count = db.execute(select(func.count(Room.id)).where(Room.apartment_id == apartment.id)).scalar_one()
    if room_count > 0:
        raise ConflictError(f'Cannot delete apartment. It has {room_count} room(s). Please remove rooms first.')
    customer_count = db.execute(
        select(func.count(Customer.id)).where(Customer.apartment_id == apartment.id)
    ).scalar_one()
    if customer_count > 0:
        raise ConflictError(
            f'Cannot delete apartment. It has {customer_count} customer(s). Please remove customers first.'
        )

    deleted = {'deleted_id': apartment.id, 'deleted_code': apartment.code}
    db.delete(apartment)
    db.flush()
    return deleted

from __future__ import annotations

from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, aliased

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Apartment, Customer, Room
from app.services.apartment_service import get_apartment
from app.services.room_service import get_room
from app.services.sheet_row_parser import to_international_phone


def customer_to_dict(
    customer: Customer,
    *,
    room_code: str | None = None,
    apartment_code: str | None = None,
) -> dict:
    return {
        'id': customer.id,
        'uuid': customer.uuid,
        'name': customer.name,
        'phone': customer.phone,
        'dob': customer.dob,
        'room_id': customer.room_id,
        'room_code': room_code,
        'apartment_id': customer.apartment_id,
        'apartment_code': apartment_code,
        'created_at': customer.created_at,
        'updated_at': customer.updated_at,
    }


def customer_codes_query():
    room = aliased(Room)
    apartment = aliased(Apartment)
    return (
        select(Customer, room.code, apartment.code)
        .outerjoin(room, room.id == Customer.room_id)
        .outerjoin(apartment, apartment.id == Customer.apartment_id)
    )


def describe_customer(db: Session, customer_id: int) -> dict:
    row = db.execute(customer_codes_query().where(Customer.id == customer_id)).one_or_none()
    if not row:
        raise NotFoundError('Customer not found')
    customer, room_code, apartment_code = row
    return customer_to_dict(customer, room_code=room_code, apartment_code=apartment_code)


def get_customer(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError('Customer not found')
    return customer


def find_customer_by_phone(db: Session, phone: str) -> Customer | None:
    return db.execute(
        select(Customer).where(Customer.phone == phone).order_by(Customer.id.asc()).limit(1)
    ).scalar_one_or_none()


def list_customers(
    db: Session,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    room_id: int | None = None,
    apartment_id: int | None = None,
) -> dict:
    conditions = []
    if search:
        pattern = f'%{search.strip()}%'
        conditions.append(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
    if room_id:
        conditions.append(Customer.room_id == room_id)
    if apartment_id:
        conditions.append(Customer.apartment_id == apartment_id)

    page = max(page, 1)
    limit = max(limit, 1)
    total = db.execute(select(func.count(Customer.id)).where(*conditions)).scalar_one()
    rows = db.execute(
        customer_codes_query()
        .where(*conditions)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return {
        'rows': [
            customer_to_dict(customer, room_code=room_code, apartment_code=apartment_code)
            for customer, room_code, apartment_code in rows
        ],
        'total': total,
        'page': page,
        'limit': limit,
    }


def _resolve_placement(db: Session, *, room_id: int | None, apartment_id: int | None) -> tuple[int | None, int | None]:
    room = get_room(db, room_id) if room_id else None
    if apartment_id:
        get_apartment(db, apartment_id)
    if room and apartment_id and room.apartment_id != apartment_id:
        raise ValidationError('Room does not belong to the specified apartment')
    if room and not apartment_id:
        apartment_id = room.apartment_id
    return room_id, apartment_id


def _clean_phone(phone: str | None) -> str | None:
    # Stored in the same 84xxx form the sheet sync and dispatchers match on.
    if not phone or not phone.strip():
        return None
    return to_international_phone(phone)


def _ensure_uuid_free(db: Session, uuid: str, customer_id: int | None = None) -> None:
    existing = db.execute(select(Customer).where(Customer.uuid == uuid)).scalar_one_or_none()
    if existing and existing.id != customer_id:
        raise ConflictError('Customer with this UUID already exists')


def create_customer(
    db: Session,
    *,
    name: str,
    uuid: str | None = None,
    phone: str | None = None,
    dob: date | None = None,
    room_id: int | None = None,
    apartment_id: int | None = None,
) -> Customer:
    clean_name = name.strip()
    if not clean_name:
        raise ValidationError('Customer name is required')
    clean_uuid = uuid.strip() if uuid and uuid.strip() else None
    if clean_uuid:
        _ensure_uuid_free(db, clean_uuid)

    room_id, apartment_id = _resolve_placement(db, room_id=room_id, apartment_id=apartment_id)

    customer = Customer(
        uuid=clean_uuid,
        name=clean_name,
        phone=_clean_phone(phone),
        dob=dob,
        room_id=room_id,
        apartment_id=apartment_id,
    )
    db.add(customer)
    db.flush()
    return customer


def update_customer(
    db: Session,
    *,
    customer_id: int,
    name: str | None = None,
    phone: str | None = None,
    dob: date | None = None,
    room_id: int | None = None,
    apartment_id: int | None = None,
) -> Customer:
    customer = get_customer(db, customer_id)
    if name is not None:
        if not name.strip():
            raise ValidationError('Customer name cannot be empty')
        customer.name = name.strip()
    if phone is not None:
        customer.phone = _clean_phone(phone)
    if dob is not None:
        customer.dob = dob
    if room_id or apartment_id:
        customer.room_id, customer.apartment_id = _resolve_placement(
            db, room_id=room_id or customer.room_id, apartment_id=apartment_id
        )
    db.flush()
    return customer


def assign_room(db: Session, *, customer_id: int, room_id: int) -> tuple[Customer, bool]:
    """Move a customer into a room; the apartment always follows the room.

    Returns the customer and whether it was moved out of a different room.
    """
    customer = get_customer(db, customer_id)
    room = get_room(db, room_id)

    moved = customer.room_id is not None and customer.room_id != room.id
    customer.room_id = room.id
    customer.apartment_id = room.apartment_id
    db.flush()
    return customer, moved


def delete_customer(db: Session, *, customer_id: int) -> dict:
    customer = get_customer(db, customer_id)
    deleted = {'deleted_id': customer.id, 'deleted_name': customer.name}
    db.delete(customer)
    db.flush()
    return deleted

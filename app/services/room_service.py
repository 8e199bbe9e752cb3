from __future__ import annotations

import re
import unicodedata

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Apartment, Customer, Room
from app.services.apartment_service import get_apartment

NON_ALNUM_RE = re.compile(r'[^A-Za-z0-9]')


def room_to_dict(room: Room, apartment_code: str | None = None) -> dict:
    return {
        'id': room.id,
        'code': room.code,
        'apartment_id': room.apartment_id,
        'apartment_code': apartment_code,
        'created_at': room.created_at,
        'updated_at': room.updated_at,
    }


def get_room(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise NotFoundError('Room not found')
    return room


def find_room(db: Session, *, code: str, apartment_id: int) -> Room | None:
    return db.execute(
        select(Room).where(Room.code == code, Room.apartment_id == apartment_id)
    ).scalar_one_or_none()


def list_rooms(db: Session, *, apartment_id: int | None = None) -> dict:
    query = (
        select(Room, Apartment.code)
        .join(Apartment, Apartment.id == Room.apartment_id)
        .order_by(Room.created_at.desc(), Room.id.desc())
    )
    if apartment_id:
        query = query.where(Room.apartment_id == apartment_id)
    rows = [room_to_dict(room, apartment_code) for room, apartment_code in db.execute(query).all()]
    return {'rows': rows, 'total': len(rows)}


def _ensure_code_free(db: Session, *, code: str, apartment_id: int, room_id: int | None = None) -> None:
    existing = find_room(db, code=code, apartment_id=apartment_id)
    if existing and existing.id != room_id:
        raise ConflictError('Room code already exists in this apartment')


def create_room(db: Session, *, code: str, apartment_id: int) -> Room:
    clean_code = code.strip()
    if not clean_code:
        raise ValidationError('Room code and apartment_id are required')
    get_apartment(db, apartment_id)
    _ensure_code_free(db, code=clean_code, apartment_id=apartment_id)

    room = Room(code=clean_code, apartment_id=apartment_id)
    db.add(room)
    db.flush()
    return room


def update_room(db: Session, *, room_id: int, code: str, apartment_id: int | None = None) -> Room:
    room = get_room(db, room_id)
    clean_code = code.strip()
    if not clean_code:
        raise ValidationError('Room code is required')
    if apartment_id:
        get_apartment(db, apartment_id)

    previous_apartment_id = room.apartment_id
    target_apartment_id = apartment_id or room.apartment_id
    _ensure_code_free(db, code=clean_code, apartment_id=target_apartment_id, room_id=room.id)

    room.code = clean_code
    room.apartment_id = target_apartment_id
    if target_apartment_id != previous_apartment_id:
        db.execute(
            update(Customer).where(Customer.room_id == room.id).values(apartment_id=target_apartment_id)
        )
    db.flush()
    return room


def delete_room(db: Session, *, room_id: int) -> dict:
    room = get_room(db, room_id)
    customer_count = db.execute(select(func.count(Customer.id)).where(Customer.room_id == room.id)).scalar_one()
    if customer_count > 0:
        raise ConflictError(
            f'Cannot delete room. It has {customer_count} customer(s). Please remove customers first.'
        )

    deleted = {'deleted_id': room.id, 'deleted_code': room.code}
    db.delete(room)
    db.flush()
    return deleted


def normalize_room_text(value: str) -> str:
    decomposed = unicodedata.normalize('NFD', value)
    stripped = ''.join(char for char in decomposed if not unicodedata.combining(char))
    stripped = stripped.replace('đ', 'd').replace('Đ', 'D')
    return NON_ALNUM_RE.sub('', stripped).upper()


def find_room_in_message(db: Session, message: str) -> Room | None:
    """Return the first room whose code appears in free text, ignoring accents, case and punctuation."""
    needle = normalize_room_text(message)
    if not needle:
        return None
    rooms = db.execute(select(Room).order_by(Room.id.asc())).scalars().all()
    for room in rooms:
        code = normalize_room_text(room.code)
        if code and code in needle:
            return room
    return None

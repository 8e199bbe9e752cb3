from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import success
from app.schemas import RoomCheck, RoomCreate, RoomUpdate
from app.services.apartment_service import get_apartment
from app.services.room_service import (
    create_room,
    delete_room,
    find_room_in_message,
    get_room,
    list_rooms,
    room_to_dict,
    update_room,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/v1/rooms', tags=['rooms'])


@router.get('')
def rooms_index(apartment_id: int | None = None, db: Session = Depends(get_db)):
    return success('Rooms retrieved successfully', list_rooms(db, apartment_id=apartment_id))


@router.post('', status_code=201)
def rooms_create(payload: RoomCreate, db: Session = Depends(get_db)):
    room = create_room(db, code=payload.code, apartment_id=payload.apartment_id)
    db.commit()
    return success('Room created successfully', room_to_dict(room))


# Declared before /{room_id} so the literal path wins.
@router.post('/check')
def rooms_check(payload: RoomCheck, db: Session = Depends(get_db)):
    room = find_room_in_message(db, payload.message)
    if not room:
        logger.info('No room code found in chatbot message from %s', payload.phone)
        return success('No matching room found', {'found': False, 'room': None})
    apartment = get_apartment(db, room.apartment_id)
    return success('Room found', {'found': True, 'room': room_to_dict(room, apartment.code)})


@router.get('/{room_id}')
def rooms_show(room_id: int, db: Session = Depends(get_db)):
    room = get_room(db, room_id)
    apartment = get_apartment(db, room.apartment_id)
    return success('Room retrieved successfully', room_to_dict(room, apartment.code))


@router.patch('/{room_id}')
def rooms_update(room_id: int, payload: RoomUpdate, db: Session = Depends(get_db)):
    room = update_room(db, room_id=room_id, code=payload.code, apartment_id=payload.apartment_id)
    db.commit()
    return success('Room updated successfully', room_to_dict(room))


@router.delete('/{room_id}')
def rooms_delete(room_id: int, db: Session = Depends(get_db)):
    deleted = delete_room(db, room_id=room_id)
    db.commit()
    return success('Room deleted successfully', deleted)

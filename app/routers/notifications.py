from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies import message_dispatcher, success, tracking_cache
from app.schemas import NotificationCreate
from app.services.message_dispatcher import MessageDispatcher
from app.services.notification_service import create_notification, list_notifications
from app.services.tracking_cache import TrackingCache

router = APIRouter(prefix='/api/v1/notifications', tags=['notifications'])


@router.get('')
def notifications_index(limit: int = 50, db: Session = Depends(get_db)):
    return success('Notifications retrieved successfully', list_notifications(db, limit=limit))


@router.post('/send', status_code=201)
def notifications_send(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    dispatcher: MessageDispatcher = Depends(message_dispatcher),
    cache: TrackingCache = Depends(tracking_cache),
):
    notification = create_notification(
        db,
        title=payload.title,
        content=payload.content,
        apartment_ids=payload.apartment_ids,
        room_ids=payload.room_ids,
        dispatcher=dispatcher,
        tracking_cache=cache,
        send=payload.send,
    )
    db.commit()
    return success('Notification created successfully', notification)

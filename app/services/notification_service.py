from __future__ import annotations

import logging

from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DispatchFailure, NotFoundError, ValidationError
from app.models import Apartment, Customer, Notification, NotificationLog, Room
from app.services.customer_service import customer_codes_query
from app.services.message_dispatcher import DispatchResult, MessageDispatcher
from app.services.sheet_row_parser import MIN_PHONE_LENGTH, to_international_phone
from app.services.tracking_cache import TrackingCache

logger = logging.getLogger(__name__)

DEFAULT_CUSTOMER_NAME = 'Quý khách'
UNKNOWN_PLACEMENT = 'Chưa cập nhật'

_template_env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=True)


def notification_to_dict(notification: Notification, logs: list[NotificationLog] | None = None) -> dict:
    return {
        'id': notification.id,
        'title': notification.title,
        'content': notification.content,
        'apartment_ids': notification.apartment_ids,
        'room_ids': notification.room_ids,
        'logs': [
            {
                'customer_id': log.customer_id,
                'customer_name': log.customer_name,
                'customer_phone': log.customer_phone,
                'message': log.message,
                'result': log.result,
                'success': log.success,
            }
            for log in logs or []
        ],
        'created_at': notification.created_at,
    }


def _clean_ids(values: list[int] | None) -> list[int]:
    seen: list[int] = []
    for value in values or []:
        if value not in seen:
            seen.append(value)
    return seen


def _ensure_targets_exist(db: Session, model, ids: list[int], label: str) -> None:
    if not ids:
        return
    found = set(db.execute(select(model.id).where(model.id.in_(ids))).scalars().all())
    missing = [target_id for target_id in ids if target_id not in found]
    if missing:
        raise NotFoundError(f'{label} not found: {", ".join(str(target_id) for target_id in missing)}')


def _target_customers(db: Session, *, apartment_ids: list[int], room_ids: list[int]) -> list[tuple]:
    conditions = []
    if apartment_ids:
        conditions.append(Customer.apartment_id.in_(apartment_ids))
    if room_ids:
        conditions.append(Customer.room_id.in_(room_ids))
    # One row per customer even when both an apartment and one of its rooms are targeted.
    return db.execute(customer_codes_query().where(or_(*conditions)).order_by(Customer.id.asc())).all()


def render_content(template, *, customer: Customer, room_code: str | None, apartment_code: str | None) -> str:
    phone = to_international_phone(customer.phone) if customer.phone else ''
    return template.render(
        customer={
            'name': customer.name or DEFAULT_CUSTOMER_NAME,
            'phone': phone,
            'room_code': room_code or UNKNOWN_PLACEMENT,
            'apartment_code': apartment_code or UNKNOWN_PLACEMENT,
        }
    )


def _notify_customer(
    notification: Notification,
    template,
    *,
    customer: Customer,
    room_code: str | None,
    apartment_code: str | None,
    dispatcher: MessageDispatcher,
    tracking_cache: TrackingCache,
) -> NotificationLog:
    name = customer.name or DEFAULT_CUSTOMER_NAME
    log = NotificationLog(
        notification_id=notification.id,
        customer_id=customer.id,
        customer_name=name,
        customer_phone=None,
        success=False,
    )

    raw_phone = (customer.phone or '').strip()
    if len(raw_phone) < MIN_PHONE_LENGTH:
        log.message = f'Skipped {name}: no usable phone number'
        log.result = 'skipped'
        return log

    phone = to_international_phone(raw_phone)
    log.customer_phone = phone
    try:
        body = render_content(template, customer=customer, room_code=room_code, apartment_code=apartment_code)
    except TemplateError as exc:
        log.message = f'Could not render notification for {name} {phone}'
        log.result = str(exc)
        return log

    tracking_id = f'notification_{notification.id}_{customer.id}'
    tracking_cache.set_with_expiry(tracking_id, phone, settings.tracking_ttl_seconds)
    try:
        outcome = dispatcher.send(
            phone=phone,
            template_id=settings.zns_notification_template_id,
            template_data={'notification_title': notification.title, 'notification_body': body},
            tracking_id=tracking_id,
        )
    except DispatchFailure as exc:
        outcome = DispatchResult(success=False, message=str(exc))

    log.success = outcome.success
    log.result = outcome.message
    if outcome.success:
        log.message = f'Sent notification to {name} {phone}'
    else:
        logger.warning('Notification %s to %s failed: %s', notification.id, phone, outcome.message)
        log.message = f'Failed to send notification to {name} {phone}'
    return log


def create_notification(
    db: Session,
    *,
    title: str,
    content: str,
    apartment_ids: list[int] | None = None,
    room_ids: list[int] | None = None,
    dispatcher: MessageDispatcher,
    tracking_cache: TrackingCache,
    send: bool = True,
) -> dict:
    """Fan a templated message out to every customer of the targeted apartments and rooms.

    ``content`` is a sandboxed Jinja2 template rendered once per customer with a
    ``customer`` mapping (name, phone, room_code, apartment_code). Every target
    is checked before anything is sent. One log row is kept per customer.
    """
    clean_title = (title or '').strip()
    clean_content = (content or '').strip()
    if not clean_title or not clean_content:
        raise ValidationError('Notification title and content are required')
    apartment_ids = _clean_ids(apartment_ids)
    room_ids = _clean_ids(room_ids)
    if not apartment_ids and not room_ids:
        raise ValidationError('At least one apartment or room must be targeted')

    try:
        template = _template_env.from_string(clean_content)
    except TemplateError as exc:
        raise ValidationError(f'Invalid notification template: {exc}') from exc

    _ensure_targets_exist(db, Apartment, apartment_ids, 'Apartment')
    _ensure_targets_exist(db, Room, room_ids, 'Room')

    notification = Notification(
        title=clean_title,
        content=clean_content,
        apartment_ids=apartment_ids,
        room_ids=room_ids,
    )
    db.add(notification)
    db.flush()

    logs: list[NotificationLog] = []
    if send:
        for customer, room_code, apartment_code in _target_customers(
            db, apartment_ids=apartment_ids, room_ids=room_ids
        ):
            logs.append(
                _notify_customer(
                    notification,
                    template,
                    customer=customer,
                    room_code=room_code,
                    apartment_code=apartment_code,
                    dispatcher=dispatcher,
                    tracking_cache=tracking_cache,
                )
            )
        db.add_all(logs)
        db.flush()
        logger.info(
            'Notification %s sent to %d of %d customer(s)',
            notification.id,
            sum(1 for log in logs if log.success),
            len(logs),
        )

    return notification_to_dict(notification, logs)


def list_notifications(db: Session, *, limit: int = 50) -> list[dict]:
    notifications = db.execute(
        select(Notification).order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    ).scalars().all()
    if not notifications:
        return []

    logs = db.execute(
        select(NotificationLog)
        .where(NotificationLog.notification_id.in_([notification.id for notification in notifications]))
        .order_by(NotificationLog.id.asc())
    ).scalars().all()
    logs_by_notification: dict[int, list[NotificationLog]] = {}
    for log in logs:
        logs_by_notification.setdefault(log.notification_id, []).append(log)
    return [
        notification_to_dict(notification, logs_by_notification.get(notification.id, []))
        for notification in notifications
    ]

from __future__ import annotations

from datetime import date, datetime
from enum import Enum, IntEnum

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntId = BigInteger().with_variant(Integer(), 'sqlite')


class Base(DeclarativeBase):
    pass


class InvoiceStatus(IntEnum):
    PENDING = 1
    SENT = 2
    PAID = 3
    FAILED = 4


class Gender(str, Enum):
    MALE = 'Nam'
    FEMALE = 'Nữ'
    UNKNOWN = 'N/A'


class Apartment(Base):
    __tablename__ = 'apartments'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    address: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    description: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Room(Base):
    __tablename__ = 'rooms'
    __table_args__ = (UniqueConstraint('code', 'apartment_id', name='uq_rooms_code_apartment'),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    apartment_id: Mapped[int] = mapped_column(BigIntId, ForeignKey('apartments.id'), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Customer(Base):
    __tablename__ = 'customers'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    uuid: Mapped[str | None] = mapped_column(Text, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(Text, index=True)
    dob: Mapped[date | None] = mapped_column(Date)
    room_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey('rooms.id'), index=True)
    apartment_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey('apartments.id'), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class Invoice(Base):
    __tablename__ = 'invoices'
    __table_args__ = (
        # Natural key used by the sheet sync; room/customer are matched by these strings, not by FK.
        UniqueConstraint('room_code', 'customer_name', 'month', 'year', name='uq_invoices_period_key'),
        CheckConstraint('month >= 1 AND month <= 12', name='ck_invoices_month'),
        CheckConstraint('invoice_status IN (1, 2, 3, 4)', name='ck_invoices_status'),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    room_code: Mapped[str] = mapped_column(Text, nullable=False)
    apartment_code: Mapped[str | None] = mapped_column(Text, index=True)

    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(Text, nullable=False, default=Gender.UNKNOWN.value, server_default='N/A')
    birth_date: Mapped[date | None] = mapped_column(Date)
    phone: Mapped[str] = mapped_column(Text, nullable=False)

    contract_start_date: Mapped[date | None] = mapped_column(Date)
    contract_end_date: Mapped[date | None] = mapped_column(Date)
    contract_duration_months: Mapped[int | None] = mapped_column(Integer)

    deposit_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    room_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    stay_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    actual_room_fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')

    electricity_old_index: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    electricity_new_index: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    electricity_used_kwh: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    electricity_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    electricity_staff: Mapped[str | None] = mapped_column(Text)

    water_usage: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default='1')
    water_fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    management_fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')

    old_debt: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    deduction: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    amount_paid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    remaining_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    source_total_amount: Mapped[int | None] = mapped_column(BigInteger)

    note: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')
    extra_note: Mapped[str] = mapped_column(Text, nullable=False, default='', server_default='')

    invoice_status: Mapped[int] = mapped_column(
        Integer, nullable=False, default=InvoiceStatus.PENDING.value, server_default='1'
    )
    invoice_message: Mapped[str | None] = mapped_column(Text)

    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class InvoiceHistoryEntry(Base):
    __tablename__ = 'invoice_history'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False, index=True
    )
    status: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Notification(Base):
    __tablename__ = 'notifications'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    apartment_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    room_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class NotificationLog(Base):
    __tablename__ = 'notification_logs'

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    notification_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey('notifications.id', ondelete='CASCADE'), nullable=False, index=True
    )
    customer_id: Mapped[int | None] = mapped_column(BigIntId, ForeignKey('customers.id', ondelete='SET NULL'))
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(Text)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    result: Mapped[str] = mapped_column(Text, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default='false')

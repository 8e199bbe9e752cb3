from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class ApartmentCreate(RequestModel):
    code: str = Field(min_length=1)
    name: str = ''
    address: str = ''
    description: str = ''


class ApartmentUpdate(RequestModel):
    code: str | None = None
    name: str | None = None
    address: str | None = None
    description: str | None = None


class RoomCreate(RequestModel):
    code: str = Field(min_length=1)
    apartment_id: int


class RoomUpdate(RequestModel):
    code: str = Field(min_length=1)
    apartment_id: int | None = None


class RoomCheck(RequestModel):
    """Chatbot payload: the room code is looked up inside the free-text message."""

    message: str = ''
    phone: str | None = None


class CustomerCreate(RequestModel):
    name: str = Field(min_length=1)
    uuid: str | None = None
    phone: str | None = None
    dob: date | None = None
    room_id: int | None = None
    apartment_id: int | None = None


class CustomerUpdate(RequestModel):
    name: str | None = None
    phone: str | None = None
    dob: date | None = None
    room_id: int | None = None
    apartment_id: int | None = None


class AssignRoom(RequestModel):
    room_id: int


class ElectricityReading(RequestModel):
    old_index: int = 0
    new_index: int = 0
    staff: str | None = None


class ContractTerms(RequestModel):
    start_date: date | None = None
    end_date: date | None = None
    duration_months: int | None = None


class InvoiceCreate(RequestModel):
    room_code: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    month: int = Field(ge=1, le=12)
    year: int = Field(gt=0)
    apartment_code: str | None = None
    gender: str = 'Nam'
    birth_date: date | None = None
    contract: ContractTerms = Field(default_factory=ContractTerms)
    deposit_amount: int = 0
    room_price: int = 0
    stay_days: int = 30
    electricity: ElectricityReading = Field(default_factory=ElectricityReading)
    water_usage: int = 1
    water_fee: int = 0
    management_fee: int = 0
    old_debt: int = 0
    deduction: int = 0
    note: str = ''
    extra_note: str = ''


class SendManyInvoices(RequestModel):
    invoice_ids: list[int]


class SheetSyncRequest(RequestModel):
    spreadsheet_id: str | None = None
    sheet_name: str = Field(min_length=1)
    month: int
    year: int
    start_row: int | None = None
    end_row: int | None = None
    start_column: str | None = None
    end_column: str | None = None


class NotificationCreate(RequestModel):
    title: str
    content: str
    apartment_ids: list[int] = Field(default_factory=list)
    room_ids: list[int] = Field(default_factory=list)
    send: bool = True

from __future__ import annotations

from dataclasses import dataclass


ELECTRICITY_UNIT_RATE = 4000


@dataclass(frozen=True)
class ElectricityCharge:
    old_index: int
    new_index: int
    used_kwh: int
    price: int


@dataclass(frozen=True)
class ChargeInput:
    room_price: int
    water_fee: int = 0
    management_fee: int = 0
    electricity_price: int = 0
    old_debt: int = 0
    deduction: int = 0
    amount_paid: int = 0
    actual_room_fee: int | None = None


@dataclass(frozen=True)
class ChargeTotals:
    actual_room_fee: int
    total_amount: int
    remaining_amount: int


def electricity_usage(old_index: int, new_index: int) -> int:
    # Out-of-order meter readings pass through as negative usage.
    return new_index - old_index


def electricity_cost(used_kwh: int, unit_rate: int = ELECTRICITY_UNIT_RATE) -> int:
    return used_kwh * unit_rate


def manual_electricity(old_index: int, new_index: int, unit_rate: int = ELECTRICITY_UNIT_RATE) -> ElectricityCharge:
    """Meter readings priced at the flat tariff; sheet-synced invoices carry their own price instead."""
    used_kwh = electricity_usage(old_index, new_index)
    return ElectricityCharge(
        old_index=old_index,
        new_index=new_index,
        used_kwh=used_kwh,
        price=electricity_cost(used_kwh, unit_rate),
    )


def remaining_amount(total_amount: int, amount_paid: int) -> int:
    return total_amount - amount_paid


def compute_totals(charges: ChargeInput) -> ChargeTotals:
    actual_room_fee = charges.room_price if charges.actual_room_fee is None else charges.actual_room_fee
    total_amount = (
        actual_room_fee
        + charges.water_fee
        + charges.management_fee
        + charges.electricity_price
        + charges.old_debt
        - charges.deduction
    )
    return ChargeTotals(
        actual_room_fee=actual_room_fee,
        total_amount=total_amount,
        remaining_amount=remaining_amount(total_amount, charges.amount_paid),
    )

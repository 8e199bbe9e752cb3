from __future__ import annotations

import unittest

from app.services.billing_service import (
    ChargeInput,
    compute_totals,
    electricity_cost,
    electricity_usage,
    manual_electricity,
)


class BillingServiceTests(unittest.TestCase):
    def test_usage_is_new_minus_old(self) -> None:
        self.assertEqual(electricity_usage(1200, 1250), 50)

    def test_out_of_order_readings_pass_through_negative(self) -> None:
        self.assertEqual(electricity_usage(1250, 1200), -50)
        self.assertEqual(manual_electricity(1250, 1200).price, -200000)

    def test_manual_electricity_uses_flat_rate(self) -> None:
        charge = manual_electricity(1200, 1250)
        self.assertEqual(charge.used_kwh, 50)
        self.assertEqual(charge.price, 200000)
        self.assertEqual(electricity_cost(50, unit_rate=3500), 175000)

    def test_totals_default_actual_fee_to_room_price(self) -> None:
        totals = compute_totals(
            ChargeInput(
                room_price=3500000,
                water_fee=200000,
                management_fee=150000,
                electricity_price=200000,
                old_debt=50000,
                deduction=100000,
                amount_paid=1000000,
            )
        )
        self.assertEqual(totals.actual_room_fee, 3500000)
        self.assertEqual(totals.total_amount, 4000000)
        self.assertEqual(totals.remaining_amount, 3000000)

    def test_totals_use_prorated_room_fee_when_given(self) -> None:
        totals = compute_totals(ChargeInput(room_price=3000000, actual_room_fee=1500000, water_fee=100000))
        self.assertEqual(totals.actual_room_fee, 1500000)
        self.assertEqual(totals.total_amount, 1600000)
        self.assertEqual(totals.remaining_amount, 1600000)

    def test_zero_actual_fee_is_kept(self) -> None:
        totals = compute_totals(ChargeInput(room_price=3000000, actual_room_fee=0, management_fee=150000))
        self.assertEqual(totals.total_amount, 150000)

    def test_sheet_price_and_flat_rate_can_disagree(self) -> None:
        # Sheet rows carry their own electricity price; only manual invoices use the flat rate.
        sheet_price = 250000
        self.assertNotEqual(manual_electricity(900, 980).price, sheet_price)
        totals = compute_totals(ChargeInput(room_price=3200000, electricity_price=sheet_price))
        self.assertEqual(totals.total_amount, 3450000)


if __name__ == '__main__':
    unittest.main()

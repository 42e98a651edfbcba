from datetime import date

from studiodesk.shared.money import calculate_due_date, calculate_totals, format_money, next_document_number


def test_totals_round_half_up():
    totals = calculate_totals(
        [{"quantity": 3, "unit_price": 0.335}, {"quantity": 1, "unit_price": 1200}], tax_rate=20
    )
    assert totals["amounts"] == [1.01, 1200.0]
    assert totals["subtotal"] == 1201.01
    assert totals["tax_amount"] == 240.2
    assert totals["total"] == 1441.21


def test_totals_without_tax():
    totals = calculate_totals([{"quantity": 2, "unit_price": 49.99}])
    assert totals["tax_amount"] == 0
    assert totals["total"] == 99.98


def test_document_numbers_continue_from_highest():
    existing = ["INV-2026-001", "INV-2026-007", "INV-2025-050", "junk"]
    assert next_document_number("INV", existing, 2026) == "INV-2026-008"
    assert next_document_number("PROP", [], 2026) == "PROP-2026-001"


def test_due_dates_follow_payment_terms():
    issued = date(2026, 3, 1)
    assert calculate_due_date("Due on receipt", issued) == issued
    assert calculate_due_date("Net 15", issued) == date(2026, 3, 16)
    assert calculate_due_date("net60", issued) == date(2026, 4, 30)
    assert calculate_due_date("whenever", issued) == date(2026, 3, 31)


def test_format_money():
    assert format_money(1441.21, "GBP") == "£1,441.21"
    assert format_money(10, "CHF") == "10.00 CHF"


def test_line_amounts_are_summed_before_rounding():
    half_pennies = [{"quantity": 1, "unit_price": 0.005}, {"quantity": 1, "unit_price": 0.005}]
    totals = calculate_totals(half_pennies)
    assert totals["amounts"] == [0.01, 0.01]
    assert totals["subtotal"] == 0.01
    assert totals["total"] == 0.01


def test_tax_is_taken_on_the_unrounded_subtotal():
    # subtotal 10.006, tax at 50% is 5.003; taxing the rounded 10.01 would give 5.01
    totals = calculate_totals([{"quantity": 2, "unit_price": 5.003}], tax_rate=50)
    assert totals["subtotal"] == 10.01
    assert totals["tax_amount"] == 5.0
    assert totals["total"] == 15.01

from decimal import Decimal

import pytest

from printshop_core.app.models import BookStatus, MovementDirection
from printshop_core.app.services.rules import (
    derive_status, validate_quantities, apply_movement, is_low_stock,
    book_unit_cost, generate_barcode,
    QuantityInvariantError, InsufficientStockError, InvalidOperationError,
)


@pytest.mark.parametrize("ready, printing, expected", [
    (30, 20, BookStatus.READY),
    (1, 0, BookStatus.READY),
    (0, 20, BookStatus.PRINTING),
    (0, 0, BookStatus.UNAVAILABLE),
])
def test_derive_status(ready, printing, expected):
    assert derive_status(ready, printing) == expected


def test_validate_quantities_accepts_exact_fit():
    validate_quantities(100, 30, 70)
    validate_quantities(0, 0, 0)


def test_ready_above_total_is_rejected():
    with pytest.raises(QuantityInvariantError) as exc:
        validate_quantities(100, 101, 0)
    assert "Ready quantity (101) cannot exceed total quantity (100)" in str(exc.value)


def test_ready_plus_printing_above_total_is_rejected():
    with pytest.raises(QuantityInvariantError) as exc:
        validate_quantities(100, 60, 50)
    assert "(110)" in str(exc.value)


def test_negative_is_reported_before_other_checks():
    with pytest.raises(QuantityInvariantError) as exc:
        validate_quantities(10, 20, -1)
    assert str(exc.value) == "Quantities cannot be negative"


def test_apply_movement_in_and_out():
    assert apply_movement(10, MovementDirection.IN, 5) == 15
    assert apply_movement(15, "out", 5) == 10
    assert apply_movement(5, MovementDirection.OUT, 5) == 0


def test_apply_movement_out_beyond_stock():
    with pytest.raises(InsufficientStockError) as exc:
        apply_movement(10, MovementDirection.OUT, 15)
    assert "Available: 10" in str(exc.value)
    assert "Requested: 15" in str(exc.value)


@pytest.mark.parametrize("amount", [0, -3])
def test_apply_movement_rejects_non_positive_amount(amount):
    with pytest.raises(InvalidOperationError):
        apply_movement(10, MovementDirection.IN, amount)


def test_apply_movement_rejects_unknown_direction():
    with pytest.raises(InvalidOperationError):
        apply_movement(10, "sideways", 1)


def test_low_stock_threshold_is_inclusive():
    assert is_low_stock(5, 10)
    assert is_low_stock(10, 10)
    assert not is_low_stock(15, 10)


def test_book_unit_cost():
    cost = book_unit_cost(200, Decimal("5"), Decimal("3500"), 1000, Decimal("100"))
    assert cost == Decimal("1800.00")


def test_book_unit_cost_without_cartridge_yield():
    assert book_unit_cost(100, Decimal("2.5"), Decimal("3500"), 0, Decimal("0")) == Decimal("250.00")


def test_generate_barcode_prefix():
    barcode = generate_barcode("MAT")
    assert barcode.startswith("MAT")
    assert barcode[3:].isdigit()

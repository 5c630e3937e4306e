"""
Consistency Rules
=================
Pure functions that compute derived state and check invariants before
anything is written:
- Book status from ready/printing quantities
- Book quantity invariants
- Material quantity after an in/out movement
- Low-stock detection
- Barcode and unit-cost helpers
"""

import random
import time
from decimal import Decimal, ROUND_HALF_UP

from ..models import BookStatus, MovementDirection


class PrintShopError(Exception):
    """Base exception for business-rule failures"""
    pass


class InsufficientStockError(PrintShopError):
    """Raised when an outward movement would drive quantity negative"""
    pass


class QuantityInvariantError(PrintShopError):
    """Raised when book quantities do not reconcile"""
    pass


class InvalidOperationError(PrintShopError):
    """Raised when operation is not allowed in current state"""
    pass


class DeleteNotAllowedError(PrintShopError):
    """Raised when the caller's role may not delete the record"""
    pass


# =============================================================================
# BOOKS
# =============================================================================

def derive_status(ready: int, printing: int) -> BookStatus:
    """
    Book status as a function of its quantities.

    ready > 0 wins over printing > 0; neither means unavailable.
    """
    if ready > 0:
        return BookStatus.READY
    if printing > 0:
        return BookStatus.PRINTING
    return BookStatus.UNAVAILABLE


def validate_quantities(total: int, ready: int, printing: int) -> None:
    """
    Check book quantity invariants in order, failing on the first violation.

    Raises:
        QuantityInvariantError: with the reason of the first failed check
    """
    if total < 0 or ready < 0 or printing < 0:
        raise QuantityInvariantError("Quantities cannot be negative")
    if ready > total:
        raise QuantityInvariantError(
            f"Ready quantity ({ready}) cannot exceed total quantity ({total})"
        )
    if ready + printing > total:
        raise QuantityInvariantError(
            f"Ready plus printing quantity ({ready + printing}) cannot exceed total quantity ({total})"
        )


def book_unit_cost(
    page_count: int,
    paper_price_per_sheet: Decimal,
    ink_cartridge_price: Decimal,
    pages_per_cartridge: int,
    additional_costs: Decimal,
) -> Decimal:
    """Production cost of one copy: paper, ink share and extras"""
    paper = Decimal(page_count) * Decimal(str(paper_price_per_sheet))
    ink = Decimal("0")
    if pages_per_cartridge and pages_per_cartridge > 0:
        ink = Decimal(page_count) / Decimal(pages_per_cartridge) * Decimal(str(ink_cartridge_price))
    total = paper + ink + Decimal(str(additional_costs))
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# =============================================================================
# INVENTORY
# =============================================================================

def apply_movement(current: int, direction, amount: int) -> int:
    """
    Quantity of a material after applying one movement.

    Args:
        current: quantity on hand
        direction: MovementDirection (or its string value)
        amount: units moved, must be positive

    Raises:
        InvalidOperationError: non-positive amount or unknown direction
        InsufficientStockError: an `out` larger than what is on hand
    """
    if amount <= 0:
        raise InvalidOperationError("Movement quantity must be positive")

    try:
        direction = MovementDirection(direction)
    except ValueError:
        raise InvalidOperationError(f"Unknown movement type: {direction}")

    if direction == MovementDirection.IN:
        return current + amount

    new_quantity = current - amount
    if new_quantity < 0:
        raise InsufficientStockError(
            f"Insufficient stock. Available: {current}, Requested: {amount}"
        )
    return new_quantity


def is_low_stock(quantity: int, min_quantity: int) -> bool:
    return quantity <= min_quantity


def generate_barcode(prefix: str) -> str:
    """`<PREFIX><epoch millis><0-999>`, e.g. MAT1718000000000123"""
    return f"{prefix}{int(time.time() * 1000)}{random.randint(0, 999)}"

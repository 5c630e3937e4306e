"""
Services package initialization.
Business logic layer for print shop operations.
"""

from .rules import (
    PrintShopError,
    InsufficientStockError,
    QuantityInvariantError,
    InvalidOperationError,
    DeleteNotAllowedError,
    derive_status,
    validate_quantities,
    apply_movement,
    is_low_stock,
    generate_barcode,
    book_unit_cost,
)
from .inventory_service import (
    MaterialService,
    MovementService,
    InventoryQueryService,
)
from .book_service import BookService
from .order_service import OrderService
from .calculation_service import CalculationService
from .pricing import quote_print_job, PAPER_SIZES
from .activity import record_activity

__all__ = [
    'PrintShopError',
    'InsufficientStockError',
    'QuantityInvariantError',
    'InvalidOperationError',
    'DeleteNotAllowedError',
    'derive_status',
    'validate_quantities',
    'apply_movement',
    'is_low_stock',
    'generate_barcode',
    'book_unit_cost',
    'MaterialService',
    'MovementService',
    'InventoryQueryService',
    'BookService',
    'OrderService',
    'CalculationService',
    'quote_print_job',
    'PAPER_SIZES',
    'record_activity',
]

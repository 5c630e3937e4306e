"""
Print job price quotes.

Formula: paper price x pages x copies + cover price x copies, minus an
optional discount that only admins may grant.
"""

from decimal import Decimal, ROUND_HALF_UP

from .rules import InvalidOperationError

# paper size -> per-page price by paper type, and per-copy cover price
PAPER_SIZES = {
    "16/24": {"prices": {"normal": Decimal("5.85"), "colored": Decimal("5.85")}, "cover_price": Decimal("150")},
    "15/22": {"prices": {"normal": Decimal("3.25"), "colored": Decimal("9.33")}, "cover_price": Decimal("80")},
    "A3": {"prices": {"normal": Decimal("12"), "colored": Decimal("12")}, "cover_price": Decimal("210")},
}

ZERO = Decimal("0")
CENT = Decimal("0.01")


def quote_print_job(
    page_count: int,
    copies: int,
    paper_size: str = "16/24",
    paper_type: str = "normal",
    discount_type: str = "amount",
    discount_value=0,
    allow_discount: bool = False,
) -> dict:
    if page_count <= 0 or copies <= 0:
        return {
            "paper_cost": ZERO,
            "cover_cost": ZERO,
            "original_total": ZERO,
            "discount_amount": ZERO,
            "final_total": ZERO,
        }

    size = PAPER_SIZES.get(paper_size)
    if size is None:
        raise InvalidOperationError(f"Unknown paper size: {paper_size}")
    if paper_type not in size["prices"]:
        raise InvalidOperationError(f"Unknown paper type: {paper_type}")

    paper_cost = size["prices"][paper_type] * page_count * copies
    cover_cost = size["cover_price"] * copies
    original_total = paper_cost + cover_cost

    discount = ZERO
    if allow_discount:
        value = Decimal(str(discount_value))
        if discount_type == "percent":
            discount = original_total * value / Decimal("100")
        else:
            discount = value
        # clamp to [0, original_total]
        discount = max(ZERO, min(discount, original_total))

    return {
        "paper_cost": paper_cost.quantize(CENT, rounding=ROUND_HALF_UP),
        "cover_cost": cover_cost.quantize(CENT, rounding=ROUND_HALF_UP),
        "original_total": original_total.quantize(CENT, rounding=ROUND_HALF_UP),
        "discount_amount": discount.quantize(CENT, rounding=ROUND_HALF_UP),
        "final_total": (original_total - discount).quantize(CENT, rounding=ROUND_HALF_UP),
    }

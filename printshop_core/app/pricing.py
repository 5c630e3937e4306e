from fastapi import APIRouter, Depends, HTTPException

from . import models, schemas
from .deps import require_page
from .permissions import Page, can_grant_discount
from .services.pricing import quote_print_job, PAPER_SIZES
from .services.rules import InvalidOperationError

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


@router.get("/paper-sizes")
def list_paper_sizes(current_user: models.User = Depends(require_page(Page.PRICING))):
    return {
        size: {
            "prices": {k: float(v) for k, v in info["prices"].items()},
            "cover_price": float(info["cover_price"]),
        }
        for size, info in PAPER_SIZES.items()
    }


@router.post("/quote", response_model=schemas.PricingQuoteOut)
def quote(body: schemas.PricingQuoteIn, current_user: models.User = Depends(require_page(Page.PRICING))):
    """
    Price a print job.
    Discounts are ignored unless the caller is an admin.
    """
    try:
        return quote_print_job(
            page_count=body.page_count,
            copies=body.copies,
            paper_size=body.paper_size,
            paper_type=body.paper_type,
            discount_type=body.discount_type,
            discount_value=body.discount_value,
            allow_discount=can_grant_discount(current_user.role),
        )
    except InvalidOperationError as e:
        raise HTTPException(status_code=400, detail=str(e))

from fastapi import APIRouter, UploadFile, File, HTTPException, Depends, Request
from typing import List, Any
import logging
import pandas as pd
from io import BytesIO
from sqlalchemy.orm import Session

from .deps import get_db, require_page, client_ip
from .permissions import Page
from .services.inventory_service import MaterialService
from . import models

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/materials/import", tags=["excel"])


def _to_native(value: Any):
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if hasattr(value, "item"):
        try:
            return value.item()
        except (ValueError, AttributeError):
            return value
    return value


# Maps common spreadsheet headers to material fields
DEFAULT_COLUMN_MAPPINGS = {
    "name": "name", "material": "name", "material name": "name", "item": "name",
    "description": "name", "product": "name",

    "type": "type", "category": "type", "kind": "type", "material type": "type",

    "quantity": "quantity", "qty": "quantity", "qty.": "quantity", "stock": "quantity",
    "count": "quantity", "pcs": "quantity", "pieces": "quantity",

    "min_quantity": "min_quantity", "min quantity": "min_quantity", "minimum": "min_quantity",
    "min": "min_quantity", "reorder level": "min_quantity", "reorder": "min_quantity",

    "price": "price", "unit price": "price", "cost": "price", "rate": "price",
}

REQUIRED_FIELDS = ("name", "type", "price")


def _find_column_mapping(columns: List[str]) -> dict:
    """Map spreadsheet columns to material fields, first match wins."""
    mapping = {}
    for col in columns:
        col_lower = str(col).lower().strip()
        if col_lower in DEFAULT_COLUMN_MAPPINGS:
            db_field = DEFAULT_COLUMN_MAPPINGS[col_lower]
            if db_field not in mapping.values():
                mapping[col] = db_field
    return mapping


def _read_file_to_dataframe(content: bytes, filename: str) -> pd.DataFrame:
    """Read the first sheet of an .xlsx file or a .csv file."""
    filename_lower = filename.lower()

    if filename_lower.endswith(".xlsx"):
        try:
            return pd.read_excel(BytesIO(content), sheet_name=0, engine="openpyxl")
        except Exception as exc:
            raise HTTPException(status_code=400, detail=f"Failed to read Excel file: {exc}")

    if filename_lower.endswith(".csv"):
        for encoding in ("utf-8", "latin-1", "cp1252"):
            try:
                return pd.read_csv(BytesIO(content), encoding=encoding)
            except UnicodeDecodeError:
                continue
            except Exception as exc:
                raise HTTPException(status_code=400, detail=f"Failed to read CSV file: {exc}")

    raise HTTPException(status_code=400, detail="Only .xlsx and .csv files are supported")


def _whole_number(value, field: str) -> int:
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"{field} must be a whole number")
    return int(number)


def _row_to_material(row: dict) -> dict:
    """Coerce one mapped row; raises ValueError with a readable reason."""
    missing = [f for f in REQUIRED_FIELDS if row.get(f) in (None, "")]
    if missing:
        raise ValueError(f"missing {', '.join(missing)}")

    quantity = _whole_number(row.get("quantity") or 0, "quantity")
    min_quantity = _whole_number(row["min_quantity"], "min_quantity") if row.get("min_quantity") is not None else 10
    price = float(row["price"])
    if quantity < 0 or min_quantity < 0 or price < 0:
        raise ValueError("quantity, min_quantity and price cannot be negative")

    return {
        "name": str(row["name"]).strip(),
        "type": str(row["type"]).strip(),
        "quantity": quantity,
        "min_quantity": min_quantity,
        "price": price,
    }


def _load_rows(file: UploadFile):
    filename = file.filename or ""
    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    df = _read_file_to_dataframe(content, filename)
    columns = [str(c).strip() for c in df.columns.tolist()]
    df.columns = columns
    mapping = _find_column_mapping(columns)

    rows = []
    for _, r in df.iterrows():
        mapped = {}
        for col, field in mapping.items():
            mapped[field] = _to_native(r[col])
        rows.append(mapped)
    return columns, mapping, rows


@router.post("/preview")
def preview_import(file: UploadFile = File(...), current_user: models.User = Depends(require_page(Page.INVENTORY))):
    """Show detected columns and parsed rows without importing anything."""
    columns, mapping, rows = _load_rows(file)
    parsed, errors = [], []
    for index, row in enumerate(rows, start=2):  # row 1 is the header
        try:
            parsed.append(_row_to_material(row))
        except (ValueError, TypeError) as exc:
            errors.append({"row": index, "error": str(exc)})
    return {
        "columns": columns,
        "detected_mapping": mapping,
        "rows": parsed,
        "errors": errors,
        "row_count": len(rows),
    }


@router.post("")
def import_materials(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_page(Page.INVENTORY)),
):
    """
    Create one material per valid spreadsheet row.
    Invalid rows are reported and skipped; valid rows commit together.
    """
    _, _, rows = _load_rows(file)
    created, errors = [], []
    for index, row in enumerate(rows, start=2):
        try:
            data = _row_to_material(row)
        except (ValueError, TypeError) as exc:
            errors.append({"row": index, "error": str(exc)})
            continue
        material = MaterialService.create_material(db, data, current_user, client_ip(request))
        created.append(material)

    db.commit()
    logger.info("Imported %s materials (%s rows rejected) by %s", len(created), len(errors), current_user.username)
    return {
        "created": len(created),
        "barcodes": [m.barcode for m in created],
        "errors": errors,
    }

"""Display formatting shared by the interactive result view and the exports."""

from datetime import date, datetime
from typing import Any, Optional

from customs_app.core.config import UNIT_PRICE_DECIMALS


def display_value(value: Any) -> Any:
    """Normalize a raw column value for tabular output."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return value


def _as_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def unit_price(cif: Any, quantity: Any, currency: Optional[str] = None, decimals: int = UNIT_PRICE_DECIMALS) -> str:
    """
    CIF divided by quantity, e.g. ``"25.0000 USD"``.

    Empty when either value is missing, non-numeric or zero, so a line with no
    quantity never renders an infinite or NaN price.
    """
    cif_value = _as_number(cif)
    qty_value = _as_number(quantity)
    if not cif_value or not qty_value or qty_value <= 0:
        return ""

    formatted = f"{cif_value / qty_value:,.{decimals}f}"
    if currency:
        formatted = f"{formatted} {currency.strip()}"
    return formatted


def rupiah(amount: Any) -> str:
    """Format an amount as Indonesian Rupiah: ``Rp. 1.234,56``."""
    value = _as_number(amount) or 0.0
    grouped = f"{value:,.2f}".translate(str.maketrans({",": ".", ".": ","}))
    return f"Rp. {grouped}"


def document_info(document) -> str:
    """``namadokumen :: nomordokumen, namafasilitas`` with missing parts left out."""
    if document is None:
        return ""
    info = document.namadokumen or ""
    if document.nomordokumen:
        info += f" :: {document.nomordokumen}"
    if document.namafasilitas:
        info += f", {document.namafasilitas}"
    return info

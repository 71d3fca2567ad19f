from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from indian_format import amount_in_words


@dataclass(frozen=True)
class Totals:
    subtotal: float
    tax_amount: float
    total: float
    amount_in_words: str


def _to_number(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _row_values(row: Any) -> Mapping[str, Any]:
    if isinstance(row, Mapping):
        return row
    values = getattr(row, "values", None)
    return values if isinstance(values, Mapping) else {}


def line_amount(row: Any) -> float:
    """amount = quantity * rate for a single item row."""
    values = _row_values(row)
    return _to_number(_to_number(values.get("quantity")) * _to_number(values.get("rate")))


def compute_totals(rows: Iterable[Any], tax_rate: float) -> Totals:
    """
    Derive subtotal, tax, total and the total in words.

    The subtotal trusts the amount stored on each row; it does not recompute
    quantity * rate here.
    """
    subtotal = sum(_to_number(_row_values(row).get("amount")) for row in rows)
    tax_amount = subtotal * _to_number(tax_rate) / 100.0
    total = subtotal + tax_amount
    # Overflowed sums count as zero.
    if not math.isfinite(total):
        subtotal = tax_amount = total = 0.0
    return Totals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=total,
        amount_in_words=amount_in_words(total),
    )

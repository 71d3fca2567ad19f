from __future__ import annotations

import json
import math
import random
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Optional

from items_table import ItemTable
from pricing import compute_totals, line_amount

QUOTATION = "quotation"
INVOICE = "invoice"
DOCUMENT_KINDS: tuple[str, ...] = (QUOTATION, INVOICE)

NUMBER_PREFIXES = {QUOTATION: "QT", INVOICE: "PI"}
DEFAULT_TAX_RATE = 18.0
DEFAULT_VALIDITY_DAYS = 30


@dataclass
class Contact:
    name: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""


def _rate(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, number) if math.isfinite(number) else 0.0


def document_number(kind: str, today: date, rng: Optional[random.Random] = None) -> str:
    """QT-2024-4821 style number with a random four digit suffix."""
    rng = rng or random.Random()
    return f"{NUMBER_PREFIXES[kind]}-{today.year}-{rng.randint(1000, 9999)}"


@dataclass
class DocumentState:
    kind: str
    number: str
    date: str
    valid_until: str
    customer: Contact = field(default_factory=Contact)
    notes: str = ""
    terms: str = ""
    tax_rate: float = DEFAULT_TAX_RATE
    table: ItemTable = field(default_factory=ItemTable)
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    amount_in_words: str = ""

    def __post_init__(self) -> None:
        if self.kind not in DOCUMENT_KINDS:
            raise ValueError(f"Unknown document kind {self.kind!r}")
        self.attach_table(self.table)

    @property
    def items(self):
        return self.table.rows

    @property
    def is_invoice(self) -> bool:
        return self.kind == INVOICE

    def attach_table(self, table: ItemTable) -> None:
        """Own `table`: amounts use quantity * rate and every edit recomputes totals."""
        self.table = table
        table.calculate_amount = line_amount
        table.on_change = lambda _rows: self.recompute()
        self.recompute()

    def recompute(self) -> None:
        totals = compute_totals(self.table.rows, self.tax_rate)
        self.subtotal = totals.subtotal
        self.tax_amount = totals.tax_amount
        self.total = totals.total
        self.amount_in_words = totals.amount_in_words

    def set_tax_rate(self, value: Any) -> None:
        self.tax_rate = _rate(value)
        self.recompute()

    def file_name(self) -> str:
        return f"{self.number}.pdf"

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "number": self.number,
            "date": self.date,
            "valid_until": self.valid_until,
            "customer": asdict(self.customer),
            "notes": self.notes,
            "terms": self.terms,
            "tax_rate": self.tax_rate,
            "table": self.table.to_dict(),
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "total": self.total,
            "amount_in_words": self.amount_in_words,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentState":
        customer = data.get("customer") or {}
        return cls(
            kind=str(data.get("kind", QUOTATION)),
            number=str(data.get("number", "")),
            date=str(data.get("date", "")),
            valid_until=str(data.get("valid_until", "")),
            customer=Contact(
                name=str(customer.get("name", "")),
                address=str(customer.get("address", "")),
                email=str(customer.get("email", "")),
                phone=str(customer.get("phone", "")),
            ),
            notes=str(data.get("notes", "")),
            terms=str(data.get("terms", "")),
            tax_rate=_rate(data.get("tax_rate", DEFAULT_TAX_RATE)),
            table=ItemTable.from_dict(data.get("table") or {}),
        )

    @classmethod
    def from_json(cls, raw: str) -> "DocumentState":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed document payload: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Malformed document payload: expected an object")
        return cls.from_dict(data)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def new_document(
    kind: str = QUOTATION,
    defaults: Optional[Dict[str, Any]] = None,
    *,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> DocumentState:
    """A fresh document with one empty row, a random number and preset terms."""
    defaults = defaults or {}
    today = today or date.today()
    validity_days = int(defaults.get("validity_days", DEFAULT_VALIDITY_DAYS))
    return DocumentState(
        kind=kind,
        number=document_number(kind, today, rng),
        date=today.isoformat(),
        valid_until=(today + timedelta(days=validity_days)).isoformat(),
        terms=str(defaults.get(f"{kind}_terms", "")),
        tax_rate=_rate(defaults.get("tax_rate", DEFAULT_TAX_RATE)),
        table=ItemTable(),
    )


def convert_to_invoice(
    quotation: DocumentState,
    defaults: Optional[Dict[str, Any]] = None,
    *,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> DocumentState:
    """Copy a quotation's customer, items, notes and tax rate into a performa invoice."""
    invoice = new_document(INVOICE, defaults, today=today, rng=rng)
    invoice.customer = Contact(**asdict(quotation.customer))
    invoice.notes = quotation.notes
    invoice.tax_rate = quotation.tax_rate
    invoice.attach_table(ItemTable.from_dict(quotation.table.to_dict()))
    return invoice

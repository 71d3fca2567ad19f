from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

SERIAL_NO = "serial_no"
DESCRIPTION = "description"
QUANTITY = "quantity"
RATE = "rate"
AMOUNT = "amount"

STANDARD_COLUMN_IDS: tuple[str, ...] = (SERIAL_NO, DESCRIPTION, QUANTITY, RATE, AMOUNT)
CUSTOM_COLUMN_WIDTH = "15%"


class SchemaError(ValueError):
    """A row's fields no longer match the table's column schema."""


class AddColumnResult(str, Enum):
    ADDED = "added"
    ALREADY_EXISTS = "already_exists"
    EMPTY_NAME = "empty_name"


@dataclass(frozen=True)
class Column:
    id: str
    name: str
    width: str = CUSTOM_COLUMN_WIDTH
    required: bool = False
    type: str = "text"
    align: str = "left"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "required": self.required,
            "type": self.type,
            "align": self.align,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            width=str(data.get("width", CUSTOM_COLUMN_WIDTH)),
            required=bool(data.get("required", False)),
            type=str(data.get("type", "text")),
            align=str(data.get("align", "left")),
        )


def default_columns() -> List[Column]:
    return [
        Column(SERIAL_NO, "S. No.", "10%", True, "text", "center"),
        Column(DESCRIPTION, "Description", "40%", True, "text", "left"),
        Column(QUANTITY, "Quantity", "15%", True, "number", "right"),
        Column(RATE, "Rate", "15%", True, "number", "right"),
        Column(AMOUNT, "Amount", "15%", True, "number", "right"),
    ]


def column_id_for(name: str) -> str:
    """'Delivery City' -> 'delivery_city'."""
    return re.sub(r"\s+", "_", name.strip().lower())


def _default_value(column_id: str, serial_no: str) -> Any:
    if column_id == SERIAL_NO:
        return serial_no
    if column_id == QUANTITY:
        return 1
    if column_id in (RATE, AMOUNT):
        return 0
    return ""


def _to_int(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _to_float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass
class ItemRow:
    id: str
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def serial_no(self) -> str:
        return str(self.values.get(SERIAL_NO, ""))

    @property
    def description(self) -> str:
        return str(self.values.get(DESCRIPTION, ""))

    @property
    def quantity(self) -> float:
        return self.values.get(QUANTITY, 0)

    @property
    def rate(self) -> float:
        return self.values.get(RATE, 0)

    @property
    def amount(self) -> float:
        return self.values.get(AMOUNT, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.values}


RowsListener = Callable[[List[ItemRow]], None]
AmountFn = Callable[[ItemRow], float]


class ItemTable:
    """
    Ordered item rows over a user-extensible column schema.

    Every mutation calls ``on_change`` once with the current rows so the
    owning document can recompute its totals.
    """

    def __init__(
        self,
        columns: Optional[Iterable[Column]] = None,
        rows: Optional[Iterable[ItemRow]] = None,
        *,
        calculate_amount: Optional[AmountFn] = None,
        on_change: Optional[RowsListener] = None,
        next_id: Optional[int] = None,
    ):
        self.columns: List[Column] = list(columns) if columns else default_columns()
        missing = [c for c in STANDARD_COLUMN_IDS if c not in self.column_ids]
        if missing:
            raise SchemaError(f"Missing standard columns: {', '.join(missing)}")
        self.calculate_amount = calculate_amount
        self.on_change = on_change

        if rows is None:
            self.rows: List[ItemRow] = [self._new_row("1", "1")]
        else:
            self.rows = list(rows)
            for index, row in enumerate(self.rows, start=1):
                if not row.values.get(SERIAL_NO):
                    row.values[SERIAL_NO] = str(index)
        self.validate()

        highest = max((_to_int(r.id) for r in self.rows), default=0)
        self._next_id = max(next_id or 0, highest + 1)

    # -- schema --------------------------------------------------------------

    @property
    def column_ids(self) -> List[str]:
        return [c.id for c in self.columns]

    @property
    def custom_columns(self) -> List[Column]:
        return [c for c in self.columns if c.id not in STANDARD_COLUMN_IDS]

    @property
    def next_id(self) -> int:
        return self._next_id

    def column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def validate(self) -> None:
        expected = set(self.column_ids)
        for row in self.rows:
            keys = set(row.values)
            if keys != expected:
                missing = ", ".join(sorted(expected - keys))
                extra = ", ".join(sorted(keys - expected))
                raise SchemaError(
                    f"Row {row.id!r} does not match columns (missing: {missing or '-'}; extra: {extra or '-'})"
                )

    def _new_row(self, row_id: str, serial_no: str) -> ItemRow:
        values = {c.id: _default_value(c.id, serial_no) for c in self.columns}
        return ItemRow(id=row_id, values=values)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.rows)

    def row(self, row_id: str) -> ItemRow:
        for row in self.rows:
            if row.id == row_id:
                return row
        raise KeyError(f"Unknown row {row_id!r}")

    # -- rows ----------------------------------------------------------------

    def add_row(self) -> ItemRow:
        serial_no = str(len(self.rows) + 1)
        row = self._new_row(str(self._next_id), serial_no)
        self._next_id += 1
        self.rows.append(row)
        self._notify()
        return row

    def remove_row(self, row_id: str) -> bool:
        remaining = [r for r in self.rows if r.id != row_id]
        if len(remaining) == len(self.rows):
            return False
        # Serial numbers of the remaining rows are left as they were.
        self.rows = remaining
        self._notify()
        return True

    def update_cell(self, row_id: str, column_id: str, value: Any) -> ItemRow:
        if self.column(column_id) is None:
            raise KeyError(f"Unknown column {column_id!r}")
        row = self.row(row_id)

        if column_id == QUANTITY:
            value = _to_int(value)
        elif column_id == RATE:
            value = _to_float(value)
        row.values[column_id] = value

        if column_id in (QUANTITY, RATE) and self.calculate_amount is not None:
            row.values[AMOUNT] = self.calculate_amount(row)
        self._notify()
        return row

    # -- columns -------------------------------------------------------------

    def add_column(self, name: str) -> AddColumnResult:
        if not name or not name.strip():
            return AddColumnResult.EMPTY_NAME
        column_id = column_id_for(name)
        if self.column(column_id) is not None:
            logger.info("Column %r already exists", column_id)
            return AddColumnResult.ALREADY_EXISTS

        column = Column(id=column_id, name=name.strip())
        position = self.column_ids.index(DESCRIPTION) + 1
        self.columns.insert(position, column)
        for row in self.rows:
            row.values[column_id] = ""
        self._notify()
        return AddColumnResult.ADDED

    def remove_column(self, column_id: str) -> bool:
        column = self.column(column_id)
        if column is None or column.required:
            return False
        self.columns = [c for c in self.columns if c.id != column_id]
        for row in self.rows:
            row.values.pop(column_id, None)
        self._notify()
        return True

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "rows": [r.to_dict() for r in self.rows],
            "next_id": self._next_id,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        *,
        calculate_amount: Optional[AmountFn] = None,
        on_change: Optional[RowsListener] = None,
    ) -> "ItemTable":
        columns = [Column.from_dict(c) for c in data.get("columns", [])]
        rows: Optional[List[ItemRow]] = None
        if "rows" in data:
            rows = []
            for raw in data["rows"]:
                values = dict(raw)
                row_id = str(values.pop("id"))
                rows.append(ItemRow(id=row_id, values=values))
        return cls(
            columns or None,
            rows,
            calculate_amount=calculate_amount,
            on_change=on_change,
            next_id=_to_int(data.get("next_id")),
        )

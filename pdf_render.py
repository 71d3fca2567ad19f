"""
Quotation / performa invoice PDF layout using ReportLab.

The document is an A4 platypus story: letterhead header and footer are drawn
on every page, the item table flows across pages with its header repeated.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from html import escape
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from document import DocumentState
from indian_format import format_date, format_indian_number
from items_table import STANDARD_COLUMN_IDS

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_X = 30
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN_X

GRAY_TEXT = colors.HexColor("#333333")
GRAY_MUTED = colors.HexColor("#555555")
GRAY_RULE = colors.HexColor("#EEEEEE")
HEADER_FILL = colors.HexColor("#F5F5F5")
BRAND = colors.HexColor("#1B2A4A")

DEFAULT_CUSTOM_COLUMN_ORDER: tuple[str, ...] = ("size", "city")

# Relative widths: serial, description, each custom column, quantity, rate, amount.
SERIAL_WIDTH = 8
DESCRIPTION_WIDTH = 32
CUSTOM_WIDTH = 15
NUMBER_WIDTH = 15

TITLES = {"quotation": "QUOTATION", "invoice": "PERFORMA INVOICE"}
META_LABELS = {
    "quotation": ("Quotation Number", "Date", "Valid Until"),
    "invoice": ("Invoice Number", "Date", "Due Date"),
}


@dataclass
class Company:
    name: str = ""
    address_lines: List[str] = field(default_factory=list)
    phone: str = ""
    email: str = ""

    @classmethod
    def from_presets(cls, data: Dict[str, Any]) -> "Company":
        return cls(
            name=str(data.get("name", "")),
            address_lines=[str(line) for line in data.get("address_lines", [])],
            phone=str(data.get("phone", "")),
            email=str(data.get("email", "")),
        )


@dataclass
class Letterhead:
    header_image: str = ""
    footer_image: str = ""
    header_height: float = 40 * mm
    footer_height: float = 30 * mm
    company_name: str = ""

    @classmethod
    def from_presets(cls, data: Dict[str, Any], company_name: str = "") -> "Letterhead":
        return cls(
            header_image=str(data.get("header_image", "")),
            footer_image=str(data.get("footer_image", "")),
            header_height=float(data.get("header_height_mm", 40)) * mm,
            footer_height=float(data.get("footer_height_mm", 30)) * mm,
            company_name=company_name,
        )


# ---------------------------------------------------------------------------
# Table content
# ---------------------------------------------------------------------------


def ordered_custom_columns(
    keys: Sequence[str],
    preferred: Sequence[str] = DEFAULT_CUSTOM_COLUMN_ORDER,
) -> List[str]:
    """
    Custom (non-standard) column ids in display order.

    Ids in ``preferred`` come first in that order (case-insensitive), the rest
    follow alphabetically.
    """
    preferred_lower = [p.lower() for p in preferred]
    custom = [k for k in keys if k != "id" and k not in STANDARD_COLUMN_IDS]

    def sort_key(key: str) -> tuple[int, int, str]:
        lowered = key.lower()
        if lowered in preferred_lower:
            return (0, preferred_lower.index(lowered), key)
        return (1, 0, key)

    return sorted(custom, key=sort_key)


def column_title(column_id: str) -> str:
    """'delivery_city' -> 'Delivery City'."""
    return " ".join(word[:1].upper() + word[1:] for word in column_id.split("_"))


def _quantity_text(value: Any) -> str:
    if not value:
        return "0"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    return str(int(number)) if number.is_integer() else f"{number:g}"


def _money_text(value: Any) -> str:
    try:
        number = float(value or 0)
    except (TypeError, ValueError):
        number = 0.0
    return format_indian_number(number) if number else "0.00"


def _tax_rate_text(rate: float) -> str:
    return f"{rate:g}" if rate else "0"


def item_table_rows(doc: DocumentState, preferred: Sequence[str] = DEFAULT_CUSTOM_COLUMN_ORDER) -> List[List[str]]:
    """Header row followed by one text row per item, custom columns ordered once."""
    custom = ordered_custom_columns(doc.table.column_ids, preferred)
    header = ["S. No.", "Description", *[column_title(c) for c in custom], "Quantity", "Rate", "Amount"]

    rows = [header]
    for item in doc.items:
        values = item.values
        rows.append([
            item.serial_no or item.id,
            item.description or "-",
            *[str(values.get(c) or "") for c in custom],
            _quantity_text(values.get("quantity")),
            _money_text(values.get("rate")),
            _money_text(values.get("amount")),
        ])
    return rows


def _column_widths(custom_count: int) -> List[float]:
    base = [SERIAL_WIDTH, DESCRIPTION_WIDTH, *([CUSTOM_WIDTH] * custom_count), NUMBER_WIDTH, NUMBER_WIDTH, NUMBER_WIDTH]
    total = sum(base)
    return [w * CONTENT_WIDTH / total for w in base]


# ---------------------------------------------------------------------------
# Styles & letterhead
# ---------------------------------------------------------------------------


def _styles() -> Dict[str, ParagraphStyle]:
    sheet = getSampleStyleSheet()
    normal = sheet["Normal"]
    return {
        "title": ParagraphStyle("DocTitle", parent=normal, fontName="Helvetica-Bold", fontSize=18,
                                leading=22, alignment=TA_CENTER, textColor=GRAY_TEXT, spaceAfter=12),
        "subheader": ParagraphStyle("SubHeader", parent=normal, fontName="Helvetica-Bold", fontSize=11,
                                    leading=14, textColor=GRAY_MUTED, spaceAfter=4),
        "body": ParagraphStyle("Body", parent=normal, fontSize=10, leading=13, textColor=GRAY_TEXT),
        "cell": ParagraphStyle("Cell", parent=normal, fontSize=9.5, leading=12),
        "cell_head": ParagraphStyle("CellHead", parent=normal, fontName="Helvetica-Bold", fontSize=10, leading=12),
        "cell_right": ParagraphStyle("CellRight", parent=normal, fontSize=9.5, leading=12, alignment=TA_RIGHT),
        "head_right": ParagraphStyle("HeadRight", parent=normal, fontName="Helvetica-Bold", fontSize=10,
                                     leading=12, alignment=TA_RIGHT),
        "words": ParagraphStyle("Words", parent=normal, fontName="Helvetica-Oblique", fontSize=10, leading=13,
                                textColor=GRAY_TEXT),
        "small": ParagraphStyle("Small", parent=normal, fontSize=9, leading=12, textColor=GRAY_TEXT),
    }


def _image_reader(path: str) -> Optional[ImageReader]:
    if not path:
        return None
    if not os.path.exists(path):
        logger.warning("Letterhead image not found: %s", path)
        return None
    return ImageReader(path)


class _LetterheadPainter:
    """Page callback drawing the header and footer graphics on every page."""

    def __init__(self, letterhead: Letterhead):
        self.letterhead = letterhead
        self.header = _image_reader(letterhead.header_image)
        self.footer = _image_reader(letterhead.footer_image)

    def __call__(self, canvas, doc) -> None:
        lh = self.letterhead
        canvas.saveState()
        if self.header is not None:
            canvas.drawImage(self.header, 0, PAGE_HEIGHT - lh.header_height, width=PAGE_WIDTH,
                             height=lh.header_height, mask="auto")
        else:
            band = min(lh.header_height, 22 * mm)
            canvas.setFillColor(BRAND)
            canvas.rect(0, PAGE_HEIGHT - band, PAGE_WIDTH, band, fill=1, stroke=0)
            canvas.setFillColor(colors.white)
            canvas.setFont("Helvetica-Bold", 16)
            canvas.drawString(MARGIN_X, PAGE_HEIGHT - band / 2 - 5, lh.company_name)

        if self.footer is not None:
            canvas.drawImage(self.footer, 0, 0, width=PAGE_WIDTH, height=lh.footer_height, mask="auto")
        else:
            band = min(lh.footer_height, 10 * mm)
            canvas.setFillColor(BRAND)
            canvas.rect(0, 0, PAGE_WIDTH, band, fill=1, stroke=0)

        canvas.setFillColor(GRAY_MUTED)
        canvas.setFont("Helvetica", 8)
        canvas.drawRightString(PAGE_WIDTH - MARGIN_X, lh.footer_height + 6, f"Page {doc.page}")
        canvas.restoreState()


# ---------------------------------------------------------------------------
# Story sections
# ---------------------------------------------------------------------------


def _p(text: str, style: ParagraphStyle) -> Paragraph:
    return Paragraph(escape(text).replace("\n", "<br/>"), style)


def _party_block(doc: DocumentState, company: Company, st: Dict[str, ParagraphStyle]) -> Table:
    sender = [_p("From:", st["subheader"]), _p(company.name, st["body"])]
    sender += [_p(line, st["body"]) for line in company.address_lines]
    if company.phone:
        sender.append(_p(f"Phone: {company.phone}", st["body"]))
    if company.email:
        sender.append(_p(f"Email: {company.email}", st["body"]))

    customer = doc.customer
    recipient = [
        _p("To:", st["subheader"]),
        _p(customer.name, st["body"]),
        _p(customer.address, st["body"]),
        _p(f"Phone: {customer.phone}", st["body"]),
        _p(f"Email: {customer.email}", st["body"]),
    ]
    table = Table([[sender, recipient]], colWidths=[CONTENT_WIDTH / 2] * 2)
    table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
    ]))
    return table


def _meta_block(doc: DocumentState, st: Dict[str, ParagraphStyle]) -> Table:
    number_label, date_label, until_label = META_LABELS[doc.kind]
    lines = [
        (number_label, doc.number),
        (date_label, format_date(doc.date)),
        (until_label, format_date(doc.valid_until)),
    ]
    cells = [[Paragraph(f"<b>{escape(label)}:</b> {escape(value)}", st["body"])] for label, value in lines]
    table = Table(cells, colWidths=[CONTENT_WIDTH / 2])
    table.hAlign = "LEFT"
    table.setStyle(TableStyle([
        ("LINEABOVE", (0, 0), (-1, 0), 0.75, GRAY_RULE),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("TOPPADDING", (0, 0), (-1, 0), 8),
    ]))
    return table


def _items_block(doc: DocumentState, preferred: Sequence[str], st: Dict[str, ParagraphStyle]) -> Table:
    rows = item_table_rows(doc, preferred)
    numeric_from = len(rows[0]) - 3

    def cell(text: str, col: int, head: bool) -> Paragraph:
        if col >= numeric_from:
            return _p(text, st["head_right" if head else "cell_right"])
        return _p(text, st["cell_head" if head else "cell"])

    data = [[cell(text, col, index == 0) for col, text in enumerate(row)] for index, row in enumerate(rows)]
    table = Table(data, colWidths=_column_widths(numeric_from - 2), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
        ("LINEBELOW", (0, 0), (-1, 0), 1, colors.black),
        ("LINEBELOW", (0, 1), (-1, -1), 0.5, GRAY_RULE),
        ("ALIGN", (0, 0), (0, -1), "CENTER"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    return table


def _totals_block(doc: DocumentState, st: Dict[str, ParagraphStyle]) -> Table:
    data = [
        ["Subtotal:", _money_text(doc.subtotal)],
        [f"GST ({_tax_rate_text(doc.tax_rate)}%):", _money_text(doc.tax_amount)],
        ["Total:", _money_text(doc.total)],
    ]
    table = Table(data, colWidths=[CONTENT_WIDTH * 0.22, CONTENT_WIDTH * 0.18])
    table.hAlign = "RIGHT"
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 1), 10),
        ("FONTSIZE", (0, -1), (-1, -1), 12),
        ("ALIGN", (1, 0), (1, -1), "RIGHT"),
        ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
    ]))
    return table


def build_story(
    doc: DocumentState,
    company: Company,
    preferred: Sequence[str] = DEFAULT_CUSTOM_COLUMN_ORDER,
) -> List[Any]:
    st = _styles()
    story: List[Any] = [
        _p(TITLES[doc.kind], st["title"]),
        _party_block(doc, company, st),
        Spacer(1, 6),
        _meta_block(doc, st),
        Spacer(1, 12),
        _items_block(doc, preferred, st),
        Spacer(1, 16),
        _totals_block(doc, st),
        Spacer(1, 12),
        Paragraph(f"<b>Amount in words:</b> {escape(doc.amount_in_words)}", st["words"]),
    ]
    if doc.terms.strip():
        story += [Spacer(1, 15), _p("Terms & Conditions:", st["subheader"]), _p(doc.terms, st["small"])]
    if doc.notes.strip():
        story += [Spacer(1, 10), _p("Notes:", st["subheader"]), _p(doc.notes, st["small"])]
    return story


def render_document_pdf(
    doc: DocumentState,
    company: Optional[Company] = None,
    letterhead: Optional[Letterhead] = None,
    custom_column_order: Sequence[str] = DEFAULT_CUSTOM_COLUMN_ORDER,
) -> bytes:
    """Render ``doc`` to PDF bytes."""
    company = company or Company()
    letterhead = letterhead or Letterhead(company_name=company.name)
    buffer = BytesIO()
    template = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN_X,
        rightMargin=MARGIN_X,
        topMargin=letterhead.header_height + 8 * mm,
        bottomMargin=letterhead.footer_height + 8 * mm,
        title=f"{TITLES[doc.kind].title()} {doc.number}",
        author=company.name,
    )
    painter = _LetterheadPainter(letterhead)
    template.build(
        build_story(doc, company, custom_column_order),
        onFirstPage=painter,
        onLaterPages=painter,
    )
    pdf = buffer.getvalue()
    logger.info("Rendered %s %s (%d items, %d bytes)", doc.kind, doc.number, len(doc.items), len(pdf))
    return pdf

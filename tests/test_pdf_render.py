import random
from datetime import date

from reportlab.platypus import Paragraph

from document import INVOICE, QUOTATION, new_document
from pdf_render import (
    Company,
    Letterhead,
    build_story,
    column_title,
    item_table_rows,
    ordered_custom_columns,
    render_document_pdf,
)


def _doc(kind=QUOTATION):
    doc = new_document(kind, {"tax_rate": 18}, today=date(2024, 3, 5), rng=random.Random(5))
    row_id = doc.items[0].id
    doc.table.update_cell(row_id, "description", "Printed banners")
    doc.table.update_cell(row_id, "quantity", "3")
    doc.table.update_cell(row_id, "rate", "250")
    return doc


def test_custom_column_order():
    keys = ["serial_no", "description", "zone", "City", "colour", "size", "quantity", "rate", "amount"]
    assert ordered_custom_columns(keys) == ["size", "City", "colour", "zone"]
    assert ordered_custom_columns(keys, ["zone"]) == ["zone", "City", "colour", "size"]


def test_column_title():
    assert column_title("delivery_city") == "Delivery City"


def test_item_rows_line_up_with_header():
    doc = _doc()
    doc.table.add_column("City")
    doc.table.add_column("Size")
    doc.table.update_cell(doc.items[0].id, "city", "Raipur")
    doc.table.add_row()

    rows = item_table_rows(doc)
    assert rows[0] == ["S. No.", "Description", "Size", "City", "Quantity", "Rate", "Amount"]
    assert rows[1] == ["1", "Printed banners", "", "Raipur", "3", "250.00", "750.00"]
    assert rows[2] == ["2", "-", "", "", "1", "0.00", "0.00"]
    assert all(len(r) == len(rows[0]) for r in rows)


def test_large_amounts_use_indian_grouping():
    doc = _doc()
    doc.table.update_cell(doc.items[0].id, "rate", "1234567.89")
    doc.table.update_cell(doc.items[0].id, "quantity", "1")
    assert item_table_rows(doc)[1][-1] == "12,34,567.89"


def _texts(story):
    return [f.getPlainText() for f in story if isinstance(f, Paragraph)]


def test_terms_and_notes_only_when_present():
    doc = _doc()
    doc.terms = ""
    doc.notes = "  "
    texts = _texts(build_story(doc, Company(name="Acme")))
    assert "Terms & Conditions:" not in texts
    assert "Notes:" not in texts

    doc.notes = "Handle with care"
    texts = _texts(build_story(doc, Company(name="Acme")))
    assert "Notes:" in texts


def test_render_quotation_pdf():
    pdf = render_document_pdf(_doc(), Company(name="Global Digital Connect", address_lines=["Raipur"]))
    assert pdf.startswith(b"%PDF")


def test_render_invoice_with_many_rows_and_missing_images(tmp_path):
    doc = _doc(INVOICE)
    for _ in range(60):
        doc.table.add_row()
    letterhead = Letterhead(header_image=str(tmp_path / "missing.png"), company_name="Acme")
    pdf = render_document_pdf(doc, Company(name="Acme"), letterhead)
    assert pdf.startswith(b"%PDF")

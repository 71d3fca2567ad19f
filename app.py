from __future__ import annotations

import csv
import io
import logging
import os
from typing import Dict, List, Optional, Tuple

from flask import Flask, Response, render_template, request, send_file, url_for

import config
from document import DOCUMENT_KINDS, INVOICE, QUOTATION, DocumentState, convert_to_invoice, new_document
from drive import DriveSession, DriveUploader, UploadStatus
from indian_format import format_date, format_indian_number
from items_table import AMOUNT, AddColumnResult, SchemaError
from pdf_render import Company, Letterhead, render_document_pdf
from sample_data import SAMPLE_QUOTATIONS, filter_quotations, status_class

logger = logging.getLogger(__name__)

app = Flask(__name__)


# ---------------------------------------------------------------------------
# Configuration & shared collaborators
# ---------------------------------------------------------------------------

PRESETS = config.load_presets()
config.configure_logging()
DEFAULTS = config.section(PRESETS, "defaults")
COMPANY = Company.from_presets(config.section(PRESETS, "company"))
DOCUMENT_PRESETS = config.section(PRESETS, "document")
DRIVE_PRESETS = config.section(PRESETS, "drive")
CUSTOM_COLUMN_ORDER = config.custom_column_order(PRESETS)

LETTERHEAD = Letterhead.from_presets(DOCUMENT_PRESETS, COMPANY.name)
LETTERHEAD.header_image = config.resolve_path(LETTERHEAD.header_image)
LETTERHEAD.footer_image = config.resolve_path(LETTERHEAD.footer_image)

DRIVE_SESSION = DriveSession.from_presets(
    {**DRIVE_PRESETS, "token_file": config.resolve_path(DRIVE_PRESETS.get("token_file", ""))}
)
DRIVE_SESSION.initialize()
DRIVE_FOLDER_NAME = DRIVE_PRESETS.get("folder_name") or "Performa Invoices & Quotations"

HEADER_FIELDS: Tuple[str, ...] = ("number", "date", "valid_until", "notes", "terms")
CUSTOMER_FIELDS: Tuple[str, ...] = ("name", "address", "email", "phone")

ADD_COLUMN_MESSAGES = {
    AddColumnResult.ALREADY_EXISTS: "A column with this name already exists",
    AddColumnResult.EMPTY_NAME: "Enter a column name first",
}


# ---------------------------------------------------------------------------
# Form parsing
# ---------------------------------------------------------------------------


def _cell_key(row_id: str, column_id: str) -> str:
    return f"cell-{row_id}-{column_id}"


def _messages() -> Dict[str, List[str]]:
    return {"errors": [], "info": []}


def _posted_kind() -> str:
    kind = request.form.get("kind", QUOTATION)
    return kind if kind in DOCUMENT_KINDS else QUOTATION


def _split_action(raw: str | None) -> Tuple[str, Optional[str]]:
    if not raw:
        return "", None
    name, _, arg = raw.partition(":")
    return name, (arg or None)


def _load_document(kind: str, error_msgs: List[str]) -> DocumentState:
    raw = request.form.get("document", "")
    if not raw:
        return new_document(kind, DEFAULTS)
    try:
        return DocumentState.from_json(raw)
    except (ValueError, KeyError, TypeError) as exc:
        logger.warning("Discarding unreadable document payload: %s", exc)
        error_msgs.append("The document could not be read and was reset.")
        return new_document(kind, DEFAULTS)


def _apply_form(doc: DocumentState) -> None:
    form = request.form
    for name in HEADER_FIELDS:
        if name in form:
            setattr(doc, name, form[name])
    for name in CUSTOMER_FIELDS:
        key = f"customer_{name}"
        if key in form:
            setattr(doc.customer, name, form[key])

    for row in list(doc.items):
        for column_id in doc.table.column_ids:
            if column_id == AMOUNT:
                continue
            key = _cell_key(row.id, column_id)
            if key in form:
                doc.table.update_cell(row.id, column_id, form[key])

    if "tax_rate" in form:
        doc.set_tax_rate(form["tax_rate"])


def _apply_action(doc: DocumentState, action: str, arg: Optional[str], msgs: Dict[str, List[str]]) -> DocumentState:
    table = doc.table
    if action == "add_row":
        table.add_row()
    elif action == "remove_row" and arg:
        table.remove_row(arg)
    elif action == "add_column":
        result = table.add_column(request.form.get("new_column_name", ""))
        if result is not AddColumnResult.ADDED:
            msgs["errors"].append(ADD_COLUMN_MESSAGES[result])
    elif action == "remove_column" and arg:
        table.remove_column(arg)
    elif action == "convert_to_invoice" and doc.kind == QUOTATION:
        invoice = convert_to_invoice(doc, DEFAULTS)
        msgs["info"].append(f"Quotation {doc.number} converted to performa invoice {invoice.number}.")
        return invoice
    return doc


def _document_from_request(kind: str, msgs: Dict[str, List[str]]) -> DocumentState:
    doc = _load_document(kind, msgs["errors"])
    try:
        _apply_form(doc)
    except (KeyError, SchemaError) as exc:
        logger.warning("Ignoring form edits: %s", exc)
        msgs["errors"].append(str(exc))
    return doc


def _render_pdf(doc: DocumentState) -> bytes:
    return render_document_pdf(doc, COMPANY, LETTERHEAD, CUSTOM_COLUMN_ORDER)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def _render_editor(
    doc: DocumentState,
    msgs: Dict[str, List[str]],
    uploader: Optional[DriveUploader] = None,
):
    return render_template(
        "editor.html",
        doc=doc,
        document_json=doc.to_json(),
        columns=doc.table.columns,
        form_endpoint="invoice_create" if doc.kind == INVOICE else "quotation_create",
        error_msgs=msgs["errors"],
        info_msgs=msgs["info"],
        drive_enabled=DRIVE_SESSION.available,
        upload_status=(uploader.status if uploader else UploadStatus.IDLE).value,
        file_url=uploader.file_url if uploader else None,
        fmt_money=format_indian_number,
        fmt_date=format_date,
        cell_key=_cell_key,
    )


def _editor(kind: str):
    msgs = _messages()
    if request.method == "GET":
        return _render_editor(new_document(kind, DEFAULTS), msgs)

    doc = _document_from_request(kind, msgs)
    action, arg = _split_action(request.form.get("action"))
    try:
        doc = _apply_action(doc, action, arg, msgs)
    except KeyError as exc:
        msgs["errors"].append(str(exc))
    return _render_editor(doc, msgs)


@app.route("/", methods=["GET", "POST"])
@app.route("/quotation/create", methods=["GET", "POST"])
def quotation_create():
    return _editor(QUOTATION)


@app.route("/invoice/create", methods=["GET", "POST"])
def invoice_create():
    return _editor(INVOICE)


@app.route("/preview", methods=["POST"])
def preview():
    msgs = _messages()
    doc = _document_from_request(_posted_kind(), msgs)
    return send_file(
        io.BytesIO(_render_pdf(doc)),
        mimetype="application/pdf",
        as_attachment=False,
        download_name=doc.file_name(),
    )


@app.route("/download", methods=["POST"])
def download():
    msgs = _messages()
    doc = _document_from_request(_posted_kind(), msgs)
    return send_file(
        io.BytesIO(_render_pdf(doc)),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=doc.file_name(),
    )


@app.route("/export.csv", methods=["POST"])
def export_csv():
    msgs = _messages()
    doc = _document_from_request(_posted_kind(), msgs)
    columns = doc.table.columns

    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow([c.name for c in columns])
    for row in doc.items:
        writer.writerow([row.values.get(c.id, "") for c in columns])

    # Footer lines aligned to the last column.
    pad = [""] * (len(columns) - 2)
    writer.writerow(["Subtotal", *pad, f"{doc.subtotal:.2f}"])
    writer.writerow([f"GST ({doc.tax_rate:g}%)", *pad, f"{doc.tax_amount:.2f}"])
    writer.writerow(["Total", *pad, f"{doc.total:.2f}"])

    return Response(
        out.getvalue(),
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{doc.number}.csv"'},
    )


@app.route("/drive/save", methods=["POST"])
def save_to_drive():
    msgs = _messages()
    doc = _document_from_request(_posted_kind(), msgs)

    uploader = DriveUploader(DRIVE_SESSION, DRIVE_FOLDER_NAME)
    if not DRIVE_SESSION.available:
        msgs["errors"].append("Google Drive is not available.")
        return _render_editor(doc, msgs, uploader)

    status = uploader.save(doc.file_name(), lambda: _render_pdf(doc))
    if status is UploadStatus.SUCCESS:
        msgs["info"].append("Successfully saved to Google Drive!")
    else:
        msgs["errors"].append("Failed to save to Google Drive. Please try again.")
    return _render_editor(doc, msgs, uploader)


@app.route("/quotation/list")
def quotation_list():
    term = request.args.get("q", "")
    quotations = filter_quotations(SAMPLE_QUOTATIONS, term)
    return render_template(
        "quotation_list.html",
        quotations=quotations,
        term=term,
        status_class=status_class,
        fmt_money=format_indian_number,
        create_url=url_for("quotation_create"),
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5000"))
    debug = os.environ.get("DEBUG", "0") in ["1", "true", "True"]
    app.run(host=host, port=port, debug=debug)

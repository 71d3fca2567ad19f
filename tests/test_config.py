import json
import logging

import config
from sample_data import SAMPLE_QUOTATIONS, filter_quotations, status_class


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_local_presets_override_base(tmp_path, monkeypatch):
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    base = _write(tmp_path / "presets.json", {"defaults": {"tax_rate": 18, "validity_days": 30}})
    local = _write(tmp_path / "presets.local.json", {"defaults": {"tax_rate": 12}})
    presets = config.load_presets(base, local)
    assert presets["defaults"] == {"tax_rate": 12, "validity_days": 30}


def test_missing_local_presets_is_fine(tmp_path):
    base = _write(tmp_path / "presets.json", {"company": {"name": "Acme"}})
    presets = config.load_presets(base, str(tmp_path / "nope.json"))
    assert presets["company"]["name"] == "Acme"


def test_env_overrides_drive_credentials(tmp_path, monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "env-id")
    base = _write(tmp_path / "presets.json", {"drive": {"client_id": "file-id"}})
    presets = config.load_presets(base, str(tmp_path / "nope.json"))
    assert presets["drive"]["client_id"] == "env-id"


def test_section_is_a_copy():
    presets = {"document": {"custom_column_order": ["Size"]}}
    config.section(presets, "document")["custom_column_order"].append("x")
    assert presets["document"]["custom_column_order"] == ["Size"]
    assert config.section(presets, "missing") == {}


def test_custom_column_order():
    assert config.custom_column_order({}) == ["size", "city"]
    assert config.custom_column_order({"document": {"custom_column_order": ["Zone"]}}) == ["zone"]


def test_shipped_presets_load():
    presets = config.load_presets(config.BASE_PRESETS_PATH, "")
    assert presets["defaults"]["tax_rate"] == 18
    assert presets["drive"]["folder_name"] == "Performa Invoices & Quotations"


def test_configure_logging_is_idempotent():
    root = config.configure_logging("debug")
    config.configure_logging("debug")
    marked = [h for h in root.handlers if getattr(h, "_quote_docs_handler", False)]
    assert len(marked) == 1
    assert root.level == logging.DEBUG


def test_filter_quotations():
    assert [q["id"] for q in filter_quotations(SAMPLE_QUOTATIONS, "tech")] == ["QT-2023-1004"]
    assert len(filter_quotations(SAMPLE_QUOTATIONS, "QT-2023")) == 5
    assert len(filter_quotations(SAMPLE_QUOTATIONS, "")) == 5


def test_status_class():
    assert status_class("Accepted") == "badge-green"
    assert status_class("On hold") == "badge-purple"

from __future__ import annotations

import json
import logging
import os
import sys
from copy import deepcopy
from typing import Any, Dict, List

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BASE_PRESETS_PATH = os.path.join(BASE_DIR, "presets.json")
LOCAL_PRESETS_PATH = os.environ.get(
    "PRESETS_OVERRIDE_PATH",
    os.path.join(BASE_DIR, "presets.local.json"),
)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Environment variables that win over anything in the preset files.
ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("drive", "client_id", "GOOGLE_CLIENT_ID"),
    ("drive", "client_secret", "GOOGLE_CLIENT_SECRET"),
    ("drive", "api_key", "GOOGLE_API_KEY"),
    ("drive", "token_file", "DRIVE_TOKEN_FILE"),
)


# ---------------------------------------------------------------------------
# Preset loading
# ---------------------------------------------------------------------------


def _load_json(path: str, *, required: bool = False) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        if required:
            raise
        return {}
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid JSON in {path}: {exc}") from exc


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = base.copy()
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def _apply_env(presets: dict[str, Any]) -> dict[str, Any]:
    result = deepcopy(presets)
    for section, key, env_name in ENV_OVERRIDES:
        value = os.environ.get(env_name)
        if value:
            result.setdefault(section, {})[key] = value
    return result


def load_presets(
    base_path: str = BASE_PRESETS_PATH,
    override_path: str = LOCAL_PRESETS_PATH,
) -> dict[str, Any]:
    base = _load_json(base_path, required=True)
    override = _load_json(override_path)
    return _apply_env(_deep_merge(base, override))


def section(presets: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = presets.get(name, {})
    return deepcopy(value) if isinstance(value, dict) else {}


def resolve_path(path: str) -> str:
    """Relative preset paths are resolved against the project directory."""
    if not path or os.path.isabs(path):
        return path
    return os.path.join(BASE_DIR, path)


def custom_column_order(presets: Dict[str, Any]) -> List[str]:
    order = section(presets, "document").get("custom_column_order", ["size", "city"])
    return [str(name).lower() for name in order]


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install one stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    if not any(getattr(h, "_quote_docs_handler", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._quote_docs_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    return root

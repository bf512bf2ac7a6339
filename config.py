"""
Persistent JSON config.

Holds the render width cap, the code highlighting theme and whether live
reload is on. Missing or malformed config falls back to defaults.
"""

from __future__ import annotations

import json
from pathlib import Path

from render import DEFAULT_CODE_THEME, DEFAULT_WIDTH

CONFIG_PATH = Path.home() / ".config" / "markterm.json"


def load_config() -> dict[str, object]:
    """
    Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def load_max_width() -> int:
    """Widest the document is rendered, in columns."""
    value = load_config().get("max_width")
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return DEFAULT_WIDTH
    return value


def load_code_theme() -> str:
    value = load_config().get("code_theme")
    if not isinstance(value, str) or not value.strip():
        return DEFAULT_CODE_THEME
    return value.strip()


def load_watch_enabled() -> bool:
    value = load_config().get("watch")
    return value if isinstance(value, bool) else True

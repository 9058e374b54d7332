"""Metadata keys and the normalisation applied when values leave the store.

Stores hand back raw values: strings from SQL, whatever was written from
memory. Everything downstream reads through these helpers so a flag stored as
``'1'``, ``1`` or ``True`` means the same thing everywhere.
"""

import json
import logging
from typing import Any

from blockgen.core.errors import MalformedDataError


logger = logging.getLogger(__name__)

PREFIX = "_blockgen_"

# --- blocks ---
BLOCK_PHP = f"{PREFIX}block_php"
BLOCK_SCSS = f"{PREFIX}block_scss"
BLOCK_EDITOR_SCSS = f"{PREFIX}block_editor_scss"
BLOCK_JS = f"{PREFIX}block_js"
BLOCK_ATTRIBUTES = f"{PREFIX}block_attributes"
BLOCK_SETTINGS = f"{PREFIX}block_settings"
BLOCK_SELECTED_PARTIALS = f"{PREFIX}block_selected_partials"
BLOCK_EDITOR_SELECTED_PARTIALS = f"{PREFIX}block_editor_selected_partials"

# --- compiled output ---
CSS_CONTENT = f"{PREFIX}css_content"
EDITOR_CSS_CONTENT = f"{PREFIX}editor_css_content"
CSS_COMPILED_AT = f"{PREFIX}css_compiled_at"
EDITOR_CSS_COMPILED_AT = f"{PREFIX}editor_css_compiled_at"
SCSS_NEEDS_RECOMPILE = f"{PREFIX}scss_needs_recompile"
SCSS_RECOMPILE_TIMESTAMP = f"{PREFIX}scss_recompile_timestamp"
SCSS_COMPILE_ERROR = f"{PREFIX}scss_compile_error"

# --- symbols ---
SYMBOL_PHP = f"{PREFIX}symbol_php"

# --- scss partials ---
SCSS_PARTIAL_SCSS = f"{PREFIX}scss_partial_scss"
SCSS_IS_GLOBAL = f"{PREFIX}scss_is_global"
SCSS_GLOBAL_ORDER = f"{PREFIX}scss_global_order"
SCSS_WAS_GLOBAL = f"{PREFIX}scss_was_global"     # global flag as of the last processed save

SELECTED_PARTIAL_KEYS = (BLOCK_SELECTED_PARTIALS, BLOCK_EDITOR_SELECTED_PARTIALS)

_TRUTHY = {"1", "true", "yes", "on"}


def as_bool(value: Any) -> bool:
    """Normalise a stored flag. Accepts True, 1 and '1' (plus 'true'/'yes'/'on')."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def is_empty(value: Any) -> bool:
    """Absent, None, empty string/list/dict all count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def decode_json(raw: Any) -> Any:
    """Decode a stored JSON value. Raises MalformedDataError on invalid text."""
    if not isinstance(raw, (str, bytes)):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedDataError(f"Invalid JSON: {e.msg} at position {e.pos}") from e


def encode_value(value: Any) -> str:
    """Serialise a meta value for text storage; strings are stored as-is."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    return json.dumps(value, separators=(",", ":"))


def parse_id_list(raw: Any, *, context: str = "") -> list[int]:
    """Parse an ordered list of post ids.

    Accepts a JSON array or a list of ints/numeric strings. Malformed input
    yields an empty list; invalid and non-positive entries are dropped. Order
    of first occurrence is kept.
    """
    if is_empty(raw):
        return []
    try:
        decoded = decode_json(raw)
    except MalformedDataError as e:
        logger.warning("Treating malformed id list as empty%s: %s", f" ({context})" if context else "", e)
        return []
    if not isinstance(decoded, list):
        logger.warning("Expected a JSON array of ids%s, got %s", f" ({context})" if context else "", type(decoded).__name__)
        return []

    ids: list[int] = []
    for item in decoded:
        if isinstance(item, bool):
            continue
        pid = as_int(item, default=0)
        if pid > 0 and pid not in ids:
            ids.append(pid)
    return ids


def parse_json_object(raw: Any, *, context: str = "") -> dict:
    """Parse a stored JSON object, falling back to {} on malformed or non-object data."""
    if is_empty(raw):
        return {}
    try:
        decoded = decode_json(raw)
    except MalformedDataError as e:
        logger.warning("Treating malformed JSON object as empty%s: %s", f" ({context})" if context else "", e)
        return {}
    return decoded if isinstance(decoded, dict) else {}

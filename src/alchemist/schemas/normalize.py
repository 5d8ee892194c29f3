# src/alchemist/schemas/normalize.py
"""
@brief
Input normalizers shared by the entity schemas.

@details
Spreadsheet uploads deliver every cell as text, while grid edits and JSON
snapshots deliver real lists and mappings. The helpers below turn both
shapes into the canonical Python value. Malformed list encodings degrade
to an empty list and undecodable JSON degrades to an empty mapping; the
validators report those conditions, the schemas never crash on them.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

_RANGE_RE = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")


def normalize_int_list(value: Any) -> Any:
    """
    @brief
    Normalize a phase/slot list given as list or compact string.

    @details
    Accepted string encodings:
        "2-4"      -> [2, 3, 4]  (inclusive range)
        "1,3,5"    -> [1, 3, 5]
        "[1, 3]"   -> [1, 3]
        ""         -> []
    Any token that is not an integer turns the whole string into [].
    Non-string values are returned unchanged for the schema to type-check.
    """
    if not isinstance(value, str):
        return value

    text = value.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    if not text.strip():
        return []

    # (1) Range form "start-end"
    m = _RANGE_RE.match(text)
    if m:
        start, end = int(m.group(1)), int(m.group(2))
        if start > end:
            return []
        return list(range(start, end + 1))

    # (2) Comma list; a single bad token invalidates the encoding
    out: list[int] = []
    for token in text.split(","):
        token = token.strip()
        if not re.fullmatch(r"-?\d+", token):
            return []
        out.append(int(token))
    return out


def normalize_str_list(value: Any) -> Any:
    """Split a comma-separated cell into a list of trimmed, non-empty tags."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("[") and text.endswith("]"):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            text = text[1:-1]
        else:
            if isinstance(decoded, list):
                return [str(v).strip() for v in decoded if str(v).strip()]
    return [part.strip().strip("\"'") for part in text.split(",") if part.strip()]


def decode_attributes(value: Any) -> tuple[Any, str | None]:
    """
    @brief
    Decode an AttributesJSON cell.

    @returns
        (decoded value, raw text that failed to decode or None).
        Mappings pass through as dicts; empty cells become {}; a string that
        is not a JSON object yields ({}, original_text).
    """
    if value is None:
        return {}, None
    if isinstance(value, Mapping):
        return dict(value), None
    if not isinstance(value, str):
        return value, None

    if not value.strip():
        return {}, None
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        return {}, value
    if not isinstance(decoded, dict):
        return {}, value
    return decoded, None

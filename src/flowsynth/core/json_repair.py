"""
JSON Repair Utilities

Synchronous helpers for turning completion text into a JSON object.
Completion services return JSON wrapped in prose, in markdown fences, or
with small syntax slips; these functions recover the object when they can.
"""

import json
import re
from typing import Any, Dict, Optional


_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def repair_unquoted_keys(json_str: str) -> str:
    """
    Fix unquoted keys: {title: "x"} -> {"title": "x"}

    Only keys directly after "{" or "," are touched, so colons inside
    string values are left alone.
    """
    return re.sub(r'([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)(\s*:)', r'\1"\2"\3', json_str)


def repair_single_quotes(json_str: str) -> str:
    """Convert single-quoted keys and values to double quotes."""
    return re.sub(r"'([^'\\]*(?:\\.[^'\\]*)*)'", r'"\1"', json_str)


def repair_trailing_commas(json_str: str) -> str:
    """Remove trailing commas in objects and arrays."""
    return re.sub(r',(\s*[}\]])', r'\1', json_str)


_MISS = object()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _MISS


def _quote_fix(json_str: str) -> str:
    # single quotes are only safe to rewrite when no double quotes are present
    return json_str if '"' in json_str else repair_single_quotes(json_str)


# Cumulative: each pass works on the output of the one before it
_REPAIR_PASSES = (repair_trailing_commas, repair_unquoted_keys, _quote_fix)


def repair_json(json_str: str) -> Optional[Any]:
    """
    Parse JSON, applying mechanical fixes until it loads.

    Passes (cumulative): trailing commas, unquoted keys, single quotes.

    Returns:
        Parsed value (any JSON type), or None if nothing worked
    """
    parsed = _loads(json_str)
    for repair in _REPAIR_PASSES:
        if parsed is not _MISS:
            return parsed
        json_str = repair(json_str)
        parsed = _loads(json_str)
    return None if parsed is _MISS else parsed


def extract_json_object(text: str) -> Optional[str]:
    """The span from the first "{" to the last "}", or None."""
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        return text[start:end + 1]
    return None


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of completion text.

    Tries in order:
    1. The text as-is
    2. A fenced ```json block
    3. The outermost { ... } span, with mechanical repair

    Anything that is not a JSON object (arrays, scalars) counts as a miss.

    Args:
        text: Raw completion text

    Returns:
        Parsed dict, or None
    """
    if not isinstance(text, str) or not text.strip():
        return None

    candidates = [text.strip()]
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    embedded = extract_json_object(text)
    if embedded:
        candidates.append(embedded)

    for candidate in candidates:
        parsed = _loads(candidate)
        if isinstance(parsed, dict):
            return parsed

    for candidate in candidates[1:] or candidates:
        parsed = repair_json(candidate)
        if isinstance(parsed, dict):
            return parsed

    return None

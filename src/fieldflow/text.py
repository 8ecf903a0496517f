"""Text normalisation helpers shared by the resolver and the flow calculator.

Answers and option values are compared under several "folds" because the
same logical answer has been persisted with different casing, accents,
spacing, and underscore substitutions over time:

  - ``normalize_value``: any response shape to a plain comparison string
  - ``fold_compact``: lowercase, accent-free, whitespace-free
  - ``fold_words``: lowercase, accent-free, alphanumerics and single spaces

None of these functions raise.
"""

from __future__ import annotations

import json
import re
import unicodedata
from typing import Any

_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_value(value: Any) -> str:
    """Coerce a response value into a plain string for comparison.

    Booleans become ``"true"``/``"false"``, integral floats drop their
    fractional part, lists are comma-joined (checkbox answers), and dicts
    collapse to their ``value`` entry when they have one.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(normalize_value(v) for v in value)
    if isinstance(value, dict):
        if "value" in value:
            return normalize_value(value["value"])
        return json.dumps(value, ensure_ascii=False, sort_keys=True, default=str)
    return str(value)


def strip_accents(text: str) -> str:
    """Remove combining diacritics (``"teléfono"`` -> ``"telefono"``)."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_compact(text: str) -> str:
    """Lowercase, strip accents, and drop all whitespace and underscores."""
    folded = strip_accents(text.lower().replace("_", " "))
    return _WHITESPACE_RE.sub("", folded)


def fold_words(text: str) -> str:
    """Lowercase, strip accents, keep only ``[a-z0-9]`` words separated by one space."""
    folded = strip_accents(text.lower().replace("_", " "))
    folded = _NON_WORD_RE.sub("", folded)
    return _WHITESPACE_RE.sub(" ", folded).strip()


def parse_json_object(text: Any) -> dict | None:
    """Decode *text* if it is a JSON object literal, else return None.

    Only strings whose first non-blank character is ``{`` are attempted.
    Parse failures are treated as "not JSON".
    """
    if not isinstance(text, str) or not text.strip().startswith("{"):
        return None
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None

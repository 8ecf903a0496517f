"""Helpers for the response map the form layer keeps per session.

Responses are stored by the observation subsystem as text.  When a session
is reopened, each stored string is decoded back into the in-memory shape
the form works with (JSON arrays for checkbox answers, JSON objects for
timer or option payloads, verbatim strings otherwise).
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

from fieldflow.constants import VOICE_RESPONSE_MARKER
from fieldflow.models.question import Question


def has_response(value: Any) -> bool:
    """True unless *value* is None, an empty string, or an empty list."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def decode_stored_response(raw: Any) -> Any:
    """Turn a persisted observation response into its in-memory form.

    Voice responses carry an ``[Audio: ...]`` marker and are kept verbatim.
    Other strings are JSON-decoded when possible; anything that fails to
    parse is returned unchanged.
    """
    if not isinstance(raw, str) or raw == "":
        return raw
    if VOICE_RESPONSE_MARKER in raw:
        return raw
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        return raw


def decode_stored_responses(rows: Mapping[str, Any]) -> dict[str, Any]:
    """Decode every value of a ``{question_id: stored response}`` mapping."""
    return {qid: decode_stored_response(raw) for qid, raw in rows.items()}


def missing_mandatory(
    display_questions: Sequence[Question], responses: Mapping[str, Any] | None
) -> list[Question]:
    """Mandatory questions among those displayed that have no response yet.

    Hidden questions never block submission, so callers should pass the
    flow calculator's output rather than the full question list.
    """
    responses = responses or {}
    return [
        q for q in display_questions
        if q.is_mandatory and not has_response(responses.get(q.id))
    ]

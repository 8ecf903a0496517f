"""Option normalizer — canonical ``(id, value)`` pairs for choice questions.

Options have been persisted in several shapes over time:

  - plain strings: ``["Sí", "No"]``
  - ``{id, value}`` objects: ``[{"id": "opt_q1_S_", "value": "Sí"}]``
  - JSON text of such objects: ``['{"id": "...", "value": "Sí"}']``
  - objects whose ``value`` is itself JSON text ``'{"value": "Sí"}'``

``normalize_options`` folds all of them into a list of ``QuestionOption``
in display order.  Plain-string options get a deterministic id derived from
``(question_id, value)`` so the same answer id survives a reload:

    opt_ + sanitize(question_id + "_" + value)

Questions that have not been persisted yet have no id; their options get
``opt_temp_{index}_{sanitize(value)}`` and must be re-derived with
:func:`regenerate_option_ids` once the question is saved.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Sequence

from fieldflow.constants import OPTION_ID_PREFIX, TEMP_OPTION_ID_PREFIX
from fieldflow.models.question import QuestionOption
from fieldflow.text import normalize_value, parse_json_object

logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS_RE = re.compile(r"[^A-Za-z0-9_]")


def sanitize_identifier(text: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_]`` with ``_``."""
    return _UNSAFE_ID_CHARS_RE.sub("_", text)


def derive_option_id(question_id: str | None, value: str, index: int = 0) -> str:
    """Return the deterministic option id for *value* under *question_id*.

    ``index`` only matters when ``question_id`` is empty (temporary ids).
    """
    if question_id:
        return OPTION_ID_PREFIX + sanitize_identifier(f"{question_id}_{value}")
    return f"{TEMP_OPTION_ID_PREFIX}{index}_{sanitize_identifier(value)}"


def is_temporary_option_id(option_id: str) -> bool:
    """True if *option_id* was derived before its question had an id."""
    return option_id.startswith(TEMP_OPTION_ID_PREFIX)


def _unwrap_value(value: Any) -> str:
    # Observed corruption: the value is JSON text of {"value": X}
    wrapped = parse_json_object(value)
    if wrapped is not None and "value" in wrapped:
        value = wrapped["value"]
    return value if isinstance(value, str) else normalize_value(value)


def _from_mapping(entry: dict, question_id: str | None, index: int) -> QuestionOption:
    if "value" in entry:
        value = _unwrap_value(entry["value"])
    else:
        # Best effort for objects saved without a value field
        value = normalize_value(entry.get("label", entry.get("id")))
    raw_id = entry.get("id")
    if raw_id is None or raw_id == "":
        option_id = derive_option_id(question_id, value, index)
    else:
        option_id = str(raw_id)
    return QuestionOption(id=option_id, value=value)


def normalize_options(
    options: Iterable[Any] | None, question_id: str | None
) -> list[QuestionOption]:
    """Canonicalise a raw option list into ordered ``QuestionOption`` pairs.

    Args:
        options: raw persisted entries (strings, dicts, JSON strings, or
                 already-built ``QuestionOption`` instances)
        question_id: the owning question's id, or empty/None for a
                     question that has not been saved yet

    Returns:
        One ``QuestionOption`` per non-null entry, in input order.
    """
    if not options:
        return []

    normalized: list[QuestionOption] = []
    for index, entry in enumerate(options):
        if entry is None:
            continue
        if isinstance(entry, QuestionOption):
            normalized.append(entry)
        elif isinstance(entry, dict):
            normalized.append(_from_mapping(entry, question_id, index))
        elif isinstance(entry, str):
            decoded = parse_json_object(entry)
            if decoded is not None:
                normalized.append(_from_mapping(decoded, question_id, index))
            else:
                normalized.append(
                    QuestionOption(id=derive_option_id(question_id, entry, index), value=entry)
                )
        else:
            value = normalize_value(entry)
            normalized.append(
                QuestionOption(id=derive_option_id(question_id, value, index), value=value)
            )
    return normalized


def regenerate_option_ids(
    options: Sequence[QuestionOption], question_id: str
) -> list[QuestionOption]:
    """Replace temporary option ids with ids derived from *question_id*.

    Options that already carry a real id are returned unchanged.
    """
    if not question_id:
        return list(options)

    regenerated: list[QuestionOption] = []
    for opt in options:
        if is_temporary_option_id(opt.id):
            new_id = derive_option_id(question_id, opt.value)
            logger.debug("Regenerated option id %s -> %s", opt.id, new_id)
            regenerated.append(QuestionOption(id=new_id, value=opt.value))
        else:
            regenerated.append(opt)
    return regenerated

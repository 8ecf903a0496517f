"""ResponseResolver — maps a stored answer back to the option the user picked.

Answers have been persisted under at least four encodings:

  - the option's display value (``"Sí"``)
  - the option's derived id (``"opt_q1_S_"``)
  - JSON text or dicts wrapping either (``'{"id": "...", "value": "Sí"}'``)
  - arrays of any of the above (checkbox questions)

Branching keys off the *display value*, so every encoding has to be
reconstructed into it.  Resolution is an ordered chain of matcher
strategies; the first one that returns an option wins:

  1. exact id            (``match_exact_id``)
  2. exact value         (``match_exact_value``)
  3. case-insensitive    (``match_case_insensitive``)
  4. re-derived id       (``match_regenerated_id``, id-shaped answers only)
  5. id segment windows  (``match_id_segments``)
  6. word overlap        (``match_word_overlap``, unique match only)

Container unwrapping (dicts, JSON text) and checkbox arrays (first element)
happen before the chain runs.  If no strategy matches, the answer itself
is returned as a plain string.  Nothing in this module raises on malformed
input.

New legacy shapes are supported by adding a matcher, e.g.::

    resolver = ResponseResolver().with_matcher(match_by_label, before=match_word_overlap)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from fieldflow.constants import ID_TAIL_SEGMENTS, MIN_MATCH_WORD_LENGTH, OPTION_ID_PREFIX
from fieldflow.models.question import QuestionOption
from fieldflow.options import derive_option_id, sanitize_identifier
from fieldflow.text import fold_compact, fold_words, normalize_value, parse_json_object

logger = logging.getLogger(__name__)

# Nested {"value": "{\"value\": ...}"} wrappers are peeled at most this deep.
_MAX_UNWRAP_DEPTH = 4


# ----------------------------------------------------------------------
# Probe
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Probe:
    """An answer after container unwrapping, ready for matching.

    ``raw`` is the stored answer (or, for checkbox arrays, its first
    element); ``value`` is what remained after peeling dict/JSON wrappers.
    """

    raw: Any
    value: Any
    question_id: str

    @property
    def text(self) -> str:
        return self.value if isinstance(self.value, str) else normalize_value(self.value)

    @property
    def candidates(self) -> tuple[str, ...]:
        """Strings to compare against option ids/values (unwrapped first)."""
        text = self.text
        if isinstance(self.raw, str) and self.raw != text:
            return (text, self.raw)
        return (text,)

    @property
    def is_option_id(self) -> bool:
        return self.text.startswith(OPTION_ID_PREFIX)

    @property
    def id_prefix(self) -> str:
        """The prefix an id derived for this probe's question would carry."""
        return f"{OPTION_ID_PREFIX}{sanitize_identifier(self.question_id)}_"

    @property
    def id_value_part(self) -> str:
        """The part of an id-shaped answer that encodes the option value.

        Strips ``opt_<question id>_`` when present; otherwise assumes the
        value lives in the trailing segments.  Non-id answers are returned
        unchanged.
        """
        text = self.text
        if not self.is_option_id:
            return text
        if self.question_id and text.startswith(self.id_prefix):
            return text[len(self.id_prefix):]
        return "_".join(text.split("_")[-ID_TAIL_SEGMENTS:])


Matcher = Callable[[Probe, Sequence[QuestionOption]], Optional[QuestionOption]]


def unwrap_response(value: Any) -> Any:
    """Peel dict and JSON-object wrappers off a stored answer.

    ``{"value": X}`` yields X, ``{"id": X}`` yields X, and JSON text of
    either is decoded first.  Strings that fail to parse are kept verbatim.
    """
    for _ in range(_MAX_UNWRAP_DEPTH):
        if isinstance(value, dict):
            if "value" in value:
                value = value["value"]
                continue
            if "id" in value:
                value = value["id"]
                continue
            return value
        decoded = parse_json_object(value)
        if decoded is None:
            return value
        value = decoded
    return value


# ----------------------------------------------------------------------
# Matcher strategies
# ----------------------------------------------------------------------

def match_exact_id(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """The answer is an option id, verbatim."""
    candidates = probe.candidates
    for opt in options:
        if opt.id in candidates:
            return opt
    return None


def match_exact_value(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """The answer is an option's display value, verbatim."""
    candidates = probe.candidates
    for opt in options:
        if opt.value in candidates:
            return opt
    return None


def match_case_insensitive(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """Same as the exact matchers, ignoring case."""
    candidates = {c.lower() for c in probe.candidates if c}
    if not candidates:
        return None
    for opt in options:
        if opt.id.lower() in candidates or opt.value.lower() in candidates:
            return opt
    return None


def match_regenerated_id(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """Re-derive each option's plain-string id and compare.

    Catches answers saved while the options were stored as plain strings
    and later migrated to objects with different ids.
    """
    if not probe.is_option_id:
        return None
    candidates = probe.candidates
    for index, opt in enumerate(options):
        if derive_option_id(probe.question_id, opt.value, index) in candidates:
            return opt
    return None


def match_id_segments(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """Find an option value hidden in the ``_``-separated segments of the answer.

    Start positions are scanned from the last segment backwards, since the
    value is usually the suffix of a derived id; at each start the longest
    window is tried first.  Each window is compared with the option value
    both accent/space-folded and sanitised the way ids are derived.
    """
    parts = probe.text.split("_")
    # Skip "opt" and the first question-id segment on id-shaped answers
    min_start = 2 if probe.is_option_id else 0
    if len(parts) <= min_start:
        return None

    folded_options = [
        (opt, fold_compact(opt.value), sanitize_identifier(opt.value).lower())
        for opt in options
    ]
    for start in range(len(parts) - 1, min_start - 1, -1):
        for end in range(len(parts), start, -1):
            window = "_".join(parts[start:end])
            folded = fold_compact(window)
            if not folded:
                continue
            lowered = window.lower()
            for opt, opt_folded, opt_sanitized in folded_options:
                if folded == opt_folded or lowered == opt_sanitized:
                    return opt
    return None


def _significant_words(text: str) -> list[str]:
    return [w for w in fold_words(text).split(" ") if len(w) >= MIN_MATCH_WORD_LENGTH]


def match_word_overlap(probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """Last resort: every answer word appears inside some word of exactly one option.

    Words are compared by containment either way, so an id segment
    ``"tel"`` still matches ``"teléfono"`` after accents were sanitised
    away.  Ambiguous answers (several options qualify) resolve to nothing.
    """
    words = _significant_words(probe.id_value_part)
    if not words:
        return None

    matches: list[QuestionOption] = []
    for opt in options:
        opt_words = _significant_words(opt.value)
        if opt_words and all(
            any(w in ow or ow in w for ow in opt_words) for w in words
        ):
            matches.append(opt)
    if len(matches) == 1:
        return matches[0]
    if matches:
        logger.debug(
            "Word overlap for %r is ambiguous across %d options", probe.text, len(matches),
        )
    return None


DEFAULT_MATCHERS: tuple[Matcher, ...] = (
    match_exact_id,
    match_exact_value,
    match_case_insensitive,
    match_regenerated_id,
    match_id_segments,
    match_word_overlap,
)


# ----------------------------------------------------------------------
# Resolver
# ----------------------------------------------------------------------

class ResponseResolver:
    """Resolves stored answers to canonical option values.

    Args:
        matchers: ordered matcher strategies; defaults to ``DEFAULT_MATCHERS``
    """

    def __init__(self, matchers: Sequence[Matcher] | None = None) -> None:
        self._matchers: tuple[Matcher, ...] = (
            tuple(matchers) if matchers is not None else DEFAULT_MATCHERS
        )

    @property
    def matchers(self) -> tuple[Matcher, ...]:
        return self._matchers

    def with_matcher(self, matcher: Matcher, *, before: Matcher | None = None) -> "ResponseResolver":
        """Return a new resolver with *matcher* inserted before *before* (or appended)."""
        chain = list(self._matchers)
        if before is not None and before in chain:
            chain.insert(chain.index(before), matcher)
        else:
            chain.append(matcher)
        return ResponseResolver(chain)

    def probe(self, raw: Any, question_id: str | None) -> Probe | None:
        """Unwrap *raw* into a probe; None when there is nothing to resolve."""
        qid = question_id or ""
        value = unwrap_response(raw)
        if isinstance(value, (list, tuple)):
            # Checkbox: the first selection stands for the answer
            if not value:
                return None
            raw = value[0]
            value = unwrap_response(raw)
            if isinstance(value, (list, tuple)):
                value = normalize_value(value)
        if value is None or value == "":
            return None
        return Probe(raw=raw, value=value, question_id=qid)

    def find_option(
        self,
        raw: Any,
        options: Sequence[QuestionOption],
        question_id: str | None,
    ) -> QuestionOption | None:
        """Return the option *raw* encodes, or None if no strategy matches."""
        probe = self.probe(raw, question_id)
        if probe is None or not options:
            return None
        return self._match(probe, options)

    def extract(
        self,
        raw: Any,
        options: Sequence[QuestionOption],
        question_id: str | None,
    ) -> str:
        """Return the display value *raw* resolves to (``""`` if empty)."""
        probe = self.probe(raw, question_id)
        if probe is None:
            return ""

        matched = self._match(probe, options) if options else None
        if matched is not None:
            result = matched.value
        elif probe.is_option_id:
            result = probe.id_value_part.replace("_", " ")
            logger.debug("Unresolved option id %r for question %s", probe.text, question_id)
        else:
            result = probe.text

        # Residual {"value": ...} wrapping from doubly-encoded answers
        wrapped = parse_json_object(result)
        if wrapped is not None and "value" in wrapped:
            result = normalize_value(wrapped["value"])
        return result

    def _match(self, probe: Probe, options: Sequence[QuestionOption]) -> QuestionOption | None:
        for matcher in self._matchers:
            opt = matcher(probe, options)
            if opt is not None:
                if matcher is not match_exact_id and matcher is not match_exact_value:
                    logger.debug(
                        "Resolved %r to %r via %s",
                        probe.text, opt.value, getattr(matcher, "__name__", matcher),
                    )
                return opt
        return None


_default_resolver = ResponseResolver()


def extract_response_value(
    raw: Any, options: Sequence[QuestionOption], question_id: str | None
) -> str:
    """Resolve a stored answer to its option's display value.

    Uses the default matcher chain.  Returns ``""`` for empty answers and
    the answer as a plain string when no option matches.
    """
    return _default_resolver.extract(raw, options, question_id)


def find_option(
    raw: Any, options: Sequence[QuestionOption], question_id: str | None
) -> QuestionOption | None:
    """Return the option a stored answer encodes, using the default chain."""
    return _default_resolver.find_option(raw, options, question_id)

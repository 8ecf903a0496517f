"""FlowCalculator — decides which questions are visible and in what order.

Stateless: every call recomputes the display list from the full question
list and the full response map.  The form layer calls it on every answer
change, so it never raises on malformed persisted data and stays O(N).

Two modes, chosen once per call for the whole question set:

  Graph mode   — at least one question has a non-empty ``next_question_map``.
                 Walk from the first question, following branch-map edges
                 or list order, stopping at the first unanswered question.
  Legacy mode  — no branch maps anywhere.  Each question is independently
                 shown or hidden by its ``depends_on_question_id`` /
                 ``depends_on_answer`` rule.

Graph-mode stop conditions:

  - the current question is unanswered
  - the matched map entry targets ``None`` (explicit end of form)
  - the target is unknown, or was already shown (cycle guard)
  - the answer has no entry in a non-empty map (no fallback to list order)
  - list order reaches the end or an already shown question
  - ``max_attempts_factor * len(questions)`` iterations
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from fieldflow.branching import find_next_question_id
from fieldflow.constants import FLOW_MAX_ATTEMPTS_FACTOR
from fieldflow.models.flow import FlowMode, FlowResult, StopReason
from fieldflow.models.question import Question, QuestionOption, SingleDependency
from fieldflow.options import normalize_options
from fieldflow.resolver import ResponseResolver, unwrap_response
from fieldflow.responses import has_response
from fieldflow.text import normalize_value

logger = logging.getLogger(__name__)


def _index_questions(questions: Sequence[Question]) -> tuple[dict[str, Question], dict[str, int]]:
    """Build id -> question and id -> position lookups; first definition wins."""
    by_id: dict[str, Question] = {}
    position: dict[str, int] = {}
    for i, q in enumerate(questions):
        if q.id not in by_id:
            by_id[q.id] = q
            position[q.id] = i
    return by_id, position


class FlowCalculator:
    """Computes display questions for a questionnaire.

    Args:
        resolver: response resolver used to read branching answers
        max_attempts_factor: graph walks stop after this many steps per question
    """

    def __init__(
        self,
        resolver: ResponseResolver | None = None,
        *,
        max_attempts_factor: int = FLOW_MAX_ATTEMPTS_FACTOR,
    ) -> None:
        self._resolver = resolver or ResponseResolver()
        self._max_attempts_factor = max(1, max_attempts_factor)

    # ==================================================================
    # Entry points
    # ==================================================================

    def calculate(
        self, all_questions: Sequence[Question], responses: Mapping[str, Any] | None
    ) -> FlowResult:
        """Pick the mode for the whole question set and run it."""
        questions = list(all_questions or [])
        responses = responses or {}
        if any(q.has_branch_map for q in questions):
            return self.walk_branches(questions, responses)
        return self.filter_legacy(questions, responses)

    def display_questions(
        self, all_questions: Sequence[Question], responses: Mapping[str, Any] | None
    ) -> list[Question]:
        """Ordered list of questions to render."""
        return self.calculate(all_questions, responses).questions

    # ==================================================================
    # Graph mode
    # ==================================================================

    def walk_branches(
        self, all_questions: Sequence[Question], responses: Mapping[str, Any] | None
    ) -> FlowResult:
        """Bounded walk over branch-map edges and list order."""
        questions = list(all_questions or [])
        responses = responses or {}
        if not questions:
            return FlowResult(mode=FlowMode.GRAPH, stop_reason=StopReason.EMPTY)

        by_id, position = _index_questions(questions)
        max_attempts = self._max_attempts_factor * len(questions)

        visited: set[str] = set()
        shown: list[Question] = []
        current = questions[0]
        steps = 0
        stop: StopReason | None = None

        while current is not None and steps < max_attempts:
            steps += 1
            if current.id not in visited:
                shown.append(current)
                visited.add(current.id)

            response = responses.get(current.id)
            if not has_response(response):
                stop = StopReason.UNANSWERED
                break

            if current.next_question_map:
                options = normalize_options(current.options, current.id)
                value = self._resolver.extract(response, options, current.id)
                lookup = find_next_question_id(value, current.next_question_map)

                if not lookup.has_mapping:
                    # A question with a map opts out of list order
                    logger.debug(
                        "Answer %r of %s has no branch entry; stopping", value, current.id,
                    )
                    stop = StopReason.UNMAPPED_ANSWER
                    break

                target = lookup.next_question_id
                if not target:
                    stop = StopReason.TERMINATED
                    break
                nxt = by_id.get(target)
                if nxt is None:
                    logger.warning(
                        "Question %s branches to unknown question %s", current.id, target,
                    )
                    stop = StopReason.DANGLING_TARGET
                    break
                if target in visited:
                    logger.debug("Branch %s -> %s revisits a shown question", current.id, target)
                    stop = StopReason.CYCLE
                    break
                current = nxt
                continue

            # Default order: the question after this one in the list
            idx = position[current.id]
            if idx + 1 >= len(questions):
                stop = StopReason.END_OF_QUESTIONS
                break
            nxt = questions[idx + 1]
            if nxt.id in visited:
                stop = StopReason.CYCLE
                break
            current = nxt
        else:
            logger.warning(
                "Flow walk hit the %d-step bound over %d questions", max_attempts, len(questions),
            )
            stop = StopReason.MAX_ATTEMPTS

        return FlowResult(mode=FlowMode.GRAPH, questions=shown, steps=steps, stop_reason=stop)

    # ==================================================================
    # Legacy mode
    # ==================================================================

    def filter_legacy(
        self, all_questions: Sequence[Question], responses: Mapping[str, Any] | None
    ) -> FlowResult:
        """Keep every question whose single-dependency rule passes."""
        questions = list(all_questions or [])
        responses = responses or {}
        by_id, _ = _index_questions(questions)
        shown = [q for q in questions if self._is_visible(q, by_id, responses)]
        return FlowResult(mode=FlowMode.LEGACY, questions=shown)

    def _is_visible(
        self,
        question: Question,
        by_id: Mapping[str, Question],
        responses: Mapping[str, Any],
    ) -> bool:
        rule = question.visibility_rule
        if not isinstance(rule, SingleDependency):
            return True

        dependency = by_id.get(rule.question_id)
        if dependency is None:
            logger.warning(
                "Question %s depends on unknown question %s; showing it",
                question.id, rule.question_id,
            )
            return True

        response = responses.get(dependency.id)
        if response is None:
            return False
        if response == "" and dependency.question_type == "boolean":
            return False

        # A dependency without an answer never activates
        if rule.answer_id is None:
            return False

        options = normalize_options(dependency.options, dependency.id)
        answer = rule.answer_id

        matched = None if isinstance(response, (list, tuple)) else _option_for(response, options)
        if matched is None and isinstance(response, (list, tuple)):
            # A single-element checkbox answer compares like a plain one
            matched = _option_for(normalize_value(response), options)

        if matched is not None and answer:
            matches = matched.id == answer
        elif isinstance(response, (list, tuple)):
            matches = any(_item_matches(item, answer, options) for item in response)
        else:
            matches = normalize_value(unwrap_response(response)) == normalize_value(answer)

        return matches != rule.negate


def _option_for(value: Any, options: Sequence[QuestionOption]) -> QuestionOption | None:
    """Option whose value (or id) equals the unwrapped, normalised *value*."""
    text = normalize_value(unwrap_response(value))
    for opt in options:
        if normalize_value(opt.value) == text:
            return opt
    for opt in options:
        if opt.id == text:
            return opt
    return None


def _item_matches(item: Any, answer: str, options: Sequence[QuestionOption]) -> bool:
    if item == answer or normalize_value(unwrap_response(item)) == normalize_value(answer):
        return True
    opt = _option_for(item, options)
    return opt is not None and opt.id == answer


# ----------------------------------------------------------------------
# Module-level API backed by a default calculator
# ----------------------------------------------------------------------

_default_calculator = FlowCalculator()


def calculate_flow(
    all_questions: Sequence[Question], responses: Mapping[str, Any] | None
) -> FlowResult:
    """Display list plus mode and stop diagnostics."""
    return _default_calculator.calculate(all_questions, responses)


def calculate_display_questions(
    all_questions: Sequence[Question], responses: Mapping[str, Any] | None
) -> list[Question]:
    """Ordered questions the form should render for the current responses."""
    return _default_calculator.display_questions(all_questions, responses)


def calculate_questions_with_next_question_map(
    all_questions: Sequence[Question], responses: Mapping[str, Any] | None
) -> list[Question]:
    """Graph mode only, regardless of whether any question has a map."""
    return _default_calculator.walk_branches(all_questions, responses).questions


def filter_questions_by_legacy_logic(
    all_questions: Sequence[Question], responses: Mapping[str, Any] | None
) -> list[Question]:
    """Legacy mode only: per-question dependency filter."""
    return _default_calculator.filter_legacy(all_questions, responses).questions

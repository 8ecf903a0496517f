#!/usr/bin/env python3
"""Evaluate a questionnaire's display flow against a set of responses.

Loads questionnaires from ``questionnaires/`` (or ``--dir``), runs the flow
calculator, and prints the mode, the stop reason, and the ordered list of
questions the form would render.

Usage::

    # List available questionnaires
    python scripts/simulate_flow.py --list

    # Flow with no answers yet (first question only in graph mode)
    python scripts/simulate_flow.py -q agency_survey

    # Flow for stored responses (JSON object: question id -> stored value)
    python scripts/simulate_flow.py -q agency_survey -r responses.json

    # Inline responses plus branch graph diagnostics, with DEBUG logs
    python scripts/simulate_flow.py -q agency_survey \\
        --response q_canal="Banca por teléfono" --graph -v
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Ensure src/ is importable when running from a checkout without install.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from fieldflow.branching import BranchGraph  # noqa: E402
from fieldflow.constants import LOG_LEVEL  # noqa: E402
from fieldflow.flow import calculate_flow  # noqa: E402
from fieldflow.models.question import Question  # noqa: E402
from fieldflow.responses import decode_stored_responses, missing_mandatory  # noqa: E402
from fieldflow.store import QuestionnaireStore  # noqa: E402

logger = logging.getLogger("simulate_flow")


def load_responses(path: str | None, inline: list[str]) -> dict[str, Any]:
    """Merge a JSON responses file with ``id=value`` overrides, decoding stored text."""
    raw: dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Responses file {path} must contain a JSON object")
        raw.update(data)
    for item in inline:
        qid, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"Expected question_id=value, got {item!r}")
        raw[qid.strip()] = value
    return decode_stored_responses(raw)


def print_flow(questions: list[Question], responses: dict[str, Any]) -> None:
    result = calculate_flow(questions, responses)
    print(f"Mode:        {result.mode.value}")
    if result.stop_reason is not None:
        print(f"Stop reason: {result.stop_reason.value} (after {result.steps} steps)")
    print(f"Showing {len(result.questions)} of {len(questions)} questions:")
    for i, q in enumerate(result.questions, 1):
        answer = responses.get(q.id)
        marker = "*" if q.is_mandatory else " "
        shown = "" if answer is None else f"  -> {answer!r}"
        print(f"  {i:2d}.{marker} [{q.id}] {q.name} ({q.question_type}){shown}")

    missing = missing_mandatory(result.questions, responses)
    if missing:
        print("Missing mandatory answers: " + ", ".join(q.id for q in missing))


def print_graph(questions: list[Question]) -> None:
    graph = BranchGraph.from_questions(questions)
    print()
    print("Branch graph:")
    for edge in graph.edges():
        label = edge.answer if edge.kind == "branch" else "(next)"
        print(f"  {edge.source} --{label}--> {edge.target or 'END'}")
    cycles = graph.find_cycles()
    dangling = graph.dangling_targets()
    unreachable = graph.unreachable()
    print(f"Cycles:      {cycles or 'none'}")
    print(f"Dangling:    {[f'{e.source}->{e.target}' for e in dangling] or 'none'}")
    print(f"Unreachable: {unreachable or 'none'}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Evaluate a questionnaire's display flow for a set of responses.",
    )
    parser.add_argument(
        "-q", "--questionnaire",
        help="Questionnaire name (YAML file stem)",
    )
    parser.add_argument(
        "-d", "--dir",
        default=None,
        help="Questionnaire directory (default: questionnaires/ at the repo root)",
    )
    parser.add_argument(
        "-r", "--responses",
        default=None,
        help="JSON file mapping question id to stored response",
    )
    parser.add_argument(
        "--response",
        action="append",
        default=[],
        metavar="ID=VALUE",
        help="Inline response; may be repeated",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available questionnaires and exit",
    )
    parser.add_argument(
        "--graph",
        action="store_true",
        help="Also print branch graph diagnostics",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable DEBUG logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    store = QuestionnaireStore(args.dir)
    store.load()

    if args.list:
        for name in store.names():
            print(f"  {name:<30s} ({len(store.get_questions(name))} questions)")
        sys.exit(0)

    if not args.questionnaire:
        parser.error("--questionnaire is required unless --list is given")

    try:
        questions = store.get_questions(args.questionnaire)
    except KeyError:
        logger.error("Unknown questionnaire %r; available: %s", args.questionnaire, store.names())
        sys.exit(2)

    responses = load_responses(args.responses, args.response)
    print_flow(questions, responses)
    if args.graph:
        print_graph(questions)


if __name__ == "__main__":
    main()

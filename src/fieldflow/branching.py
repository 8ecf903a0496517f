"""Branch-map lookup and the explicit branch graph.

A question's ``next_question_map`` maps an answer's display value to the id
of the question that follows it (``None`` ends the form).  Map keys were
typed by authors, so the lookup tolerates case, accent, and
underscore/space differences between the key and the resolved answer.

``BranchGraph`` materialises every question's edges once per question set:

    question_id -> {answer value -> target id | None}

plus the implicit "next in list order" edge of questions without a map.
The flow calculator tolerates dangling targets and cycles at runtime; the
graph exposes them so authoring tools can flag them up front.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, NamedTuple, Optional, Sequence

from fieldflow.constants import BRANCH_KEY_MAX_LENGTH, OPTION_ID_PREFIX
from fieldflow.models.question import Question
from fieldflow.text import fold_words

logger = logging.getLogger(__name__)

# Virtual node id used for "end of form" targets in exported graphs.
END_NODE = "__end__"


class BranchLookup(NamedTuple):
    """Result of looking an answer up in a branch map.

    ``has_mapping`` is True whenever a key matched, including keys whose
    target is ``None`` (explicit stop).
    """

    next_question_id: Optional[str]
    has_mapping: bool


def find_next_question_id(
    response_value: str, next_question_map: dict[str, Optional[str]] | None
) -> BranchLookup:
    """Look *response_value* up in a branch map.

    Order: exact key (ignoring values that still look like option ids or
    are implausibly long), then the raw value, then a folded comparison
    (lowercase, accent-free, underscores as spaces, punctuation dropped).
    """
    if not next_question_map:
        return BranchLookup(None, False)

    clean = (
        response_value
        if response_value
        and not response_value.startswith(OPTION_ID_PREFIX)
        and len(response_value) < BRANCH_KEY_MAX_LENGTH
        else None
    )

    if clean and clean in next_question_map:
        return BranchLookup(next_question_map[clean], True)

    if response_value and response_value in next_question_map:
        return BranchLookup(next_question_map[response_value], True)

    folded = fold_words(clean or response_value or "")
    if not folded:
        return BranchLookup(None, False)
    for key, target in next_question_map.items():
        if fold_words(key) == folded:
            return BranchLookup(target, True)
    return BranchLookup(None, False)


# ----------------------------------------------------------------------
# Explicit branch graph
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class BranchEdge:
    """One edge of the branch graph.

    ``kind`` is "branch" for ``next_question_map`` entries (``answer`` is the
    map key) and "order" for the implicit next-in-list edge.
    ``target`` is None for explicit stop entries.
    """

    source: str
    target: Optional[str]
    answer: Optional[str]
    kind: Literal["branch", "order"]


class BranchGraph:
    """Directed graph over question ids built from a question list.

    Usage::

        graph = BranchGraph.from_questions(questions)
        graph.find_cycles()        # [["q2", "q3"]]
        graph.dangling_targets()   # edges pointing at unknown ids
    """

    def __init__(self, order: Sequence[str], names: dict[str, str], edges: Sequence[BranchEdge]) -> None:
        self._order = list(order)
        self._names = dict(names)
        self._edges = list(edges)
        self._known = set(self._order)

    @classmethod
    def from_questions(cls, questions: Sequence[Question]) -> "BranchGraph":
        order: list[str] = []
        names: dict[str, str] = {}
        edges: list[BranchEdge] = []
        for q in questions:
            if q.id in names:
                # Duplicate ids: the first definition wins, as in the flow
                continue
            order.append(q.id)
            names[q.id] = q.name

        seen: set[str] = set()
        for position, q in enumerate(questions):
            if q.id in seen:
                continue
            seen.add(q.id)
            if q.next_question_map:
                for answer, target in q.next_question_map.items():
                    edges.append(BranchEdge(q.id, target, answer, "branch"))
            elif position + 1 < len(questions):
                edges.append(BranchEdge(q.id, questions[position + 1].id, None, "order"))
        logger.debug("Built branch graph: %d nodes, %d edges", len(order), len(edges))
        return cls(order, names, edges)

    @property
    def nodes(self) -> list[str]:
        return list(self._order)

    def edges(self) -> list[BranchEdge]:
        return list(self._edges)

    def successors(self, question_id: str) -> dict[Optional[str], Optional[str]]:
        """Map of answer (None for order edges) -> target for one question."""
        return {e.answer: e.target for e in self._edges if e.source == question_id}

    def dangling_targets(self) -> list[BranchEdge]:
        """Branch edges whose target id is not a known question."""
        return [e for e in self._edges if e.target is not None and e.target not in self._known]

    def _adjacency(self) -> dict[str, list[str]]:
        adjacency: dict[str, list[str]] = {qid: [] for qid in self._order}
        for e in self._edges:
            if e.target in self._known and e.target not in adjacency[e.source]:
                adjacency[e.source].append(e.target)
        return adjacency

    def find_cycles(self) -> list[list[str]]:
        """Return each cycle found by a depth-first walk, as a list of ids.

        Iterative so question sets with hundreds of entries cannot hit the
        recursion limit.  Output order is deterministic.
        """
        adjacency = self._adjacency()
        state: dict[str, int] = {}  # 1 = on the current path, 2 = finished
        cycles: list[list[str]] = []

        for root in self._order:
            if root in state:
                continue
            state[root] = 1
            path = [root]
            stack = [iter(adjacency[root])]
            while stack:
                nxt = next(stack[-1], None)
                if nxt is None:
                    stack.pop()
                    state[path.pop()] = 2
                    continue
                status = state.get(nxt)
                if status is None:
                    state[nxt] = 1
                    path.append(nxt)
                    stack.append(iter(adjacency[nxt]))
                elif status == 1:
                    cycles.append(path[path.index(nxt):])
        return cycles

    def reachable(self) -> set[str]:
        """Ids reachable from the first question along any edge."""
        if not self._order:
            return set()
        adjacency = self._adjacency()
        seen = {self._order[0]}
        frontier = [self._order[0]]
        while frontier:
            node = frontier.pop()
            for nxt in adjacency[node]:
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append(nxt)
        return seen

    def unreachable(self) -> list[str]:
        """Question ids no path from the first question can reach, in list order."""
        reached = self.reachable()
        return [qid for qid in self._order if qid not in reached]

    def to_cytoscape(self) -> dict:
        """Export as ``{"nodes": [...], "edges": [...]}`` element lists.

        Stop entries point at a virtual end node; dangling targets get a
        placeholder node of type "missing".
        """
        nodes = [
            {"data": {"id": qid, "label": self._names.get(qid, qid), "type": "question"}}
            for qid in self._order
        ]
        edges = []
        has_end = False
        missing: list[str] = []
        for e in self._edges:
            target = e.target
            if target is None:
                target = END_NODE
                has_end = True
            elif target not in self._known and target not in missing:
                missing.append(target)
            label = e.answer if e.kind == "branch" else "next"
            edges.append({"data": {"source": e.source, "target": target, "label": label}})

        for qid in missing:
            nodes.append({"data": {"id": qid, "label": qid, "type": "missing"}})
        if has_end:
            nodes.append({"data": {"id": END_NODE, "label": "End", "type": "end"}})
        return {"nodes": nodes, "edges": edges}

"""Flow result models — what the calculator hands back to the form layer.

``calculate_display_questions`` returns only the ordered question list;
``calculate_flow`` wraps it in a ``FlowResult`` that also records which
mode ran and why a graph walk stopped, for debugging authoring mistakes.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .question import Question


class FlowMode(str, Enum):
    """Which algorithm produced the display list."""

    GRAPH = "graph"
    LEGACY = "legacy"


class StopReason(str, Enum):
    """Why a graph-mode walk ended."""

    EMPTY = "empty"
    UNANSWERED = "unanswered"
    TERMINATED = "terminated"
    UNMAPPED_ANSWER = "unmapped_answer"
    CYCLE = "cycle"
    DANGLING_TARGET = "dangling_target"
    END_OF_QUESTIONS = "end_of_questions"
    MAX_ATTEMPTS = "max_attempts"


class FlowResult(BaseModel):
    """Display list plus diagnostics for one flow calculation."""

    mode: FlowMode
    questions: list[Question] = Field(default_factory=list)
    # Loop iterations consumed by the graph walk (0 in legacy mode)
    steps: int = 0
    stop_reason: Optional[StopReason] = None

    @property
    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]

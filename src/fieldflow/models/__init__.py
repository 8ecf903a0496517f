"""Public model re-exports for fieldflow.

Consumers should import from ``fieldflow.models`` rather than reaching
into sub-modules directly.
"""

# --- Questions ---
from fieldflow.models.question import (
    BranchMap,
    NoRule,
    Question,
    QuestionOption,
    SingleDependency,
    VisibilityRule,
)

# --- Flow results ---
from fieldflow.models.flow import FlowMode, FlowResult, StopReason

__all__ = [
    # Questions
    "BranchMap",
    "NoRule",
    "Question",
    "QuestionOption",
    "SingleDependency",
    "VisibilityRule",
    # Flow
    "FlowMode",
    "FlowResult",
    "StopReason",
]

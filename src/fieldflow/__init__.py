"""fieldflow — adaptive questionnaire flow engine for field data collection.

Public API:
    calculate_display_questions — ordered questions to render for a response map
    calculate_flow              — same, with mode and stop diagnostics
    FlowCalculator              — configurable calculator (resolver, step bound)
    extract_response_value      — stored answer -> option display value
    ResponseResolver            — ordered matcher chain behind the resolver
    normalize_options           — raw option list -> (id, value) pairs
    BranchGraph                 — explicit branch graph for authoring checks
    QuestionnaireStore          — loads questionnaire YAML files

Models:
    Question, QuestionOption    — question definitions and options
    FlowResult, FlowMode        — calculator output
"""

from fieldflow.branching import BranchGraph, BranchLookup, find_next_question_id
from fieldflow.flow import (
    FlowCalculator,
    calculate_display_questions,
    calculate_flow,
    calculate_questions_with_next_question_map,
    filter_questions_by_legacy_logic,
)
from fieldflow.models import (
    BranchMap,
    FlowMode,
    FlowResult,
    NoRule,
    Question,
    QuestionOption,
    SingleDependency,
    StopReason,
)
from fieldflow.options import (
    derive_option_id,
    is_temporary_option_id,
    normalize_options,
    regenerate_option_ids,
    sanitize_identifier,
)
from fieldflow.resolver import ResponseResolver, extract_response_value, find_option
from fieldflow.responses import (
    decode_stored_response,
    decode_stored_responses,
    has_response,
    missing_mandatory,
)
from fieldflow.store import QuestionnaireStore

__all__ = [
    # Flow
    "FlowCalculator",
    "calculate_display_questions",
    "calculate_flow",
    "calculate_questions_with_next_question_map",
    "filter_questions_by_legacy_logic",
    # Branching
    "BranchGraph",
    "BranchLookup",
    "find_next_question_id",
    # Options
    "derive_option_id",
    "is_temporary_option_id",
    "normalize_options",
    "regenerate_option_ids",
    "sanitize_identifier",
    # Resolver
    "ResponseResolver",
    "extract_response_value",
    "find_option",
    # Responses
    "decode_stored_response",
    "decode_stored_responses",
    "has_response",
    "missing_mandatory",
    # Store
    "QuestionnaireStore",
    # Models
    "BranchMap",
    "FlowMode",
    "FlowResult",
    "NoRule",
    "Question",
    "QuestionOption",
    "SingleDependency",
    "StopReason",
]

"""Question models for field-data-collection questionnaires.

A questionnaire is an ordered list of ``Question`` definitions.  Only choice
questions (radio, checkbox) carry options; every question may declare how
it participates in the flow:

  - no rule: always part of the default order
  - single dependency (legacy): shown only when another question's answer
    matches (or, with a ``!`` prefix, does not match) a given option
  - branch map: the answer's display value selects the next question id,
    or ``None`` to end the form

The ``VisibilityRule`` union uses ``kind`` as its discriminator so callers
can dispatch on a single tag instead of inspecting raw fields.

Persisted rows come from a hosted backend and are not always clean: option
lists and branch maps may arrive as JSON text.  The validators below decode
those blobs so the flow engine only ever sees lists and dicts.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fieldflow.constants import CHOICE_QUESTION_TYPES, NEGATION_PREFIX


# --- Options ---

class QuestionOption(BaseModel):
    """One selectable answer: a derived id plus the display value."""

    model_config = ConfigDict(frozen=True)

    id: str
    value: str


# --- Visibility rules ---

class NoRule(BaseModel):
    """The question follows the default order with no condition."""

    kind: Literal["none"] = "none"


class SingleDependency(BaseModel):
    """Legacy rule: show when ``question_id``'s answer matches ``answer_id``."""

    kind: Literal["single_dependency"] = "single_dependency"
    question_id: str
    # None when the author set a dependency but never picked an answer
    answer_id: Optional[str] = None
    negate: bool = False


class BranchMap(BaseModel):
    """Answer display value -> next question id (``None`` ends the flow)."""

    kind: Literal["branch_map"] = "branch_map"
    table: dict[str, Optional[str]]


VisibilityRule = Annotated[
    Union[NoRule, SingleDependency, BranchMap],
    Field(discriminator="kind"),
]


# --- Question ---

class Question(BaseModel):
    """One form field definition as stored by the authoring subsystem."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    question_type: str = "text"
    options: list[Any] = Field(default_factory=list)
    is_mandatory: bool = False
    next_question_map: Optional[dict[str, Optional[str]]] = None
    # DEPRECATED: legacy single-predicate visibility
    depends_on_question_id: Optional[str] = None
    depends_on_answer: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("name", "question_type", mode="before")
    @classmethod
    def _none_to_default(cls, v: Any, info) -> Any:
        if v is None:
            return "" if info.field_name == "name" else "text"
        return v

    @field_validator("is_mandatory", mode="before")
    @classmethod
    def _none_is_optional(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("options", mode="before")
    @classmethod
    def _decode_options(cls, v: Any) -> Any:
        """Accept ``None`` and JSON-encoded option blobs."""
        if v is None:
            return []
        if isinstance(v, str):
            try:
                decoded = json.loads(v)
            except (ValueError, RecursionError):
                # A bare string is a single option
                return [v] if v.strip() else []
            if isinstance(decoded, list):
                return decoded
            return [decoded]
        if isinstance(v, tuple):
            return list(v)
        return v

    @field_validator("next_question_map", mode="before")
    @classmethod
    def _decode_next_question_map(cls, v: Any) -> Any:
        """Decode JSON text and coerce keys/targets to strings.

        Anything that is not a mapping after decoding is treated as "no map".
        Empty-string targets are stored as ``None`` (end of flow).
        """
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except (ValueError, RecursionError):
                return None
        if not isinstance(v, dict):
            return None
        table: dict[str, Optional[str]] = {}
        for key, target in v.items():
            if target is None or target == "":
                table[str(key)] = None
            else:
                table[str(key)] = str(target)
        return table

    @field_validator("depends_on_question_id", "depends_on_answer", mode="before")
    @classmethod
    def _coerce_optional_str(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_choice(self) -> bool:
        """True for question types that carry selectable options."""
        return self.question_type in CHOICE_QUESTION_TYPES

    @property
    def has_branch_map(self) -> bool:
        """True if the question declares a non-empty ``next_question_map``."""
        return bool(self.next_question_map)

    @property
    def visibility_rule(self) -> NoRule | SingleDependency | BranchMap:
        """The question's flow rule as a tagged variant.

        A non-empty branch map takes precedence over a legacy dependency.
        """
        if self.next_question_map:
            return BranchMap(table=dict(self.next_question_map))
        if self.depends_on_question_id:
            answer = self.depends_on_answer or None
            negate = bool(answer) and answer.startswith(NEGATION_PREFIX)
            if negate:
                answer = answer[len(NEGATION_PREFIX):]
            return SingleDependency(
                question_id=self.depends_on_question_id,
                answer_id=answer,
                negate=negate,
            )
        return NoRule()

"""QuestionnaireStore — loads questionnaire YAML files into typed questions.

Questionnaires normally live in the hosted backend; this store covers
fixtures, offline field kits, and the simulation script.  Each ``*.yaml``
file under the questionnaire directory is one questionnaire, named after
the file stem, in one of two shapes:

    # a bare list
    - id: q1
      name: "¿Tiene cuenta bancaria?"
      question_type: radio
      options: ["Sí", "No"]
      next_question_map: {"Sí": q2, "No": null}

    # or a mapping with metadata
    title: Encuesta de agencias
    questions:
      - id: q1
        ...

Quote "Yes"/"No" style keys and options: YAML 1.1 reads them as booleans.

Usage::

    store = QuestionnaireStore()     # defaults to questionnaires/ at the repo root
    store.load()
    questions = store.get_questions("agency_survey")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from fieldflow.constants import QUESTIONNAIRE_DIR
from fieldflow.models.question import Question

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Locate the checkout whose ``questionnaires/`` directory is the default.

    Starting next to *start* (this module by default), the first ancestor
    holding ``pyproject.toml`` or ``.git`` is the root.  Installed copies
    with no such ancestor use the working directory instead.
    """
    here = (start or Path(__file__).resolve()).parent
    markers = ("pyproject.toml", ".git")
    for candidate in (here, *here.parents):
        if any((candidate / marker).exists() for marker in markers):
            return candidate
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Read one questionnaire file with ``yaml.safe_load``.

    Raises:
        FileNotFoundError: if *path* does not exist.
        yaml.YAMLError: if the file is not valid YAML.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Questionnaire file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_questions(raw: Any, source: str = "<memory>") -> list[Question]:
    """Validate a raw questionnaire document into ordered ``Question`` models.

    Raises:
        ValueError: if the document shape is wrong or a question is invalid.
    """
    if isinstance(raw, dict):
        raw = raw.get("questions")
    if not isinstance(raw, list):
        raise ValueError(f"Questionnaire {source} must be a list of questions")

    questions: list[Question] = []
    for position, q_dict in enumerate(raw):
        if not isinstance(q_dict, dict):
            raise ValueError(f"Question #{position} in {source} is not a mapping")
        try:
            questions.append(Question.model_validate(q_dict))
        except ValidationError as exc:
            raise ValueError(f"Invalid question #{position} in {source}: {exc}") from exc
    return questions


# ---------------------------------------------------------------------------
# QuestionnaireStore
# ---------------------------------------------------------------------------

class QuestionnaireStore:
    """Loads every questionnaire under a directory and provides lookup.

    Attributes populated after :meth:`load`:

        questionnaires — dict[name, list[Question]] in file order
    """

    def __init__(self, questionnaire_dir: str | Path | None = None) -> None:
        if questionnaire_dir is None:
            questionnaire_dir = QUESTIONNAIRE_DIR or find_repo_root() / "questionnaires"
        self._base = Path(questionnaire_dir)

        # Populated by load()
        self.questionnaires: dict[str, list[Question]] = {}

    @property
    def base_dir(self) -> Path:
        return self._base

    def load(self) -> None:
        """Parse all ``*.yaml`` / ``*.yml`` files in the questionnaire directory.

        Raises ``FileNotFoundError`` if the directory is missing and
        ``ValueError`` if a file is malformed.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing questionnaire directory: {self._base}")

        paths = sorted(
            p for p in self._base.iterdir()
            if p.is_file() and p.suffix in (".yaml", ".yml")
        )
        loaded: dict[str, list[Question]] = {}
        for path in paths:
            try:
                raw = load_yaml(path)
            except yaml.YAMLError as exc:
                raise ValueError(f"Unreadable questionnaire {path.name}: {exc}") from exc
            loaded[path.stem] = parse_questions(raw, source=path.name)

        self.questionnaires = loaded
        logger.info(
            "QuestionnaireStore loaded: %d questionnaires, %d questions",
            len(loaded),
            sum(len(qs) for qs in loaded.values()),
        )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """Questionnaire names in sorted order."""
        return sorted(self.questionnaires)

    def get_questions(self, name: str) -> list[Question]:
        """Return a questionnaire's questions in authored order.

        Raises:
            KeyError: if the questionnaire is not loaded.
        """
        return list(self.questionnaires[name])

    def get_question(self, name: str, question_id: str) -> Question:
        """Look up one question by questionnaire name and id.

        Raises:
            KeyError: if the questionnaire or question is not found.
        """
        for q in self.questionnaires[name]:
            if q.id == question_id:
                return q
        raise KeyError(f"Question {question_id} not found in {name}")

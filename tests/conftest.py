import pytest

from fieldflow.models.question import Question
from fieldflow.store import QuestionnaireStore


@pytest.fixture
def make_question():
    """Factory for Question models with short defaults (radio, name = id upper-cased)."""

    def _make(qid, **kwargs):
        kwargs.setdefault("name", qid.upper())
        kwargs.setdefault("question_type", "radio")
        return Question(id=qid, **kwargs)

    return _make


@pytest.fixture(scope="session")
def store():
    """Load the bundled questionnaires once for the entire test session."""
    s = QuestionnaireStore()
    s.load()
    return s

"""Stored-response decoding and the mandatory-answer check."""

import pytest

from fieldflow.flow import calculate_display_questions
from fieldflow.responses import (
    decode_stored_response,
    decode_stored_responses,
    has_response,
    missing_mandatory,
)


class TestHasResponse:
    @pytest.mark.parametrize("value", [None, "", []])
    def test_empty(self, value):
        assert has_response(value) is False

    @pytest.mark.parametrize("value", ["No", ["x"], 0, False, {"id": "a"}])
    def test_answered(self, value):
        """Falsy scalars like 0 and False are real answers."""
        assert has_response(value) is True


class TestDecodeStoredResponse:
    def test_json_array(self):
        assert decode_stored_response('["Cédula", "Libreta"]') == ["Cédula", "Libreta"]

    def test_json_object(self):
        assert decode_stored_response('{"id": "opt_q1_No", "value": "No"}') == {
            "id": "opt_q1_No",
            "value": "No",
        }

    def test_json_scalars(self):
        assert decode_stored_response("42") == 42
        assert decode_stored_response("true") is True

    def test_plain_text_kept(self):
        assert decode_stored_response("Ventanilla") == "Ventanilla"

    def test_voice_marker_kept_verbatim(self):
        """Voice answers are never decoded, even when they look like JSON."""
        raw = '["[Audio: grabacion_01.webm]"]'
        assert decode_stored_response(raw) == raw

    def test_non_strings_pass_through(self):
        assert decode_stored_response(None) is None
        assert decode_stored_response("") == ""
        assert decode_stored_response(["x"]) == ["x"]

    def test_mapping(self):
        rows = {"q1": '["x"]', "q2": "hola", "q3": "[Audio: a.webm]"}
        assert decode_stored_responses(rows) == {"q1": ["x"], "q2": "hola", "q3": "[Audio: a.webm]"}


class TestMissingMandatory:
    def test_only_displayed_questions_count(self, make_question):
        """Hidden mandatory questions never block submission."""
        questions = [
            make_question("q1", options=["Sí", "No"], is_mandatory=True,
                          next_question_map={"Sí": "q2", "No": None}),
            make_question("q2", question_type="text", is_mandatory=True),
        ]
        responses = {"q1": "No"}
        shown = calculate_display_questions(questions, responses)
        assert missing_mandatory(shown, responses) == []

    def test_unanswered_mandatory(self, make_question):
        questions = [
            make_question("q1", question_type="text", is_mandatory=True),
            make_question("q2", question_type="text"),
            make_question("q3", question_type="checkbox", is_mandatory=True),
        ]
        missing = missing_mandatory(questions, {"q1": "", "q3": []})
        assert [q.id for q in missing] == ["q1", "q3"]

    def test_none_responses(self, make_question):
        q = make_question("q1", is_mandatory=True)
        assert missing_mandatory([q], None) == [q]

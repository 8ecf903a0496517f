"""Option normalizer tests — id derivation and persisted-shape tolerance.

Id rule (plain-string options):
    opt_ + sanitize(question_id + "_" + value)
    opt_temp_{index}_ + sanitize(value)      when question_id is empty
"""

from fieldflow.models.question import QuestionOption
from fieldflow.options import (
    derive_option_id,
    is_temporary_option_id,
    normalize_options,
    regenerate_option_ids,
    sanitize_identifier,
)


class TestSanitize:
    def test_replaces_non_identifier_chars(self):
        """Accents, spaces, slashes and hyphens all become underscores."""
        assert sanitize_identifier("Banca por teléfono") == "Banca_por_tel_fono"
        assert sanitize_identifier("N/A") == "N_A"
        assert sanitize_identifier("q-1") == "q_1"

    def test_keeps_identifier_chars(self):
        """Letters, digits and underscores pass through."""
        assert sanitize_identifier("abc_XYZ_019") == "abc_XYZ_019"


class TestDeriveOptionId:
    def test_with_question_id(self):
        """Ids combine the question id and the value."""
        assert derive_option_id("q1", "Sí") == "opt_q1_S_"
        assert derive_option_id("q1", "No") == "opt_q1_No"

    def test_question_id_is_sanitized_too(self):
        """Non-identifier characters in the question id are replaced as well."""
        assert derive_option_id("q-1", "No") == "opt_q_1_No"

    def test_without_question_id_uses_temp_prefix(self):
        """Unsaved questions get index-based temporary ids."""
        assert derive_option_id("", "Sí", 0) == "opt_temp_0_S_"
        assert derive_option_id(None, "No", 3) == "opt_temp_3_No"

    def test_temporary_detection(self):
        assert is_temporary_option_id("opt_temp_0_S_") is True
        assert is_temporary_option_id("opt_q1_S_") is False


class TestNormalizeOptions:
    def test_empty_inputs(self):
        """None and empty lists normalise to an empty list."""
        assert normalize_options(None, "q1") == []
        assert normalize_options([], "q1") == []

    def test_plain_strings(self):
        """Plain strings get derived ids and keep display order."""
        opts = normalize_options(["Sí", "No"], "q1")
        assert opts == [
            QuestionOption(id="opt_q1_S_", value="Sí"),
            QuestionOption(id="opt_q1_No", value="No"),
        ]

    def test_plain_strings_without_question_id(self):
        """Options of an unsaved question get temporary ids by position."""
        opts = normalize_options(["Sí", "No"], "")
        assert [o.id for o in opts] == ["opt_temp_0_S_", "opt_temp_1_No"]

    def test_objects_pass_through(self):
        """{id, value} entries keep their stored id."""
        opts = normalize_options([{"id": "abc", "value": "Sí"}], "q1")
        assert opts == [QuestionOption(id="abc", value="Sí")]

    def test_object_with_json_wrapped_value(self):
        """A value that is JSON text of {value: X} is unwrapped."""
        opts = normalize_options([{"id": "abc", "value": '{"value": "Sí"}'}], "q1")
        assert opts[0].value == "Sí"
        assert opts[0].id == "abc"

    def test_json_string_entries(self):
        """Entries persisted as JSON text are decoded like objects."""
        opts = normalize_options(['{"id": "x1", "value": "Retiro"}'], "q1")
        assert opts == [QuestionOption(id="x1", value="Retiro")]

    def test_object_without_id_derives_one(self):
        """Objects missing an id fall back to the derivation rule."""
        opts = normalize_options([{"value": "No"}], "q1")
        assert opts[0].id == "opt_q1_No"

    def test_non_string_scalars(self):
        """Numbers are stringified before deriving ids."""
        opts = normalize_options([1, 2.0], "q1")
        assert [o.value for o in opts] == ["1", "2"]
        assert opts[0].id == "opt_q1_1"

    def test_none_entries_are_skipped(self):
        opts = normalize_options(["Sí", None, "No"], "q1")
        assert [o.value for o in opts] == ["Sí", "No"]

    def test_already_normalized_options(self):
        """QuestionOption instances pass through untouched."""
        opt = QuestionOption(id="a", value="b")
        assert normalize_options([opt], "q1") == [opt]

    def test_deterministic(self):
        """Two calls with identical inputs give identical ids."""
        raw = ["Ventanilla", "Banca por teléfono", {"id": "z", "value": "Otro"}]
        assert normalize_options(raw, "q9") == normalize_options(raw, "q9")


class TestRegenerateOptionIds:
    def test_replaces_temporary_ids(self):
        """Temporary ids are re-derived from the saved question id."""
        opts = normalize_options(["Sí", "No"], "")
        regenerated = regenerate_option_ids(opts, "q7")
        assert [o.id for o in regenerated] == ["opt_q7_S_", "opt_q7_No"]
        assert [o.value for o in regenerated] == ["Sí", "No"]

    def test_keeps_real_ids(self):
        opts = [QuestionOption(id="abc", value="Sí")]
        assert regenerate_option_ids(opts, "q7") == opts

    def test_no_question_id_is_a_noop(self):
        opts = normalize_options(["Sí"], "")
        assert regenerate_option_ids(opts, "") == opts

"""Branch-map lookup and BranchGraph diagnostics."""

import pytest

from fieldflow.branching import END_NODE, BranchGraph, BranchLookup, find_next_question_id


MAP = {"Sí": "q2", "No": None, "Banca por teléfono": "q5"}


class TestFindNextQuestionId:
    def test_exact_key(self):
        assert find_next_question_id("Sí", MAP) == BranchLookup("q2", True)

    def test_explicit_stop(self):
        """A key mapped to None is a mapping with no target."""
        assert find_next_question_id("No", MAP) == BranchLookup(None, True)

    def test_missing_key(self):
        assert find_next_question_id("Quizás", MAP) == BranchLookup(None, False)

    @pytest.mark.parametrize(
        "value",
        ["banca por telefono", "BANCA POR TELÉFONO", "Banca_por_teléfono", "  Banca por teléfono "],
    )
    def test_folded_key(self, value):
        """Case, accents, underscores and padding do not matter."""
        assert find_next_question_id(value, MAP) == BranchLookup("q5", True)

    def test_id_shaped_value_still_matches_raw_key(self):
        """Option-id-looking values are skipped as clean keys but still tried verbatim."""
        assert find_next_question_id("opt_x", {"opt_x": "q3"}) == BranchLookup("q3", True)

    def test_empty_inputs(self):
        assert find_next_question_id("Sí", {}) == BranchLookup(None, False)
        assert find_next_question_id("Sí", None) == BranchLookup(None, False)
        assert find_next_question_id("", MAP) == BranchLookup(None, False)

    def test_punctuation_only_value_does_not_match(self):
        """A value that folds to nothing never matches a key."""
        assert find_next_question_id("¿?", {"!": "q2"}) == BranchLookup(None, False)


class TestBranchGraph:
    def test_edges(self, make_question):
        """Branch entries and next-in-order edges are both recorded."""
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"Sí": "q3", "No": None}),
            make_question("q2", question_type="text"),
            make_question("q3", question_type="text"),
        ])
        edges = [(e.source, e.answer, e.target, e.kind) for e in graph.edges()]
        assert edges == [
            ("q1", "Sí", "q3", "branch"),
            ("q1", "No", None, "branch"),
            ("q2", None, "q3", "order"),
        ]
        assert graph.successors("q1") == {"Sí": "q3", "No": None}
        assert graph.nodes == ["q1", "q2", "q3"]

    def test_cycles(self, make_question):
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"a": "q2"}),
            make_question("q2", next_question_map={"b": "q1", "c": None}),
            make_question("q3", question_type="text"),
        ])
        assert graph.find_cycles() == [["q1", "q2"]]
        assert graph.unreachable() == ["q3"]

    def test_self_loop(self, make_question):
        graph = BranchGraph.from_questions([make_question("q1", next_question_map={"a": "q1"})])
        assert graph.find_cycles() == [["q1"]]

    def test_acyclic(self, make_question):
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"a": "q2", "b": "q3"}),
            make_question("q2", question_type="text"),
            make_question("q3", question_type="text"),
        ])
        assert graph.find_cycles() == []
        assert graph.unreachable() == []

    def test_dangling_targets(self, make_question):
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"a": "missing", "b": None}),
        ])
        dangling = graph.dangling_targets()
        assert [(e.source, e.target) for e in dangling] == [("q1", "missing")]

    def test_duplicate_ids_keep_first(self, make_question):
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"a": "q2"}),
            make_question("q1", next_question_map={"z": "q9"}),
            make_question("q2", question_type="text"),
        ])
        assert graph.nodes == ["q1", "q2"]
        assert graph.dangling_targets() == []

    def test_cytoscape_export(self, make_question):
        """Stops point at the virtual end node; unknown targets get placeholder nodes."""
        graph = BranchGraph.from_questions([
            make_question("q1", next_question_map={"a": "ghost", "b": None}),
            make_question("q2", question_type="text"),
        ])
        exported = graph.to_cytoscape()
        node_types = {n["data"]["id"]: n["data"]["type"] for n in exported["nodes"]}
        assert node_types == {
            "q1": "question",
            "q2": "question",
            "ghost": "missing",
            END_NODE: "end",
        }
        targets = [(e["data"]["source"], e["data"]["target"], e["data"]["label"]) for e in exported["edges"]]
        assert targets == [("q1", "ghost", "a"), ("q1", END_NODE, "b")]

    def test_empty(self):
        graph = BranchGraph.from_questions([])
        assert graph.nodes == []
        assert graph.find_cycles() == []
        assert graph.reachable() == set()

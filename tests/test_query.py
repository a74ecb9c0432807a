import itertools

import pytest

from catalog.query import (
    And,
    CategoryIn,
    FilterState,
    NameContains,
    QueryEngine,
    build_predicate,
    derive_categories,
)
from catalog.models import MenuItem


class TestBuildPredicate:
    def test_no_clauses(self):
        assert build_predicate("", []) is None
        assert build_predicate("   ", None) is None
        assert build_predicate(None, ["", None]) is None

    def test_term_only_is_trimmed_and_folded(self):
        assert build_predicate("  LeMoN ", []) == NameContains("lemon")

    def test_categories_only(self):
        assert build_predicate("", ["Mains", ""]) == CategoryIn(frozenset({"Mains"}))

    def test_both_clauses_combine_with_and(self):
        pred = build_predicate("fish", ["Mains", "Starters"])
        assert isinstance(pred, And)
        sql, params = pred.to_sql()
        assert sql == "(instr(casefold(name), ?) > 0) AND (category IN (?, ?))"
        assert params == ["fish", "Mains", "Starters"]

    def test_user_input_never_inlined(self):
        sql, params = build_predicate("x'; DROP TABLE menuitems; --", ["a' OR 1=1"]).to_sql()
        assert "DROP" not in sql
        assert "OR 1=1" not in sql
        assert len(params) == 2


class TestScenario:
    @pytest.fixture
    def engine(self, store):
        store.upsert_many([
            MenuItem(id=1, name="Greek Salad", category="Starters"),
            MenuItem(id=2, name="Lemon Dessert", category="Desserts"),
        ])
        return QueryEngine(store)

    def test_search_by_name(self, engine):
        assert [it.id for it in engine.filter("lemon", [])] == [2]

    def test_filter_by_category(self, engine):
        assert [it.id for it in engine.filter("", ["Starters"])] == [1]

    def test_no_match(self, engine):
        assert engine.filter("z", []) == []

    def test_unknown_category_is_empty_not_error(self, engine):
        assert engine.filter("", ["Drinks"]) == []


class TestFilterCorrectness:
    TERMS = ["", " ", "g", "GR", "lemon", "a", "sh", "%", "_", "zzz"]
    CATEGORY_SETS = [[], ["Starters"], ["Mains", "Desserts"], ["Nope"], [""]]

    def test_matches_in_memory_oracle(self, seeded_store, sample_items):
        engine = QueryEngine(seeded_store)
        for term, cats in itertools.product(self.TERMS, self.CATEGORY_SETS):
            folded = term.strip().casefold()
            active = {c for c in cats if c}
            expected = sorted(
                (
                    it for it in sample_items
                    if (not folded or folded in it.name.casefold())
                    and (not active or it.category in active)
                ),
                key=lambda it: (it.category, it.name),
            )
            assert engine.filter(term, cats) == expected, (term, cats)

    def test_sql_and_predicate_evaluation_agree(self, seeded_store, sample_items):
        for term, cats in itertools.product(self.TERMS, self.CATEGORY_SETS):
            pred = build_predicate(term, cats)
            in_memory = [it for it in seeded_store.read_all() if pred is None or pred.matches(it)]
            assert seeded_store.select(pred) == in_memory

    def test_wildcards_are_literal(self, store):
        store.upsert_many([
            MenuItem(id=1, name="100% Juice"),
            MenuItem(id=2, name="Juice"),
            MenuItem(id=3, name="snake_case"),
        ])
        assert [it.id for it in store.read_filtered("%", [])] == [1]
        assert [it.id for it in store.read_filtered("_", [])] == [3]

    def test_non_ascii_case_folding(self, store):
        store.upsert_many([MenuItem(id=1, name="CRÈME BRÛLÉE", category="Desserts")])
        assert [it.id for it in store.read_filtered("crème", [])] == [1]


class TestFilterState:
    def test_toggle_adds_then_removes(self):
        state = FilterState()
        assert state.toggle("Mains") is True
        assert state.toggle("Starters") is True
        assert state.toggle("Mains") is False
        assert state.active_categories == {"Starters"}

    def test_predicate_follows_state(self):
        state = FilterState(term="fish", active_categories={"Mains"})
        assert state.predicate().matches(MenuItem(id=1, name="Grilled Fish", category="Mains"))
        assert not state.predicate().matches(MenuItem(id=2, name="Grilled Fish", category="Starters"))


def test_derive_categories_sorted_distinct_non_empty(sample_items):
    assert derive_categories(sample_items) == ["Desserts", "Mains", "Starters"]

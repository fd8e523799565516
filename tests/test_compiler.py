"""Tests for the filter-predicate compiler."""

from __future__ import annotations

import logging

import pytest

from formations_catalog.compiler import (
    CategoryRule,
    FormationFields,
    NoFilter,
    OnlyOther,
    OtherPlusTags,
    TagsOnly,
    build_query_plan,
    classify_categories,
    compile_category,
    compile_filters,
)
from formations_catalog.filters import FilterRequest, PageSpec, SortSpec
from formations_catalog.predicates import And, Equals, ILike, Not, Or

KNOWN = ("BTS", "BUT", "CPGE", "Licence", "PASS")


def _row(voie: str = "", **overrides: str) -> dict[str, str]:
    row = {
        "etablissement": "Lycée Jean Moulin",
        "filiere": "Informatique",
        "ville": "Lyon",
        "voie": voie,
        "departement": "69",
    }
    row.update(overrides)
    return row


def _not_known() -> And:
    return And(*(Not(ILike("voie", f"%{k}%")) for k in KNOWN))


class TestClassifyCategories:
    @pytest.mark.parametrize(
        ("tags", "expected"),
        [
            ((), NoFilter()),
            (("Other",), OnlyOther()),
            (("Autres",), OnlyOther()),
            (("other", "Autres"), OnlyOther()),
            (("Licence", "Other"), OtherPlusTags(("Licence",))),
            (("BTS", "BUT"), TagsOnly(("BTS", "BUT"))),
            (("BUT", "BTS", "BUT"), TagsOnly(("BUT", "BTS"))),
        ],
    )
    def test_selection(self, tags: tuple[str, ...], expected: object) -> None:
        assert classify_categories(tags) == expected

    def test_custom_reserved_tag(self) -> None:
        rule = CategoryRule(other_tags=frozenset({"Divers"}))
        assert classify_categories(("Divers",), rule) == OnlyOther()
        assert classify_categories(("Other",), rule) == TagsOnly(("Other",))


class TestCompileCategory:
    def test_no_filter(self) -> None:
        assert compile_category(NoFilter()) is None

    def test_only_other(self) -> None:
        assert compile_category(OnlyOther()) == _not_known()

    def test_other_plus_tags(self) -> None:
        expected = Or(
            Or(ILike("voie", "%Licence%"), ILike("voie", "%BUT%")), _not_known()
        )
        assert compile_category(OtherPlusTags(("Licence", "BUT"))) == expected

    def test_tags_only(self) -> None:
        assert compile_category(TagsOnly(("CPGE",))) == Or(ILike("voie", "%CPGE%"))

    def test_unknown_selection(self) -> None:
        with pytest.raises(TypeError):
            compile_category("BTS")  # type: ignore[arg-type]


class TestCompileFilters:
    def test_empty_request_matches_all(self) -> None:
        assert compile_filters(FilterRequest()) is None

    def test_search_is_three_way_or(self) -> None:
        pred = compile_filters(FilterRequest(search="Paris"))
        assert pred == Or(
            ILike("etablissement", "%Paris%"),
            ILike("filiere", "%Paris%"),
            ILike("ville", "%Paris%"),
        )
        assert pred is not None
        assert pred.is_satisfied_by(_row(ville="Paris-Saclay"))
        assert pred.is_satisfied_by(_row(etablissement="Sorbonne PARIS Nord"))
        assert not pred.is_satisfied_by(_row())

    def test_only_other_excludes_known_categories(self) -> None:
        pred = compile_filters(FilterRequest(type=["Other"]))
        assert pred == _not_known()
        assert pred is not None
        for voie in ("BTS Informatique", "but gea", "Cpge MPSI", "licence", "PASS"):
            assert not pred.is_satisfied_by(_row(voie))
        assert pred.is_satisfied_by(_row("Alternance"))
        assert pred.is_satisfied_by(_row("Ecole d'ingénieur"))

    def test_other_plus_licence(self) -> None:
        pred = compile_filters(FilterRequest(type=["Licence", "Other"]))
        assert pred is not None
        assert pred.is_satisfied_by(_row("Licence Pro"))
        assert pred.is_satisfied_by(_row("Alternance"))
        assert not pred.is_satisfied_by(_row("BTS Informatique"))

    def test_tags_only(self) -> None:
        pred = compile_filters(FilterRequest(type=["BTS", "BUT"]))
        assert pred == Or(ILike("voie", "%BTS%"), ILike("voie", "%BUT%"))

    def test_single_conjunct_is_unwrapped(self) -> None:
        assert compile_filters(FilterRequest(ville="Lyon")) == Equals("ville", "Lyon")

    def test_conjunct_order(self) -> None:
        pred = compile_filters(
            FilterRequest(
                ville="Lyon", departement="69", type=["BTS"], search="info"
            )
        )
        assert isinstance(pred, And)
        assert [c.to_dict()["op"] for c in pred.conditions] == [
            "or",
            "or",
            "eq",
            "eq",
        ]
        assert pred.conditions[2] == Equals("departement", "69")
        assert pred.conditions[3] == Equals("ville", "Lyon")
        assert pred.is_satisfied_by(_row("BTS SIO"))
        assert not pred.is_satisfied_by(_row("BTS SIO", ville="Villeurbanne"))

    def test_custom_fields(self) -> None:
        fields = FormationFields(track="category", city="city")
        pred = compile_filters(
            FilterRequest(type=["BTS"], ville="Lyon"), fields=fields
        )
        assert pred == And(Or(ILike("category", "%BTS%")), Equals("city", "Lyon"))


class TestBuildQueryPlan:
    def test_defaults(self) -> None:
        plan = build_query_plan()
        assert plan.predicate is None
        assert plan.sort is None
        assert (plan.offset, plan.limit) == (0, 500)
        assert plan.range == (0, 499)

    def test_page_two_of_ten(self) -> None:
        plan = build_query_plan(FilterRequest(), page=PageSpec(page=2, pageSize=10))
        assert plan.range == (10, 19)

    def test_sort_kept_only_with_field(self) -> None:
        assert build_query_plan(sort=SortSpec()).sort is None
        sort = SortSpec(field="ville", direction="asc")
        assert build_query_plan(sort=sort).sort == sort

    def test_logs_plan_at_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="formations_catalog.compiler"):
            build_query_plan(FilterRequest(ville="Lyon"))
        assert "Compiled query plan" in caplog.text

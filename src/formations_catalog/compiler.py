"""
Filter-predicate compiler.

Turns a :class:`~formations_catalog.filters.FilterRequest` into a predicate
tree, and a ``(filters, sort, page)`` request into a
:class:`~formations_catalog.filters.QueryPlan`. Pure data transformation:
nothing here talks to the backend, and well-typed input never fails.

Conjuncts are emitted in a fixed order (search, category, department,
city) so the generated query text is reproducible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .filters import FilterRequest, PageSpec, QueryPlan, SortSpec
from .predicates import And, BasePredicate, Equals, ILike, Not, Or, conjunction

logger = logging.getLogger("formations_catalog.compiler")


@dataclass(frozen=True)
class FormationFields:
    """Column names of the formations table used by the compiler."""

    institution: str = "etablissement"
    programme: str = "filiere"
    city: str = "ville"
    track: str = "voie"
    department: str = "departement"

    @property
    def search_fields(self) -> tuple[str, ...]:
        return (self.institution, self.programme, self.city)


@dataclass(frozen=True)
class CategoryRule:
    """
    Known track categories and the reserved "none of them" tag.

    Attributes:
        known: Category keywords matched as case-insensitive substrings of
            the track column.
        other_tags: Spellings of the reserved tag selecting rows that match
            none of ``known``.
    """

    known: tuple[str, ...] = ("BTS", "BUT", "CPGE", "Licence", "PASS")
    other_tags: frozenset[str] = field(
        default_factory=lambda: frozenset({"Other", "Autres"})
    )

    def is_other(self, tag: str) -> bool:
        return tag.casefold() in {t.casefold() for t in self.other_tags}


DEFAULT_FIELDS = FormationFields()
DEFAULT_CATEGORY_RULE = CategoryRule()


# -- category selection -------------------------------------------------------


@dataclass(frozen=True)
class NoFilter:
    """No category tag selected."""


@dataclass(frozen=True)
class OnlyOther:
    """Only the reserved tag selected."""


@dataclass(frozen=True)
class OtherPlusTags:
    """Reserved tag plus concrete tags."""

    tags: tuple[str, ...]


@dataclass(frozen=True)
class TagsOnly:
    """Concrete tags only."""

    tags: tuple[str, ...]


CategorySelection = NoFilter | OnlyOther | OtherPlusTags | TagsOnly


def classify_categories(
    tags: tuple[str, ...] | list[str],
    rule: CategoryRule = DEFAULT_CATEGORY_RULE,
) -> CategorySelection:
    """Sort the selected tags into one of the four selection cases."""
    has_other = any(rule.is_other(t) for t in tags)
    concrete = tuple(dict.fromkeys(t for t in tags if not rule.is_other(t)))
    if not has_other and not concrete:
        return NoFilter()
    if has_other and not concrete:
        return OnlyOther()
    if has_other:
        return OtherPlusTags(concrete)
    return TagsOnly(concrete)


def _matches_none_of_known(track: str, rule: CategoryRule) -> And:
    return And(*(Not(ILike.contains(track, k)) for k in rule.known))


def _matches_any_tag(track: str, tags: tuple[str, ...]) -> Or:
    return Or(*(ILike.contains(track, t) for t in tags))


def compile_category(
    selection: CategorySelection,
    *,
    track: str = DEFAULT_FIELDS.track,
    rule: CategoryRule = DEFAULT_CATEGORY_RULE,
) -> BasePredicate | None:
    """Predicate for a category selection, or ``None`` for no restriction."""
    match selection:
        case NoFilter():
            return None
        case OnlyOther():
            return _matches_none_of_known(track, rule)
        case OtherPlusTags(tags=tags):
            return Or(
                _matches_any_tag(track, tags),
                _matches_none_of_known(track, rule),
            )
        case TagsOnly(tags=tags):
            return _matches_any_tag(track, tags)
    raise TypeError(f"Unknown category selection: {selection!r}")


# -- public API ---------------------------------------------------------------


def compile_filters(
    filters: FilterRequest,
    *,
    fields: FormationFields = DEFAULT_FIELDS,
    rule: CategoryRule = DEFAULT_CATEGORY_RULE,
) -> BasePredicate | None:
    """
    Compile a filter request into a predicate tree.

    Returns ``None`` when the request does not restrict anything, the single
    conjunct when only one rule applies, and an ``And`` of the applicable
    rules otherwise.
    """
    search = None
    if filters.search:
        search = Or(*(ILike.contains(f, filters.search) for f in fields.search_fields))

    category = compile_category(
        classify_categories(filters.type, rule), track=fields.track, rule=rule
    )

    department = (
        Equals(fields.department, filters.departement) if filters.departement else None
    )
    city = Equals(fields.city, filters.ville) if filters.ville else None

    return conjunction(search, category, department, city)


def build_query_plan(
    filters: FilterRequest | None = None,
    sort: SortSpec | None = None,
    page: PageSpec | None = None,
    *,
    fields: FormationFields = DEFAULT_FIELDS,
    rule: CategoryRule = DEFAULT_CATEGORY_RULE,
) -> QueryPlan:
    """Compile a full ``(filters, sort, page)`` request."""
    page = page or PageSpec()
    predicate = (
        compile_filters(filters, fields=fields, rule=rule)
        if filters is not None
        else None
    )
    plan = QueryPlan(
        predicate=predicate,
        sort=sort if sort is not None and sort.field else None,
        offset=page.offset,
        limit=page.limit,
    )
    logger.debug("Compiled query plan: %s", plan.to_dict())
    return plan

"""PostgREST query builder from the predicate AST."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple, TypeVar
from urllib.parse import quote, urlencode

from .exceptions import QueryCompilationError
from .predicates import And, BasePredicate, Equals, ILike, Not, Or

if TYPE_CHECKING:
    from .filters import QueryPlan, SortSpec

R = TypeVar("R")

_RESERVED = frozenset(',.:()"\\')


class FilterParam(NamedTuple):
    """One PostgREST query parameter.

    ``key`` is a column name, or ``"or"`` for a logical group; ``operator``
    is empty for logical groups.
    """

    key: str
    operator: str
    criteria: str

    @property
    def value(self) -> str:
        if self.key == "or":
            return f"({self.criteria})"
        return f"{self.operator}.{self.criteria}"


def _format_value(val: Any) -> str:
    if isinstance(val, bool):
        return "true" if val else "false"
    return str(val)


def _quote(val: Any) -> str:
    """Double-quote a value carrying PostgREST reserved characters."""
    text = _format_value(val)
    if not any(ch in _RESERVED for ch in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _leaf_parts(node: BasePredicate) -> tuple[str, str, Any]:
    if isinstance(node, Equals):
        return node.field, "eq", node.value
    if isinstance(node, ILike):
        return node.field, "ilike", node.pattern
    raise QueryCompilationError(f"Unsupported predicate node: {node!r}")


class _Truth(Enum):
    """Constant outcome of a folded tree."""

    ALWAYS = True
    NEVER = False


def _fold(node: BasePredicate) -> BasePredicate | _Truth:
    """Resolve empty groups to constants.

    An empty ``And`` matches every row and an empty ``Or`` matches none;
    PostgREST has no syntax for either, so they are folded into their
    parents before rendering.
    """
    if isinstance(node, Not):
        inner = _fold(node.condition)
        if isinstance(inner, _Truth):
            return _Truth(not inner.value)
        return Not(inner)
    if isinstance(node, And | Or):
        absorbing = _Truth.NEVER if isinstance(node, And) else _Truth.ALWAYS
        children: list[BasePredicate] = []
        for child in node.conditions:
            folded = _fold(child)
            if folded is absorbing:
                return absorbing
            if not isinstance(folded, _Truth):
                children.append(folded)
        if not children:
            return _Truth(not absorbing.value)
        return type(node)(*children)
    return node


def _flatten(node: And | Or) -> list[BasePredicate]:
    """Children of a group with nested groups of the same kind inlined."""
    out: list[BasePredicate] = []
    for child in node.conditions:
        if type(child) is type(node):
            out.extend(_flatten(child))  # type: ignore[arg-type]
        else:
            out.append(child)
    return out


def _render(node: BasePredicate, *, negate: bool = False) -> str:
    """Render a folded node as a logic-tree item."""
    if isinstance(node, Not):
        return _render(node.condition, negate=not negate)
    if isinstance(node, And | Or):
        items = ",".join(_render(c) for c in _flatten(node))
        prefix = "not." if negate else ""
        return f"{prefix}{node.op.value}({items})"
    field, op, val = _leaf_parts(node)
    if negate:
        op = f"not.{op}"
    return f"{field}.{op}.{_quote(val)}"


class PostgrestQueryBuilder:
    """Compiles predicate trees and query plans to PostgREST parameters.

    Top-level ``And`` conjuncts become separate parameters (PostgREST ANDs
    repeated parameters); any other group goes through the ``or`` parameter.
    Empty logical groups are folded first: a tree that always matches
    yields no parameters, one that never matches is rejected.
    """

    def build_filters(self, predicate: BasePredicate | None) -> list[FilterParam]:
        if predicate is None:
            return []
        folded = _fold(predicate)
        if isinstance(folded, _Truth):
            if folded is _Truth.ALWAYS:
                return []
            raise QueryCompilationError(f"Predicate can never match: {predicate!r}")
        return self._build_params(folded)

    def _build_params(self, node: BasePredicate) -> list[FilterParam]:
        if isinstance(node, And):
            params: list[FilterParam] = []
            for child in _flatten(node):
                params.extend(self._build_params(child))
            return params
        return [self._build_top_level(node)]

    def _build_top_level(
        self, node: BasePredicate, negate: bool = False
    ) -> FilterParam:
        if isinstance(node, Not):
            return self._build_top_level(node.condition, negate=not negate)
        if isinstance(node, Or) and not negate:
            items = ",".join(_render(c) for c in _flatten(node))
            return FilterParam("or", "", items)
        if isinstance(node, And | Or):
            return FilterParam("or", "", _render(node, negate=negate))
        field, op, val = _leaf_parts(node)
        if negate:
            op = f"not.{op}"
        return FilterParam(field, op, _format_value(val))

    def build_order(self, sort: SortSpec | None) -> str | None:
        """``order`` parameter value, e.g. ``"ville.desc"``."""
        if sort is None or not sort.field:
            return None
        return f"{sort.field}.{'asc' if sort.ascending else 'desc'}"

    def apply(self, request: R, plan: QueryPlan) -> R:
        """Apply filters, range and ordering of *plan* to a request builder.

        *request* is a ``postgrest`` select request builder (sync or async).
        """
        builder: Any = request
        for param in self.build_filters(plan.predicate):
            if param.key == "or":
                builder = builder.or_(param.criteria)
            else:
                builder = builder.filter(param.key, param.operator, param.criteria)
        start, end = plan.range
        builder = builder.range(start, end)
        if plan.sort is not None and plan.sort.field:
            builder = builder.order(plan.sort.field, desc=not plan.sort.ascending)
        return builder  # type: ignore[no-any-return]

    def to_query_string(self, plan: QueryPlan, *, select: str = "*") -> str:
        """Reproducible URL query text for *plan*."""
        params: list[tuple[str, str | int]] = [("select", select)]
        params.extend((p.key, p.value) for p in self.build_filters(plan.predicate))
        order = self.build_order(plan.sort)
        if order:
            params.append(("order", order))
        params.append(("offset", plan.offset))
        params.append(("limit", plan.limit))
        return urlencode(params, safe="*(),.:", quote_via=quote)

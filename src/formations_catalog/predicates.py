"""
Predicate tree handed to the query executor.

A predicate is a small immutable AST: two leaves (``Equals`` and
``ILike``) and three logical nodes (``And``, ``Or``, ``Not``). It has no
relationship to storage; backends translate it (see
:mod:`formations_catalog.postgrest`) and :meth:`BasePredicate.is_satisfied_by`
evaluates it against an in-memory row.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .exceptions import ValidationError
from .operators import PredicateOperator


def _resolve_field(candidate: Any, field: str) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get(field)
    return getattr(candidate, field, None)


def _sql_pattern_to_regex(pattern: str) -> str:
    """Convert SQL LIKE pattern (``%``, ``_``) to a Python regex."""
    return re.escape(pattern).replace("%", ".*").replace("_", ".")


class BasePredicate(ABC):
    """Base class for predicate nodes with logic operator support."""

    __slots__ = ()

    def __and__(self, other: BasePredicate) -> And:
        return And(self, other)

    def __or__(self, other: BasePredicate) -> Or:
        return Or(self, other)

    def __invert__(self) -> Not:
        return Not(self)

    @abstractmethod
    def is_satisfied_by(self, candidate: Any) -> bool:
        """Evaluate against a row mapping (or an object with attributes)."""
        ...

    @abstractmethod
    def to_dict(self) -> dict[str, Any]: ...

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BasePredicate) or type(other) is not type(self):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(json.dumps(self.to_dict(), sort_keys=True, default=str))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")


# -- leaves -------------------------------------------------------------------


class Equals(BasePredicate):
    """Exact match on a single column."""

    __slots__ = ("field", "value")

    field: str
    value: Any

    op = PredicateOperator.EQ

    def __init__(self, field: str, value: Any) -> None:
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "value", value)

    def is_satisfied_by(self, candidate: Any) -> bool:
        actual = _resolve_field(candidate, self.field)
        if actual is None:
            return False
        if actual == self.value:
            return True
        # PostgREST compares the text form of the filter value
        return str(actual) == str(self.value)

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op.value, "attr": self.field, "val": self.value}

    def __repr__(self) -> str:
        return f"Equals({self.field!r}, {self.value!r})"


class ILike(BasePredicate):
    """Case-insensitive SQL ``LIKE`` match (``%`` any run, ``_`` one char)."""

    __slots__ = ("field", "pattern")

    field: str
    pattern: str

    op = PredicateOperator.ILIKE

    def __init__(self, field: str, pattern: str) -> None:
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "pattern", pattern)

    @classmethod
    def contains(cls, field: str, text: str) -> ILike:
        """Substring match: ``field ILIKE '%text%'``."""
        return cls(field, f"%{text}%")

    def is_satisfied_by(self, candidate: Any) -> bool:
        actual = _resolve_field(candidate, self.field)
        if actual is None:
            return False
        regex = _sql_pattern_to_regex(self.pattern)
        return re.fullmatch(regex, str(actual), re.IGNORECASE | re.DOTALL) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op.value, "attr": self.field, "val": self.pattern}

    def __repr__(self) -> str:
        return f"ILike({self.field!r}, {self.pattern!r})"


# -- logical nodes ------------------------------------------------------------


class And(BasePredicate):
    """Logical AND; an empty conjunction matches everything."""

    __slots__ = ("conditions",)

    conditions: tuple[BasePredicate, ...]

    op = PredicateOperator.AND

    def __init__(self, *conditions: BasePredicate) -> None:
        object.__setattr__(self, "conditions", conditions)

    def is_satisfied_by(self, candidate: Any) -> bool:
        return all(c.is_satisfied_by(candidate) for c in self.conditions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }

    def __repr__(self) -> str:
        return f"And({', '.join(repr(c) for c in self.conditions)})"


class Or(BasePredicate):
    """Logical OR; an empty disjunction matches nothing."""

    __slots__ = ("conditions",)

    conditions: tuple[BasePredicate, ...]

    op = PredicateOperator.OR

    def __init__(self, *conditions: BasePredicate) -> None:
        object.__setattr__(self, "conditions", conditions)

    def is_satisfied_by(self, candidate: Any) -> bool:
        return any(c.is_satisfied_by(candidate) for c in self.conditions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "op": self.op.value,
            "conditions": [c.to_dict() for c in self.conditions],
        }

    def __repr__(self) -> str:
        return f"Or({', '.join(repr(c) for c in self.conditions)})"


class Not(BasePredicate):
    """Logical NOT."""

    __slots__ = ("condition",)

    condition: BasePredicate

    op = PredicateOperator.NOT

    def __init__(self, condition: BasePredicate) -> None:
        object.__setattr__(self, "condition", condition)

    def is_satisfied_by(self, candidate: Any) -> bool:
        return not self.condition.is_satisfied_by(candidate)

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op.value, "conditions": [self.condition.to_dict()]}

    def __repr__(self) -> str:
        return f"Not({self.condition!r})"


def conjunction(*conditions: BasePredicate | None) -> BasePredicate | None:
    """AND the given conditions, dropping ``None``.

    Returns ``None`` when nothing is left and the condition itself when only
    one is left.
    """
    present = [c for c in conditions if c is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return And(*present)


# -- deserialisation ----------------------------------------------------------


def predicate_from_dict(data: Any, *, path: str = "<root>") -> BasePredicate:
    """Rebuild a predicate tree from its ``to_dict()`` form.

    Raises:
        ValidationError: On the first malformed node, keyed by its path.
    """
    if not isinstance(data, dict):
        raise ValidationError({path: [f"expected a dict, got {type(data).__name__}"]})

    op_str = data.get("op")
    if not op_str or not isinstance(op_str, str):
        raise ValidationError({path: ["missing or empty 'op' key"]})
    try:
        op = PredicateOperator(op_str.lower())
    except ValueError:
        raise ValidationError({path: [f"unknown operator '{op_str}'"]}) from None

    if op in (PredicateOperator.AND, PredicateOperator.OR, PredicateOperator.NOT):
        conditions = data.get("conditions")
        if not isinstance(conditions, list):
            raise ValidationError({path: ["'conditions' must be a list"]})
        children = [
            predicate_from_dict(c, path=f"{path}.conditions[{idx}]")
            for idx, c in enumerate(conditions)
        ]
        if op == PredicateOperator.AND:
            return And(*children)
        if op == PredicateOperator.OR:
            return Or(*children)
        if len(children) != 1:
            raise ValidationError({path: ["'not' takes exactly one condition"]})
        return Not(children[0])

    attr = data.get("attr")
    if not attr or not isinstance(attr, str):
        raise ValidationError({path: ["missing 'attr'"]})
    if op == PredicateOperator.ILIKE:
        val = data.get("val")
        if not isinstance(val, str):
            raise ValidationError({path: ["'ilike' requires a string 'val'"]})
        return ILike(attr, val)
    return Equals(attr, data.get("val"))

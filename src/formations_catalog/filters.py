"""
Request descriptors for formation queries.

``FilterRequest`` is the structured filter object the UI sends,
``SortSpec`` and ``PageSpec`` shape the result, and ``QueryPlan`` is the
compiled, backend-agnostic bundle of all three.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

if TYPE_CHECKING:
    from .predicates import BasePredicate

DEFAULT_PAGE_SIZE = 500


def _split_tags(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, Iterable):
        return [str(t).strip() for t in raw if str(t).strip()]
    return [str(raw).strip()]


class RequestModel(BaseModel):
    """Base for request descriptors.

    Invalid input raises :class:`~formations_catalog.exceptions.ValidationError`
    at construction, keyed by field location.
    """

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from exc


class FilterRequest(RequestModel):
    """UI filter object for the formations table.

    Attributes:
        search: Free text matched against institution, programme and city.
        type: Category tags. Order of first occurrence is kept so that
            the generated query text is reproducible.
        departement: Exact department code/name.
        ville: Exact city name.
    """

    model_config = ConfigDict(frozen=True)

    search: str | None = None
    type: tuple[str, ...] = ()
    departement: str | None = None
    ville: str | None = None

    @field_validator("search", "departement", "ville", mode="before")
    @classmethod
    def _blank_is_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_tags(cls, v: Any) -> tuple[str, ...]:
        return tuple(dict.fromkeys(_split_tags(v)))

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> FilterRequest:
        """Build from a UI filter object or a query-string mapping.

        ``type`` may be a list of tags or a comma-separated string; unknown
        keys are ignored.
        """
        return cls(
            search=params.get("search"),
            type=params.get("type"),
            departement=params.get("departement"),
            ville=params.get("ville"),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.search or self.type or self.departement or self.ville)


class SortSpec(RequestModel):
    """Ordering on a single column; descending unless told otherwise."""

    model_config = ConfigDict(frozen=True)

    field: str | None = None
    direction: Literal["asc", "desc"] = "desc"

    @field_validator("direction", mode="before")
    @classmethod
    def _lower_direction(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @property
    def ascending(self) -> bool:
        return self.direction == "asc"


class PageSpec(RequestModel):
    """1-based page number and page size (``pageSize`` accepted as alias)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, alias="pageSize")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def range(self) -> tuple[int, int]:
        """Inclusive, zero-indexed row range."""
        return self.offset, self.offset + self.limit - 1


@dataclass(frozen=True)
class QueryPlan:
    """
    Compiled query: what to match, how to order, which rows to return.

    Attributes:
        predicate: Predicate tree, or ``None`` to match every row.
        sort: Ordering, or ``None`` for the backend default order.
        offset: Number of rows to skip.
        limit: Maximum number of rows.
    """

    predicate: BasePredicate | None
    sort: SortSpec | None
    offset: int
    limit: int

    @property
    def range(self) -> tuple[int, int]:
        return self.offset, self.offset + self.limit - 1

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-compatible dictionary."""
        result: dict[str, Any] = {"offset": self.offset, "limit": self.limit}
        if self.predicate is not None:
            result["predicate"] = self.predicate.to_dict()
        if self.sort is not None:
            result["sort"] = {
                "field": self.sort.field,
                "ascending": self.sort.ascending,
            }
        return result

"""FormationRepository: executes compiled query plans against Supabase."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError

from .compiler import (
    DEFAULT_CATEGORY_RULE,
    DEFAULT_FIELDS,
    CategoryRule,
    FormationFields,
    build_query_plan,
)
from .exceptions import FormationNotFoundError, QueryExecutionError
from .filters import PageSpec
from .postgrest import PostgrestQueryBuilder
from .settings import CatalogSettings

if TYPE_CHECKING:
    from .client import SupabaseConnectionManager
    from .filters import FilterRequest, SortSpec

logger = logging.getLogger("formations_catalog.repository")

# PostgREST code for ``.single()`` on an empty result
NO_ROWS_CODE = "PGRST116"


@dataclass
class FormationPage:
    """One page of formations and the exact count of matching rows."""

    data: list[dict[str, Any]] = field(default_factory=list)
    count: int | None = None


class FormationRepository:
    """Read access to the formations table."""

    def __init__(
        self,
        connection: SupabaseConnectionManager,
        settings: CatalogSettings | None = None,
        *,
        query_builder: PostgrestQueryBuilder | None = None,
        fields: FormationFields = DEFAULT_FIELDS,
        rule: CategoryRule = DEFAULT_CATEGORY_RULE,
    ) -> None:
        self._connection = connection
        self._settings = settings or CatalogSettings()
        self._builder = query_builder or PostgrestQueryBuilder()
        self._fields = fields
        self._rule = rule

    @property
    def table(self) -> str:
        return self._settings.formations_table

    async def list_formations(
        self,
        filters: FilterRequest | None = None,
        sort: SortSpec | None = None,
        page: PageSpec | None = None,
    ) -> FormationPage:
        """Return one page of formations matching *filters*, with exact count."""
        page = page or PageSpec(page_size=self._settings.default_page_size)
        plan = build_query_plan(
            filters, sort, page, fields=self._fields, rule=self._rule
        )
        request = self._connection.client.table(self.table).select("*", count="exact")
        request = self._builder.apply(request, plan)
        try:
            response = await request.execute()
        except APIError as exc:
            logger.error("Error fetching formations: %s", exc)
            raise QueryExecutionError.from_api_error(
                exc, "Error fetching formations"
            ) from exc
        return FormationPage(data=list(response.data or []), count=response.count)

    async def get_formation(self, formation_id: int) -> dict[str, Any]:
        """Return a single formation by its numeric id."""
        request = (
            self._connection.client.table(self.table)
            .select("*")
            .eq("id", formation_id)
            .single()
        )
        try:
            response = await request.execute()
        except APIError as exc:
            if exc.code == NO_ROWS_CODE:
                raise FormationNotFoundError(formation_id) from exc
            logger.error("Error fetching formation %s: %s", formation_id, exc)
            raise QueryExecutionError.from_api_error(
                exc, "Error fetching formation"
            ) from exc
        if not response.data:
            raise FormationNotFoundError(formation_id)
        return dict(response.data)

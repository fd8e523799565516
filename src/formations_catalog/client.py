"""Supabase client lifecycle: credential check, connect, close, health check."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from supabase import acreate_client

from .exceptions import ConfigurationError, SupabaseConnectionError

if TYPE_CHECKING:
    from supabase import AsyncClient

    from .settings import CatalogSettings

logger = logging.getLogger("formations_catalog.client")

ClientFactory = Callable[..., Awaitable["AsyncClient"]]


class SupabaseConnectionManager:
    """
    Wrap the async Supabase client with an explicit lifecycle.

    Nothing connects at import time: the caller builds the manager, awaits
    :meth:`connect` and hands the manager to the repositories that need it.

    Usage::

        async with SupabaseConnectionManager.from_settings(settings) as conn:
            repo = FormationRepository(conn, settings)
            page = await repo.list_formations(filters)
    """

    def __init__(
        self,
        url: str,
        key: str,
        *,
        options: Any | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._url = url
        self._key = key
        self._options = options
        self._client_factory: ClientFactory = client_factory or acreate_client
        self._client: AsyncClient | None = None

    @classmethod
    def from_settings(
        cls, settings: CatalogSettings, **kwargs: Any
    ) -> SupabaseConnectionManager:
        return cls(settings.url, settings.anon_key.get_secret_value(), **kwargs)

    def validate_credentials(self) -> None:
        """Raise ``ConfigurationError`` unless URL and key look usable."""
        credentials = (("url", self._url), ("key", self._key))
        missing = [name for name, value in credentials if not value]
        if missing:
            raise ConfigurationError(
                f"Missing Supabase settings: {', '.join(missing)}"
            )
        if not self._url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid Supabase URL: {self._url!r}")

    async def connect(self) -> AsyncClient:
        """Create and cache the client. Idempotent."""
        if self._client is not None:
            return self._client
        self.validate_credentials()
        try:
            if self._options is not None:
                client = await self._client_factory(
                    self._url, self._key, options=self._options
                )
            else:
                client = await self._client_factory(self._url, self._key)
        except Exception as e:
            raise SupabaseConnectionError(str(e)) from e
        self._client = client
        logger.info("Supabase client created for %s", self._url)
        return client

    @property
    def client(self) -> AsyncClient:
        """Return the client; raises if not connected."""
        if self._client is None:
            raise SupabaseConnectionError("Not connected; call connect() first")
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def close(self) -> None:
        """Drop the client and close its PostgREST HTTP session. Idempotent."""
        if self._client is None:
            return
        client, self._client = self._client, None
        postgrest = getattr(client, "_postgrest", None)
        if postgrest is not None:
            await postgrest.aclose()
        logger.info("Supabase client closed")

    async def health_check(self, table: str = "formations") -> bool:
        """Run a one-row probe query; return True if the backend answers."""
        if self._client is None:
            return False
        try:
            await self._client.table(table).select("id").limit(1).execute()
            return True
        except Exception:  # noqa: BLE001
            logger.warning("Supabase health check failed", exc_info=True)
            return False

    async def __aenter__(self) -> SupabaseConnectionManager:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

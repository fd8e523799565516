"""Shared fixtures: an in-memory stand-in for the async Supabase client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from formations_catalog.client import SupabaseConnectionManager
from formations_catalog.settings import CatalogSettings


class FakeQuery:
    """Chainable request builder that records every call.

    Any builder method (``select``, ``eq``, ``or_``, ``range``...) returns
    the builder itself; ``execute`` returns the canned response or raises
    the canned error.
    """

    def __init__(self, response: Any = None, error: Exception | None = None):
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.response = response
        self.error = error

    def __getattr__(self, name: str):
        def method(*args: Any, **kwargs: Any) -> FakeQuery:
            self.calls.append((name, args, kwargs))
            return self

        return method

    def called(self, name: str) -> list[tuple[tuple[Any, ...], dict[str, Any]]]:
        return [(args, kwargs) for n, args, kwargs in self.calls if n == name]

    async def execute(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.response


class FakeSupabaseClient:
    def __init__(self) -> None:
        self.queries: dict[str, FakeQuery] = {}
        self.rpc_query = FakeQuery(SimpleNamespace(data=True))
        self.rpc_calls: list[tuple[str, dict[str, Any]]] = []
        self.auth = SimpleNamespace(get_user=AsyncMock(return_value=None))
        self._postgrest = None

    def table(self, name: str) -> FakeQuery:
        return self.queries.setdefault(
            name, FakeQuery(SimpleNamespace(data=[], count=0))
        )

    def rpc(self, fn: str, params: dict[str, Any]) -> FakeQuery:
        self.rpc_calls.append((fn, params))
        return self.rpc_query

    def sign_in(self, user_id: str = "user-1") -> None:
        self.auth.get_user.return_value = SimpleNamespace(
            user=SimpleNamespace(id=user_id)
        )


@pytest.fixture
def settings() -> CatalogSettings:
    return CatalogSettings(
        _env_file=None,
        url="https://example.supabase.co",
        anon_key="anon-key",
    )


@pytest.fixture
def fake_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest_asyncio.fixture
async def connection(
    settings: CatalogSettings, fake_client: FakeSupabaseClient
) -> SupabaseConnectionManager:
    factory = AsyncMock(return_value=fake_client)
    manager = SupabaseConnectionManager.from_settings(
        settings, client_factory=factory
    )
    await manager.connect()
    return manager


@pytest.fixture
def fake_query() -> FakeQuery:
    return FakeQuery()

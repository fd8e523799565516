"""Token balance: read the current user's tokens and spend one on a formation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError
from supabase import AuthError

from .exceptions import QueryExecutionError, TokenRejectedError, UnauthenticatedError
from .settings import CatalogSettings

if TYPE_CHECKING:
    from .client import SupabaseConnectionManager

logger = logging.getLogger("formations_catalog.tokens")


class TokenService:
    """Token operations for the user of the current auth session."""

    def __init__(
        self,
        connection: SupabaseConnectionManager,
        settings: CatalogSettings | None = None,
    ) -> None:
        self._connection = connection
        self._settings = settings or CatalogSettings()

    async def current_user_id(self) -> str:
        """Id of the session user; raises ``UnauthenticatedError`` without one."""
        try:
            response = await self._connection.client.auth.get_user()
        except AuthError as exc:
            raise UnauthenticatedError(str(exc) or "User not authenticated") from exc
        user = getattr(response, "user", None)
        if user is None:
            raise UnauthenticatedError()
        return str(user.id)

    async def get_user_tokens(self) -> int:
        """Token balance of the current user. A missing or null balance is 0."""
        user_id = await self.current_user_id()
        request = (
            self._connection.client.table(self._settings.profiles_table)
            .select("tokens")
            .eq("user_id", user_id)
            .maybe_single()
        )
        try:
            response = await request.execute()
        except APIError as exc:
            logger.error("Error fetching user tokens: %s", exc)
            raise QueryExecutionError.from_api_error(
                exc, "Error fetching user tokens"
            ) from exc
        # maybe_single() yields no response at all on some client versions
        if response is None or not response.data:
            return 0
        return int(response.data.get("tokens") or 0)

    async def use_token(self, formation_id: int) -> Any:
        """Spend one token to unlock *formation_id*; returns the RPC payload."""
        user_id = await self.current_user_id()
        params = {"p_user_id": user_id, "p_formation_id": formation_id}
        try:
            response = await self._connection.client.rpc(
                self._settings.use_token_function, params
            ).execute()
        except APIError as exc:
            logger.error("Error using token on formation %s: %s", formation_id, exc)
            raise TokenRejectedError.from_api_error(
                exc, "Error using token", formation_id=formation_id
            ) from exc
        logger.info("Token used by %s on formation %s", user_id, formation_id)
        return response.data

"""Exception hierarchy for formations-catalog.

All errors inherit from ``CatalogError`` and provide ``to_dict()`` for
API-friendly error responses.
"""

from __future__ import annotations

from typing import Any


class CatalogError(Exception):
    """Root exception for the formations catalog."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class ConfigurationError(CatalogError):
    """Raised when the backend settings are missing or invalid."""


class ValidationError(CatalogError):
    """Raised when a request descriptor cannot be built.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))

    @classmethod
    def from_pydantic(cls, exc: Any) -> ValidationError:
        """Collect a pydantic ``ValidationError`` as ``{loc: [messages]}``."""
        errors: dict[str, list[str]] = {}
        for error in exc.errors():
            loc = ".".join(str(p) for p in error.get("loc", ())) or "__root__"
            errors.setdefault(loc, []).append(error.get("msg", "validation error"))
        return cls(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALIDATION_ERROR",
            "errors": self.errors,
        }


# ── Persistence ──────────────────────────────────────────────────────


class PersistenceError(CatalogError):
    """Base class for all backend access errors."""


class SupabaseConnectionError(PersistenceError):
    """Raised when the Supabase client cannot be created or is not connected."""


class QueryCompilationError(PersistenceError):
    """Raised when a predicate cannot be translated to a backend query."""


class QueryExecutionError(PersistenceError):
    """Raised when the backend rejects a query or a remote procedure call.

    Keeps the PostgREST error fields so callers can branch on ``code``.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        super().__init__(message)

    @classmethod
    def from_api_error(
        cls, exc: Any, context: str, **kwargs: Any
    ) -> QueryExecutionError:
        """Build from a ``postgrest`` ``APIError`` (or anything shaped like one)."""
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            f"{context}: {message}",
            code=getattr(exc, "code", None),
            details=getattr(exc, "details", None),
            hint=getattr(exc, "hint", None),
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "QUERY_EXECUTION_ERROR",
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "hint": self.hint,
        }


ExecutionError = QueryExecutionError


class TokenRejectedError(QueryExecutionError):
    """Raised when the token RPC refuses to unlock a formation.

    The refusal policy (insufficient balance, unknown formation, ...) lives
    in the database function; ``code`` and ``details`` carry its reason.
    """

    def __init__(
        self,
        message: str,
        *,
        formation_id: int | None = None,
        code: str | None = None,
        details: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, code=code, details=details, hint=hint)
        self.formation_id = formation_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["error"] = "TOKEN_REJECTED"
        data["formation_id"] = self.formation_id
        return data


# ── Lookup ───────────────────────────────────────────────────────────


class NotFoundError(CatalogError):
    """Raised when a requested resource does not exist."""


class FormationNotFoundError(NotFoundError):
    """Raised when a formation cannot be found by ID."""

    def __init__(self, formation_id: object) -> None:
        self.formation_id = formation_id
        super().__init__(f"Formation with id={formation_id!r} not found")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "FORMATION_NOT_FOUND",
            "message": str(self),
            "formation_id": self.formation_id,
        }


# ── Authentication ───────────────────────────────────────────────────


class AuthenticationError(CatalogError):
    """Base class for authentication failures."""


class UnauthenticatedError(AuthenticationError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)

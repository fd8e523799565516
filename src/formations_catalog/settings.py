"""Environment-driven configuration for the Supabase backend."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, ValidationError
from .filters import DEFAULT_PAGE_SIZE


class CatalogSettings(BaseSettings):
    """Supabase connection and table settings.

    Read from ``SUPABASE_*`` variables (or a ``.env`` file). The front-end
    names ``VITE_SUPABASE_URL`` / ``VITE_SUPABASE_ANON_KEY`` are accepted too.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "VITE_SUPABASE_URL"),
    )
    anon_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"),
    )

    formations_table: str = "formations"
    profiles_table: str = "user_profiles"
    use_token_function: str = "use_token_for_formation"
    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    def __init__(self, *args: Any, **values: Any) -> None:
        try:
            super().__init__(*args, **values)
        except PydanticValidationError as exc:
            errors = ValidationError.from_pydantic(exc).errors
            raise ConfigurationError(f"Invalid catalog settings: {errors}") from exc

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key.get_secret_value())

"""Aspade server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, StringListSettings, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ServerSettings(StringListSettings):
    model_config = {"env_prefix": "ASPADE_"}

    string_list_fields: ClassVar[frozenset[str]] = frozenset({"cors_origins"})

    log_dir: str = Field(default="backend/logs/aspade", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]
    history_dir: str | None = None  # None keeps completed games in memory only
    join_code_length: int = Field(default=5, ge=4, le=6)
    max_code_attempts: int = Field(default=50, ge=1)
    presence_window_seconds: int = Field(default=300, ge=1)
    max_request_body_bytes: int = Field(default=16384, ge=256)
    # Lobby and in-progress games idle this long are deleted by the background sweep.
    stale_game_seconds: int = Field(default=7200, ge=60)
    stale_sweep_interval_seconds: float = Field(default=300, gt=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @field_validator("history_dir", mode="before")
    @classmethod
    def validate_history_dir(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings

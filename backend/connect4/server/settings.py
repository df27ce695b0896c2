"""Arena server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from connect4.logic.settings import (
    DEFAULT_INACTIVITY_TIMEOUT_SECONDS,
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_POINTS_PER_WIN,
)
from shared.validators import OriginListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ArenaServerSettings(BaseSettings):
    model_config = {"env_prefix": "CONNECT4_"}

    max_queue_size: int = Field(default=DEFAULT_MAX_QUEUE_SIZE, ge=1)
    inactivity_timeout_seconds: float = Field(default=DEFAULT_INACTIVITY_TIMEOUT_SECONDS, gt=0)
    points_per_win: int = Field(default=DEFAULT_POINTS_PER_WIN, ge=0)
    bot_think_seconds: float = Field(default=0.6, ge=0)
    leaderboard_size: int = Field(default=10, ge=1, le=100)
    history_size: int = Field(default=20, ge=1, le=200)
    presence_active_threshold_seconds: float = Field(default=300.0, gt=0)
    telemetry_interval_seconds: float = Field(default=5.0, gt=0)
    database_path: str = Field(default="backend/storage.db", min_length=1)
    log_dir: str = Field(default="backend/logs/arena", min_length=1)
    cors_origins: list[str] = ["http://localhost:8712"]

    # Read from AUTH_TICKET_SECRET (not CONNECT4_TICKET_SECRET): the secret is
    # shared with the account service that issues participant tickets.
    ticket_secret: str = Field(validation_alias="AUTH_TICKET_SECRET", min_length=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, OriginListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings

from __future__ import annotations

from pydantic import Field, field_validator

from orderdesk.settings.base import OrderDeskBaseSettings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingSettings(OrderDeskBaseSettings):
    level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return value

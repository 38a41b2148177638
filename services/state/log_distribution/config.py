"""Pydantic settings for Log Distribution Service behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from packages.shiftbook_shared.config import (
    ShiftbookSettings,
    resolve_component_settings,
)
from services.state.log_distribution.component import SERVICE_COMPONENT_ID


class CategoryRouteSettings(BaseModel):
    """Static distribution routing for one category within one plant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    category_id: str
    plant: str
    distribution_enabled: bool = True
    workcenters: tuple[str, ...] = ()

    @field_validator("category_id", "plant")
    @classmethod
    def _require_text(cls, value: str) -> str:
        normalized = value.strip()
        if normalized == "":
            raise ValueError("value is required")
        return normalized

    @field_validator("workcenters")
    @classmethod
    def _normalize_workcenters(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Strip blanks and drop duplicates while keeping configured order."""
        return tuple(dict.fromkeys(item.strip() for item in value if item.strip()))


class LogDistributionSettings(BaseModel):
    """Log Distribution Service runtime behavior settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_batch_size: int = Field(default=100, gt=0)
    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)
    category_routes: tuple[CategoryRouteSettings, ...] = ()

    @model_validator(mode="after")
    def _check_page_sizes(self) -> "LogDistributionSettings":
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must not exceed max_page_size")
        return self


def resolve_log_distribution_settings(
    settings: ShiftbookSettings,
) -> LogDistributionSettings:
    """Resolve settings from ``components.service.log_distribution``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=LogDistributionSettings,
    )

"""Pydantic request-validation models for Log Distribution Service API."""

from __future__ import annotations

import re
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from packages.shiftbook_shared.ids import normalize_ulid_str
from services.state.log_distribution.domain import WorkcenterScope

MAX_WORKCENTER_LENGTH = 36
MAX_PAGE_SIZE = 100

_PLANT_RE = re.compile(r"^[A-Za-z0-9]{1,4}$")


class _ValidationModel(BaseModel):
    """Base request model with strict shape semantics."""

    model_config = ConfigDict(frozen=True, extra="forbid")


def _normalize_log_id(value: str, info: ValidationInfo) -> str:
    try:
        return normalize_ulid_str(value)
    except ValueError as exc:
        raise ValueError(f"{info.field_name} must be a 26-character ULID") from exc


def _normalize_workcenter(value: str, info: ValidationInfo) -> str:
    normalized = value.strip()
    if normalized == "":
        raise ValueError(f"{info.field_name} is required")
    if len(normalized) > MAX_WORKCENTER_LENGTH:
        raise ValueError(
            f"{info.field_name} must be at most {MAX_WORKCENTER_LENGTH} characters"
        )
    return normalized


def _normalize_plant(value: str, info: ValidationInfo) -> str:
    normalized = value.strip()
    if _PLANT_RE.match(normalized) is None:
        raise ValueError(f"{info.field_name} must be 1-4 alphanumeric characters")
    return normalized


class DistributionKeyRequest(_ValidationModel):
    """Validated request shape for operations keyed by (log, work center)."""

    log_id: str
    workcenter: str

    @field_validator("log_id")
    @classmethod
    def _validate_log_id(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_log_id(value, info)

    @field_validator("workcenter")
    @classmethod
    def _validate_workcenter(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_workcenter(value, info)


class LogIdRequest(_ValidationModel):
    """Validated request shape for operations keyed by log id only."""

    log_id: str

    @field_validator("log_id")
    @classmethod
    def _validate_log_id(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_log_id(value, info)


class CreateDistributionsRequest(_ValidationModel):
    """Validated fan-out request; work centers are deduplicated in order."""

    log_id: str
    workcenters: tuple[str, ...]

    @field_validator("log_id")
    @classmethod
    def _validate_log_id(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_log_id(value, info)

    @field_validator("workcenters")
    @classmethod
    def _validate_workcenters(
        cls, value: tuple[str, ...], info: ValidationInfo
    ) -> tuple[str, ...]:
        normalized = [_normalize_workcenter(item, info) for item in value]
        return tuple(dict.fromkeys(normalized))


class RecordEntryRequest(_ValidationModel):
    """Validated shape of one authored shift-book entry."""

    plant: str
    shop_order: str = Field(min_length=1, max_length=30)
    step_id: str = Field(min_length=1, max_length=4)
    split: str = Field(default="", max_length=3)
    workcenter: str
    author_id: str = Field(min_length=1, max_length=512)
    category_id: str = Field(min_length=1, max_length=64)
    subject: str = Field(default="", max_length=1024)
    message: str = Field(min_length=1, max_length=4096)

    @field_validator("plant")
    @classmethod
    def _validate_plant(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_plant(value, info)

    @field_validator("workcenter")
    @classmethod
    def _validate_workcenter(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_workcenter(value, info)

    @field_validator(
        "shop_order", "step_id", "split", "author_id", "category_id", mode="before"
    )
    @classmethod
    def _strip_identifiers(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class LogFilterRequest(_ValidationModel):
    """Validated retrieval filter."""

    plant: str
    workcenter: str | None = None
    category_id: str | None = None
    since: datetime | None = None
    scope: WorkcenterScope = WorkcenterScope.ORIGIN

    @field_validator("plant")
    @classmethod
    def _validate_plant(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_plant(value, info)

    @field_validator("workcenter")
    @classmethod
    def _validate_workcenter(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is None:
            return None
        return _normalize_workcenter(value, info)

    @field_validator("category_id")
    @classmethod
    def _normalize_category(cls, value: str | None) -> str | None:
        if value is None or value.strip() == "":
            return None
        return value.strip()

    @field_validator("since")
    @classmethod
    def _normalize_since(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class WorkcenterRequest(_ValidationModel):
    """Validated (plant, work center) pair."""

    plant: str
    workcenter: str

    @field_validator("plant")
    @classmethod
    def _validate_plant(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_plant(value, info)

    @field_validator("workcenter")
    @classmethod
    def _validate_workcenter(cls, value: str, info: ValidationInfo) -> str:
        return _normalize_workcenter(value, info)


class LogPageRequest(LogFilterRequest):
    """Validated retrieval filter plus pagination arguments."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(ge=1, le=MAX_PAGE_SIZE)

"""Typed configuration models for shiftbook runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "shiftbook" / "shiftbook.yaml"
ENV_PREFIX = "SHIFTBOOK_"

_COMPONENT_KINDS = frozenset({"service", "substrate"})


class LoggingSettings(BaseModel):
    """Structured logging configuration shared by all components."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "shiftbook"
    environment: str = "dev"


class ComponentNamespaceSettings(BaseModel):
    """Free-form map of component settings under ``components.<kind>``."""

    model_config = ConfigDict(extra="allow")


class ComponentsSettings(BaseModel):
    """Typed ``components`` subtree grouped by component kind."""

    model_config = ConfigDict(extra="forbid")

    service: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    substrate: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Reject flat ``service_*`` keys in favor of grouped namespaces."""
        if not isinstance(value, dict):
            return value
        for key in value:
            if isinstance(key, str) and key.startswith(("service_", "substrate_")):
                kind, _, name = key.partition("_")
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value


class ShiftbookSettings(BaseSettings):
    """Root runtime settings resolved from init/env/yaml sources."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Apply precedence: init > env > yaml."""
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._config_path,
                yaml_file_encoding="utf-8",
            ),
        )


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: ShiftbookSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Resolve one component settings object from ``components.<kind>.<name>``."""
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in _COMPONENT_KINDS or not name:
        raise ValueError(f"unsupported component id: {component_id}")

    raw_components = settings.components.model_dump(mode="python")
    namespace = raw_components.get(kind, {})
    if not isinstance(namespace, dict):
        raise TypeError(f"components.{kind} must resolve to an object mapping")
    resolved = namespace.get(name, {})
    if resolved is None:
        resolved = {}
    if not isinstance(resolved, dict):
        raise TypeError(f"components.{kind}.{name} must resolve to an object mapping")
    return model.model_validate(resolved)

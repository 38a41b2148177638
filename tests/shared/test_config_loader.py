"""Tests for pydantic-settings-backed shared configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from packages.shiftbook_shared.config import load_settings, resolve_component_settings
from resources.substrates.postgres.config import PostgresSettings
from services.state.log_distribution.component import SERVICE_COMPONENT_ID
from services.state.log_distribution.config import (
    LogDistributionSettings,
    resolve_log_distribution_settings,
)


def test_load_settings_uses_precedence_cascade(tmp_path: Path) -> None:
    """Init params should override env, env should override YAML, then defaults."""
    config_file = tmp_path / "shiftbook.yaml"
    config_file.write_text(
        "\n".join(
            [
                "logging:",
                "  level: WARNING",
                "components:",
                "  substrate:",
                "    postgres:",
                "      pool_size: 7",
                "      sslmode: require",
                "  service:",
                "    log_distribution:",
                "      default_page_size: 25",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(
        cli_params={"logging": {"level": "DEBUG"}},
        environ={
            "SHIFTBOOK_LOGGING__LEVEL": "ERROR",
            "SHIFTBOOK_COMPONENTS__SUBSTRATE__POSTGRES__POOL_SIZE": "9",
            "SHIFTBOOK_COMPONENTS__SERVICE__LOG_DISTRIBUTION__MAX_BATCH_SIZE": "50",
            "UNRELATED_VARIABLE": "ignored",
        },
        config_path=config_file,
    )

    postgres = resolve_component_settings(
        settings=settings,
        component_id="substrate_postgres",
        model=PostgresSettings,
    )
    service = resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=LogDistributionSettings,
    )

    assert settings.logging.level == "DEBUG"
    assert postgres.pool_size == 9
    assert postgres.sslmode == "require"
    assert service.max_batch_size == 50
    assert service.default_page_size == 25


def test_load_settings_uses_model_defaults_when_sources_missing(tmp_path: Path) -> None:
    """Settings should fall back to model defaults when env and YAML are absent."""
    settings = load_settings(config_path=tmp_path / "shiftbook.yaml", environ={})
    service = resolve_log_distribution_settings(settings)

    assert settings.logging.service == "shiftbook"
    assert settings.logging.level == "INFO"
    assert service.max_batch_size == 100
    assert service.default_page_size == 20
    assert service.max_page_size == 100
    assert service.category_routes == ()


def test_category_routes_load_from_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / "shiftbook.yaml"
    config_file.write_text(
        "\n".join(
            [
                "components:",
                "  service:",
                "    log_distribution:",
                "      category_routes:",
                "        - category_id: QUALITY",
                "          plant: P100",
                "          workcenters: [WC-A, WC-B, WC-A]",
            ]
        ),
        encoding="utf-8",
    )

    service = resolve_log_distribution_settings(
        load_settings(config_path=config_file, environ={})
    )

    route = service.category_routes[0]
    assert route.category_id == "QUALITY"
    assert route.distribution_enabled is True
    assert route.workcenters == ("WC-A", "WC-B")


def test_flat_component_keys_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_settings(
            cli_params={"components": {"service_log_distribution": {}}},
            config_path=tmp_path / "missing.yaml",
            environ={},
        )


def test_resolve_component_settings_rejects_unknown_component_kind(
    tmp_path: Path,
) -> None:
    settings = load_settings(config_path=tmp_path / "missing.yaml", environ={})

    with pytest.raises(ValueError, match="unsupported component id"):
        resolve_component_settings(
            settings=settings,
            component_id="actor_scheduler",
            model=LogDistributionSettings,
        )


def test_non_mapping_yaml_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "shiftbook.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="top-level mapping"):
        load_settings(config_path=config_file, environ={})

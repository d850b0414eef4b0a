"""Tests for config (YAML, DATABASE_URL override, validation) and the FlightLogger handler."""

import logging

import pytest
from pydantic import ValidationError

from artlens.core.config import (
    DEFAULT_DATABASE_URL,
    DEFAULT_SOURCES,
    ConfigLoader,
    Settings,
    get_config,
    reset_config,
)
from artlens.core.logging import FLIGHT_LOG_CAPACITY, FlightLogger

pytestmark = [pytest.mark.fast]


def test_settings_loads_from_yaml(tmp_path):
    """Settings loads correctly from a sample YAML."""
    yaml_path = tmp_path / "artlens_config.yml"
    yaml_path.write_text("""
database_url: postgresql://localhost/testdb
log_level: DEBUG
analyzer: station
analyzer_endpoint: http://vision.local:2020/v1
max_images: 30
sources:
  - registry
  - museum:chicago
excluded_platforms:
  - name: behance
    fields: [platform, source_url]
    patterns: [behance]
""")
    reset_config()
    try:
        cfg = get_config(config_path=yaml_path)
        assert cfg.database_url == "postgresql://localhost/testdb"
        assert cfg.log_level == "DEBUG"
        assert cfg.analyzer == "station"
        assert cfg.analyzer_endpoint == "http://vision.local:2020/v1"
        assert cfg.max_images == 30
        assert cfg.sources == ["registry", "museum:chicago"]
        assert [r.name for r in cfg.excluded_platforms] == ["behance"]
        assert get_config() is cfg
    finally:
        reset_config()


def test_settings_defaults():
    cfg = Settings()
    assert cfg.database_url == DEFAULT_DATABASE_URL
    assert cfg.analyzer == "mock"
    assert cfg.max_images == 50
    assert cfg.payment_window_hours == 24
    assert cfg.sources == DEFAULT_SOURCES
    assert [r.name for r in cfg.excluded_platforms] == ["tumblbug", "grafolio", "university"]
    assert cfg.audit_log is True


def test_default_sources_are_not_shared_between_instances():
    a = Settings()
    a.sources.append("museum:extra")
    assert Settings().sources == DEFAULT_SOURCES


def test_blank_endpoint_and_catalog_path_become_none():
    cfg = Settings(analyzer_endpoint="   ", legacy_catalog_path="")
    assert cfg.analyzer_endpoint is None
    assert cfg.legacy_catalog_path is None


@pytest.mark.parametrize("field", ["max_images", "validation_batch_size", "analysis_concurrency"])
def test_counts_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_unknown_keys_are_ignored(tmp_path):
    yaml_path = tmp_path / "c.yml"
    yaml_path.write_text("max_images: 12\nlegacy_option: true\n")
    cfg = ConfigLoader(env={}).load_from_yaml(yaml_path, apply_env_override=False)
    assert cfg.max_images == 12


def test_empty_yaml_gives_defaults(tmp_path):
    yaml_path = tmp_path / "empty.yml"
    yaml_path.write_text("")
    cfg = ConfigLoader(env={}).load_from_yaml(yaml_path, apply_env_override=True)
    assert cfg == Settings()


def test_missing_yaml_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader(env={}).load_from_yaml(tmp_path / "nope.yml", apply_env_override=False)


def test_database_url_env_overrides_default_config(tmp_path):
    yaml_path = tmp_path / "artlens_config.yml"
    yaml_path.write_text("database_url: postgresql://localhost/fromyaml\n")
    loader = ConfigLoader(env={"ARTLENS_CONFIG": str(yaml_path), "DATABASE_URL": "postgresql://localhost/fromenv"})
    assert loader.load_default().database_url == "postgresql://localhost/fromenv"


def test_database_url_env_applies_without_config_file(tmp_path):
    loader = ConfigLoader(
        env={"ARTLENS_CONFIG": str(tmp_path / "missing.yml"), "DATABASE_URL": "postgresql://localhost/envonly"}
    )
    assert loader.load_default().database_url == "postgresql://localhost/envonly"


def test_explicit_config_path_ignores_database_url_env(tmp_path, monkeypatch):
    yaml_path = tmp_path / "explicit.yml"
    yaml_path.write_text("database_url: postgresql://localhost/explicit\n")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/fromenv")
    reset_config()
    try:
        assert get_config(config_path=yaml_path).database_url == "postgresql://localhost/explicit"
    finally:
        reset_config()


def test_flight_logger_keeps_last_capacity_records(tmp_path):
    flight = FlightLogger(capacity=3, forensics_dir=tmp_path)
    logger = logging.getLogger("artlens.tests.flight")
    logger.addHandler(flight)
    logger.setLevel(logging.DEBUG)
    try:
        for i in range(5):
            logger.debug("record %s", i)
    finally:
        logger.removeHandler(flight)

    assert len(flight) == 3
    path = flight.dump("analysis", "req123")
    lines = open(path).read().splitlines()
    assert [line.rsplit(" ", 1)[-1] for line in lines] == ["2", "3", "4"]


def test_flight_logger_dump_naming(tmp_path):
    flight = FlightLogger(forensics_dir=tmp_path / "forensics")
    with_id = flight.dump("analysis", "abc")
    without_id = flight.dump("analysis")
    assert with_id.startswith(str(tmp_path / "forensics" / "analysis_abc_"))
    assert with_id.endswith(".log")
    assert (tmp_path / "forensics").is_dir()
    assert "analysis_abc_" not in without_id


def test_flight_logger_default_capacity():
    assert FLIGHT_LOG_CAPACITY == 50_000
    assert FlightLogger()._buffer.maxlen == FLIGHT_LOG_CAPACITY

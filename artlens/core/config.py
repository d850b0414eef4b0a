"""Application configuration (Pydantic v2). Load from artlens_config.yml with optional env override."""

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator


DEFAULT_DATABASE_URL = "postgresql+psycopg2://localhost/artlens"
DEFAULT_CONFIG_ENV_VAR = "ARTLENS_CONFIG"
DEFAULT_CONFIG_FILENAME = "artlens_config.yml"

DEFAULT_SOURCES = ["registry", "catalog:legacy", "museum:chicago", "museum:cleveland"]


class ExclusionRuleConfig(BaseModel):
    """One denylist entry: drop a record if any of `fields` contains any of `patterns`."""

    name: str
    fields: list[str]
    patterns: list[str]


DEFAULT_EXCLUDED_PLATFORMS: list[dict[str, Any]] = [
    {
        "name": "tumblbug",
        "fields": ["platform", "source", "search_source", "source_url", "project_type"],
        "patterns": ["tumblbug", "텀블벅", "크라우드펀딩"],
    },
    {
        "name": "grafolio",
        "fields": ["platform", "source", "search_source", "source_url"],
        "patterns": ["grafolio", "그라폴리오"],
    },
    {
        "name": "university",
        "fields": ["platform", "source", "search_source", "source_url", "category"],
        "patterns": [
            "university",
            "college",
            "graduation",
            ".ac.kr",
            "univ.",
            "student_work",
            "졸업전시",
            "졸업작품",
        ],
    },
]


class Settings(BaseModel):
    """
    Engine config loaded from YAML.

    By default, the database_url may be overridden by the DATABASE_URL environment variable
    when loading the default config (but not when an explicit config_path is provided).
    """

    model_config = {"extra": "ignore"}

    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    forensics_dir: str = "logs/forensics"
    forensic_dump_on_failure: bool = False

    analyzer: str = "mock"
    analyzer_endpoint: str | None = None
    analysis_concurrency: int = 4

    max_images: int = 50
    payment_window_hours: int = 24

    # Assumed average keyword count per image; tunes the common-signal confidence heuristic.
    keywords_per_image: float = 10.0
    query_keyword_count: int = 10
    recommendation_limit: int = 20
    per_source_limit: int = 10
    source_timeout_seconds: float = 8.0
    sources: list[str] = Field(default_factory=lambda: list(DEFAULT_SOURCES))
    legacy_catalog_path: str | None = None
    excluded_platforms: list[ExclusionRuleConfig] = Field(
        default_factory=lambda: [ExclusionRuleConfig(**r) for r in DEFAULT_EXCLUDED_PLATFORMS]
    )

    probe_timeout_seconds: float = 5.0
    validation_batch_size: int = 10
    validation_cache_ttl_seconds: float = 300.0
    cache_sweep_interval_seconds: float = 600.0

    request_timeout_seconds: float = 120.0
    audit_log: bool = True

    @field_validator("analyzer_endpoint", "legacy_catalog_path", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        if v is not None and str(v).strip() != "":
            return str(v).strip()
        return None

    @field_validator("max_images", "validation_batch_size", "analysis_concurrency")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from ARTLENS_CONFIG / artlens_config.yml and
      apply DATABASE_URL override when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override and self._env.get("DATABASE_URL"):
            data["database_url"] = self._env["DATABASE_URL"]
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """
        Load the default Settings, using ARTLENS_CONFIG or artlens_config.yml.

        When no explicit config_path is provided, DATABASE_URL (if set) overrides the YAML
        database_url or the default value.
        """
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)

        settings = Settings()
        if self._env.get("DATABASE_URL"):
            settings = settings.model_copy(update={"database_url": self._env["DATABASE_URL"]})
        return settings


_loader = ConfigLoader()


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides for database_url) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = _loader.load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = _loader.load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None

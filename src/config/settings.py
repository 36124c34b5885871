# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: provider keys,
task routing overrides, timeouts, repository backend, refresh and budget
policy, logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


# Forward states a refreshed item may re-enter.
_REFRESH_TARGETS = {
    "draft",
    "analyzing",
    "planning",
    "writing",
    "media",
    "seo_check",
    "reviewing",
    "publishing",
}


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "anthropic"
    llm_default_model: str = "claude-sonnet-4-20250514"
    llm_default_temperature: float = 0.7
    llm_default_max_tokens: int = 4096

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""

    # Per-task routing overrides, "provider:model" (highest priority)
    llm_task_plan_article: str = ""
    llm_task_write_block: str = ""
    llm_task_generate_meta: str = ""
    llm_task_generate_title: str = ""
    llm_task_analyze_serp: str = ""

    # Per-step default models applied when the caller gives no override
    default_model_plan: str = ""
    default_model_write: str = ""

    # Cross-provider fallback after retries are exhausted
    llm_fallback_enabled: bool = True

    # === Timeouts / retry ===
    llm_timeout_s: float = 120.0
    http_timeout_s: float = 5.0
    llm_retry_delays: str = "2,5"

    # === External services ===
    serper_api_key: str = ""
    serper_base_url: str = "https://google.serper.dev"
    serper_country: str = "fr"
    serper_language: str = "fr"
    fal_api_key: str = ""
    fal_base_url: str = "https://fal.run"
    fal_model: str = "fal-ai/flux/schnell"
    authority_domains: str = (
        "wikipedia.org,gouv.fr,service-public.fr,who.int,europa.eu,"
        "insee.fr,legifrance.gouv.fr,inserm.fr,cnrs.fr,ademe.fr"
    )
    validate_links: bool = True

    # === Repository ===
    repository_backend: Literal["memory", "sqlite"] = "memory"
    sqlite_path: Path = Path("~/.contentflow/contentflow.db")

    # === Workflow policy ===
    refresh_target_status: str = "writing"
    refresh_after_days: int = 120
    require_persona_for_writing: bool = False
    meta_description_min: int = 120
    meta_description_max: int = 160

    # === Budget ===
    monthly_budget_usd: float = 50.0
    budget_alert_pct: float = 80.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("refresh_target_status")
    @classmethod
    def validate_refresh_target(cls, v: str) -> str:
        """Refresh must land on a forward state before 'published'."""
        if v not in _REFRESH_TARGETS:
            raise ValueError(
                f"refresh_target_status must be one of {sorted(_REFRESH_TARGETS)}"
            )
        return v

    @field_validator("llm_timeout_s", "http_timeout_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.meta_description_min >= self.meta_description_max:
            errors.append("META_DESCRIPTION_MIN must be < META_DESCRIPTION_MAX")

        if not 0 < self.budget_alert_pct <= 100:
            errors.append("BUDGET_ALERT_PCT must be in (0, 100]")

        if self.refresh_after_days < 1:
            errors.append("REFRESH_AFTER_DAYS must be >= 1")

        try:
            self.llm_retry_delays_list
        except ValueError:
            errors.append("LLM_RETRY_DELAYS must be a comma-separated list of numbers")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def llm_retry_delays_list(self) -> list[float]:
        """Parse comma-separated retry delays (seconds)."""
        return [float(d.strip()) for d in self.llm_retry_delays.split(",") if d.strip()]

    @property
    def authority_domains_list(self) -> list[str]:
        """Parse comma-separated authority domain allow-list."""
        return [d.strip() for d in self.authority_domains.split(",") if d.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

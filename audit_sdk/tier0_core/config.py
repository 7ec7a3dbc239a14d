"""
audit_sdk.tier0_core.config
────────────────────────────
Two layers of configuration:

- AuditSettings: process-wide settings read from .env and environment
  variables (backend selection, Elasticsearch URL, index defaults).
- AuditorConfig: the per-logger option set, built by deep-merging caller
  options over the built-in defaults and validated with Pydantic.

Invalid options raise ConfigurationError at construction, never per request.

Minimal stack: pydantic-settings + pydantic
"""
from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, SettingsConfigDict

from audit_sdk.tier0_core.defaults import default_options
from audit_sdk.tier0_core.errors import ConfigurationError
from audit_sdk.tier0_core.merge import merge


class AuditSettings(BaseSettings):
    """
    Environment-level settings. Every field can be overridden by the
    variable named in its alias.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ───────────────────────────────────────────────────────────
    app_name: str = Field(default="audit", alias="APP_NAME")
    environment: str = Field(default="development", alias="APP_ENV")

    # ── Backend ───────────────────────────────────────────────────────────────
    backend: str = Field(default="elasticsearch", alias="AUDIT_BACKEND")
    elasticsearch_url: str = Field(
        default="http://localhost:9200", alias="AUDIT_ELASTICSEARCH_URL"
    )
    elasticsearch_username: str | None = Field(
        default=None, alias="AUDIT_ELASTICSEARCH_USERNAME"
    )
    elasticsearch_password: str | None = Field(
        default=None, alias="AUDIT_ELASTICSEARCH_PASSWORD"
    )
    request_timeout: float = Field(default=10.0, alias="AUDIT_REQUEST_TIMEOUT")

    # ── Index naming ──────────────────────────────────────────────────────────
    index_prefix: str = Field(default="log", alias="AUDIT_INDEX_PREFIX")
    index_suffix_by: str = Field(default="halfYear", alias="AUDIT_INDEX_SUFFIX_BY")

    # ── Index lifecycle ───────────────────────────────────────────────────────
    # None keeps the unbounded wait on a hung ensure call.
    ensure_timeout: float | None = Field(default=None, alias="AUDIT_ENSURE_TIMEOUT")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        allowed = {"elasticsearch", "memory"}
        if v.lower() not in allowed:
            raise ValueError(f"backend must be one of {allowed}, got {v!r}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> AuditSettings:
    """
    Return the singleton settings. Cached after first call.
    Call _reset_settings() in tests to pick up new env vars.
    """
    return AuditSettings()


def _reset_settings() -> None:
    """For tests: clear the settings cache."""
    get_settings.cache_clear()


# ── Per-logger options ────────────────────────────────────────────────────────

class Whitelist(BaseModel):
    """Field names copied from the request, response and error."""

    model_config = ConfigDict(extra="forbid")

    request: list[str] = Field(default_factory=list)
    response: list[str] = Field(default_factory=list)
    error: list[str] = Field(default_factory=list)


class AuditorConfig(BaseModel):
    """Validated option set for one RequestAuditor."""

    model_config = ConfigDict(extra="forbid")

    whitelist: Whitelist = Field(default_factory=Whitelist)
    censor: list[str] = Field(default_factory=list)
    mapping: dict[str, Any] = Field(default_factory=dict)
    index_settings: dict[str, Any] = Field(default_factory=dict)
    index_prefix: str = "log"
    index_suffix_by: str | None = None
    index: str | None = None
    include_default: StrictBool = True
    host: str | None = None
    ensure_timeout: float | None = None

    @field_validator("index_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("index_prefix must not be empty")
        return v


def normalize_options(options: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Rename camelCase top-level option keys to snake_case, so
    ``{"indexSuffixBy": "month"}`` and ``{"index_suffix_by": "month"}`` are
    the same option. Giving both spellings of one key is an error.
    """
    normalized: dict[str, Any] = {}
    for key, value in (options or {}).items():
        name = to_snake(key)
        if name in normalized:
            raise ConfigurationError(
                f"Option {name!r} given more than once", option=key
            )
        normalized[name] = value
    return normalized


def build_config(
    options: Mapping[str, Any] | None = None,
    settings: AuditSettings | None = None,
) -> AuditorConfig:
    """
    Merge *options* over the built-in defaults and validate the result.
    Keys may be snake_case or camelCase; unknown keys raise
    ConfigurationError.

    ``include_default`` (default True) selects list handling: True unions
    caller lists with the default lists, False replaces them.

    Usage:
        cfg = build_config({"censor": ["ssn"], "index_suffix_by": "month"})
        cfg.censor   # ["password", "ssn"]
    """
    settings = settings or get_settings()
    options = normalize_options(options)
    include_default = options.get("include_default", True)
    if not isinstance(include_default, bool):
        raise ConfigurationError(
            f"include_default must be a bool, got {include_default!r}",
            option="include_default",
        )

    base = default_options()
    base.update(
        index_prefix=settings.index_prefix,
        index_suffix_by=settings.index_suffix_by,
        host=settings.elasticsearch_url,
        ensure_timeout=settings.ensure_timeout,
    )
    merged = merge(options, base, include_default)
    merged["include_default"] = include_default

    try:
        return AuditorConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid audit logger options: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


__all__ = [
    "AuditSettings",
    "get_settings",
    "Whitelist",
    "AuditorConfig",
    "normalize_options",
    "build_config",
]

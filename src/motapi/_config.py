"""
Global configuration for the motapi SDK.

Users can optionally call MOTAPI.configure() at application startup to customize
defaults. If not called, sensible defaults plus environment variables are used.

Hierarchy of precedence (highest to lowest):
1. Arguments passed to MotHistoryClient
2. Values set via MOTAPI.configure()
3. Environment variables (MOTAPI_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from motapi import MOTAPI
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> rps = MOTAPI.config.rate_limit.rps_limit
    >>>
    >>> # Custom configuration
    >>> MOTAPI.configure(
    ...     auth={"client_id": "x", "client_secret": "y"},
    ...     api={"api_key": "z"},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from typing import Any, Self

# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("MOTAPI_RATE_LIMIT_RPS_LIMIT", type_hint=int)
        15
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(var_name: str, type_hint: Any = str) -> Any:
        """
        Read an environment variable with optional type conversion.

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        converter = EnvVars._infer_converter(type_hint)
        try:
            return converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return EnvVars._to_bool
        return str

    @staticmethod
    def _to_bool(value: str) -> bool:
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
        raise ValueError(f"not a boolean: {value!r}")


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration sections.

    Provides `.with_overrides()` for partial updates and `.with_env_vars()`
    for applying the env vars declared in field metadata.

    Example:
        >>> config = RateLimitConfig()
        >>> custom = config.with_overrides({"rps_limit": 5})
        >>> custom.rps_limit
        5
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so callers can pass optional arguments through.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def env_overrides(self) -> dict[str, tuple[Any, str]]:
        """
        Read the env vars declared in field metadata.

        Returns:
            Mapping of field name to (converted value, env var name).

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, tuple[Any, str]] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if not env_var:
                continue
            value = EnvVars.get(env_var, type_hint=f.type)
            if value is not None:
                overrides[f.name] = (value, env_var)
        return overrides

    def with_env_vars(self) -> Self:
        """Return new instance with environment variables applied."""
        return self.with_overrides({name: value for name, (value, _) in self.env_overrides().items()})


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class AuthConfig(OverridableConfig):
    """
    OAuth2 client-credentials configuration.

    Attributes:
        client_id: DVSA client ID. Env var: MOTAPI_AUTH_CLIENT_ID
        client_secret: DVSA client secret. Env var: MOTAPI_AUTH_CLIENT_SECRET
        token_url: OAuth2 token endpoint URL. Env var: MOTAPI_AUTH_TOKEN_URL
        scope: OAuth2 scope for the API audience. Env var: MOTAPI_AUTH_SCOPE
        refresh_margin: Seconds before expiry to treat a token as expired.
            Env var: MOTAPI_AUTH_REFRESH_MARGIN
    """

    client_id: str | None = field(default=None, metadata={"env": "MOTAPI_AUTH_CLIENT_ID"})
    client_secret: str | None = field(default=None, metadata={"env": "MOTAPI_AUTH_CLIENT_SECRET"})
    token_url: str = field(
        default="https://login.microsoftonline.com/a455b827-244f-4c97-b5b4-ce5d13b4d00c/oauth2/v2.0/token",
        metadata={"env": "MOTAPI_AUTH_TOKEN_URL"},
    )
    scope: str = field(default="https://tapi.dvsa.gov.uk/.default", metadata={"env": "MOTAPI_AUTH_SCOPE"})
    refresh_margin: float = field(default=0.0, metadata={"env": "MOTAPI_AUTH_REFRESH_MARGIN"})

    def has_credentials(self) -> bool:
        """Check if both client_id and client_secret are set."""
        return bool(self.client_id and self.client_secret)

    def validate(self) -> Self:
        """Validate auth configuration fields."""
        if self.client_id is not None and self.client_id == "":
            raise ConfigValidationError(
                "client_id", self.client_id,
                "Must not be empty string.", section="auth"
            )
        if self.client_secret is not None and self.client_secret == "":
            raise ConfigValidationError(
                "client_secret", self.client_secret,
                "Must not be empty string.", section="auth"
            )
        if not _is_http_url(self.token_url):
            raise ConfigValidationError(
                "token_url", self.token_url,
                "Must start with 'http://' or 'https://'.", section="auth"
            )
        if not self.scope:
            raise ConfigValidationError(
                "scope", self.scope,
                "Must not be empty.", section="auth"
            )
        if self.refresh_margin < 0:
            raise ConfigValidationError(
                "refresh_margin", self.refresh_margin,
                "Must be greater than or equal to 0.", section="auth"
            )
        return self


@dataclass(frozen=True)
class ApiConfig(OverridableConfig):
    """
    MOT History API endpoint configuration.

    Attributes:
        api_key: Static API key sent as X-API-Key. Env var: MOTAPI_API_KEY
        base_url: Base URL of the vehicles API. Env var: MOTAPI_BASE_URL
        request_timeout: Request timeout in seconds. Env var: MOTAPI_REQUEST_TIMEOUT
    """

    api_key: str | None = field(default=None, metadata={"env": "MOTAPI_API_KEY"})
    base_url: str = field(
        default="https://history.mot.api.gov.uk/v1/trade/vehicles",
        metadata={"env": "MOTAPI_BASE_URL"},
    )
    request_timeout: int = field(default=30, metadata={"env": "MOTAPI_REQUEST_TIMEOUT"})

    def validate(self) -> Self:
        """Validate API configuration fields."""
        if self.api_key is not None and self.api_key == "":
            raise ConfigValidationError(
                "api_key", self.api_key,
                "Must not be empty string.", section="api"
            )
        if not _is_http_url(self.base_url):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="api"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="api"
            )
        return self


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Client-side rate limiting configuration.

    Defaults match the limits published for the MOT History API.

    Attributes:
        enabled: Whether requests go through the admission controller.
            Env var: MOTAPI_RATE_LIMIT_ENABLED
        daily_quota: Requests allowed per 24h window.
            Env var: MOTAPI_RATE_LIMIT_DAILY_QUOTA
        burst_limit: Burst allowance capacity.
            Env var: MOTAPI_RATE_LIMIT_BURST_LIMIT
        rps_limit: Requests allowed per trailing second.
            Env var: MOTAPI_RATE_LIMIT_RPS_LIMIT
        poll_interval: Seconds between admission checks while waiting.
            Env var: MOTAPI_RATE_LIMIT_POLL_INTERVAL
    """

    enabled: bool = field(default=True, metadata={"env": "MOTAPI_RATE_LIMIT_ENABLED"})
    daily_quota: int = field(default=500_000, metadata={"env": "MOTAPI_RATE_LIMIT_DAILY_QUOTA"})
    burst_limit: int = field(default=10, metadata={"env": "MOTAPI_RATE_LIMIT_BURST_LIMIT"})
    rps_limit: int = field(default=15, metadata={"env": "MOTAPI_RATE_LIMIT_RPS_LIMIT"})
    poll_interval: float = field(default=0.1, metadata={"env": "MOTAPI_RATE_LIMIT_POLL_INTERVAL"})

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        if self.daily_quota < 0:
            raise ConfigValidationError(
                "daily_quota", self.daily_quota,
                "Must be greater than or equal to 0.", section="rate_limit"
            )
        for name in ("burst_limit", "rps_limit", "poll_interval"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigValidationError(
                    name, value,
                    "Must be greater than 0.", section="rate_limit"
                )
        return self


def _is_http_url(url: str | None) -> bool:
    return bool(url) and (url.startswith("http://") or url.startswith("https://"))  # type: ignore[union-attr]


# =============================================================================
# Root Configuration
# =============================================================================


@dataclass(frozen=True)
class ConfigEntry:
    """
    A single configuration value with its source, used by MOTAPI.explain().

    Attributes:
        name: Field name.
        value: Current value.
        source: "default", "env:VAR_NAME" or "configure".
    """

    name: str
    value: Any
    source: str

    SECRET_FIELDS = frozenset({"client_secret", "api_key"})

    @property
    def formatted_value(self) -> str:
        """Return the value for display, masking secrets and truncating long values."""
        if self.value is None:
            return "None"
        if self.name in self.SECRET_FIELDS:
            text = str(self.value)
            return f"{text[:4]}****" if len(text) > 4 else "****"
        text = str(self.value)
        return text if len(text) <= 50 else f"{text[:47]}..."


SECTIONS = ("auth", "api", "rate_limit")


@dataclass(frozen=True)
class MOTAPIConfig:
    """
    Global configuration for the motapi SDK.

    Attributes:
        auth: OAuth2 client-credentials configuration.
        api: API endpoint configuration.
        rate_limit: Client-side rate limiting configuration.
        sources: Where each non-default value came from, per section.
    """

    auth: AuthConfig = field(default_factory=AuthConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    sources: dict[str, dict[str, str]] = field(default_factory=dict, repr=False, compare=False)

    def with_env_vars(self) -> MOTAPIConfig:
        """Return a new config with MOTAPI_* environment variables applied on top."""
        sections: dict[str, Any] = {}
        sources = self._copy_sources()
        for name in SECTIONS:
            section: OverridableConfig = getattr(self, name)
            env = section.env_overrides()
            sections[name] = section.with_overrides({k: v for k, (v, _) in env.items()})
            for field_name, (_, env_var) in env.items():
                sources.setdefault(name, {})[field_name] = f"env:{env_var}"
        return MOTAPIConfig(**sections, sources=sources)

    def with_section_overrides(
        self,
        *,
        auth: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
    ) -> MOTAPIConfig:
        """
        Return a new config with overrides applied to nested sections.

        Raises:
            ValueError: If any dict contains unknown field names.
        """
        overrides = {"auth": auth or {}, "api": api or {}, "rate_limit": rate_limit or {}}
        sections: dict[str, Any] = {}
        sources = self._copy_sources()
        for name in SECTIONS:
            section: OverridableConfig = getattr(self, name)
            sections[name] = section.with_overrides(overrides[name])
            for field_name, value in overrides[name].items():
                if value is not None:
                    sources.setdefault(name, {})[field_name] = "configure"
        return MOTAPIConfig(**sections, sources=sources)

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """Return every config value with its source, grouped by section."""
        result: dict[str, list[ConfigEntry]] = {}
        for name in SECTIONS:
            section = getattr(self, name)
            section_sources = self.sources.get(name, {})
            result[name] = [
                ConfigEntry(
                    name=f.name,
                    value=getattr(section, f.name),
                    source=section_sources.get(f.name, "default"),
                )
                for f in fields(section)
            ]
        return result

    def _copy_sources(self) -> dict[str, dict[str, str]]:
        return {section: dict(flds) for section, flds in self.sources.items()}


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _MOTAPI:
    """
    Singleton for SDK configuration.

    Use `MOTAPI.configure()` to customize settings and `MOTAPI.config`
    to access current configuration.
    """

    def __init__(self) -> None:
        self._config: MOTAPIConfig = MOTAPIConfig().with_env_vars()

    def configure(
        self,
        *,
        auth: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> MOTAPIConfig:
        """
        Configure SDK settings.

        Args:
            auth: Auth config overrides (client_id, client_secret, token_url, scope, refresh_margin).
            api: API config overrides (api_key, base_url, request_timeout).
            rate_limit: Rate limiting overrides (enabled, daily_quota, burst_limit, rps_limit, poll_interval).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured MOTAPIConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = MOTAPIConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(auth=auth, api=api, rate_limit=rate_limit)
        return self.validate()

    @property
    def config(self) -> MOTAPIConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> MOTAPIConfig:
        """Reset configuration to defaults + env vars. Useful in tests."""
        self._config = MOTAPIConfig().with_env_vars()
        return self.validate()

    def validate(self) -> MOTAPIConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.auth.validate()
        self._config.api.validate()
        self._config.rate_limit.validate()
        return self._config

    def explain(self, output: Callable[[str], None] = print) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `MOTAPI.explain(logger.info)`
        """
        name_width = 20
        output("MOTAPI Configuration:")
        output("=" * 80)
        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                output(f"  {entry.name} {dots} {entry.formatted_value.ljust(50)} {entry.source}")
        output("=" * 80)

    def __repr__(self) -> str:
        return f"MOTAPI(config={self._config!r})"


# Global singleton instance - always reflects current configuration
MOTAPI: _MOTAPI = _MOTAPI()
MOTAPI.validate()  # Validate defaults + env vars on module load

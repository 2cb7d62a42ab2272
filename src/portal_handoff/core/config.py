# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from typing import Literal

from beartype import beartype
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upper bound on token lifetime; the handoff token travels through the browser.
MAX_TOKEN_LIFETIME_SECONDS = 120


class TargetScopeConfig(BaseModel):
    """Statically configured target scope (deployment)."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        validate_default=True,
    )

    id: str = Field(..., min_length=1, description="Scope identifier")
    name: str = Field(..., min_length=1, description="Human readable name")
    secret: str = Field(default="", description="Per-scope signing secret")
    authorized_emails: list[str] = Field(
        default_factory=list, description="Emails allowed to launch this scope"
    )
    is_active: bool = Field(default=True, description="Liveness flag")
    app_url: str | None = Field(default=None, description="Destination URL")


class Settings(BaseSettings):
    """Application settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,
        validate_default=True,
        extra="forbid",
    )

    # API Configuration
    app_name: str = Field(
        default="Portal Handoff",
        description="Application name",
        min_length=1,
    )
    api_host: str = Field(
        default="0.0.0.0",  # nosec B104 - Binding to all interfaces is needed for containerized deployment
        description="API host to bind to",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="API port to bind to",
    )
    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="API environment",
    )
    api_cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Datastores
    database_url: str | None = Field(
        default=None,
        description="PostgreSQL connection URL",
    )
    database_pool_min: int = Field(default=1, ge=1, le=20)
    database_pool_max: int = Field(default=10, ge=1, le=100)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )
    datastore_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for any single datastore call",
    )

    # Identity provider
    session_verifier: Literal["jwt", "remote"] = Field(
        default="jwt",
        description="How bearer session credentials are verified",
    )
    session_jwt_secret: str | None = Field(
        default=None,
        description="Identity provider JWT secret for local verification",
    )
    session_jwt_audience: str | None = Field(
        default="authenticated",
        description="Expected audience of identity provider session tokens",
    )
    identity_provider_url: str | None = Field(
        default=None,
        description="Identity provider base URL for remote verification",
    )
    identity_provider_api_key: str | None = Field(
        default=None,
        description="Service key presented to the identity provider",
    )
    identity_timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Upper bound for identity provider calls",
    )

    # Handoff tokens
    handoff_issuer: str = Field(default="dexintelligence.ai", min_length=1)
    handoff_audience: str = Field(default="app.dexintelligence.ai", min_length=1)
    handoff_purpose: str = Field(default="market-mapper-access", min_length=1)
    token_lifetime_seconds: int = Field(
        default=MAX_TOKEN_LIFETIME_SECONDS,
        ge=1,
        le=MAX_TOKEN_LIFETIME_SECONDS,
        description="Lifetime of minted handoff tokens",
    )
    handoff_delivery: Literal["state_exchange", "cookie"] = Field(
        default="state_exchange",
        description="Which delivery flow this deployment serves",
    )

    # State exchange
    state_ttl_seconds: int = Field(default=300, ge=10, le=3600)
    exchange_backend: Literal["memory", "postgres", "redis"] = Field(
        default="memory",
        description="Backing store for one-time exchange states",
    )
    exchange_sweep_interval_seconds: float = Field(default=300.0, gt=0.0)

    # Rate limiting
    rate_limit_backend: Literal["memory", "redis"] = Field(default="memory")
    rate_limit_enabled: bool = Field(default=True)

    # Target scopes
    scope_backend: Literal["static", "postgres"] = Field(default="static")
    global_jwt_secret: str | None = Field(
        default=None,
        description="Secret of the built-in global scope (unset disables it)",
    )
    global_authorized_emails: list[str] = Field(default_factory=list)
    target_scopes: list[TargetScopeConfig] = Field(default_factory=list)

    # Cross-domain cookie
    cookie_name: str = Field(default="market_mapper_token", min_length=1)
    cookie_parent_domain: str = Field(default="dexintelligence.ai", min_length=1)
    cookie_max_age_seconds: int = Field(default=3600, ge=60, le=86400)

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        if "database_pool_min" in info.data:
            min_size = info.data["database_pool_min"]
            if v < min_size:
                raise ValueError(
                    f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
                )
        return v

    @field_validator("api_cors_origins")
    @classmethod
    def validate_cors_origins(cls: type["Settings"], v: list[str]) -> list[str]:
        """Validate CORS origins are proper URLs."""
        for origin in v:
            if not origin.startswith(("http://", "https://")):
                raise ValueError(f"Invalid CORS origin: {origin}")
        return v

    @field_validator("global_jwt_secret", "session_jwt_secret")
    @classmethod
    def validate_secrets(
        cls: type["Settings"], v: str | None, info: ValidationInfo
    ) -> str | None:
        """Ensure test secrets are not used in production."""
        if v is None:
            return v
        if "api_env" in info.data and info.data["api_env"] == "production":
            if v.startswith("test-"):
                raise ValueError(
                    f"Test secret cannot be used in production for {info.field_name}."
                )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"

    @property
    @beartype
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.api_env == "development"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None

"""Configuration models for Rentvest."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rentvest.core.api.http.config import HttpClientConfig


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


RENTER_API_URL = "http://35.223.240.93:5000/api"
HOMEOWNER_API_URL = "http://35.223.240.93:5001/api"

# All environments currently point at the same hosts; they are kept separate so
# a deployment can be repointed without touching call sites.
DEFAULT_BASE_URLS: dict[Environment, dict[str, str]] = {
    env: {
        "renter_auth": RENTER_API_URL,
        "homeowner": HOMEOWNER_API_URL,
        "marketplace": HOMEOWNER_API_URL,
        "chat": RENTER_API_URL,
        "parcel": RENTER_API_URL,
        "kyc": RENTER_API_URL,
    }
    for env in Environment
}


class ServicesConfig(BaseModel):
    """Base URL per backend service.

    Field names match the backend identifiers of the endpoint catalog.
    """

    model_config = ConfigDict(extra="forbid")

    renter_auth: str = RENTER_API_URL
    homeowner: str = HOMEOWNER_API_URL
    marketplace: str = HOMEOWNER_API_URL
    chat: str = RENTER_API_URL
    parcel: str = RENTER_API_URL
    kyc: str = RENTER_API_URL

    @field_validator("*")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure every base URL is absolute http(s) without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must start with http:// or https://: {v!r}")
        return v.rstrip("/")

    @classmethod
    def for_environment(cls, environment: Environment | str) -> ServicesConfig:
        return cls(**DEFAULT_BASE_URLS[Environment(environment)])

    def url_for(self, backend: str) -> str:
        """Base URL for a backend identifier.

        Raises:
            KeyError: If the backend is unknown
        """
        name = str(backend)
        if name not in ServicesConfig.model_fields:
            raise KeyError(f"Unknown backend: {name}")
        return getattr(self, name)


class CacheConfig(BaseModel):
    """Query cache defaults."""

    stale_time_s: float = Field(default=0.0, ge=0.0)
    gc_time_s: float = Field(default=300.0, ge=0.0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False
    filename: str | None = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class AppConfig(BaseModel):
    """Application-level configuration.

    ``services`` defaults to the base URLs of ``environment`` unless given
    explicitly (missing backends are filled from the environment defaults).
    """

    model_config = ConfigDict(extra="ignore")

    environment: Environment = Environment.DEVELOPMENT
    services: ServicesConfig = Field(default_factory=ServicesConfig)
    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    token_store_path: str = str(Path.home() / ".rentvest" / "tokens.json")

    @model_validator(mode="before")
    @classmethod
    def fill_services(cls, data: Any) -> Any:
        """Merge partial ``services`` mappings over the environment defaults."""
        if not isinstance(data, dict):
            return data
        env = Environment(data.get("environment", Environment.DEVELOPMENT))
        services = data.get("services")
        if services is None or isinstance(services, dict):
            data = {**data, "services": {**DEFAULT_BASE_URLS[env], **(services or {})}}
        return data

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("rentvest.yaml")

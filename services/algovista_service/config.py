"""Configuration module for the AlgoVista equation service."""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.algovista_service.exceptions import ConfigurationError


class Environment(StrEnum):
    """Runtime environments the service can be deployed to."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Configuration settings for the AlgoVista equation service."""

    # Service Identity
    SERVICE_NAME: str = "algovista_service"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        validation_alias=AliasChoices("ALGOVISTA_SERVICE_ENVIRONMENT", "ENVIRONMENT"),
        description="Runtime environment for the service",
    )
    PORT: int = 3001
    HOST: str = "0.0.0.0"

    # Upstream LLM endpoint (OpenAI-compatible chat completions)
    LLM_API_ENDPOINT: str = Field(
        default="",
        validation_alias=AliasChoices(
            "ALGOVISTA_SERVICE_LLM_API_ENDPOINT",
            "QWEN_API_ENDPOINT",  # Unprefixed (backward compatibility)
        ),
        description="Full URL of the chat completions endpoint. Required.",
    )
    LLM_API_KEY: Optional[SecretStr] = Field(
        default=None, description="Optional bearer token for the upstream endpoint"
    )
    LLM_MODEL: str = "qwen2.5-math-7b-instruct"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = -1  # -1 lets the upstream server decide
    LLM_SYSTEM_PROMPT_ENABLED: bool = Field(
        default=False,
        description="Prepend the tutor system message to every upstream request",
    )

    # Timeouts and retries
    LLM_REQUEST_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Hard timeout for a single upstream attempt"
    )
    LLM_MAX_ATTEMPTS: int = Field(default=3, description="Attempts per upstream call")
    RETRY_BASE_DELAY_SECONDS: float = 1.0
    RETRY_MAX_DELAY_SECONDS: float = 10.0

    # HTTP behaviour
    SOLVE_FALLBACK_STATUS_CODE: int = Field(
        default=200,
        description="Status code used when /api/solve answers with the fallback payload",
    )
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # CORS for the browser UI served from another origin
    CORS_ALLOWED_ORIGINS: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API from a browser; \"*\" allows any",
    )

    # Look-aside response cache
    RESPONSE_CACHE_ENABLED: bool = False
    RESPONSE_CACHE_TTL_SECONDS: int = 3600
    RESPONSE_CACHE_MAX_ENTRIES: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="ALGOVISTA_SERVICE_",
        populate_by_name=True,
    )

    @field_validator("LLM_MAX_ATTEMPTS")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError("LLM_MAX_ATTEMPTS must be between 1 and 10")
        return v

    @field_validator("LLM_REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        # aiohttp treats a zero total timeout as no timeout
        if v <= 0:
            raise ValueError("LLM_REQUEST_TIMEOUT_SECONDS must be positive")
        return v

    @field_validator(
        "RETRY_BASE_DELAY_SECONDS",
        "RETRY_MAX_DELAY_SECONDS",
    )
    @classmethod
    def validate_non_negative_seconds(cls, v: float) -> float:
        if v < 0:
            raise ValueError("durations must be non-negative")
        return v

    @field_validator("RATE_LIMIT_WINDOW_SECONDS", "RATE_LIMIT_MAX_REQUESTS")
    @classmethod
    def validate_rate_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate limit window and request count must be positive")
        return v

    @field_validator("SOLVE_FALLBACK_STATUS_CODE")
    @classmethod
    def validate_fallback_status(cls, v: int) -> int:
        if not 200 <= v <= 599:
            raise ValueError("SOLVE_FALLBACK_STATUS_CODE must be a valid HTTP status")
        return v

    def require_llm_endpoint(self) -> str:
        """Return the upstream endpoint or fail startup when it is missing."""
        endpoint = self.LLM_API_ENDPOINT.strip()
        if not endpoint:
            raise ConfigurationError(
                "Missing required configuration: LLM_API_ENDPOINT must be set",
                config_key="LLM_API_ENDPOINT",
            )
        return endpoint


# Create a single instance for the application to use
settings = Settings()

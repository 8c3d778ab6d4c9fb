"""Application Configuration

Type-safe configuration using Pydantic Settings for environment variable handling.
Every value has a development default so the service starts with an empty
environment; production deployments override through env vars or `.env`.

Patterns Demonstrated:
- Type-safe environment variable parsing with validation
- Sensible defaults for development
- Clear separation of infrastructure vs AI routing vs resilience config
- No magic strings in the codebase
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # =============================================================================
    # APPLICATION
    # =============================================================================

    app_name: str = Field(default="canvas-agent", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    app_description: str = Field(
        default="Natural-language command orchestration for collaborative canvases",
        alias="APP_DESCRIPTION",
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # =============================================================================
    # API CONFIGURATION
    # =============================================================================

    # Minimum level printed to the console by logfire
    log_level: Literal["trace", "debug", "info", "notice", "warn", "error", "fatal"] = Field(
        default="info", alias="LOG_LEVEL"
    )

    # CORS Settings
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    cors_credentials: bool = Field(default=False, alias="CORS_CREDENTIALS")
    cors_methods: str = Field(default="*", alias="CORS_METHODS")
    cors_headers: str = Field(default="*", alias="CORS_HEADERS")

    # =============================================================================
    # STORAGE & FAN-OUT
    # =============================================================================

    # Redis - canvas objects and pub/sub. Unset means in-process storage.
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    redis_key_prefix: str = Field(default="canvas", alias="REDIS_KEY_PREFIX")

    # =============================================================================
    # LLM PROVIDERS
    # =============================================================================

    # Provider Catalog (unset = catalog bundled with the package)
    provider_catalog_path: str | None = Field(default=None, alias="PROVIDER_CATALOG_PATH")

    # Route targets in 'vendor:model' format
    fast_provider: str = Field(default="groq:llama-3.3-70b-versatile", alias="FAST_PROVIDER")
    capable_provider: str = Field(default="anthropic:claude-3-5-sonnet-20241022", alias="CAPABLE_PROVIDER")

    # Per-call timeouts (seconds)
    fast_provider_timeout: float = Field(default=5.0, alias="FAST_PROVIDER_TIMEOUT")
    capable_provider_timeout: float = Field(default=10.0, alias="CAPABLE_PROVIDER_TIMEOUT")

    # API keys (absent keys surface as missing_credentials at call time)
    anthropic_api_key: str | None = Field(default=None, alias="ANTHROPIC_API_KEY")
    groq_api_key: str | None = Field(default=None, alias="GROQ_API_KEY")
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    validate_keys_on_startup: bool = Field(default=True, alias="VALIDATE_KEYS_ON_STARTUP")

    # =============================================================================
    # RESILIENCE
    # =============================================================================

    circuit_breaker_enabled: bool = Field(default=True, alias="CIRCUIT_BREAKER_ENABLED")
    circuit_breaker_threshold: int = Field(default=5, ge=1, alias="CIRCUIT_BREAKER_THRESHOLD")
    circuit_breaker_cooldown: float = Field(default=60.0, gt=0, alias="CIRCUIT_BREAKER_COOLDOWN")

    rate_limit_max_requests: int = Field(default=60, ge=1, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window: float = Field(default=60.0, gt=0, alias="RATE_LIMIT_WINDOW")

    health_check_enabled: bool = Field(default=True, alias="HEALTH_CHECK_ENABLED")
    health_check_interval: float = Field(default=300.0, gt=0, alias="HEALTH_CHECK_INTERVAL")
    health_probe_timeout: float = Field(default=3.0, gt=0, alias="HEALTH_PROBE_TIMEOUT")

    # =============================================================================
    # COMMAND EXECUTION
    # =============================================================================

    command_timeout: float = Field(default=30.0, gt=0, alias="COMMAND_TIMEOUT")
    batch_warn_after_ms: float = Field(default=2000.0, gt=0, alias="BATCH_WARN_AFTER_MS")
    telemetry_buffer_size: int = Field(default=500, ge=1, alias="TELEMETRY_BUFFER_SIZE")

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.model_validate({})


settings = get_settings()

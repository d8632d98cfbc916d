import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    # Primary inference provider (Grok / X.AI)
    grok_api_key: str = Field(default="", alias="GROK_API_KEY")
    grok_api_url: str = Field(
        default="https://api.x.ai/v1/chat/completions", alias="GROK_API_URL"
    )
    grok_model: str = Field(default="grok-4-1-fast-reasoning", alias="GROK_MODEL")

    # Secondary inference provider (OpenRouter)
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_api_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        alias="OPENROUTER_API_URL",
    )
    openrouter_model: str = Field(
        default="xiaomi/mimo-v2-flash:free", alias="OPENROUTER_MODEL"
    )
    openrouter_referer: str = Field(
        default="https://yourinfo.hsingh.app", alias="OPENROUTER_REFERER"
    )
    openrouter_title: str = Field(
        default="YourInfo Privacy Demo", alias="OPENROUTER_TITLE"
    )
    provider_timeout: float = Field(default=30.0, alias="PROVIDER_TIMEOUT")

    # Redis Configuration (unset disables caching and visitor tracking)
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    redis_connect_timeout: float = Field(default=5.0, alias="REDIS_CONNECT_TIMEOUT")
    redis_cooldown: float = Field(default=5.0, alias="REDIS_COOLDOWN")

    # Cache TTLs (seconds)
    profile_cache_ttl: int = Field(default=60 * 60 * 24 * 30, alias="PROFILE_CACHE_TTL")
    auction_cache_ttl: int = Field(default=60 * 60, alias="AUCTION_CACHE_TTL")

    # Rate limiting
    rate_limit_window: float = Field(default=60.0, alias="RATE_LIMIT_WINDOW")
    rate_limit_max: int = Field(default=2, alias="RATE_LIMIT_MAX")
    rate_limit_sweep_interval: int = Field(
        default=300, alias="RATE_LIMIT_SWEEP_INTERVAL"
    )

    # Server
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3020, alias="PORT")

    @field_validator("redis_url", mode="before")
    @classmethod
    def _blank_url_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (after .env loading)."""
        return cls.model_validate(dict(os.environ))


global_settings = Settings.from_env()

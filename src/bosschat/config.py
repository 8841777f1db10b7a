# src/bosschat/config.py
"""
Configuration for the bosschat service.

Settings are validated by a Pydantic model. Values come from environment
variables, optionally overlaid on a TOML file whose path is given by the
``BOSSCHAT_CONFIG`` environment variable. Environment variables always win
over the file so that deployment platforms can override a checked-in file.

Example TOML file::

    [bosschat]
    chat_model = "claude-sonnet-4-5"
    rate_limit_max = 20
    require_auth = true
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "BOSSCHAT_CONFIG"

# Settings field -> environment variable name
ENV_VARS: Dict[str, str] = {
    "anthropic_api_key": "ANTHROPIC_API_KEY",
    "anthropic_base_url": "ANTHROPIC_BASE_URL",
    "chat_model": "CHAT_MODEL",
    "summary_model": "SUMMARY_MODEL",
    "max_tokens": "MAX_TOKENS",
    "summary_max_tokens": "SUMMARY_MAX_TOKENS",
    "upstream_timeout": "UPSTREAM_TIMEOUT",
    "supabase_url": "SUPABASE_URL",
    "supabase_anon_key": "SUPABASE_ANON_KEY",
    "database_url": "DATABASE_URL",
    "require_auth": "REQUIRE_AUTH",
    "rate_limit_max": "RATE_LIMIT_MAX",
    "rate_limit_window": "RATE_LIMIT_WINDOW",
    "session_ttl": "SESSION_TTL",
    "sweep_interval": "SWEEP_INTERVAL",
    "max_sessions": "MAX_SESSIONS",
    "history_window": "HISTORY_WINDOW",
    "summary_every": "SUMMARY_EVERY",
    "trust_proxy": "TRUST_PROXY",
    "cors_origins": "CORS_ORIGINS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "port": "PORT",
}


class Settings(BaseModel):
    """Validated runtime settings for the chat server."""

    # Upstream completion API
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_base_url: Optional[str] = Field(default=None, description="Override for the Anthropic endpoint")
    chat_model: str = Field(default="claude-sonnet-4-5", description="Model used for the streamed chat reply")
    summary_model: str = Field(default="claude-haiku-4-5", description="Fast model used for rolling summaries")
    max_tokens: int = Field(default=4096, ge=1, description="Response length limit for chat replies")
    summary_max_tokens: int = Field(default=300, ge=1, description="Response length limit for summaries")
    upstream_timeout: float = Field(default=120.0, gt=0, description="Upstream request timeout in seconds")

    # Identity provider / managed store
    supabase_url: Optional[str] = Field(default=None, description="Identity provider project URL")
    supabase_anon_key: Optional[str] = Field(default=None, description="Public anon key handed to the browser")
    database_url: Optional[str] = Field(default=None, description="SQLAlchemy async URL for conversations")
    require_auth: bool = Field(default=False, description="Reject /api/chat without a valid bearer token")

    # Pipeline limits
    rate_limit_max: int = Field(default=20, ge=1, description="Admitted requests per client per window")
    rate_limit_window: float = Field(default=60.0, gt=0, description="Rate limit window in seconds")
    session_ttl: float = Field(default=30 * 60.0, gt=0, description="Idle seconds before a session is swept")
    sweep_interval: float = Field(default=60.0, gt=0, description="Seconds between session sweeps")
    max_sessions: int = Field(default=0, ge=0, description="LRU cap on live sessions (0 = unbounded)")
    history_window: int = Field(default=40, ge=1, description="Turns sent upstream per request")
    summary_every: int = Field(default=5, ge=1, description="Summarize every N completed turn pairs")

    # HTTP / process
    trust_proxy: bool = Field(default=False, description="Key rate limits on the first X-Forwarded-For hop")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file path")
    port: int = Field(default=3100, ge=1, le=65535)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Optional[str] = None,
    ) -> "Settings":
        """
        Build settings from a TOML file (optional) and environment variables.

        Args:
            environ: Mapping to read variables from. Defaults to ``os.environ``.
            config_path: TOML file path. Defaults to ``$BOSSCHAT_CONFIG``.

        Returns:
            A validated Settings instance.

        Raises:
            ConfigError: If the file is missing/unreadable or a value fails validation.
        """
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}

        config_path = config_path or environ.get(CONFIG_PATH_ENV)
        if config_path:
            data.update(_load_toml(config_path))

        for field_name, env_name in ENV_VARS.items():
            raw = environ.get(env_name)
            if raw is not None and raw != "":
                data[field_name] = raw

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @property
    def auth_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def _load_toml(config_path: str) -> Dict[str, Any]:
    import tomllib

    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e
    logger.debug(f"Loaded configuration overlay from {path}")
    return raw.get("bosschat", raw)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

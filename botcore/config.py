"""
Bot configuration.

Values come from the environment (optionally loaded from a .env file) and can
be overlaid by the JSON bot config passed to main.py.
"""

import os
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional, Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60

DEFAULT_REGULAR_TTL = 20 * DAY
DEFAULT_SWEEP_INTERVAL = 60 * 60
DEFAULT_RATE_LIMIT_WINDOW = 10.0
DEFAULT_RATE_LIMIT_CAPACITY = 3
DEFAULT_WIRE_TOKEN_MAX_LENGTH = 100
DEFAULT_EVAL_BASE_URL = "http://localhost:8080/jshell/"
DEFAULT_EVAL_TIMEOUT = 10.0

# Field types for values read from the JSON bot config
FLOAT_FIELDS = {
    "regular_ttl",
    "sweep_interval",
    "rate_limit_window",
    "eval_timeout",
    "shutdown_timeout",
}
INT_FIELDS = {"rate_limit_capacity", "wire_token_max_length", "dispatch_workers"}


@dataclass
class BotConfig:
    """Settings recognised by the interaction core and its functions."""
    regular_ttl: float = DEFAULT_REGULAR_TTL
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    rate_limit_window: float = DEFAULT_RATE_LIMIT_WINDOW
    rate_limit_capacity: int = DEFAULT_RATE_LIMIT_CAPACITY
    wire_token_max_length: int = DEFAULT_WIRE_TOKEN_MAX_LENGTH
    db_path: Optional[Path] = None
    eval_base_url: str = DEFAULT_EVAL_BASE_URL
    eval_timeout: float = DEFAULT_EVAL_TIMEOUT
    dispatch_workers: int = 8
    shutdown_timeout: float = 10.0
    functions: Optional[list[str]] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Reject settings the core cannot run with."""
        if self.regular_ttl <= 0:
            raise ConfigurationError("regular_ttl must be positive")
        if self.sweep_interval <= 0:
            raise ConfigurationError("sweep_interval must be positive")
        if self.rate_limit_window <= 0:
            raise ConfigurationError("rate_limit_window must be positive")
        if self.rate_limit_capacity < 1:
            raise ConfigurationError("rate_limit_capacity must be at least 1")
        if self.wire_token_max_length < 22:
            raise ConfigurationError("wire_token_max_length must be at least 22")
        if self.dispatch_workers < 1:
            raise ConfigurationError("dispatch_workers must be at least 1")

    @classmethod
    def from_env(cls) -> "BotConfig":
        """Build a config from environment variables."""
        db_path = os.getenv("BOT_DB_PATH")

        try:
            return cls(
                regular_ttl=float(os.getenv("COMPONENT_ID_TTL_DAYS", DEFAULT_REGULAR_TTL / DAY)) * DAY,
                sweep_interval=float(os.getenv("COMPONENT_ID_SWEEP_MINUTES", DEFAULT_SWEEP_INTERVAL / 60)) * 60,
                rate_limit_window=float(os.getenv("EVAL_RATE_LIMIT_WINDOW", DEFAULT_RATE_LIMIT_WINDOW)),
                rate_limit_capacity=int(os.getenv("EVAL_RATE_LIMIT_REQUESTS", DEFAULT_RATE_LIMIT_CAPACITY)),
                wire_token_max_length=int(os.getenv("COMPONENT_ID_MAX_LENGTH", DEFAULT_WIRE_TOKEN_MAX_LENGTH)),
                db_path=Path(db_path) if db_path else None,
                eval_base_url=os.getenv("EVAL_BASE_URL", DEFAULT_EVAL_BASE_URL),
                eval_timeout=float(os.getenv("EVAL_TIMEOUT", DEFAULT_EVAL_TIMEOUT)),
                dispatch_workers=int(os.getenv("DISPATCH_WORKERS", 8)),
                shutdown_timeout=float(os.getenv("SHUTDOWN_TIMEOUT", 10.0)),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    def merged_with(self, data: dict) -> "BotConfig":
        """
        Return a copy with values from a JSON bot config applied.

        Unknown keys are kept in `extra` so functions can read their own
        settings.
        """
        known = {f.name for f in fields(self)} - {"extra"}
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        extra = dict(self.extra)

        for key, value in data.items():
            if key in known:
                values[key] = _coerce(key, value)
            else:
                extra[key] = value
        values["extra"] = extra

        try:
            return BotConfig(**values)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    @classmethod
    def from_dict(cls, data: dict) -> "BotConfig":
        """Build a config from a JSON bot config on top of the defaults."""
        return cls().merged_with(data)


def _coerce(name: str, value: Any) -> Any:
    """Convert a JSON config value to the type of the field it sets."""
    if value is None and name in ("db_path", "functions"):
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must not be a boolean")

    try:
        if name in FLOAT_FIELDS:
            return float(value)
        if name in INT_FIELDS:
            number = float(value)
            if not number.is_integer():
                raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
            return int(number)
        if name == "db_path":
            return Path(value)
        if name == "eval_base_url":
            if not isinstance(value, str):
                raise ConfigurationError(f"eval_base_url must be a string, got {value!r}")
            return value
        if name == "functions":
            if isinstance(value, str) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError("functions must be a list of function names")
            return list(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e

    return value

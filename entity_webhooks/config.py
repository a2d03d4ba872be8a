"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults.
"""

import os
from dataclasses import dataclass


def _get_int_env(name: str, default: int) -> int:
    """Get an integer value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set or not a number.

    Returns:
        Integer value from environment.
    """
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """Get a float value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set or not a number.

    Returns:
        Float value from environment.
    """
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Settings loaded from environment variables.

    Attributes:
        REDIS_URL: Redis connection URL for the delivery queue and failure store.
        KEY_PREFIX: Prefix for every Redis key written by the framework.
        DEBOUNCE_SECONDS: Delay between scheduling and delivery eligibility.
        BLOCK_WINDOW_SECONDS: How long a blocked URL stays blocked.
        RETRY_BASE_SECONDS: Base time for exponential retry backoff.
        WORKER_CONCURRENCY: Maximum concurrent deliveries per worker.
        WORKER_POLL_INTERVAL: Seconds between queue polls when idle.
        WORKER_BATCH_SIZE: Maximum items claimed per poll.
        LOG_LEVEL: Logging level.
        LOG_FORMAT: "json" for production, "text" for development.
    """

    # Storage
    REDIS_URL: str = "redis://localhost:6379"
    KEY_PREFIX: str = "entity_webhooks"

    # Delivery policy
    DEBOUNCE_SECONDS: int = 5
    BLOCK_WINDOW_SECONDS: int = 3600  # 1 hour
    RETRY_BASE_SECONDS: int = 60

    # Worker
    WORKER_CONCURRENCY: int = 10
    WORKER_POLL_INTERVAL: float = 1.0
    WORKER_BATCH_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379"),
            KEY_PREFIX=os.getenv("WEBHOOKS_KEY_PREFIX", "entity_webhooks"),
            DEBOUNCE_SECONDS=_get_int_env("WEBHOOKS_DEBOUNCE_SECONDS", 5),
            BLOCK_WINDOW_SECONDS=_get_int_env("WEBHOOKS_BLOCK_WINDOW_SECONDS", 3600),
            RETRY_BASE_SECONDS=_get_int_env("WEBHOOKS_RETRY_BASE_SECONDS", 60),
            WORKER_CONCURRENCY=_get_int_env("WEBHOOKS_WORKER_CONCURRENCY", 10),
            WORKER_POLL_INTERVAL=_get_float_env("WEBHOOKS_WORKER_POLL_INTERVAL", 1.0),
            WORKER_BATCH_SIZE=_get_int_env("WEBHOOKS_WORKER_BATCH_SIZE", 100),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
            LOG_FORMAT=os.getenv("LOG_FORMAT", "json"),
        )


# Global settings instance
settings = Settings.from_env()

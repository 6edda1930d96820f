"""Client settings loaded from the environment."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from .constants import (
    DEFAULT_INITIAL_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_MS,
    ENV_BASE_URL,
    ENV_INITIAL_DELAY_MS,
    ENV_MAX_DELAY_MS,
    ENV_MAX_RETRIES,
    ENV_SLOW_THRESHOLD_MS,
    ENV_TELEMETRY_CAPACITY,
    ENV_TIMEOUT_MS,
    SLOW_REQUEST_THRESHOLD_MS,
    TELEMETRY_BUFFER_CAPACITY,
)

logger = logging.getLogger(__name__)


class ClientSettings(BaseModel):
    """Settings shared by every component of a client instance."""
    base_url: str = Field(default="", description="Prefix for relative request URLs")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    initial_delay_ms: int = Field(default=DEFAULT_INITIAL_DELAY_MS, ge=0)
    max_delay_ms: int = Field(default=DEFAULT_MAX_DELAY_MS, ge=0)
    slow_request_threshold_ms: int = Field(default=SLOW_REQUEST_THRESHOLD_MS, ge=0)
    telemetry_capacity: int = Field(default=TELEMETRY_BUFFER_CAPACITY, ge=1)

    @model_validator(mode="after")
    def _check_delays(self):
        if self.max_delay_ms < self.initial_delay_ms:
            raise ValueError("max_delay_ms must be >= initial_delay_ms")
        return self

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "ClientSettings":
        """
        Build settings from environment variables (and a .env file if present).

        Explicit keyword overrides take precedence over the environment.
        """
        load_dotenv(dotenv_path)

        values = {}
        base_url = os.getenv(ENV_BASE_URL)
        if base_url:
            values["base_url"] = base_url

        int_fields = {
            "timeout_ms": ENV_TIMEOUT_MS,
            "max_retries": ENV_MAX_RETRIES,
            "initial_delay_ms": ENV_INITIAL_DELAY_MS,
            "max_delay_ms": ENV_MAX_DELAY_MS,
            "slow_request_threshold_ms": ENV_SLOW_THRESHOLD_MS,
            "telemetry_capacity": ENV_TELEMETRY_CAPACITY,
        }
        for field_name, env_var in int_fields.items():
            raw = os.getenv(env_var)
            if raw is None or raw == "":
                continue
            try:
                values[field_name] = int(raw)
            except ValueError:
                logger.error(f"Ignoring {env_var}={raw!r}: not an integer")

        values.update(overrides)
        return cls(**values)

    def default_policy(self):
        """Retry policy built from these settings."""
        from ..models.policy import RetryPolicy

        return RetryPolicy(
            max_retries=self.max_retries,
            initial_delay_ms=self.initial_delay_ms,
            max_delay_ms=self.max_delay_ms,
        )

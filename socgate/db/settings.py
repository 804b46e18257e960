"""
Runtime configuration settings module.

This module manages the per-tenant storage location and scheduler tuning
parameters loaded from environment variables.
"""

import os
from typing import Optional

DEFAULT_DATA_DIR = "./data"
DEFAULT_SCHEDULER_INTERVAL_SECONDS = 60
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
DEFAULT_PROVIDERS_CONFIG_FILE = "config.yml"


class Settings:
    """Gateway configuration settings loaded from environment variables."""

    data_dir: str
    scheduler_interval_seconds: int
    http_timeout_seconds: int
    providers_config_file: str
    secret_key: Optional[str]

    def __init__(self) -> None:
        """
        Initialize settings by loading from environment variables.

        Raises:
            ValueError: If a numeric variable is not a positive integer.
        """
        self._load_from_env()

    def _load_from_env(self) -> None:
        """
        Load configuration from environment variables.

        Recognised environment variables:
        - DATABASE_DATA_DIR: Directory holding one SQLite file per tenant
        - SCHEDULER_INTERVAL_SECONDS: Poll interval of the job scheduler
        - HTTP_TIMEOUT_SECONDS: Timeout for calls to provider platforms
        - PROVIDERS_CONFIG_FILE: YAML file listing provider client applications
        - SECRET_KEY: Master key for credential encryption
        """
        self.data_dir = os.getenv("DATABASE_DATA_DIR", "") or DEFAULT_DATA_DIR
        self.scheduler_interval_seconds = self._positive_int(
            "SCHEDULER_INTERVAL_SECONDS", DEFAULT_SCHEDULER_INTERVAL_SECONDS
        )
        self.http_timeout_seconds = self._positive_int(
            "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS
        )
        self.providers_config_file = (
            os.getenv("PROVIDERS_CONFIG_FILE", "") or DEFAULT_PROVIDERS_CONFIG_FILE
        )
        self.secret_key = os.getenv("SECRET_KEY") or None

    @staticmethod
    def _positive_int(name: str, default: int) -> int:
        raw = os.getenv(name, "")
        if not raw:
            return default

        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"{name} must be an integer, got: {raw!r}")

        if value <= 0:
            raise ValueError(f"{name} must be greater than zero, got: {value}")

        return value


# Global settings instance
settings = Settings()

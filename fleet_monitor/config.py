"""
Configuration loading for fleet-monitor.

Loads non-secret settings from config.yaml, secrets from environment variables.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from fleet_monitor.pagination import LIMIT_OPTIONS

DEFAULT_CONFIG_PATH = "config.yaml"


class AppConfig(BaseModel):
    """Application configuration. Secrets come from env vars, rest from YAML."""

    # Secrets (from environment only)
    mbta_api_key: Optional[str] = None

    # Upstream settings
    mbta_base_url: str = "https://api-v3.mbta.com"
    upstream_name: str = "MBTA API"

    # Proxy settings
    proxy_prefix: str = "/api/mbta"
    proxy_url: str = "http://127.0.0.1:8000/api/mbta"

    # Query cache settings
    poll_interval: float = Field(default=30.0, gt=0)
    stale_time: float = Field(default=0.0, ge=0)
    retry: int = Field(default=3, ge=0)

    # Paging
    routes_page_size: int = Field(default=30, ge=1)
    trips_page_size: int = Field(default=30, ge=1)
    list_limit: int = 12

    log_level: str = "info"

    @field_validator("list_limit")
    @classmethod
    def validate_list_limit(cls, value: int) -> int:
        if value not in LIMIT_OPTIONS:
            raise ValueError(f"list_limit must be one of {LIMIT_OPTIONS}")
        return value

    @field_validator("proxy_prefix")
    @classmethod
    def normalize_prefix(cls, value: str) -> str:
        return "/" + value.strip("/")


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load configuration from YAML file + environment variables.

    Args:
        config_path: Path to config.yaml. If None, reads CONFIG_PATH env var
                     (default: config.yaml in current directory, optional).

    Returns:
        Validated AppConfig instance.
    """
    explicit = config_path is not None or "CONFIG_PATH" in os.environ
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)

    path = Path(config_path)
    raw: dict = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    elif explicit:
        raise FileNotFoundError(f"Config file not found: {config_path}")

    # Inject secrets from environment (never from YAML)
    config_data = {
        **raw,
        "mbta_api_key": os.environ.get("MBTA_API_KEY") or None,
    }
    if os.environ.get("MBTA_API_URL"):
        config_data["mbta_base_url"] = os.environ["MBTA_API_URL"]
    if os.environ.get("LOG_LEVEL"):
        config_data["log_level"] = os.environ["LOG_LEVEL"]

    return AppConfig(**config_data)


def configure_logging(level: str = "info") -> None:
    """Set up root logging in the format used by the server and the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

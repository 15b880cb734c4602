"""YAML configuration loading."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import yaml

from .timeutil import clock_to_minutes

logger = logging.getLogger("quickagenda-mcp")

CONFIG_PATH = os.environ.get("QUICKAGENDA_CONFIG", "/config/quickagenda.yaml")

VALID_BACKENDS = {"http", "memory"}


@dataclass
class Settings:
    """Server settings."""

    backend: str = "memory"  # http, memory
    api_base_url: str = ""
    share_origin: str = "http://localhost:5173"
    ics_base: str = "/api/events"
    default_start: str = "09:00"
    timeout: float = 10.0


def load_config() -> Settings:
    """Load and validate quickagenda.yaml.

    A missing file yields the defaults (in-memory backend).
    """
    path = CONFIG_PATH
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return Settings()

    with open(path, "r") as f:
        raw = yaml.safe_load(f)

    if not raw:
        logger.warning("Config file is empty: %s", path)
        return Settings()
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    settings = Settings()

    backend = str(raw.get("backend", settings.backend)).strip().lower()
    if backend not in VALID_BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Must be one of: {VALID_BACKENDS}")
    settings.backend = backend

    api_base_url = str(raw.get("api_base_url", "")).strip()
    if backend == "http" and not api_base_url:
        raise ValueError("Backend 'http': 'api_base_url' is required")
    settings.api_base_url = api_base_url

    share_origin = str(raw.get("share_origin", settings.share_origin)).strip().rstrip("/")
    if not share_origin:
        raise ValueError("'share_origin' must not be empty")
    settings.share_origin = share_origin

    settings.ics_base = str(raw.get("ics_base", settings.ics_base)).strip() or settings.ics_base

    default_start = raw.get("default_start", settings.default_start)
    if isinstance(default_start, int) and not isinstance(default_start, bool):
        # YAML 1.1 reads an unquoted 10:30 as the sexagesimal int 630
        minutes = default_start
    else:
        minutes = clock_to_minutes(str(default_start).strip())
    if minutes is None or not 0 <= minutes < 24 * 60:
        raise ValueError(f"Invalid 'default_start' '{default_start}'. Expected HH:MM")
    settings.default_start = f"{minutes // 60:02d}:{minutes % 60:02d}"

    try:
        timeout = float(raw.get("timeout", settings.timeout))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid 'timeout': {raw.get('timeout')!r}") from e
    if timeout <= 0:
        raise ValueError("'timeout' must be positive")
    settings.timeout = timeout

    return settings

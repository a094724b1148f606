"""Client configuration: YAML file + environment overrides."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml  # type: ignore

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "https://api-1.ripstech.com"
DEFAULT_POLL_INTERVAL = 5.0


@dataclass
class ClientConfig:
    url: str = DEFAULT_SERVER
    timeout: Optional[float] = None
    ca_bundle: Optional[str] = None
    cookie_file: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_wait: Optional[float] = None

    def transport_options(self) -> Dict[str, Any]:
        opts: Dict[str, Any] = {}
        if self.timeout is not None:
            opts["timeout"] = self.timeout
        if self.ca_bundle:
            opts["verify"] = self.ca_bundle
        return opts

    def credentials(self) -> Optional[Dict[str, str]]:
        if not self.username:
            return None
        return {"name": self.username, "password": self.password or ""}


def _parse_float(name: str, value: Any, positive: bool = False) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if parsed < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value!r}")
    if positive and parsed == 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return parsed


def load_client_config(config_path: Optional[str] = None) -> ClientConfig:
    """Load the ``rips`` section of a YAML file (optional) and apply RIPS_* env overrides."""
    data: Dict[str, Any] = {}
    if config_path:
        if not os.path.exists(config_path):
            raise ConfigurationError(f"Config by path {config_path} not exist")
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        logger.debug("Loaded client config from %s", config_path)

    section = data.get("rips", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError("'rips' section must be a mapping")

    url = os.environ.get("RIPS_API_URL") or section.get("url") or DEFAULT_SERVER
    timeout = _parse_float("timeout", os.environ.get("RIPS_TIMEOUT") or section.get("timeout"))
    poll_interval = _parse_float(
        "poll_interval", os.environ.get("RIPS_POLL_INTERVAL") or section.get("poll_interval"), positive=True
    )
    max_wait = _parse_float("max_wait", os.environ.get("RIPS_MAX_WAIT") or section.get("max_wait"))

    cfg = ClientConfig(
        url=str(url).rstrip("/"),
        timeout=timeout,
        ca_bundle=os.environ.get("RIPS_CA_BUNDLE") or section.get("ca_bundle"),
        cookie_file=os.environ.get("RIPS_COOKIE_FILE") or section.get("cookie_file"),
        username=os.environ.get("RIPS_USERNAME") or section.get("username"),
        password=os.environ.get("RIPS_PASSWORD") or section.get("password"),
        poll_interval=poll_interval if poll_interval is not None else DEFAULT_POLL_INTERVAL,
        max_wait=max_wait,
    )
    return cfg

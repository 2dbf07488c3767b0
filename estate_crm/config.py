"""Configuration helpers for the CRM client and command line."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

# configuration-file key -> environment variable
_ENV_KEYS = {
    "api_url": "CRM_API_URL",
    "api_key": "CRM_API_KEY",
    "access_token": "CRM_ACCESS_TOKEN",
    "user_id": "CRM_USER_ID",
    "timezone": "CRM_TIMEZONE",
    "sla_minutes": "CRM_SLA_MINUTES",
    "sla_secret": "CRM_SLA_SECRET",
    "http_timeout": "CRM_HTTP_TIMEOUT",
    "storage_buckets": "CRM_STORAGE_BUCKETS",
}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        import yaml

        data = yaml.safe_load(text)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


@dataclass
class Settings:
    """Connection and behaviour settings for the CRM backend."""

    api_url: str = ""
    api_key: str = ""
    access_token: Optional[str] = None
    user_id: Optional[str] = None
    timezone: str = "Asia/Dubai"
    sla_minutes: int = 30
    sla_secret: Optional[str] = None
    http_timeout: float = 30.0
    storage_buckets: List[str] = field(default_factory=lambda: ["documents", "contact-docs"])

    def require_connection(self) -> None:
        missing = [name for name in ("api_url", "api_key") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                "Missing backend connection settings: "
                + ", ".join(f"{name} ({_ENV_KEYS[name]})" for name in missing)
            )


def load_settings(
    path: str | Path | None = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    dotenv: bool = True,
) -> Settings:
    """Build :class:`Settings` from an optional file, overridden by environment variables.

    When ``env`` is omitted the process environment is used, after loading a
    ``.env`` file from the working directory if one exists.
    """

    values: Dict[str, Any] = {}
    if path is not None:
        raw = load_configuration(path)
        section = raw.get("crm", raw)
        values.update({key: section[key] for key in _ENV_KEYS if key in section})

    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    for key, variable in _ENV_KEYS.items():
        value = env.get(variable)
        if value not in (None, ""):
            values[key] = value

    try:
        return _coerce(values)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration value: {exc}") from exc


def _coerce(values: Dict[str, Any]) -> Settings:
    settings = Settings()
    for key, value in values.items():
        if key == "sla_minutes":
            value = int(value)
        elif key == "http_timeout":
            value = float(value)
        elif key == "storage_buckets":
            if isinstance(value, str):
                value = [part.strip() for part in value.split(",") if part.strip()]
            else:
                value = [str(part) for part in value]
        else:
            value = str(value).strip()
        setattr(settings, key, value)
    LOGGER.debug("Loaded settings for %s", settings.api_url or "(no backend)")
    return settings


__all__ = ["ConfigurationError", "Settings", "load_configuration", "load_settings"]

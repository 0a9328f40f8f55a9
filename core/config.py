"""Configuration models and loading."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "apps-script-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"

# (section, field) <- environment variable names, first match wins
ENV_OVERRIDES: dict[tuple[str, str], tuple[str, ...]] = {
    ("destination", "url"): ("DESTINATION_URL", "APPS_SCRIPT_WEB_APP_URL"),
    ("destination", "timeout"): ("DESTINATION_TIMEOUT",),
    ("proxy", "host"): ("HOST",),
    ("proxy", "port"): ("PORT",),
    ("cors", "allowed_origin"): ("ALLOWED_ORIGIN", "REACT_APP_ORIGIN"),
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ProxySettings(_Frozen):
    host: str = "0.0.0.0"
    port: int = 3002
    debug: bool = False


class CorsSettings(_Frozen):
    allowed_origin: str = "http://localhost:3000"
    allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")


class DestinationSettings(_Frozen):
    url: str | None = None
    timeout: float = 60.0

    @property
    def configured(self) -> bool:
        return bool(self.url)


class LimitsSettings(_Frozen):
    max_body_size: int = 100 * 1024
    keep_alive_timeout: int = 5


class Config(_Frozen):
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    destination: DestinationSettings = Field(default_factory=DestinationSettings)
    limits: LimitsSettings = Field(default_factory=LimitsSettings)


def load_config(
    *,
    config_file: Path = CONFIG_FILE,
    environ: Mapping[str, str] | None = None,
    use_dotenv: bool = True,
) -> Config:
    """Load configuration once at startup.

    Sources, lowest priority first: built-in defaults, the optional JSON
    config file, then environment variables (a ``.env`` file in the working
    directory tree is loaded first, without overriding the real environment).

    Raises:
        ConfigurationError: if the config file is unreadable or a value is invalid.
    """
    if use_dotenv:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    if environ is None:
        environ = os.environ

    data = _read_config_file(config_file)
    _apply_env_overrides(data, environ)

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _read_config_file(config_file: Path) -> dict[str, Any]:
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_file} must contain a JSON object")
    return data


def _apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> None:
    for (section, field), names in ENV_OVERRIDES.items():
        value = next((environ[name] for name in names if environ.get(name)), None)
        if value is None:
            continue
        section_data = data.get(section)
        if not isinstance(section_data, dict):
            section_data = {}
            data[section] = section_data
        section_data[field] = value

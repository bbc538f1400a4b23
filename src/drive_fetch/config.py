"""Transfer configuration loaded from defaults, a YAML file and environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from typing import Any

import yaml

from drive_fetch.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; drive-fetch)"
ENV_PREFIX = "DF_"


def default_cache_root() -> str:
    """Return the per-user cache directory (``~/.cache/drive-fetch``)."""
    return os.path.join(os.path.expanduser("~"), ".cache", "drive-fetch")


@dataclass(frozen=True)
class TransferConfig:
    """Settings shared by every network operation of a single top-level call.

    Constructed once and passed by reference into the client, downloader,
    cache and folder resolver. Use ``dataclasses.replace`` to derive a
    variant rather than mutating.
    """

    proxy: str = ""
    verify: bool = True
    use_cookies: bool = True
    speed: int = 0  # bytes per second; 0 means unlimited
    resume: bool = False
    user_agent: str = DEFAULT_USER_AGENT
    format: str = ""
    fuzzy: bool = False
    quiet: bool = False
    cache_root: str = ""

    @property
    def resolved_cache_root(self) -> str:
        return self.cache_root or default_cache_root()


def _parse_str(name: str, value: Any) -> str:
    return "" if value is None else str(value)


def _parse_speed(name: str, value: Any) -> int:
    try:
        speed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer number of bytes/sec, got {value!r}") from exc
    if speed < 0:
        raise ConfigError(f"{name} must not be negative, got {speed}")
    return speed


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_negated_bool(name: str, value: Any) -> bool:
    return not _parse_bool(name, value)


# Setting name (as used for CLI flags and YAML keys) -> (field, parser).
_SETTINGS: dict[str, tuple[str, Callable[[str, Any], Any]]] = {
    "proxy": ("proxy", _parse_str),
    "speed": ("speed", _parse_speed),
    "no-cookies": ("use_cookies", _parse_negated_bool),
    "no-verify": ("verify", _parse_negated_bool),
    "resume": ("resume", _parse_bool),
    "fuzzy": ("fuzzy", _parse_bool),
    "format": ("format", _parse_str),
    "user-agent": ("user_agent", _parse_str),
    "quiet": ("quiet", _parse_bool),
    "cache-root": ("cache_root", _parse_str),
}


def _env_name(setting: str) -> str:
    return ENV_PREFIX + setting.upper().replace("-", "_")


def _read_config_file(path: str) -> dict[str, Any]:
    """Load a YAML mapping of setting names to values."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def apply_overrides(config: TransferConfig, overrides: Mapping[str, Any]) -> TransferConfig:
    """Return a copy of ``config`` with setting overrides applied.

    Args:
        config: Base configuration.
        overrides: Values keyed by setting name (``speed``, ``no-cookies``, ...).

    Raises:
        ConfigError: If a setting is unknown or its value is malformed.
    """
    values: dict[str, Any] = {}
    for setting, raw in overrides.items():
        if setting not in _SETTINGS:
            raise ConfigError(f"Unknown setting: {setting}")
        field_name, parse = _SETTINGS[setting]
        values[field_name] = parse(setting, raw)
    return replace(config, **values)


def load_config(
    config_file: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> TransferConfig:
    """Construct a TransferConfig from a YAML file and environment variables.

    Sources are layered defaults < config file < environment. Keys in the
    config file use the CLI flag names (``proxy``, ``speed``, ``no-cookies``,
    ``no-verify``, ``resume``, ``fuzzy``, ``format``, ``user-agent``,
    ``quiet``, ``cache-root``); keys that belong to other flags are ignored.

    Environment variables:
        DF_PROXY: Proxy URL (e.g. http://host:port).
        DF_SPEED: Download speed limit in bytes/sec (0 means unlimited).
        DF_NO_COOKIES: Disable the cookie jar.
        DF_NO_VERIFY: Disable TLS certificate verification.
        DF_RESUME: Resume interrupted downloads.
        DF_FUZZY: Extract file IDs from any recognised Drive URL.
        DF_FORMAT: Export format for Google Docs/Sheets/Slides.
        DF_USER_AGENT: User-Agent header sent with every request.
        DF_QUIET: Suppress progress output.
        DF_CACHE_ROOT: Cache directory (default: ~/.cache/drive-fetch).

    Args:
        config_file: Optional path to a YAML config file.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Configured TransferConfig instance.

    Raises:
        ConfigError: If the file is unreadable or a value is malformed.
    """
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    if config_file:
        for key, raw in _read_config_file(config_file).items():
            setting = str(key).replace("_", "-")
            if setting not in _SETTINGS:
                logger.debug("[load_config] ignoring non-transfer key; key:%s", key)
                continue
            field_name, parse = _SETTINGS[setting]
            values[field_name] = parse(setting, raw)

    for setting, (field_name, parse) in _SETTINGS.items():
        env_name = _env_name(setting)
        if env_name in env:
            values[field_name] = parse(env_name, env[env_name])

    return replace(TransferConfig(), **values)

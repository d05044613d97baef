"""Layered settings: flag > env > config file > default."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path

from .client import DEFAULT_BASE_URL
from .errors import ParasError

OUTPUT_MODES = ("json", "ndjson")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_NAMES = {
    "base_url": "PARAS_URL",
    "timeout": "QPARAS_TIMEOUT",
    "retries": "QPARAS_RETRIES",
    "retry_backoff_ms": "QPARAS_RETRY_BACKOFF_MS",
    "output": "QPARAS_OUTPUT",
    "max_pages": "QPARAS_MAX_PAGES",
    "log_level": "QPARAS_LOG_LEVEL",
}


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    retries: int = 0
    retry_backoff_ms: int = 250
    output: str = "json"
    max_pages: int | None = None
    log_level: str = "WARNING"
    config_path: str | None = None

    @property
    def log_level_number(self) -> int:
        return getattr(logging, self.log_level)


def candidate_config_paths() -> list[Path]:
    override = os.environ.get("QPARAS_CONFIG")
    if override:
        return [Path(override).expanduser()]

    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_home:
        xdg_path = Path(xdg_home).expanduser() / "qparas" / "config.json"
    else:
        xdg_path = Path.home() / ".config" / "qparas" / "config.json"

    legacy_path = Path.home() / ".qparas" / "config.json"
    return [xdg_path, legacy_path]


def preferred_config_path() -> Path:
    return candidate_config_paths()[0]


def read_config_file() -> tuple[dict, str | None]:
    for path in candidate_config_paths():
        if path.exists():
            try:
                parsed = json.loads(path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise ParasError("CONFIG", f"Unable to read config file: {path}", 0) from exc
            except json.JSONDecodeError as exc:
                raise ParasError("CONFIG", f"Invalid JSON in config file: {path}", 0) from exc

            if not isinstance(parsed, dict):
                raise ParasError("CONFIG", f"Config file must contain a JSON object: {path}", 0)
            return parsed, str(path)

    return {}, None


def _resolve_setting(flag_value, env_name: str, config_value, default_value):
    if flag_value is not None:
        return flag_value
    env_value = os.environ.get(env_name)
    if env_value not in (None, ""):
        return env_value
    if config_value is not None:
        return config_value
    return default_value


def _coerce(name: str, value, kind):
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ParasError("CONFIG", f"Invalid {name}: {value!r}", 0) from exc


def resolve_settings(**flags) -> Settings:
    """Resolve every setting from CLI flags (``None`` when not given), env and config file."""
    file_config, config_path = read_config_file()
    defaults = Settings()

    def resolve(name):
        return _resolve_setting(flags.get(name), ENV_NAMES[name], file_config.get(name), getattr(defaults, name))

    base_url = str(resolve("base_url")).rstrip("/")
    timeout = _coerce("timeout", resolve("timeout"), float)
    retries = _coerce("retries", resolve("retries"), int)
    retry_backoff_ms = _coerce("retry_backoff_ms", resolve("retry_backoff_ms"), int)
    output = str(resolve("output"))
    max_pages = resolve("max_pages")
    if max_pages is not None:
        max_pages = _coerce("max_pages", max_pages, int)
    log_level = str(resolve("log_level")).upper()

    if not base_url:
        raise ParasError("CONFIG", "base_url must not be empty", 0)
    if output not in OUTPUT_MODES:
        raise ParasError("CONFIG", f"Invalid output in config/env: {output}", 0)
    if timeout <= 0 or timeout > 300:
        raise ParasError("CONFIG", "timeout must be > 0 and <= 300 seconds", 0)
    if retries < 0 or retries > 10:
        raise ParasError("CONFIG", "retries must be between 0 and 10", 0)
    if retry_backoff_ms < 0 or retry_backoff_ms > 60000:
        raise ParasError("CONFIG", "retry_backoff_ms must be between 0 and 60000", 0)
    if max_pages is not None and max_pages < 1:
        raise ParasError("CONFIG", "max_pages must be >= 1", 0)
    if log_level not in LOG_LEVELS:
        raise ParasError("CONFIG", f"Invalid log_level: {log_level}", 0)

    return Settings(
        base_url=base_url,
        timeout=timeout,
        retries=retries,
        retry_backoff_ms=retry_backoff_ms,
        output=output,
        max_pages=max_pages,
        log_level=log_level,
        config_path=config_path,
    )

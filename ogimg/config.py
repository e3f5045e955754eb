"""Runtime settings read from ``OGIMG_*`` environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping

ENV_PREFIX = "OGIMG_"


@dataclass
class Settings:
    fonts_dir: str | None = None
    fetch_timeout: float = 10.0
    fetch_workers: int = 4
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"


def _number(env: Mapping[str, str], key: str, convert, default):
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw == "":
        return default
    try:
        return convert(raw)
    except ValueError:
        return default


def _normalize(settings: Settings) -> None:
    settings.fetch_timeout = float(max(0.5, min(120.0, settings.fetch_timeout)))
    settings.fetch_workers = max(1, min(32, int(settings.fetch_workers)))
    if not 1 <= settings.port <= 65535:
        settings.port = Settings.port
    settings.log_level = settings.log_level.upper()
    if settings.log_level not in ("DEBUG", "INFO", "AUDIT", "WARNING", "ERROR"):
        settings.log_level = Settings.log_level


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    defaults = Settings()
    settings = Settings(
        fonts_dir=env.get(ENV_PREFIX + "FONTS_DIR") or None,
        fetch_timeout=_number(env, "FETCH_TIMEOUT", float, defaults.fetch_timeout),
        fetch_workers=_number(env, "FETCH_WORKERS", int, defaults.fetch_workers),
        host=env.get(ENV_PREFIX + "HOST") or defaults.host,
        port=_number(env, "PORT", int, defaults.port),
        log_level=env.get(ENV_PREFIX + "LOG_LEVEL") or defaults.log_level,
    )
    _normalize(settings)
    return settings

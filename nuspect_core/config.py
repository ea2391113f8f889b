"""Settings loading: ``config.toml`` first, then environment overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from .archive import DEFAULT_MODULE_SUFFIXES
from .paths import UserDirs
from .source import CachedPackageSource, NuGetPackageSource, PackageSource, SourceConfig
from .source.types import NUGET_FLAT_CONTAINER_URL

logger = logging.getLogger(__name__)

ENV_PREFIX = "NUSPECT_"
_TRUE = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    source_url: str = NUGET_FLAT_CONTAINER_URL
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_seconds: float = 0.5
    include_prerelease: bool = False
    module_suffixes: tuple[str, ...] = DEFAULT_MODULE_SUFFIXES
    cache_enabled: bool = True
    cache_dir: Path = field(default_factory=lambda: UserDirs().package_cache_dir())
    log_level: str = "warning"

    def source_config(self) -> SourceConfig:
        return SourceConfig(
            base_url=self.source_url,
            timeout_seconds=self.timeout_seconds,
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
            include_prerelease=self.include_prerelease,
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def _as_suffixes(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    else:
        items = [str(item).strip() for item in value or ()]
    suffixes = tuple(item if item.startswith(".") else f".{item}" for item in items if item)
    return suffixes or DEFAULT_MODULE_SUFFIXES


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _from_payload(settings: Settings, payload: Mapping[str, Any]) -> Settings:
    nuget = payload.get("nuget")
    if isinstance(nuget, dict):
        settings = replace(
            settings,
            source_url=str(nuget.get("source_url") or settings.source_url),
            timeout_seconds=float(nuget.get("timeout_seconds", settings.timeout_seconds)),
            max_retries=int(nuget.get("max_retries", settings.max_retries)),
            backoff_seconds=float(nuget.get("backoff_seconds", settings.backoff_seconds)),
            include_prerelease=_as_bool(nuget.get("include_prerelease", settings.include_prerelease)),
            module_suffixes=_as_suffixes(nuget.get("module_suffixes", settings.module_suffixes)),
        )
    cache = payload.get("cache")
    if isinstance(cache, dict):
        directory = str(cache.get("dir") or "").strip()
        settings = replace(
            settings,
            cache_enabled=_as_bool(cache.get("enabled", settings.cache_enabled)),
            cache_dir=Path(directory).expanduser() if directory else settings.cache_dir,
        )
    logging_cfg = payload.get("logging")
    if isinstance(logging_cfg, dict):
        settings = replace(settings, log_level=str(logging_cfg.get("level") or settings.log_level))
    return settings


def _from_env(settings: Settings, env: Mapping[str, str]) -> Settings:
    def get(name: str) -> str | None:
        value = env.get(f"{ENV_PREFIX}{name}")
        return value.strip() if value and value.strip() else None

    if (url := get("SOURCE_URL")) is not None:
        settings = replace(settings, source_url=url)
    if (timeout := get("TIMEOUT")) is not None:
        try:
            settings = replace(settings, timeout_seconds=float(timeout))
        except ValueError as exc:
            raise ValueError(f"{ENV_PREFIX}TIMEOUT must be a number of seconds, got {timeout!r}") from exc
    if (prerelease := get("INCLUDE_PRERELEASE")) is not None:
        settings = replace(settings, include_prerelease=_as_bool(prerelease))
    if (cache_dir := get("CACHE_DIR")) is not None:
        settings = replace(settings, cache_dir=Path(cache_dir).expanduser())
    if (no_cache := get("NO_CACHE")) is not None:
        settings = replace(settings, cache_enabled=not _as_bool(no_cache))
    if (level := get("LOG_LEVEL")) is not None:
        settings = replace(settings, log_level=level)
    return settings


def load_settings(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from ``path`` (default: the user config file) and the environment."""

    config_path = Path(path) if path is not None else UserDirs().config_path()
    settings = _from_payload(Settings(), _read_toml(config_path))
    return _from_env(settings, os.environ if env is None else env)


def build_source(settings: Settings, *, use_cache: bool | None = None) -> PackageSource:
    source: PackageSource = NuGetPackageSource(settings.source_config())
    cache = settings.cache_enabled if use_cache is None else use_cache
    if cache:
        source = CachedPackageSource(source, settings.cache_dir)
    return source

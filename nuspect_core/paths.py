"""Platform-independent locations for nuspect config and cache files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir

APP_NAME = "nuspect"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class UserDirs:
    """Expose the platform-configured config/cache trees, with overrides."""

    app_name: str = APP_NAME
    config_dir_override: Path | None = None
    cache_dir_override: Path | None = None

    def config_dir(self) -> Path:
        return (
            self.config_dir_override
            if self.config_dir_override
            else Path(user_config_dir(self.app_name, appauthor=False))
        )

    def cache_dir(self) -> Path:
        return (
            self.cache_dir_override
            if self.cache_dir_override
            else Path(user_cache_dir(self.app_name, appauthor=False))
        )

    def config_path(self) -> Path:
        return self.config_dir() / CONFIG_FILE_NAME

    def package_cache_dir(self) -> Path:
        return self.cache_dir() / "packages"

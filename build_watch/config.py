"""
Configuration management for build-watch.

Handles loading project.toml, sharing the active project configuration
between the watch loop and reloads, and reading session settings.
"""

import logging
import os
import tomllib
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from build_watch.exceptions import ConfigError
from build_watch.locking import ReadWriteLock
from build_watch.models import ProjectConfig, WatchSettings


logger = logging.getLogger(__name__)

# Default configuration file name, relative to the project root
DEFAULT_CONFIG_FILE = "project.toml"

# Environment overrides for session settings
ENV_TICK_MS = "BUILD_WATCH_TICK_MS"
ENV_IGNORE = "BUILD_WATCH_IGNORE"


def load_project_config(config_file: Path) -> ProjectConfig:
    """
    Parse a project configuration file.

    Args:
        config_file: Path to project.toml

    Returns:
        Freshly parsed ProjectConfig

    Raises:
        ConfigError: If the file cannot be read, is not valid TOML, or does
            not match the configuration schema
    """
    config_file = Path(config_file)

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_file}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"TOML error in {config_file}: {e}") from e

    try:
        return ProjectConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}: {e}") from e


class ProjectConfigStore:
    """
    Holds the active project configuration.

    The configuration is shared by the watch loop, dependency resolution and
    the reloader. Readers take the shared lock; only the reloader takes the
    exclusive lock to swap sections.
    """

    def __init__(self, config_file: Path, config: Optional[ProjectConfig] = None):
        """
        Initialize the store.

        Args:
            config_file: Path to project.toml
            config: Initial configuration. Loaded from config_file if None.

        Raises:
            ConfigError: If config is None and the file cannot be parsed
        """
        self.config_file = Path(config_file)
        self.lock = ReadWriteLock()
        self._config = config if config is not None else load_project_config(self.config_file)

    @contextmanager
    def read(self) -> Iterator[ProjectConfig]:
        """Yield the active configuration under the shared lock."""
        with self.lock.read_locked():
            yield self._config

    def load(self) -> ProjectConfig:
        """Parse the configuration file without activating it."""
        return load_project_config(self.config_file)

    def replace_sections(self, new_config: ProjectConfig) -> None:
        """
        Replace the package, assets and distribution sections.

        Args:
            new_config: Freshly parsed configuration
        """
        with self.lock.write_locked():
            self._config.package = new_config.package
            self._config.assets = new_config.assets
            self._config.distribution = new_config.distribution

    # Snapshots taken under the shared lock

    def golang_dependencies(self) -> List[str]:
        with self.read() as config:
            return config.golang_dependencies()

    def asset_dependencies(self) -> List[str]:
        with self.read() as config:
            return config.asset_dependencies()

    def omitted_tests(self) -> List[str]:
        with self.read() as config:
            return config.omitted_tests()

    def package_name(self) -> str:
        with self.read() as config:
            return config.package.name if config.package else ""

    def build_opts(self, distribution: bool = False) -> List[str]:
        """Get `go build` flags, including distribution flags when packaging."""
        with self.read() as config:
            opts = list(config.package.build_opts) if config.package else []
            if distribution and config.distribution:
                opts.extend(config.distribution.build_opts)
            return opts


def load_watch_settings(root: Path, **overrides) -> WatchSettings:
    """
    Build session settings from defaults, the environment and overrides.

    A .env file in the project root is loaded first, so overrides can live
    next to project.toml.

    Args:
        root: Project root directory
        **overrides: Explicit setting values (take precedence)

    Returns:
        WatchSettings for the session
    """
    env_file = Path(root) / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    values = {}

    tick_ms = os.environ.get(ENV_TICK_MS)
    if tick_ms:
        values["tick_interval_ms"] = tick_ms

    ignore = os.environ.get(ENV_IGNORE)
    if ignore:
        values["ignore_dirs"] = ignore

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return WatchSettings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid watch settings: {e}") from e

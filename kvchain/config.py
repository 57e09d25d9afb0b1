"""Configuration loading for store chains."""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from kvchain.builder import from_description
from kvchain.exceptions import ConfigurationError
from kvchain.factory import DEFAULT_PIPELINES, new_store
from kvchain.stack import Stack

logger = logging.getLogger(__name__)

# Option and file name each on-disk backend takes for a data directory
_DATA_DIR_OPTIONS: dict[str, tuple[str, str | None]] = {
    "file": ("dir", None),
    "sqlite": ("db_path", "kvchain.db"),
    "yaml": ("file", "kvchain.yaml"),
}


class Config:
    """Configuration file handling."""

    @staticmethod
    def from_file(path: Path) -> dict[str, Any]:
        """Load configuration from a YAML file."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error reading config file: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    @staticmethod
    def get_config_paths() -> list[Path]:
        """Get the default configuration file paths to check."""
        paths = []

        # User config
        xdg_config_home = Path(
            os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        )
        paths.append(xdg_config_home / "kvchain" / "config.yaml")

        # Project config
        paths.append(Path(".kvchain.yaml"))
        paths.append(Path("kvchain.yaml"))

        return paths

    @staticmethod
    def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
        """Merge multiple configuration dictionaries."""
        result: dict[str, Any] = {}
        for config in configs:
            result = _deep_merge(result, config)
        return result


def get_config_paths() -> list[Path]:
    """Get configuration paths in precedence order."""
    return Config.get_config_paths()


def load_config() -> dict[str, Any]:
    """Load configuration from files and environment variables."""
    config: dict[str, Any] = {}

    # Later paths win for conflicting keys
    for path in get_config_paths():
        if path.exists():
            config = Config.merge_configs(config, Config.from_file(path))

    env_overrides: dict[str, Any] = {}
    if backend := os.environ.get("KVCHAIN_BACKEND"):
        env_overrides["backend"] = backend
    if data_dir := os.environ.get("KVCHAIN_DATA_DIR"):
        env_overrides["data_dir"] = data_dir

    return Config.merge_configs(config, env_overrides)


def load_description(path: Path) -> Stack:
    """Build a store from a YAML build description file."""
    return open_store(Config.from_file(path))


def data_dir_options(backend: str, data_dir: str | Path) -> dict[str, Any]:
    """Backend options that place a store's data under data_dir.

    Backends that keep nothing on disk get no options.
    """
    policy = DEFAULT_PIPELINES.get(backend.lower())
    adapter = policy.backend if policy else backend.lower()
    if adapter not in _DATA_DIR_OPTIONS:
        logger.debug(f"{backend} keeps no data on disk, ignoring data_dir")
        return {}
    option, filename = _DATA_DIR_OPTIONS[adapter]
    path = Path(data_dir)
    return {option: path / filename if filename else path}


def open_store(config: dict[str, Any]) -> Stack:
    """Open the store a configuration mapping describes.

    A mapping with ``adapter`` or ``use`` is a full build description.
    Otherwise ``backend`` names a default chain, with ``expires``,
    ``threadsafe`` and backend ``options``. ``data_dir`` fills in where the
    backend keeps its files unless ``options`` already says so.
    """
    if "adapter" in config or "use" in config:
        return from_description(
            {k: config[k] for k in ("use", "adapter", "options") if k in config}
        )

    backend = config.get("backend")
    if not backend:
        raise ConfigurationError("Configuration names no backend or adapter")
    if not isinstance(backend, str):
        raise ConfigurationError(f"'backend' must be a name: {backend!r}")
    options = config.get("options") or {}
    if not isinstance(options, dict):
        raise ConfigurationError("'options' must be a mapping")
    if data_dir := config.get("data_dir"):
        options = {**data_dir_options(backend, data_dir), **options}
    return new_store(
        backend,
        expires=config.get("expires", False),
        threadsafe=config.get("threadsafe", False),
        **options,
    )


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result

"""
Configuration for nodash.

PURPOSE: Centralized constants, environment settings and the user config file.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Recording: State directory layout and ring buffer default
- Project: Marker files used for project-root discovery
- Analytics server: Data files, bind address and query limits
- HTTP client: Timeout and retry count
- User config: baseUrl, apiToken, environment (~/.nodash/config.json)

ENVIRONMENT VARIABLES:
- NODASH_CONFIG_DIR: Directory holding config.json (default: ~/.nodash)

USAGE:
    from nodash.config import Config, ConfigManager
    max_events = Config.DEFAULT_MAX_EVENTS
    base_url = ConfigManager().get_value("baseUrl")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from .errors import ConfigError
from .filesystem import RealFileSystem

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["Config", "ConfigManager"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for nodash.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    STATE STRUCTURE (relative to the project root or cwd):
        .nodash/
        ├── state/
        │   └── active-recording.json  # Pointer to the recording in progress
        ├── recordings/                # Default location for snapshot files
        ├── events_schema.json         # Analytics server: event definitions
        └── events_data.jsonl          # Analytics server: tracked events
    """

    # =========================================================================
    # RECORDING CONFIGURATION
    # =========================================================================
    STATE_DIR: ClassVar[str] = ".nodash"
    STATE_SUBDIR: ClassVar[str] = "state"
    ACTIVE_RECORDING_FILE: ClassVar[str] = "active-recording.json"
    RECORDINGS_SUBDIR: ClassVar[str] = "recordings"
    TEMP_RECORDINGS_DIR: ClassVar[str] = "nodash-recordings"
    DEFAULT_MAX_EVENTS: ClassVar[int] = 100
    STATE_DIR_MODE: ClassVar[int] = 0o755

    # =========================================================================
    # PROJECT DISCOVERY
    # =========================================================================
    PROJECT_MARKERS: ClassVar[tuple[str, ...]] = ("package.json", "pyproject.toml")
    """Files whose presence marks a directory as a project root."""

    # =========================================================================
    # ANALYTICS SERVER
    # =========================================================================
    EVENTS_SCHEMA_FILE: ClassVar[str] = "events_schema.json"
    EVENTS_DATA_FILE: ClassVar[str] = "events_data.jsonl"
    DEFAULT_HOST: ClassVar[str] = "127.0.0.1"
    DEFAULT_PORT: ClassVar[int] = 3001
    DEFAULT_QUERY_LIMIT: ClassVar[int] = 100

    # =========================================================================
    # HTTP CLIENT
    # =========================================================================
    HTTP_TIMEOUT_SECONDS: ClassVar[float] = 10.0
    HTTP_RETRIES: ClassVar[int] = 1

    # =========================================================================
    # USER CONFIGURATION
    # =========================================================================
    CONFIG_FILE: ClassVar[str] = "config.json"
    CONFIG_DIR_MODE: ClassVar[int] = 0o700
    CONFIG_FILE_MODE: ClassVar[int] = 0o600
    CONFIG_KEYS: ClassVar[frozenset[str]] = frozenset({"baseUrl", "apiToken", "environment"})
    SECRET_KEYS: ClassVar[frozenset[str]] = frozenset({"apiToken"})

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _config_dir_override: ClassVar[str | None] = None

    @classmethod
    def get_config_dir(cls) -> str:
        """
        Get the directory holding the user configuration file.

        Uses a priority system: test override first, then the
        NODASH_CONFIG_DIR environment variable, then ~/.nodash.

        Business context: The config file stores the analytics base URL
        and API token shared by every CLI invocation. CI jobs point the
        env var at a scratch directory to avoid touching the home dir.

        Returns:
            Absolute or user-expanded path of the config directory.

        Example:
            >>> # With env var: NODASH_CONFIG_DIR=/tmp/nodash
            >>> Config.get_config_dir()
            '/tmp/nodash'
        """
        if cls._config_dir_override is not None:
            return cls._config_dir_override
        env_dir = os.environ.get("NODASH_CONFIG_DIR")
        if env_dir:
            return env_dir
        return os.path.join(os.path.expanduser("~"), cls.STATE_DIR)

    @classmethod
    def set_test_overrides(cls, config_dir: str | None = None) -> None:
        """
        Set test overrides for environment-based settings.

        Must call reset_test_overrides() in test teardown to avoid
        affecting other tests.

        Args:
            config_dir: Override for the config directory. None to clear.
        """
        cls._config_dir_override = config_dir

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Reset all test overrides to use environment variables."""
        cls._config_dir_override = None


class ConfigManager:
    """
    Read/write access to the user configuration file.

    The file is a flat JSON object with the keys in Config.CONFIG_KEYS.
    Reads are forgiving (missing or corrupt file yields an empty dict);
    writes raise ConfigError so the CLI can report the failing directory.
    """

    def __init__(
        self,
        config_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            config_dir: Directory holding config.json. Default:
                Config.get_config_dir(), resolved at construction.
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self.config_dir = config_dir or Config.get_config_dir()
        self.config_file = os.path.join(self.config_dir, Config.CONFIG_FILE)
        self._fs: FileSystem = filesystem or RealFileSystem()

    def _ensure_config_dir(self) -> None:
        if self._fs.exists(self.config_dir):
            return
        try:
            self._fs.makedirs(self.config_dir, exist_ok=True)
            self._fs.chmod(self.config_dir, Config.CONFIG_DIR_MODE)
        except OSError as e:
            raise ConfigError(
                f"Failed to create configuration directory '{self.config_dir}': {e}"
            ) from e

    def get_config(self) -> dict[str, Any]:
        """
        Load the user configuration.

        Returns:
            Parsed config dict. Empty dict if the file is missing,
            unreadable or not a JSON object.
        """
        if not self._fs.exists(self.config_file):
            return {}
        try:
            data = json.loads(self._fs.read_text(self.config_file))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupted config {self.config_file}: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Error reading {self.config_file}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring non-object config in {self.config_file}")
            return {}
        return data

    def set_config(self, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Merge updates into the stored configuration.

        Args:
            updates: Keys to add or replace.

        Returns:
            The merged configuration as written.

        Raises:
            ConfigError: If the directory or file cannot be written.
        """
        self._ensure_config_dir()
        merged = {**self.get_config(), **updates}
        try:
            self._fs.write_text(self.config_file, json.dumps(merged, indent=2))
            self._fs.chmod(self.config_file, Config.CONFIG_FILE_MODE)
        except OSError as e:
            raise ConfigError(
                f"Failed to write configuration to '{self.config_dir}': {e}"
            ) from e
        return merged

    def get_masked_config(self) -> dict[str, str]:
        """
        Load the configuration with secrets masked for display.

        apiToken keeps its first and last 4 characters; tokens of 8
        characters or fewer are replaced by '***'.

        Example:
            >>> manager.set_value('apiToken', 'abcd1234wxyz')
            >>> manager.get_masked_config()['apiToken']
            'abcd...wxyz'
        """
        masked: dict[str, str] = {}
        for key, value in self.get_config().items():
            text = "" if value is None else str(value)
            if key in Config.SECRET_KEYS and text:
                text = f"{text[:4]}...{text[-4:]}" if len(text) > 8 else "***"
            masked[key] = text
        return masked

    def get_value(self, key: str) -> Any:
        """
        Get a single configuration value.

        Raises:
            ConfigError: If key is not a known configuration key.
        """
        self._check_key(key)
        return self.get_config().get(key)

    def set_value(self, key: str, value: str) -> None:
        """
        Set a single configuration value.

        Raises:
            ConfigError: If key is unknown or the file cannot be written.
        """
        self._check_key(key)
        self.set_config({key: value})

    @staticmethod
    def _check_key(key: str) -> None:
        if key not in Config.CONFIG_KEYS:
            valid = ", ".join(sorted(Config.CONFIG_KEYS))
            raise ConfigError(f"Unknown config key '{key}'. Valid keys: {valid}")

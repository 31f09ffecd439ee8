"""
splice User Configuration

Hierarchical config system with global defaults + repository overrides:
- Global: ~/.splice/config.json (cross-repository settings)
- Local: <repo>/.splice.json (repository-specific overrides)

Config structure:
{
  "rewrite": {
    "temp_branch_prefix": "splice",   // Temporary branch name prefix
    "keep_empty": true                // Keep commits that become empty
  },
  "swap": {
    "pin_current_branch": true        // Keep the checked-out branch at the tip on swap
  },
  "reconcile": {
    "lost_branch_exit_code": 0        // Exit code when a branch could not be relocated
  },
  "git": {
    "timeout": 60                     // Seconds for non-rewrite git calls
  }
}
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional
from splice.exceptions import ConfigError
from splice.logging_config import logger


# Default configuration
DEFAULT_CONFIG = {
    "rewrite": {
        "temp_branch_prefix": "splice",
        "keep_empty": True,
    },
    "swap": {
        "pin_current_branch": True,
    },
    "reconcile": {
        "lost_branch_exit_code": 0,
    },
    "git": {
        "timeout": 60,
    },
}

LOCAL_CONFIG_NAME = ".splice.json"


class UserConfig:
    """
    Manages hierarchical user configuration.

    Load order (with override):
    1. Default config (hardcoded)
    2. Global config (~/.splice/config.json)
    3. Local config (<repo>/.splice.json)
    4. Explicit overrides passed by the caller
    """

    def __init__(self, project_root: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize config manager.

        Args:
            project_root: Repository root directory (defaults to CWD)
            overrides: Nested dictionary applied on top of the files
        """
        self.project_root = project_root or Path.cwd()
        self.global_config_path = Path.home() / ".splice" / "config.json"
        self.local_config_path = self.project_root / LOCAL_CONFIG_NAME
        self.overrides = overrides or {}

        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration with hierarchical override.

        Returns:
            Merged configuration dictionary
        """
        config = self._deep_merge({}, DEFAULT_CONFIG)

        for label, path in (("global", self.global_config_path), ("local", self.local_config_path)):
            if not path.exists():
                continue
            try:
                with open(path, 'r') as f:
                    loaded = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load {label} config {path}: {e}")
                continue
            if not isinstance(loaded, dict):
                logger.warning(f"Ignoring {label} config {path}: top level must be an object")
                continue
            config = self._deep_merge(config, loaded)
            logger.debug(f"Loaded {label} config from {path}")

        return self._deep_merge(config, self.overrides)

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """
        Deep merge two dictionaries, with override taking precedence.
        """
        result = dict(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            elif isinstance(value, dict):
                result[key] = self._deep_merge({}, value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value by dot-separated key.

        Examples:
            config.get("swap.pin_current_branch")  # True
            config.get("git.timeout")  # 60
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if not isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be true or false, got {value!r}")
        return value

    def get_int(self, key: str) -> int:
        value = self.get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"Config key '{key}' must be an integer, got {value!r}")
        return value

    def get_str(self, key: str) -> str:
        value = self.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigError(f"Config key '{key}' must be a non-empty string, got {value!r}")
        return value

    def get_all(self) -> Dict[str, Any]:
        """
        Get the entire merged configuration.
        """
        return self._deep_merge({}, self._config)

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._config = self._load_config()

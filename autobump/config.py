"""Configuration management for the autobump tool."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from autobump.models import Config
from autobump.utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_DIR = ".autobump"
CONFIG_FILE = "config.yaml"
ENV_PREFIX = "AUTOBUMP_"


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigManager:
    """Loads the configuration for one project directory.

    Loading order (later sources override earlier):
    1. Defaults from the Config model
    2. User configuration (~/.autobump/config.yaml)
    3. Project configuration (<project>/.autobump/config.yaml)
    4. AUTOBUMP_<SECTION>__<KEY> environment variables
    """

    def __init__(
        self,
        project_dir: Union[str, Path],
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize configuration manager.

        Args:
            project_dir: Repository root the configuration applies to
            environ: Environment to read overrides from (defaults to os.environ)
        """
        self.environ = os.environ if environ is None else environ
        self.user_config_path = Path.home() / CONFIG_DIR / CONFIG_FILE
        self.project_config_path = Path(project_dir) / CONFIG_DIR / CONFIG_FILE

    def _expand_env_vars(self, data: Any) -> Any:
        """Recursively expand ${VAR} and ${VAR:-default} in string values."""
        if isinstance(data, str):
            def replace_env_var(match):
                var_expr = match.group(1)
                if ":-" in var_expr:
                    var_name, default_value = var_expr.split(":-", 1)
                    return self.environ.get(var_name, default_value)
                var_value = self.environ.get(var_expr)
                if var_value is None:
                    logger.warning(f"Environment variable '{var_expr}' not found")
                    return match.group(0)
                return var_value

            return re.sub(r"\$\{([^}]+)\}", replace_env_var, data)
        elif isinstance(data, dict):
            return {key: self._expand_env_vars(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [self._expand_env_vars(item) for item in data]

        return data

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        """Load and parse a YAML configuration file.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        if not path.exists():
            return {}

        logger.debug(f"Loading config file: {path}")
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to load config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        return self._expand_env_vars(data)

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply AUTOBUMP_ environment variable overrides.

        Double underscores separate nested keys, e.g.
        AUTOBUMP_GIT__REMOTE -> git.remote.
        """
        for key, value in self.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            key_parts = key[len(ENV_PREFIX):].lower().split("__")

            current = config_data
            for part in key_parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            final_key = key_parts[-1]
            if value.lower() in ("true", "false"):
                current[final_key] = value.lower() == "true"
            else:
                current[final_key] = value

            logger.debug(f"Applied env override: {'.'.join(key_parts)}")

        return config_data

    def load_config(self) -> Config:
        """Load configuration from all sources.

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If configuration is invalid
        """
        config_data: Dict[str, Any] = {}
        config_data = self._merge_configs(config_data, self._load_yaml_file(self.user_config_path))
        if self.project_config_path != self.user_config_path:
            config_data = self._merge_configs(
                config_data, self._load_yaml_file(self.project_config_path)
            )
        config_data = self._apply_env_overrides(config_data)

        try:
            config = Config.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        logger.debug("Configuration loaded successfully")
        return config


def load_config(project_dir: Union[str, Path], environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load the configuration for a project directory.

    Args:
        project_dir: Repository root
        environ: Environment to read overrides from

    Returns:
        Configuration object
    """
    return ConfigManager(project_dir, environ).load_config()

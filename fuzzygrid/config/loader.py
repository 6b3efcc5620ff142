"""
Configuration Loader.

Loads YAML configuration with an optional per-environment overlay,
.env files, environment variable substitution and pydantic validation.
"""

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from fuzzygrid.core import get_logger

from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .models import AppConfig
from .models.base import process_value

logger = get_logger(__name__)

# Environment variables read when the YAML leaves credentials empty
CREDENTIAL_ENV_VARS = {
    "api_key": "API_KEY",
    "api_secret": "API_SECRET",
}


class ConfigLoader:
    """
    Configuration loader with YAML support and environment variable substitution.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load("config/config.yaml", env="production")
        >>> print(config.strategy.symbol)
    """

    def __init__(self, env_file: Optional[str | Path] = None):
        """
        Initialize ConfigLoader.

        Args:
            env_file: Optional path to .env file. If not provided,
                     looks for .env next to the config file, its parent,
                     then the working directory.
        """
        self._env_file = Path(env_file) if env_file else None
        self._loaded_env = False

    def load(
        self,
        path: str | Path,
        env: Optional[str] = None,
    ) -> AppConfig:
        """
        Load configuration from YAML file with optional environment overlay.

        Loading flow:
        1. Load .env file (if exists)
        2. Load base YAML
        3. Deep merge config.{env}.yaml (if env specified and file exists)
        4. Substitute environment variables
        5. Fill empty credentials from API_KEY / API_SECRET
        6. Validate with pydantic

        Args:
            path: Path to base configuration file
            env: Optional environment name (development, production, ...)

        Returns:
            Validated AppConfig instance

        Raises:
            ConfigFileNotFoundError: If base config file not found
            ConfigParseError: If YAML parsing fails
            ConfigValidationError: If pydantic validation fails
        """
        path = Path(path)

        self._load_env_file(path.parent)

        config = self.load_yaml(path)

        if env:
            env_config_path = path.parent / f"{path.stem}.{env}{path.suffix}"
            if env_config_path.exists():
                config = self.merge_configs(config, self.load_yaml(env_config_path))
                logger.info(f"Applied {env} overlay from {env_config_path}")

        config = process_value(config)
        config = self._apply_credential_fallback(config)

        try:
            return AppConfig.from_dict(config)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise ConfigValidationError(errors) from e
        except (TypeError, ValueError) as e:
            raise ConfigValidationError([str(e)]) from e

    def load_yaml(self, path: str | Path) -> dict[str, Any]:
        """
        Load a YAML configuration file.

        Args:
            path: Path to YAML file

        Returns:
            Parsed YAML as dictionary

        Raises:
            ConfigFileNotFoundError: If file not found
            ConfigParseError: If YAML parsing fails or the root is not a mapping
        """
        path = Path(path)

        if not path.exists():
            raise ConfigFileNotFoundError(str(path))

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigParseError(str(path), str(e)) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigParseError(str(path), "top-level YAML value must be a mapping")
        return data

    def merge_configs(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Deep merge two configuration dictionaries.

        Override values take precedence. Nested dictionaries are merged recursively.

        Args:
            base: Base configuration dictionary
            override: Override configuration dictionary

        Returns:
            Merged configuration dictionary

        Example:
            >>> base = {"strategy": {"symbol": "BTCUSDT", "interval": "15m"}}
            >>> override = {"strategy": {"symbol": "ETHUSDT"}}
            >>> loader.merge_configs(base, override)
            {'strategy': {'symbol': 'ETHUSDT', 'interval': '15m'}}
        """
        result = deepcopy(base)

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self.merge_configs(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def _apply_credential_fallback(self, data: dict[str, Any]) -> dict[str, Any]:
        exchange = dict(data.get("exchange") or {})
        for field_name, env_var in CREDENTIAL_ENV_VARS.items():
            if not exchange.get(field_name) and os.environ.get(env_var):
                exchange[field_name] = os.environ[env_var]
        return {**data, "exchange": exchange}

    def _load_env_file(self, config_dir: Path) -> None:
        if self._loaded_env:
            return

        candidates = []
        if self._env_file:
            candidates.append(self._env_file)
        candidates.extend([
            config_dir / ".env",
            config_dir.parent / ".env",
            Path.cwd() / ".env",
        ])

        for env_path in candidates:
            if env_path.exists():
                load_dotenv(env_path)
                self._loaded_env = True
                logger.debug(f"Loaded environment from {env_path}")
                return


def load_config(
    path: str | Path,
    env: Optional[str] = None,
    env_file: Optional[str | Path] = None,
) -> AppConfig:
    """
    Load configuration from YAML file.

    Convenience function that creates a ConfigLoader and loads configuration.

    Args:
        path: Path to base configuration file
        env: Optional environment name
        env_file: Optional path to .env file

    Returns:
        Validated AppConfig instance
    """
    loader = ConfigLoader(env_file=env_file)
    return loader.load(path, env=env)

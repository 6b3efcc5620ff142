"""
Base Configuration Model.

Environment variable substitution shared by the loader and every config
model, plus secret masking for display.
"""

import os
import re
from typing import Any, ClassVar, Set

from pydantic import BaseModel, ConfigDict, model_validator


# Pattern for environment variable substitution: ${VAR} or ${VAR:default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def convert_scalar(value: str) -> Any:
    """
    Convert an environment string to bool, int or float where it looks like one.

    Args:
        value: Raw string from the environment

    Returns:
        Converted value, or the original string
    """
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False

    try:
        float_val = float(value)
    except ValueError:
        return value

    if float_val.is_integer() and "." not in value and "e" not in lowered:
        return int(float_val)
    return value


def substitute_env_vars(value: str) -> Any:
    """
    Substitute environment variables in a string.

    A value that is exactly one ${VAR} reference is type-converted
    (see convert_scalar). Embedded references are replaced textually.
    A reference without a default whose variable is unset becomes "".

    Args:
        value: String potentially containing env var references

    Returns:
        Substituted value

    Example:
        >>> os.environ["BOT_LEVERAGE"] = "10"
        >>> substitute_env_vars("${BOT_LEVERAGE:5}")
        10
    """
    full_match = ENV_VAR_PATTERN.fullmatch(value)
    if full_match:
        var_name, default = full_match.groups()
        env_value = os.environ.get(var_name, default)
        if env_value is None:
            return ""
        return convert_scalar(env_value)

    def replace_match(match: re.Match) -> str:
        var_name, default = match.groups()
        return os.environ.get(var_name, default if default is not None else "")

    return ENV_VAR_PATTERN.sub(replace_match, value)


def process_value(value: Any) -> Any:
    """
    Recursively substitute env vars in dicts, lists and strings.

    Args:
        value: Value to process

    Returns:
        Processed value
    """
    if isinstance(value, str):
        return substitute_env_vars(value)
    elif isinstance(value, dict):
        return {k: process_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [process_value(item) for item in value]
    return value


class BaseConfig(BaseModel):
    """
    Base configuration model with common functionality.

    Features:
    - Environment variable substitution: ${VAR} or ${VAR:default}
    - Sensitive field masking for display
    - Immutable (frozen)

    Example:
        >>> class MyConfig(BaseConfig):
        ...     api_key: str
        ...     symbol: str = "BTCUSDT"
        ...
        >>> config = MyConfig(api_key="${API_KEY:default_key}")
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        validate_default=True,
        str_strip_whitespace=True,
    )

    _sensitive_fields: ClassVar[Set[str]] = {
        "api_key",
        "api_secret",
        "secret",
        "password",
        "token",
    }

    @model_validator(mode="before")
    @classmethod
    def substitute_environment_variables(cls, data: Any) -> Any:
        """Substitute environment variables in all string values."""
        if isinstance(data, dict):
            return process_value(data)
        return data

    def masked_dict(self) -> dict[str, Any]:
        """
        Get dictionary with sensitive fields masked.

        Returns:
            Dict with sensitive values replaced by '***'
        """
        return self._mask_sensitive(self.model_dump(mode="json"))

    def _mask_sensitive(self, data: dict[str, Any]) -> dict[str, Any]:
        result = {}
        for key, value in data.items():
            if self._is_sensitive_field(key) and value:
                result[key] = "***"
            elif isinstance(value, dict):
                result[key] = self._mask_sensitive(value)
            else:
                result[key] = value
        return result

    def _is_sensitive_field(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self._sensitive_fields)

    def __repr__(self) -> str:
        """Return repr with masked sensitive fields."""
        masked = self.masked_dict()
        fields = ", ".join(f"{k}={v!r}" for k, v in masked.items())
        return f"{self.__class__.__name__}({fields})"

    def __str__(self) -> str:
        return self.__repr__()

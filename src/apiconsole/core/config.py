"""Configuration management for apiconsole.

Configuration is an explicit value passed to the request orchestrator per
call; nothing here is a module-level singleton.

Resolution order (later wins):
    1. Model defaults
    2. YAML file (apiconsole.yaml in the working directory, if present)
    3. Environment variables (APICONSOLE_*), including values from .env
    4. Explicit overrides (e.g., CLI options)
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..openapi.examples import ExampleMode
from .env_vars import load_env_file, substitute_env_vars
from .errors import ConfigError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "apiconsole.yaml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "APICONSOLE_SPEC": "spec_source",
    "APICONSOLE_BASE_URL": "base_url",
    "APICONSOLE_AUTH_TOKEN": "auth_token",
    "APICONSOLE_TIMEOUT": "timeout",
    "APICONSOLE_STATE_DIR": "state_dir",
}


class ConsoleConfig(BaseModel):
    """Settings for one console session."""

    spec_source: Optional[str] = None
    base_url: Optional[str] = None
    auth_token: Optional[str] = None  # legacy single global bearer token
    timeout: float = 30.0
    state_dir: Path = Path(".apiconsole")
    default_headers: dict[str, str] = Field(
        default_factory=lambda: {"Content-Type": "application/json"}
    )
    example_mode: ExampleMode = ExampleMode.RANDOM

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.rstrip("/") or None

    @field_validator("auth_token")
    @classmethod
    def blank_token_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def credentials_path(self) -> Path:
        return self.state_dir / "credentials.json"

    @property
    def token_path(self) -> Path:
        return self.state_dir / "token.json"

    @property
    def history_path(self) -> Path:
        return self.state_dir / "history.json"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML config file.

    Raises:
        ConfigError: If file cannot be read or YAML is invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid YAML in {path}: expected dictionary, got {type(data).__name__}"
        )
    return data


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ConsoleConfig:
    """Build a ConsoleConfig from file, environment and overrides.

    Args:
        path: YAML config file. If None, apiconsole.yaml in the working
            directory is used when it exists.
        overrides: Explicit values that win over everything else. None values
            are ignored so CLI options can be passed through unconditionally.

    Returns:
        Validated ConsoleConfig

    Raises:
        ConfigError: If the file is invalid or a value fails validation

    Example:
        >>> config = load_config(overrides={"base_url": "https://petstore.example.com"})
        >>> config.timeout
        30.0
    """
    load_env_file()

    raw: dict[str, Any] = {}
    if path is not None:
        raw = load_yaml(path)
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_FILE
        if default_path.exists():
            raw = load_yaml(default_path)

    raw = substitute_env_vars(raw)

    for env_name, field_name in ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value is not None:
            logger.debug(f"Config field '{field_name}' taken from {env_name}")
            raw[field_name] = env_value

    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    try:
        return ConsoleConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

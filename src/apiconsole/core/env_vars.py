"""${VAR} placeholders in config files and the credential store.

Secrets can stay in the environment (or a .env file) while the files on
disk only name them:

    {"api_key": {"value": "${PETSTORE_API_KEY}"}}
    base_url: ${PETSTORE_URL:-http://localhost:8080}
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .logging import get_logger

logger = get_logger(__name__)

# ${NAME} or ${NAME:-fallback}
PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def load_env_file(env_file: Optional[Path] = None) -> bool:
    """Load a .env file (default: ./.env) without overriding set variables.

    Returns:
        True if a file was loaded
    """
    path = env_file if env_file is not None else Path.cwd() / ".env"
    if not path.is_file():
        return False

    logger.debug(f"Loading environment from {path}")
    load_dotenv(path, override=False)
    return True


def substitute_env_vars(value: Any) -> Any:
    """Resolve placeholders in strings nested anywhere in dicts and lists.

    ${NAME:-fallback} uses the fallback when NAME is unset. Every unset name
    without a fallback is reported in a single error.

    Raises:
        ConfigError: If any placeholder has no value

    Example:
        >>> os.environ["PETSTORE_KEY"] = "secret123"
        >>> substitute_env_vars({"api_key": {"value": "${PETSTORE_KEY}"}})
        {'api_key': {'value': 'secret123'}}
    """
    missing: list[str] = []
    resolved = _substitute(value, missing)
    if missing:
        names = ", ".join(dict.fromkeys(missing))
        raise ConfigError(
            f"Environment variable(s) not set: {names}. "
            f"Set them in your environment or .env file."
        )
    return resolved


def _substitute(value: Any, missing: list[str]) -> Any:
    if isinstance(value, str):

        def replace(match: re.Match) -> str:
            name, fallback = match.group(1), match.group(2)
            env_value = os.environ.get(name, fallback)
            if env_value is None:
                missing.append(name)
                return match.group(0)
            return env_value

        return PLACEHOLDER_PATTERN.sub(replace, value)
    if isinstance(value, dict):
        return {key: _substitute(item, missing) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute(item, missing) for item in value]
    return value

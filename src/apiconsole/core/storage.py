"""File-backed stores for credentials, the legacy token and request history.

Each store keeps one JSON document on disk. The interpreter only reads and
writes through these mappings; nothing else touches the files.
"""

import json
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..openapi.credentials import validate_credential
from ..openapi.models import SecuritySchemeDef
from .env_vars import substitute_env_vars
from .errors import InvalidCredentialError, StorageError
from .logging import get_logger
from .models import Credential, EndpointHistory, HistoryEntry, HistoryRequest, TransportResponse

logger = get_logger(__name__)

HISTORY_LIMIT = 10


def endpoint_key(path: str, method: str) -> str:
    """History key for an endpoint: METHOD:path-template."""
    return f"{method.upper()}:{path}"


def _read_json(path: Path) -> Any:
    """Read a JSON file; a missing file reads as None."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise StorageError(f"Corrupt JSON in {path}: {e}") from e
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


# ============================================================================
# Credentials
# ============================================================================


class CredentialStore:
    """Credentials keyed by security scheme name.

    Stored as {"schemeName": {"value": ..., "username": ..., "accessToken": ...}}.
    String values may contain ${VAR} placeholders resolved from the environment
    on load.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load_raw(self) -> dict[str, Any]:
        data = _read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageError(f"Credential store {self.path} must contain a JSON object")
        return data

    def load(self) -> dict[str, Credential]:
        """Load all credentials, resolving environment placeholders."""
        credentials = {}
        for name, raw in substitute_env_vars(self._load_raw()).items():
            if not isinstance(raw, dict):
                logger.warning(f"Ignoring malformed credential entry '{name}'")
                continue
            try:
                credentials[name] = Credential.model_validate(raw)
            except ValidationError as e:
                raise StorageError(f"Invalid credential entry '{name}': {e}") from e
        return credentials

    def save(
        self,
        credentials: dict[str, Credential],
        registry: dict[str, SecuritySchemeDef],
    ) -> None:
        """Validate and persist credentials, replacing the stored set.

        Every credential that carries any data and belongs to a declared
        scheme must validate; otherwise nothing is written.

        Raises:
            InvalidCredentialError: If any credential is incomplete
        """
        errors: dict[str, list[str]] = {}
        for name, credential in credentials.items():
            scheme = registry.get(name)
            if scheme is None or not credential.has_data():
                continue
            result = validate_credential(credential, scheme)
            if not result.is_valid:
                errors[name] = result.errors

        if errors:
            raise InvalidCredentialError(errors)

        _write_json(
            self.path,
            {
                name: credential.to_store()
                for name, credential in credentials.items()
                if credential.has_data()
            },
        )
        logger.info(f"Saved {len(credentials)} credentials to {self.path}")

    def set(
        self,
        name: str,
        credential: Credential,
        registry: dict[str, SecuritySchemeDef],
    ) -> None:
        """Validate and store one credential, leaving the others untouched.

        Placeholders in the other entries are preserved as written.

        Raises:
            InvalidCredentialError: If the credential is incomplete
        """
        scheme = registry.get(name)
        if scheme is not None:
            result = validate_credential(credential, scheme)
            if not result.is_valid:
                raise InvalidCredentialError({name: result.errors})
        else:
            logger.warning(f"Storing credential for undeclared scheme '{name}'")

        raw = self._load_raw()
        raw[name] = credential.to_store()
        _write_json(self.path, raw)

    def clear(self, name: str) -> bool:
        """Remove one credential. Returns True if it existed."""
        raw = self._load_raw()
        if name not in raw:
            return False
        del raw[name]
        _write_json(self.path, raw)
        return True


# ============================================================================
# Legacy token
# ============================================================================


class TokenStore:
    """The legacy single global bearer token."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        data = _read_json(self.path)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StorageError(f"Token store {self.path} must contain a JSON object")
        token = data.get("authToken")
        return token if isinstance(token, str) and token.strip() else None

    def set(self, token: Optional[str]) -> None:
        """Store the token; a blank token clears it."""
        if token is None or not token.strip():
            self.clear()
            return
        _write_json(self.path, {"authToken": token.strip()})

    def clear(self) -> None:
        if self.path.exists():
            try:
                self.path.unlink()
            except OSError as e:
                raise StorageError(f"Failed to remove {self.path}: {e}") from e


# ============================================================================
# History
# ============================================================================


class HistoryStore:
    """Per-endpoint request history, newest first, capped at HISTORY_LIMIT."""

    def __init__(self, path: Path, limit: int = HISTORY_LIMIT):
        self.path = Path(path)
        self.limit = limit

    def _load_all(self) -> dict[str, EndpointHistory]:
        data = _read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageError(f"History store {self.path} must contain a JSON object")
        try:
            return {key: EndpointHistory.model_validate(value) for key, value in data.items()}
        except ValidationError as e:
            raise StorageError(f"Invalid history data in {self.path}: {e}") from e

    def _save_all(self, histories: dict[str, EndpointHistory]) -> None:
        _write_json(
            self.path,
            {key: history.model_dump(mode="json") for key, history in histories.items()},
        )

    def record(
        self,
        key: str,
        request: HistoryRequest,
        response: TransportResponse,
    ) -> HistoryEntry:
        """Prepend an entry for an endpoint and trim to the limit."""
        histories = self._load_all()
        history = histories.get(key) or EndpointHistory()

        entry = HistoryEntry(request=request, response=response)
        history.last_request = request
        history.last_response = response
        history.history = [entry] + history.history[: self.limit - 1]

        histories[key] = history
        self._save_all(histories)
        logger.debug(f"Recorded history entry for {key}")
        return entry

    def get(self, key: str) -> EndpointHistory:
        return self._load_all().get(key) or EndpointHistory()

    def latest(self, key: str) -> Optional[HistoryEntry]:
        history = self.get(key).history
        return history[0] if history else None

    def clear(self, key: Optional[str] = None) -> None:
        """Clear one endpoint's history, or everything when key is None."""
        if key is None:
            self._save_all({})
            return
        histories = self._load_all()
        if histories.pop(key, None) is not None:
            self._save_all(histories)

"""Exception hierarchy for apiconsole.

This module defines the taxonomy of failures the console can surface. Most
problems with an OpenAPI document are *not* raised: missing or malformed
sections degrade to empty collections with a logged warning. The classes
below cover the cases that must reach the caller.

All custom exceptions inherit from ApiConsoleError, making it easy to catch
every apiconsole-specific error in a single except clause.
"""

from typing import Any, Optional


class ApiConsoleError(Exception):
    """Base exception for all apiconsole errors.

    Example:
        try:
            orchestrator.execute(endpoint, form)
        except ApiConsoleError as e:
            print(f"apiconsole error: {e}")
    """

    pass


class ConfigError(ApiConsoleError):
    """Configuration-related errors.

    Raised when:
    - The YAML config file cannot be read or has invalid syntax
    - A field value fails validation (e.g., negative timeout)
    - A referenced environment variable is not set

    Examples:
        - "Invalid YAML syntax in apiconsole.yaml: ..."
        - "Environment variable 'PETSTORE_KEY' not set"
    """

    pass


class DocumentError(ApiConsoleError):
    """The OpenAPI document could not be loaded at all.

    Raised when:
    - The document file is missing or unreadable
    - The URL cannot be fetched
    - The content is not JSON/YAML or not a mapping

    Note: A document that loads but has missing/odd sections (no paths,
    no components) is not an error; those sections are treated as empty.
    """

    pass


class UnresolvedReferenceError(ApiConsoleError):
    """A $ref pointer does not resolve against the schema registry.

    Raised only by an ExampleGenerator created with strict=True; the default
    generator logs a warning and synthesizes None.
    """

    def __init__(self, ref: str):
        super().__init__(f"Unresolved schema reference: {ref}")
        self.ref = ref


class InvalidCredentialError(ApiConsoleError):
    """One or more credentials failed validation and were not saved.

    Attributes:
        errors: Mapping of scheme name to the list of field-level messages

    Examples:
        - {"basicAuth": ["Password is required"]}
        - {"petstore_auth": ["Access token is required"]}
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        details = "; ".join(
            f"{name}: {', '.join(messages)}" for name, messages in errors.items()
        )
        super().__init__(f"Invalid credentials - {details}")


class StorageError(ApiConsoleError):
    """Credential, token or history files are corrupt or cannot be written."""

    pass


class TransportError(ApiConsoleError):
    """HTTP call failed at execution time.

    Raised for non-2xx responses (with the full response attached) and for
    network failures (status 0, status text "Network Error"). Never retried
    automatically; re-submitting is up to the user.

    Attributes:
        response: TransportResponse describing the failure
    """

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.response = response

    @property
    def status(self) -> int:
        return self.response.status if self.response is not None else 0

    @property
    def status_text(self) -> str:
        return self.response.status_text if self.response is not None else "Network Error"

    @property
    def headers(self) -> dict[str, str]:
        return dict(self.response.headers) if self.response is not None else {}

    @property
    def data(self) -> Any:
        return self.response.data if self.response is not None else {"error": str(self)}

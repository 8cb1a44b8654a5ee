"""apiconsole - an interactive console for OpenAPI/Swagger documents.

apiconsole reads an OpenAPI 3.x or Swagger 2.0 document, works out which
security schemes each operation needs, applies stored credentials to
concrete requests and sends them, keeping a short per-operation history.

Basic Usage:
    >>> from apiconsole import OpenAPISpec, RequestOrchestrator, RequestsTransport
    >>> from apiconsole import load_config, CredentialStore, RequestForm
    >>>
    >>> config = load_config()
    >>> spec = OpenAPISpec.load("petstore.yaml")
    >>> orchestrator = RequestOrchestrator.from_spec(
    ...     spec,
    ...     config,
    ...     RequestsTransport(timeout=config.timeout),
    ...     credentials=CredentialStore(config.credentials_path).load(),
    ... )
    >>> endpoint = spec.get_endpoint("/pets/{petId}", "GET")
    >>> response = orchestrator.execute(endpoint, RequestForm(path_params={"petId": "1"}))

Public API:
    Documents:
        - OpenAPISpec: Load and query an OpenAPI/Swagger document
        - EndpointInfo: One operation
        - SecuritySchemeDef: One declared security scheme

    Security:
        - resolve_operation_security: Effective requirement for an operation
        - requires_auth: Whether an operation needs authentication
        - apply_credentials: Apply credentials onto a request descriptor

    Execution:
        - RequestOrchestrator: Build and send authenticated requests
        - RequestsTransport: HTTP transport backed by requests

    Storage:
        - CredentialStore, TokenStore, HistoryStore

    Errors:
        - ApiConsoleError: Base for every error raised here
"""

from .core.config import ConsoleConfig, load_config
from .core.errors import (
    ApiConsoleError,
    ConfigError,
    DocumentError,
    InvalidCredentialError,
    StorageError,
    TransportError,
    UnresolvedReferenceError,
)
from .core.models import Credential, RequestDescriptor, RequestForm, TransportResponse
from .core.storage import CredentialStore, HistoryStore, TokenStore
from .execution import RequestOrchestrator, RequestsTransport, Transport, prefill_form
from .openapi import (
    EndpointInfo,
    ExampleGenerator,
    ExampleMode,
    OpenAPISpec,
    SecuritySchemeDef,
    apply_credentials,
    requires_auth,
    resolve_operation_security,
)
from .version import __version__

__all__ = [
    # Version
    "__version__",
    # Documents
    "OpenAPISpec",
    "EndpointInfo",
    "SecuritySchemeDef",
    # Security
    "resolve_operation_security",
    "requires_auth",
    "apply_credentials",
    # Examples
    "ExampleGenerator",
    "ExampleMode",
    # Execution
    "RequestOrchestrator",
    "Transport",
    "RequestsTransport",
    "prefill_form",
    # Models
    "Credential",
    "RequestDescriptor",
    "RequestForm",
    "TransportResponse",
    # Config and storage
    "ConsoleConfig",
    "load_config",
    "CredentialStore",
    "TokenStore",
    "HistoryStore",
    # Errors
    "ApiConsoleError",
    "ConfigError",
    "DocumentError",
    "InvalidCredentialError",
    "StorageError",
    "TransportError",
    "UnresolvedReferenceError",
]

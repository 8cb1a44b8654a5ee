"""Request orchestration.

Composes the path codec, security resolution and credential application
into one RequestDescriptor, falls back to the legacy global bearer token
when nothing else authenticated an operation that needs it, and hands the
result to the transport.
"""

from dataclasses import dataclass
from typing import Optional

from ..core.config import ConsoleConfig
from ..core.errors import TransportError
from ..core.logging import get_logger
from ..core.models import (
    Credential,
    HistoryRequest,
    RequestDescriptor,
    RequestForm,
    TransportResponse,
)
from ..core.storage import HistoryStore
from ..openapi.credentials import AUTHORIZATION, AuthOutcome, apply_credentials
from ..openapi.models import EndpointInfo, SecurityRequirement, SecuritySchemeDef
from ..openapi.parser import OpenAPISpec
from ..openapi.paths import build_concrete_path, clean_query, instantiate_path
from ..openapi.security import requires_auth, resolve_operation_security
from .transport import Transport

logger = get_logger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}

REDACTED = "***"


@dataclass
class PreparedRequest:
    """A descriptor ready for the transport plus how it was authenticated."""

    descriptor: RequestDescriptor
    concrete_path: str
    """Concrete path with the form's query string, as recorded in history"""

    auth: AuthOutcome
    requires_auth: bool
    used_legacy_token: bool = False

    def history_request(self) -> HistoryRequest:
        """History view of the request with secret header values masked."""
        secret = set(self.auth.written_headers)
        if self.used_legacy_token:
            secret.add(AUTHORIZATION)
        headers = {
            name: REDACTED if name in secret else value
            for name, value in self.descriptor.headers.items()
        }
        return HistoryRequest(
            path=self.concrete_path,
            method=self.descriptor.method,
            body=self.descriptor.body,
            headers=headers,
        )


class RequestOrchestrator:
    """Builds and executes authenticated requests for document operations.

    Example:
        >>> spec = OpenAPISpec.from_file("petstore.yaml")
        >>> orchestrator = RequestOrchestrator.from_spec(
        ...     spec, config, RequestsTransport(), credentials=store.load()
        ... )
        >>> endpoint = spec.get_endpoint("/pets/{petId}", "GET")
        >>> response = orchestrator.execute(endpoint, RequestForm(path_params={"petId": "1"}))
    """

    def __init__(
        self,
        config: ConsoleConfig,
        transport: Transport,
        credentials: Optional[dict[str, Credential]] = None,
        registry: Optional[dict[str, SecuritySchemeDef]] = None,
        global_security: Optional[SecurityRequirement] = None,
    ):
        self.config = config
        self.transport = transport
        self.credentials = credentials or {}
        self.registry = registry or {}
        self.global_security = global_security or []

    @classmethod
    def from_spec(
        cls,
        spec: OpenAPISpec,
        config: ConsoleConfig,
        transport: Transport,
        credentials: Optional[dict[str, Credential]] = None,
    ) -> "RequestOrchestrator":
        return cls(
            config=config,
            transport=transport,
            credentials=credentials,
            registry=spec.get_security_schemes(),
            global_security=spec.get_global_security(),
        )

    def build_request(
        self, endpoint: EndpointInfo, form: Optional[RequestForm] = None
    ) -> PreparedRequest:
        """Build the descriptor for one operation call without sending it."""
        form = form or RequestForm()
        method = endpoint.method.upper()

        path = instantiate_path(endpoint.path, form.path_params)
        base_url = self.config.base_url or ""
        descriptor = RequestDescriptor(
            url=f"{base_url}{path}",
            method=method,
            headers=dict(self.config.default_headers),
            query=clean_query(form.query_params),
            body=form.body if method in BODY_METHODS else None,
        )

        requirement = resolve_operation_security(endpoint, self.global_security)
        outcome = apply_credentials(descriptor, self.credentials, self.registry, requirement)
        needs_auth = requires_auth(endpoint, self.global_security)

        prepared = PreparedRequest(
            descriptor=descriptor,
            concrete_path=build_concrete_path(
                endpoint.path, form.path_params, form.query_params
            ),
            auth=outcome,
            requires_auth=needs_auth,
        )

        if needs_auth and not outcome.applied:
            if self.config.auth_token:
                descriptor.headers[AUTHORIZATION] = f"Bearer {self.config.auth_token}"
                prepared.used_legacy_token = True
                logger.debug(f"Using legacy bearer token for {endpoint}")
            else:
                logger.warning(
                    f"{endpoint.method} {endpoint.path} requires authentication "
                    f"but no credentials could be applied"
                )

        return prepared

    def execute(
        self,
        endpoint: EndpointInfo,
        form: Optional[RequestForm] = None,
        history: Optional[HistoryStore] = None,
    ) -> TransportResponse:
        """Build, send and (optionally) record one operation call.

        Raises:
            TransportError: If the call fails at the transport
        """
        return self.send(endpoint, self.build_request(endpoint, form), history=history)

    def send(
        self,
        endpoint: EndpointInfo,
        prepared: PreparedRequest,
        history: Optional[HistoryStore] = None,
    ) -> TransportResponse:
        """Send a prepared request. Failed calls are recorded too, then re-raised."""
        try:
            response = self.transport.execute(prepared.descriptor)
        except TransportError as e:
            logger.info(f"{endpoint.method} {prepared.concrete_path} failed: {e}")
            if history is not None:
                failure = e.response or TransportResponse(
                    status=e.status, status_text=e.status_text, data=e.data
                )
                history.record(endpoint.key, prepared.history_request(), failure)
            raise

        if history is not None:
            history.record(endpoint.key, prepared.history_request(), response)
        return response

"""Data models for OpenAPI document interpretation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# A security requirement is an ordered list of alternatives; each alternative
# maps scheme name -> required scopes. [] means "no security"; an alternative
# {} means "anonymous access allowed on this branch".
SecurityRequirement = list[dict[str, list[str]]]


class SchemeKind(str, Enum):
    """Security scheme kinds. UNKNOWN covers any other declared type."""

    API_KEY = "apiKey"
    HTTP = "http"
    OAUTH2 = "oauth2"
    OPENID_CONNECT = "openIdConnect"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> "SchemeKind":
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == raw:
                return kind
        return cls.UNKNOWN


class FlowKind(str, Enum):
    """OAuth2 flow types (OpenAPI 3 naming)."""

    AUTHORIZATION_CODE = "authorizationCode"
    IMPLICIT = "implicit"
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "clientCredentials"


class HttpScheme(str, Enum):
    BASIC = "basic"
    BEARER = "bearer"
    DIGEST = "digest"


class ApiKeyLocation(str, Enum):
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


@dataclass(frozen=True)
class ScopeInfo:
    """One OAuth2 scope and its description."""

    scope: str
    description: str


@dataclass(frozen=True)
class OAuthFlow:
    """A single OAuth2 flow declaration."""

    authorization_url: Optional[str] = None
    token_url: Optional[str] = None
    refresh_url: Optional[str] = None
    scopes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SecuritySchemeDef:
    """Normalized security scheme, immutable once parsed.

    Represents one entry of components.securitySchemes (OpenAPI 3) or
    securityDefinitions (Swagger 2).
    """

    name: str
    """Scheme name (as declared in the document)"""

    kind: SchemeKind
    """Normalized scheme kind"""

    raw_type: Optional[str] = None
    """Declared type, verbatim (kept so unsupported kinds can be reported)"""

    description: str = ""

    location: Optional[str] = None
    """API key location (query, header, cookie) - for kind=apiKey"""

    parameter_name: Optional[str] = None
    """Header/query/cookie name carrying the API key - for kind=apiKey"""

    http_scheme: Optional[str] = None
    """HTTP authentication scheme (basic, bearer, digest) - for kind=http"""

    bearer_format: Optional[str] = None
    """Format hint for bearer tokens (e.g., JWT)"""

    flows: dict[FlowKind, OAuthFlow] = field(default_factory=dict)
    """OAuth2 flows - for kind=oauth2"""

    scopes: tuple[ScopeInfo, ...] = ()
    """Union of scopes across all flows, de-duplicated, in first-seen order"""

    open_id_connect_url: Optional[str] = None
    """OpenID Connect discovery URL - for kind=openIdConnect"""

    @property
    def is_supported(self) -> bool:
        return self.kind is not SchemeKind.UNKNOWN

    def __str__(self) -> str:
        if self.kind is SchemeKind.HTTP:
            return f"{self.name}: HTTP {self.http_scheme or 'auth'}"
        elif self.kind is SchemeKind.API_KEY:
            return f"{self.name}: API Key in {self.location} ({self.parameter_name})"
        elif self.kind is SchemeKind.UNKNOWN:
            return f"{self.name}: unsupported type '{self.raw_type}'"
        else:
            return f"{self.name}: {self.kind.value}"


@dataclass
class EndpointInfo:
    """Information about a single API operation (path + method).

    A read-only view derived from the document and supplied by the caller
    per call; the interpreter never owns it.
    """

    path: str
    """Path template (e.g., /users/{id})"""

    method: str
    """HTTP method, upper case"""

    summary: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    parameters: list[dict[str, Any]] = field(default_factory=list)
    """Parameter objects (path-level merged with operation-level)"""

    request_body_schema: Optional[dict[str, Any]] = None
    """Schema of the JSON request body, if any"""

    security: Optional[SecurityRequirement] = None
    """Operation-level security; None when the field is absent"""

    deprecated: bool = False

    operation: dict[str, Any] = field(default_factory=dict)
    """The raw operation object"""

    @property
    def key(self) -> str:
        """History key for this endpoint: METHOD:path-template."""
        return f"{self.method.upper()}:{self.path}"

    def query_parameters(self) -> list[dict[str, Any]]:
        return [p for p in self.parameters if p.get("in") == "query"]

    def __str__(self) -> str:
        summary = f" - {self.summary}" if self.summary else ""
        return f"{self.method.upper()} {self.path}{summary}"


@dataclass
class OpenAPIInfo:
    """General information about the API."""

    title: str
    version: str
    description: Optional[str] = None
    spec_version: str = "3.0.0"
    servers: list[dict[str, Any]] = field(default_factory=list)
    tags: list[dict[str, Any]] = field(default_factory=list)
    external_docs: Optional[dict[str, Any]] = None

    def get_base_url(self) -> Optional[str]:
        """Get the first server URL, if available."""
        if self.servers:
            return self.servers[0].get("url")
        return None

    def __str__(self) -> str:
        return f"{self.title} v{self.version} (OpenAPI {self.spec_version})"

"""OpenAPI specification interpretation.

This package turns a loosely-typed OpenAPI/Swagger document into:
- a security scheme registry and per-operation security requirements
- credentials applied onto concrete requests
- concrete paths from path templates (and back)
- synthetic example payloads from schemas
"""

from .credentials import AuthOutcome, ValidationResult, apply_credentials, validate_credential
from .examples import ExampleGenerator, ExampleMode
from .models import (
    EndpointInfo,
    FlowKind,
    OAuthFlow,
    OpenAPIInfo,
    SchemeKind,
    ScopeInfo,
    SecurityRequirement,
    SecuritySchemeDef,
)
from .parser import OpenAPISpec
from .paths import (
    build_concrete_path,
    extract_path_params,
    extract_query,
    instantiate_path,
    path_parameter_names,
)
from .security import (
    get_global_security,
    parse_security_schemes,
    requires_auth,
    resolve_operation_security,
)

__all__ = [
    "OpenAPISpec",
    "EndpointInfo",
    "OpenAPIInfo",
    "SecuritySchemeDef",
    "SecurityRequirement",
    "SchemeKind",
    "FlowKind",
    "OAuthFlow",
    "ScopeInfo",
    "parse_security_schemes",
    "get_global_security",
    "resolve_operation_security",
    "requires_auth",
    "apply_credentials",
    "validate_credential",
    "AuthOutcome",
    "ValidationResult",
    "instantiate_path",
    "extract_path_params",
    "extract_query",
    "build_concrete_path",
    "path_parameter_names",
    "ExampleGenerator",
    "ExampleMode",
]

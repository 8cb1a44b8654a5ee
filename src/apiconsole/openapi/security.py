"""Security scheme registry and security requirement resolution.

Reads the reusable security scheme declarations of an OpenAPI 3 or Swagger 2
document into normalized SecuritySchemeDef objects, and decides which
requirement applies to a given operation.

The resolution rule is override, not merge: an operation that declares a
security field at all (even an empty list, meaning "public") uses that value
verbatim; only an absent field inherits the document default.
"""

from typing import Any, Union

from ..core.logging import get_logger
from .models import (
    EndpointInfo,
    FlowKind,
    HttpScheme,
    OAuthFlow,
    SchemeKind,
    ScopeInfo,
    SecurityRequirement,
    SecuritySchemeDef,
)

logger = get_logger(__name__)

# Swagger 2 flow names -> OpenAPI 3 flow kinds
SWAGGER2_FLOWS = {
    "implicit": FlowKind.IMPLICIT,
    "password": FlowKind.PASSWORD,
    "application": FlowKind.CLIENT_CREDENTIALS,
    "accessCode": FlowKind.AUTHORIZATION_CODE,
}


def parse_security_schemes(document: dict[str, Any]) -> dict[str, SecuritySchemeDef]:
    """Build the security scheme registry for a document.

    Args:
        document: Parsed OpenAPI/Swagger document

    Returns:
        Mapping of scheme name to SecuritySchemeDef. Empty when the document
        declares no schemes (many documents have no auth at all).

    Example:
        >>> registry = parse_security_schemes(spec)
        >>> registry["api_key"].parameter_name
        'X-API-Key'
    """
    if not isinstance(document, dict):
        return {}

    components = document.get("components")
    declared = components.get("securitySchemes") if isinstance(components, dict) else None
    swagger2 = False
    if declared is None:
        declared = document.get("securityDefinitions")
        swagger2 = declared is not None

    if declared is None:
        return {}
    if not isinstance(declared, dict):
        logger.warning("Security scheme section is not a mapping; ignoring it")
        return {}

    registry: dict[str, SecuritySchemeDef] = {}
    for name, scheme_obj in declared.items():
        if not isinstance(scheme_obj, dict):
            logger.warning(f"Security scheme '{name}' is not an object; skipping")
            continue

        if swagger2:
            registry[name] = _parse_swagger2_scheme(name, scheme_obj)
        else:
            registry[name] = _parse_scheme(name, scheme_obj)

        if not registry[name].is_supported:
            logger.warning(
                f"Security scheme '{name}' has unsupported type "
                f"'{scheme_obj.get('type')}'"
            )

    logger.debug(f"Found {len(registry)} security schemes")
    return registry


def _parse_scheme(name: str, scheme_obj: dict[str, Any]) -> SecuritySchemeDef:
    raw_type = scheme_obj.get("type")
    kind = SchemeKind.parse(raw_type)
    common = {
        "name": name,
        "kind": kind,
        "raw_type": raw_type,
        "description": scheme_obj.get("description") or "",
    }

    if kind is SchemeKind.API_KEY:
        return SecuritySchemeDef(
            **common,
            location=scheme_obj.get("in"),
            parameter_name=scheme_obj.get("name"),
        )
    elif kind is SchemeKind.HTTP:
        return SecuritySchemeDef(
            **common,
            http_scheme=scheme_obj.get("scheme"),
            bearer_format=scheme_obj.get("bearerFormat"),
        )
    elif kind is SchemeKind.OAUTH2:
        flows = _parse_flows(name, scheme_obj.get("flows"))
        return SecuritySchemeDef(**common, flows=flows, scopes=collect_scopes(flows))
    elif kind is SchemeKind.OPENID_CONNECT:
        return SecuritySchemeDef(
            **common, open_id_connect_url=scheme_obj.get("openIdConnectUrl")
        )
    else:
        return SecuritySchemeDef(**common)


def _parse_swagger2_scheme(name: str, scheme_obj: dict[str, Any]) -> SecuritySchemeDef:
    raw_type = scheme_obj.get("type")
    description = scheme_obj.get("description") or ""

    if raw_type == "basic":
        return SecuritySchemeDef(
            name=name,
            kind=SchemeKind.HTTP,
            raw_type=raw_type,
            description=description,
            http_scheme=HttpScheme.BASIC.value,
        )

    if raw_type == "oauth2":
        flow_kind = SWAGGER2_FLOWS.get(scheme_obj.get("flow"))
        flows = {}
        if flow_kind is not None:
            flows[flow_kind] = OAuthFlow(
                authorization_url=scheme_obj.get("authorizationUrl"),
                token_url=scheme_obj.get("tokenUrl"),
                scopes=_scope_map(scheme_obj.get("scopes")),
            )
        else:
            logger.warning(
                f"Security scheme '{name}' has unknown OAuth2 flow "
                f"'{scheme_obj.get('flow')}'"
            )
        return SecuritySchemeDef(
            name=name,
            kind=SchemeKind.OAUTH2,
            raw_type=raw_type,
            description=description,
            flows=flows,
            scopes=collect_scopes(flows),
        )

    # apiKey (and anything unknown) share the OpenAPI 3 shape
    return _parse_scheme(name, scheme_obj)


def _parse_flows(name: str, flows_obj: Any) -> dict[FlowKind, OAuthFlow]:
    if not isinstance(flows_obj, dict):
        return {}

    flows: dict[FlowKind, OAuthFlow] = {}
    for flow_name, flow_obj in flows_obj.items():
        try:
            flow_kind = FlowKind(flow_name)
        except ValueError:
            logger.warning(f"Security scheme '{name}' has unknown OAuth2 flow '{flow_name}'")
            continue
        if not isinstance(flow_obj, dict):
            continue
        flows[flow_kind] = OAuthFlow(
            authorization_url=flow_obj.get("authorizationUrl"),
            token_url=flow_obj.get("tokenUrl"),
            refresh_url=flow_obj.get("refreshUrl"),
            scopes=_scope_map(flow_obj.get("scopes")),
        )
    return flows


def _scope_map(scopes: Any) -> dict[str, str]:
    if not isinstance(scopes, dict):
        return {}
    return {str(scope): "" if desc is None else str(desc) for scope, desc in scopes.items()}


def collect_scopes(flows: dict[FlowKind, OAuthFlow]) -> tuple[ScopeInfo, ...]:
    """Union of scopes across all flows, de-duplicated by (scope, description).

    Args:
        flows: OAuth2 flows of one scheme

    Returns:
        ScopeInfo entries in first-seen order
    """
    seen: dict[ScopeInfo, None] = {}
    for flow in flows.values():
        for scope, description in flow.scopes.items():
            seen.setdefault(ScopeInfo(scope=scope, description=description), None)
    return tuple(seen)


def get_global_security(document: dict[str, Any]) -> SecurityRequirement:
    """Return the document-level default security requirement ([] if absent)."""
    if not isinstance(document, dict) or "security" not in document:
        return []
    return normalize_requirement(document.get("security"))


def normalize_requirement(raw: Any) -> SecurityRequirement:
    """Coerce a declared security field into a SecurityRequirement.

    Malformed alternatives (non-mappings) are dropped with a warning;
    non-list scope values become empty scope lists.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(f"Security requirement is not a list: {raw!r}; treating as none")
        return []

    requirement: SecurityRequirement = []
    for alternative in raw:
        if not isinstance(alternative, dict):
            logger.warning(f"Ignoring malformed security alternative: {alternative!r}")
            continue
        requirement.append(
            {
                str(name): [str(s) for s in scopes] if isinstance(scopes, list) else []
                for name, scopes in alternative.items()
            }
        )
    return requirement


def resolve_operation_security(
    operation: Union[EndpointInfo, dict[str, Any]],
    global_security: SecurityRequirement,
) -> SecurityRequirement:
    """Determine the security requirement for one operation.

    Args:
        operation: EndpointInfo or raw operation object
        global_security: Document-level default

    Returns:
        The operation's own requirement when it declares one (including an
        explicitly empty list), otherwise the global default verbatim.

    Example:
        >>> resolve_operation_security({"security": []}, [{"api_key": []}])
        []
        >>> resolve_operation_security({}, [{"api_key": []}])
        [{'api_key': []}]
    """
    if isinstance(operation, EndpointInfo):
        declared = operation.security
        if declared is not None:
            return declared
        return global_security

    if isinstance(operation, dict) and "security" in operation:
        return normalize_requirement(operation["security"])
    return global_security


def requires_auth(
    operation: Union[EndpointInfo, dict[str, Any]],
    global_security: SecurityRequirement,
) -> bool:
    """True iff the operation cannot be called anonymously.

    The requirement must be non-empty and no alternative may be empty: an
    empty alternative means anonymous access is one of the accepted options.
    """
    requirement = resolve_operation_security(operation, global_security)
    if not requirement:
        return False
    return all(len(alternative) > 0 for alternative in requirement)

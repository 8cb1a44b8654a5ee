"""Credential application engine.

Given a resolved security requirement and the user's stored credentials,
writes the matching headers/query parameters onto a RequestDescriptor.

Alternatives are tried in document order. An alternative is used only when
every scheme in it can be satisfied; the first such alternative wins and all
of its schemes are applied onto the same descriptor (e.g., an API key header
plus a bearer token). When nothing can be satisfied the descriptor is left
untouched and the outcome reports applied=False; callers may then fall back
to a legacy bearer token.
"""

import base64
from dataclasses import dataclass, field
from typing import Optional

from ..core.logging import get_logger
from ..core.models import Credential, RequestDescriptor
from .models import (
    ApiKeyLocation,
    HttpScheme,
    SchemeKind,
    SecurityRequirement,
    SecuritySchemeDef,
)

logger = get_logger(__name__)

AUTHORIZATION = "Authorization"
COOKIE = "Cookie"


@dataclass
class ValidationResult:
    """Outcome of checking one credential against its scheme."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class AuthOutcome:
    """Result of applying credentials to a request descriptor."""

    descriptor: RequestDescriptor
    applied: bool = False
    alternative_index: Optional[int] = None
    """Index of the satisfied alternative within the requirement"""

    applied_schemes: list[str] = field(default_factory=list)
    written_headers: list[str] = field(default_factory=list)
    written_query: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_credential(
    credential: Optional[Credential], scheme: SecuritySchemeDef
) -> ValidationResult:
    """Check that a credential carries every field its scheme needs.

    Produces one human-readable message per missing field. Used to block
    saving incomplete credentials, and as the satisfiability test when
    applying them.

    Example:
        >>> validate_credential(Credential(username="alice"), basic_scheme)
        ValidationResult(is_valid=False, errors=['Password is required'])
    """
    credential = credential or Credential()
    errors: list[str] = []

    if scheme.kind is SchemeKind.API_KEY:
        if credential.get("value") is None:
            errors.append(f"{scheme.parameter_name or scheme.name} is required")
        if not scheme.parameter_name:
            errors.append(f"API key scheme '{scheme.name}' declares no parameter name")
        if scheme.location not in {loc.value for loc in ApiKeyLocation}:
            errors.append(f"Unsupported API key location: {scheme.location}")

    elif scheme.kind is SchemeKind.HTTP:
        http_scheme = (scheme.http_scheme or "").lower()
        if http_scheme in (HttpScheme.BASIC.value, HttpScheme.DIGEST.value):
            if credential.get("username") is None:
                errors.append("Username is required")
            if credential.get("password") is None:
                errors.append("Password is required")
        elif http_scheme == HttpScheme.BEARER.value:
            if credential.get("token") is None:
                errors.append("Bearer token is required")
        else:
            errors.append(f"Unsupported HTTP auth scheme: {scheme.http_scheme}")

    elif scheme.kind in (SchemeKind.OAUTH2, SchemeKind.OPENID_CONNECT):
        if credential.get("access_token") is None:
            errors.append("Access token is required")

    else:
        errors.append(f"Unsupported authentication type: {scheme.raw_type}")

    return ValidationResult(is_valid=not errors, errors=errors)


# ============================================================================
# Per-kind application
# ============================================================================
# Each function is idempotent and returns True only if it wrote something.


def apply_api_key(
    descriptor: RequestDescriptor, credential: Credential, scheme: SecuritySchemeDef
) -> bool:
    value = credential.get("value")
    if value is None or not scheme.parameter_name:
        return False

    if scheme.location == ApiKeyLocation.HEADER.value:
        descriptor.headers[scheme.parameter_name] = value
    elif scheme.location == ApiKeyLocation.QUERY.value:
        descriptor.query[scheme.parameter_name] = value
    elif scheme.location == ApiKeyLocation.COOKIE.value:
        # Single cookie only: overwrites any existing Cookie header
        descriptor.headers[COOKIE] = f"{scheme.parameter_name}={value}"
    else:
        return False
    return True


def basic_authorization(username: str, password: str) -> str:
    """Build a Basic Authorization header value."""
    encoded = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def apply_http(
    descriptor: RequestDescriptor, credential: Credential, scheme: SecuritySchemeDef
) -> bool:
    http_scheme = (scheme.http_scheme or "").lower()

    if http_scheme in (HttpScheme.BASIC.value, HttpScheme.DIGEST.value):
        username = credential.get("username")
        password = credential.get("password")
        if username is None or password is None:
            return False
        if http_scheme == HttpScheme.DIGEST.value:
            # Real digest needs a server challenge round trip
            logger.warning(
                f"Digest authentication for '{scheme.name}' requires a server "
                f"challenge; sending Basic credentials instead"
            )
        descriptor.headers[AUTHORIZATION] = basic_authorization(username, password)
        return True

    if http_scheme == HttpScheme.BEARER.value:
        token = credential.get("token")
        if token is None:
            return False
        descriptor.headers[AUTHORIZATION] = f"Bearer {token}"
        return True

    logger.warning(f"Unsupported HTTP auth scheme: {scheme.http_scheme}")
    return False


def apply_access_token(
    descriptor: RequestDescriptor, credential: Credential, scheme: SecuritySchemeDef
) -> bool:
    """OAuth2 and OpenID Connect: scopes are informational, never enforced."""
    access_token = credential.get("access_token")
    if access_token is None:
        return False
    descriptor.headers[AUTHORIZATION] = f"Bearer {access_token}"
    return True


def apply_scheme(
    descriptor: RequestDescriptor, credential: Credential, scheme: SecuritySchemeDef
) -> bool:
    """Apply one credential according to its scheme kind."""
    if scheme.kind is SchemeKind.API_KEY:
        return apply_api_key(descriptor, credential, scheme)
    elif scheme.kind is SchemeKind.HTTP:
        return apply_http(descriptor, credential, scheme)
    elif scheme.kind in (SchemeKind.OAUTH2, SchemeKind.OPENID_CONNECT):
        return apply_access_token(descriptor, credential, scheme)
    elif scheme.kind is SchemeKind.UNKNOWN:
        logger.warning(f"Unsupported security scheme type: {scheme.raw_type}")
        return False
    raise AssertionError(f"Unhandled scheme kind: {scheme.kind}")


def _write_target(scheme: SecuritySchemeDef) -> tuple[str, str]:
    """Where a scheme's credential lands: ("header"|"query", name)."""
    if scheme.kind is SchemeKind.API_KEY:
        if scheme.location == ApiKeyLocation.QUERY.value:
            return "query", scheme.parameter_name or ""
        if scheme.location == ApiKeyLocation.COOKIE.value:
            return "header", COOKIE
        return "header", scheme.parameter_name or ""
    return "header", AUTHORIZATION


# ============================================================================
# Requirement application
# ============================================================================


def apply_credentials(
    descriptor: RequestDescriptor,
    credentials: dict[str, Credential],
    registry: dict[str, SecuritySchemeDef],
    requirement: SecurityRequirement,
) -> AuthOutcome:
    """Apply the first fully satisfiable requirement alternative.

    Args:
        descriptor: Request to mutate in place
        credentials: Stored credentials keyed by scheme name
        registry: Security scheme registry of the document
        requirement: Resolved requirement for the operation

    Returns:
        AuthOutcome (descriptor is the same object that was passed in)

    Example:
        >>> outcome = apply_credentials(descriptor, creds, registry, [{"a": []}, {"b": []}])
        >>> outcome.applied, outcome.alternative_index
        (True, 1)
    """
    outcome = AuthOutcome(descriptor=descriptor)

    for index, alternative in enumerate(requirement):
        # An empty alternative permits anonymous access; it has nothing to apply
        if not alternative:
            continue

        satisfiable = True
        for name in alternative:
            scheme = registry.get(name)
            if scheme is None:
                _warn(outcome, f"Security scheme '{name}' is not declared in the document")
                satisfiable = False
                continue
            if not scheme.is_supported:
                _warn(
                    outcome,
                    f"Security scheme '{name}' has unsupported type '{scheme.raw_type}'",
                )
                satisfiable = False
                continue
            if not validate_credential(credentials.get(name), scheme).is_valid:
                satisfiable = False

        if not satisfiable:
            continue

        for name in alternative:
            scheme = registry[name]
            if apply_scheme(descriptor, credentials[name], scheme):
                outcome.applied_schemes.append(name)
                location, target = _write_target(scheme)
                if location == "query":
                    outcome.written_query.append(target)
                else:
                    outcome.written_headers.append(target)
                if (scheme.http_scheme or "").lower() == HttpScheme.DIGEST.value:
                    outcome.warnings.append(
                        f"Digest authentication for '{name}' was sent as Basic credentials"
                    )

        if not outcome.applied_schemes:
            _warn(outcome, f"Security alternative {index} wrote no credentials")
            continue

        outcome.applied = True
        outcome.alternative_index = index
        logger.debug(f"Applied security alternative {index}: {outcome.applied_schemes}")
        return outcome

    return outcome


def _warn(outcome: AuthOutcome, message: str) -> None:
    if message not in outcome.warnings:
        logger.warning(message)
        outcome.warnings.append(message)

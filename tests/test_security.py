"""Tests for security scheme parsing and requirement resolution."""

import pytest

from apiconsole.core.models import Credential, RequestDescriptor
from apiconsole.openapi import (
    EndpointInfo,
    FlowKind,
    OpenAPISpec,
    SchemeKind,
    ScopeInfo,
    apply_credentials,
    get_global_security,
    parse_security_schemes,
    requires_auth,
    resolve_operation_security,
)
from apiconsole.openapi.security import normalize_requirement

OPENAPI3_DOC = {
    "openapi": "3.0.3",
    "info": {"title": "Petstore", "version": "1.0.0"},
    "security": [{"api_key": []}],
    "paths": {},
    "components": {
        "securitySchemes": {
            "api_key": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
            "basic": {"type": "http", "scheme": "basic"},
            "bearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
            "oauth": {
                "type": "oauth2",
                "flows": {
                    "authorizationCode": {
                        "authorizationUrl": "https://auth.example.com/authorize",
                        "tokenUrl": "https://auth.example.com/token",
                        "scopes": {"read:pets": "Read pets", "write:pets": "Write pets"},
                    },
                    "clientCredentials": {
                        "tokenUrl": "https://auth.example.com/token",
                        "scopes": {"read:pets": "Read pets", "admin": "Admin"},
                    },
                },
            },
            "oidc": {
                "type": "openIdConnect",
                "openIdConnectUrl": "https://auth.example.com/.well-known/openid-configuration",
            },
            "mtls": {"type": "mutualTLS"},
        }
    },
}

SWAGGER2_DOC = {
    "swagger": "2.0",
    "info": {"title": "Legacy", "version": "1.0"},
    "paths": {},
    "securityDefinitions": {
        "basicAuth": {"type": "basic"},
        "key": {"type": "apiKey", "in": "query", "name": "api_key"},
        "petstore_auth": {
            "type": "oauth2",
            "flow": "accessCode",
            "authorizationUrl": "https://auth.example.com/authorize",
            "tokenUrl": "https://auth.example.com/token",
            "scopes": {"read:pets": "Read pets"},
        },
    },
}


# ============================================================================
# Registry
# ============================================================================


class TestParseSecuritySchemes:
    """Test building the security scheme registry."""

    def test_api_key_scheme(self):
        registry = parse_security_schemes(OPENAPI3_DOC)

        scheme = registry["api_key"]
        assert scheme.kind is SchemeKind.API_KEY
        assert scheme.location == "header"
        assert scheme.parameter_name == "X-API-Key"

    def test_http_schemes(self):
        registry = parse_security_schemes(OPENAPI3_DOC)

        assert registry["basic"].kind is SchemeKind.HTTP
        assert registry["basic"].http_scheme == "basic"
        assert registry["bearer"].http_scheme == "bearer"
        assert registry["bearer"].bearer_format == "JWT"

    def test_oauth2_scopes_are_unioned_and_deduplicated(self):
        """Scopes across flows are merged, keeping first-seen order."""
        scheme = parse_security_schemes(OPENAPI3_DOC)["oauth"]

        assert scheme.kind is SchemeKind.OAUTH2
        assert set(scheme.flows) == {FlowKind.AUTHORIZATION_CODE, FlowKind.CLIENT_CREDENTIALS}
        assert scheme.scopes == (
            ScopeInfo("read:pets", "Read pets"),
            ScopeInfo("write:pets", "Write pets"),
            ScopeInfo("admin", "Admin"),
        )
        assert scheme.flows[FlowKind.AUTHORIZATION_CODE].token_url == (
            "https://auth.example.com/token"
        )

    def test_same_scope_with_different_descriptions_kept_twice(self):
        doc = {
            "components": {
                "securitySchemes": {
                    "oauth": {
                        "type": "oauth2",
                        "flows": {
                            "implicit": {"scopes": {"read": "Read"}},
                            "password": {"scopes": {"read": "Read everything"}},
                        },
                    }
                }
            }
        }
        scheme = parse_security_schemes(doc)["oauth"]

        assert [s.scope for s in scheme.scopes] == ["read", "read"]

    def test_openid_connect(self):
        scheme = parse_security_schemes(OPENAPI3_DOC)["oidc"]

        assert scheme.kind is SchemeKind.OPENID_CONNECT
        assert scheme.open_id_connect_url.endswith("openid-configuration")

    def test_unknown_kind_is_preserved(self):
        """Unsupported scheme types stay in the registry so they can be reported."""
        scheme = parse_security_schemes(OPENAPI3_DOC)["mtls"]

        assert scheme.kind is SchemeKind.UNKNOWN
        assert scheme.raw_type == "mutualTLS"
        assert not scheme.is_supported
        assert "unsupported" in str(scheme)

    def test_swagger2_basic_maps_to_http_basic(self):
        scheme = parse_security_schemes(SWAGGER2_DOC)["basicAuth"]

        assert scheme.kind is SchemeKind.HTTP
        assert scheme.http_scheme == "basic"

    def test_swagger2_api_key(self):
        scheme = parse_security_schemes(SWAGGER2_DOC)["key"]

        assert scheme.kind is SchemeKind.API_KEY
        assert scheme.location == "query"
        assert scheme.parameter_name == "api_key"

    def test_swagger2_oauth2_flow_mapping(self):
        scheme = parse_security_schemes(SWAGGER2_DOC)["petstore_auth"]

        assert scheme.kind is SchemeKind.OAUTH2
        assert FlowKind.AUTHORIZATION_CODE in scheme.flows
        assert scheme.scopes == (ScopeInfo("read:pets", "Read pets"),)

    def test_no_schemes(self):
        assert parse_security_schemes({"openapi": "3.0.0", "paths": {}}) == {}

    def test_malformed_section_is_empty(self):
        doc = {"components": {"securitySchemes": ["not", "a", "mapping"]}}
        assert parse_security_schemes(doc) == {}

    def test_non_object_scheme_skipped(self):
        doc = {
            "components": {
                "securitySchemes": {
                    "broken": "apiKey",
                    "ok": {"type": "http", "scheme": "bearer"},
                }
            }
        }
        assert list(parse_security_schemes(doc)) == ["ok"]


# ============================================================================
# Requirement resolution
# ============================================================================


class TestResolveOperationSecurity:
    """Operation security overrides the global default; it never merges."""

    def test_absent_field_inherits_global(self):
        assert resolve_operation_security({}, [{"api_key": []}]) == [{"api_key": []}]

    def test_explicit_empty_list_means_public(self):
        assert resolve_operation_security({"security": []}, [{"api_key": []}]) == []

    def test_operation_requirement_replaces_global(self):
        operation = {"security": [{"oauth": ["read:pets"]}]}

        assert resolve_operation_security(operation, [{"api_key": []}]) == [
            {"oauth": ["read:pets"]}
        ]

    def test_endpoint_info_none_vs_empty(self):
        inherited = EndpointInfo(path="/pets", method="GET", security=None)
        public = EndpointInfo(path="/pets", method="GET", security=[])

        assert resolve_operation_security(inherited, [{"api_key": []}]) == [{"api_key": []}]
        assert resolve_operation_security(public, [{"api_key": []}]) == []

    def test_global_security_absent(self):
        assert get_global_security({"openapi": "3.0.0"}) == []

    def test_global_security_declared(self):
        assert get_global_security(OPENAPI3_DOC) == [{"api_key": []}]


class TestRequiresAuth:
    """Test the anonymous-access decision."""

    @pytest.mark.parametrize(
        "security,expected",
        [
            ([], False),
            ([{"api_key": []}], True),
            ([{"api_key": []}, {"bearer": []}], True),
            ([{"api_key": []}, {}], False),
            ([{}], False),
        ],
    )
    def test_requirement_shapes(self, security, expected):
        assert requires_auth({"security": security}, []) is expected

    def test_inherits_global(self):
        assert requires_auth({}, [{"api_key": []}]) is True
        assert requires_auth({}, []) is False


class TestNormalizeRequirement:
    """Test coercion of declared security fields."""

    def test_drops_malformed_alternatives(self):
        assert normalize_requirement([{"a": []}, "b", None]) == [{"a": []}]

    def test_non_list_scopes_become_empty(self):
        assert normalize_requirement([{"a": None}]) == [{"a": []}]

    def test_non_list_requirement(self):
        assert normalize_requirement({"a": []}) == []


class TestDocumentWithoutSecurity:
    """No security section anywhere: every operation is callable anonymously."""

    def test_nothing_required_and_nothing_applied(self):
        spec = OpenAPISpec(
            {
                "openapi": "3.0.3",
                "info": {"title": "Open", "version": "1.0.0"},
                "paths": {
                    "/pets": {"get": {}, "post": {}},
                    "/pets/{petId}": {"get": {}, "delete": {}},
                },
            }
        )
        registry = spec.get_security_schemes()
        global_security = spec.get_global_security()
        credentials = {"api_key": Credential(value="k"), "bearer": Credential(token="t")}

        endpoints = spec.get_endpoints()
        assert len(endpoints) == 4
        assert registry == {}
        assert global_security == []
        for endpoint in endpoints:
            descriptor = RequestDescriptor(
                url=f"https://api.example.com{endpoint.path}", method=endpoint.method
            )
            requirement = resolve_operation_security(endpoint, global_security)
            outcome = apply_credentials(descriptor, credentials, registry, requirement)

            assert requires_auth(endpoint, global_security) is False
            assert outcome.applied is False
            assert descriptor.headers == {}
            assert descriptor.query == {}

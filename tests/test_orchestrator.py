"""Tests for request orchestration and form pre-fill."""

import random
from pathlib import Path

import pytest

from apiconsole.core.config import ConsoleConfig
from apiconsole.core.errors import TransportError
from apiconsole.core.models import Credential, RequestForm, TransportResponse
from apiconsole.core.storage import HistoryStore
from apiconsole.execution import RequestOrchestrator, Transport, prefill_form, prefill_from_history
from apiconsole.openapi import ExampleGenerator, ExampleMode, OpenAPISpec

PETSTORE = Path(__file__).parent / "fixtures" / "petstore.yaml"
BASE_URL = "https://petstore.example.com/v1"


class RecordingTransport(Transport):
    """Transport that records descriptors and returns a canned response."""

    def __init__(self, response=None, error=None):
        self.sent = []
        self.response = response or TransportResponse(status=200, status_text="OK", data={})
        self.error = error

    def execute(self, descriptor):
        self.sent.append(descriptor)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def spec():
    return OpenAPISpec.from_file(PETSTORE)


@pytest.fixture
def transport():
    return RecordingTransport()


def make_orchestrator(spec, transport, credentials=None, **config):
    return RequestOrchestrator.from_spec(
        spec,
        ConsoleConfig(base_url=BASE_URL, **config),
        transport,
        credentials=credentials,
    )


# ============================================================================
# Building requests
# ============================================================================


class TestBuildRequest:
    """Test descriptor construction."""

    def test_url_and_default_headers(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets/{petId}", "GET")

        prepared = orchestrator.build_request(endpoint, RequestForm(path_params={"petId": "a b"}))

        assert prepared.descriptor.url == f"{BASE_URL}/pets/a%20b"
        assert prepared.descriptor.method == "GET"
        assert prepared.descriptor.headers["Content-Type"] == "application/json"

    def test_query_cleaned(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets", "GET")

        prepared = orchestrator.build_request(
            endpoint, RequestForm(query_params={"limit": 10, "tag": "", "status": None})
        )

        assert prepared.descriptor.query == {"limit": "10"}
        assert prepared.concrete_path == "/pets?limit=10"

    def test_body_only_for_body_methods(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport)
        form = RequestForm(path_params={"petId": "1"}, body={"name": "Fido"})

        get = orchestrator.build_request(spec.get_endpoint("/pets/{petId}", "GET"), form)
        post = orchestrator.build_request(spec.get_endpoint("/pets", "POST"), form)

        assert get.descriptor.body is None
        assert post.descriptor.body == {"name": "Fido"}

    def test_inherited_global_api_key(self, spec, transport):
        orchestrator = make_orchestrator(
            spec, transport, credentials={"api_key": Credential(value="k")}
        )

        prepared = orchestrator.build_request(
            spec.get_endpoint("/pets/{petId}", "GET"), RequestForm(path_params={"petId": "1"})
        )

        assert prepared.requires_auth
        assert prepared.auth.applied
        assert prepared.descriptor.headers["X-API-Key"] == "k"

    def test_public_operation_gets_no_credentials(self, spec, transport):
        orchestrator = make_orchestrator(
            spec, transport, credentials={"api_key": Credential(value="k")}, auth_token="legacy"
        )

        prepared = orchestrator.build_request(spec.get_endpoint("/pets", "GET"))

        assert not prepared.requires_auth
        assert "X-API-Key" not in prepared.descriptor.headers
        assert "Authorization" not in prepared.descriptor.headers

    def test_operation_override_does_not_merge_global(self, spec, transport):
        """DELETE declares bearer/oauth; the global api_key must not be applied."""
        orchestrator = make_orchestrator(
            spec,
            transport,
            credentials={"api_key": Credential(value="k"), "oauth": Credential(access_token="o")},
        )

        prepared = orchestrator.build_request(
            spec.get_endpoint("/pets/{petId}", "DELETE"), RequestForm(path_params={"petId": "1"})
        )

        assert prepared.auth.alternative_index == 1
        assert prepared.descriptor.headers["Authorization"] == "Bearer o"
        assert "X-API-Key" not in prepared.descriptor.headers

    def test_optional_auth_is_not_required(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport, auth_token="legacy")

        prepared = orchestrator.build_request(spec.get_endpoint("/login", "POST"))

        assert not prepared.requires_auth
        assert not prepared.used_legacy_token
        assert "Authorization" not in prepared.descriptor.headers

    def test_legacy_token_fallback(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport, auth_token="legacy")

        prepared = orchestrator.build_request(
            spec.get_endpoint("/pets/{petId}", "GET"), RequestForm(path_params={"petId": "1"})
        )

        assert not prepared.auth.applied
        assert prepared.used_legacy_token
        assert prepared.descriptor.headers["Authorization"] == "Bearer legacy"

    def test_legacy_token_not_used_when_credentials_applied(self, spec, transport):
        orchestrator = make_orchestrator(
            spec, transport, credentials={"api_key": Credential(value="k")}, auth_token="legacy"
        )

        prepared = orchestrator.build_request(
            spec.get_endpoint("/pets/{petId}", "GET"), RequestForm(path_params={"petId": "1"})
        )

        assert not prepared.used_legacy_token
        assert "Authorization" not in prepared.descriptor.headers

    def test_unsatisfied_without_legacy_token(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport)

        prepared = orchestrator.build_request(
            spec.get_endpoint("/pets/{petId}", "GET"), RequestForm(path_params={"petId": "1"})
        )

        assert prepared.requires_auth
        assert not prepared.auth.applied
        assert not prepared.used_legacy_token


# ============================================================================
# Execution and history
# ============================================================================


class TestExecute:
    """Test sending requests and recording history."""

    def test_execute_records_redacted_history(self, spec, transport, tmp_path):
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(
            spec, transport, credentials={"api_key": Credential(value="secret")}
        )
        endpoint = spec.get_endpoint("/pets/{petId}", "GET")

        response = orchestrator.execute(
            endpoint,
            RequestForm(path_params={"petId": "7"}, query_params={"verbose": True}),
            history=history,
        )

        assert response.status == 200
        assert transport.sent[0].headers["X-API-Key"] == "secret"

        entry = history.latest(endpoint.key)
        assert entry.request.path == "/pets/7?verbose=true"
        assert entry.request.headers["X-API-Key"] == "***"
        assert entry.request.headers["Content-Type"] == "application/json"

    def test_legacy_token_redacted(self, spec, transport, tmp_path):
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport, auth_token="legacy")
        endpoint = spec.get_endpoint("/pets/{petId}", "GET")

        orchestrator.execute(endpoint, RequestForm(path_params={"petId": "7"}), history=history)

        assert history.latest(endpoint.key).request.headers["Authorization"] == "***"

    def test_failure_recorded_then_raised(self, spec, tmp_path):
        failure = TransportResponse(status=404, status_text="Not Found", data={"message": "no"})
        transport = RecordingTransport(error=TransportError("not found", failure))
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets", "GET")

        with pytest.raises(TransportError):
            orchestrator.execute(endpoint, history=history)

        assert history.latest(endpoint.key).response.status == 404

    def test_network_failure_recorded(self, spec, tmp_path):
        transport = RecordingTransport(error=TransportError("connection refused"))
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets", "GET")

        with pytest.raises(TransportError):
            orchestrator.execute(endpoint, history=history)

        response = history.latest(endpoint.key).response
        assert response.status == 0
        assert response.status_text == "Network Error"

    def test_execute_without_history(self, spec, transport):
        orchestrator = make_orchestrator(spec, transport)
        orchestrator.execute(spec.get_endpoint("/health", "GET"))

        assert transport.sent[0].url == f"{BASE_URL}/health"


# ============================================================================
# Pre-fill
# ============================================================================


class TestPrefill:
    """Test form pre-fill from history and examples."""

    def test_prefill_from_history(self, spec, transport, tmp_path):
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets/{petId}", "GET")
        orchestrator.execute(
            endpoint,
            RequestForm(path_params={"petId": "a b"}, query_params={"q": "x y"}),
            history=history,
        )

        form = prefill_form(endpoint, history)

        assert form.path_params == {"petId": "a b"}
        assert form.query_params == {"q": "x y"}

    def test_prefill_skips_unfilled_placeholders(self, spec, transport, tmp_path):
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets/{petId}", "GET")
        orchestrator.execute(endpoint, RequestForm(), history=history)

        entry = history.latest(endpoint.key)
        assert entry.request.path == "/pets/{petId}"
        assert prefill_from_history(endpoint, entry).path_params == {}

    def test_prefill_body_from_history(self, spec, transport, tmp_path):
        history = HistoryStore(tmp_path / "history.json")
        orchestrator = make_orchestrator(spec, transport)
        endpoint = spec.get_endpoint("/pets", "POST")
        orchestrator.execute(endpoint, RequestForm(body={"name": "Rex"}), history=history)

        assert prefill_form(endpoint, history).body == {"name": "Rex"}

    def test_prefill_example_when_no_history(self, spec, tmp_path):
        generator = ExampleGenerator(
            spec.get_schema_registry(), mode=ExampleMode.REQUIRED, rng=random.Random(1)
        )
        endpoint = spec.get_endpoint("/pets", "POST")

        form = prefill_form(endpoint, HistoryStore(tmp_path / "history.json"), generator)

        assert form.body == {"name": "Fido"}

    def test_prefill_empty(self, spec):
        form = prefill_form(spec.get_endpoint("/pets", "GET"))
        assert form == RequestForm()

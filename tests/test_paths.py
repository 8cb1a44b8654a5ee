"""Tests for the path template codec."""

import pytest

from apiconsole.openapi import (
    build_concrete_path,
    extract_path_params,
    extract_query,
    instantiate_path,
    path_parameter_names,
)
from apiconsole.openapi.paths import clean_query


class TestInstantiatePath:
    """Test filling path templates."""

    def test_fills_placeholders(self):
        assert instantiate_path("/users/{id}/files/{name}", {"id": 42, "name": "a"}) == (
            "/users/42/files/a"
        )

    def test_percent_encodes_values(self):
        assert instantiate_path("/files/{name}", {"name": "a b/c?"}) == "/files/a%20b%2Fc%3F"

    def test_missing_value_keeps_placeholder(self):
        assert instantiate_path("/users/{id}", {}) == "/users/{id}"

    def test_none_value_keeps_placeholder(self):
        assert instantiate_path("/users/{id}", {"id": None}) == "/users/{id}"

    def test_no_placeholders(self):
        assert instantiate_path("/pets", {"id": 1}) == "/pets"

    def test_repeated_placeholder(self):
        assert instantiate_path("/{id}/copy/{id}", {"id": "x"}) == "/x/copy/x"

    def test_parameter_names(self):
        assert path_parameter_names("/orgs/{org}/repos/{repo}") == ["org", "repo"]


class TestExtractPathParams:
    """Test recovering parameters from concrete paths."""

    def test_positional_extraction(self):
        assert extract_path_params("/users/{id}", "/users/42") == {"id": "42"}

    def test_ignores_query_string(self):
        assert extract_path_params("/users/{id}", "/users/42?active=true") == {"id": "42"}

    def test_decodes_values(self):
        assert extract_path_params("/files/{name}", "/files/a%20b") == {"name": "a b"}

    def test_literal_segments_not_compared(self):
        assert extract_path_params("/users/{id}", "/accounts/7") == {"id": "7"}

    def test_short_concrete_path(self):
        assert extract_path_params("/users/{id}/posts/{post}", "/users/1") == {"id": "1"}

    @pytest.mark.parametrize(
        "params",
        [{"id": "42"}, {"id": "a b"}, {"id": "x%y"}, {"id": "ünï"}],
    )
    def test_inverse_of_instantiate(self, params):
        template = "/users/{id}/profile"
        assert extract_path_params(template, instantiate_path(template, params)) == params


class TestQuery:
    """Test query string handling."""

    def test_extract_query(self):
        assert extract_query("/users/42?active=true&q=a+b") == {"active": "true", "q": "a b"}

    def test_extract_query_none(self):
        assert extract_query("/users/42") == {}

    def test_extract_query_blank_values(self):
        assert extract_query("/search?q=") == {"q": ""}

    def test_clean_query_drops_unset(self):
        assert clean_query({"a": "1", "b": "", "c": None, "d": 0}) == {"a": "1", "d": "0"}

    def test_clean_query_booleans(self):
        assert clean_query({"active": True, "deleted": False}) == {
            "active": "true",
            "deleted": "false",
        }

    def test_build_concrete_path(self):
        path = build_concrete_path("/users/{id}", {"id": 7}, {"q": "a b", "skip": ""})
        assert path == "/users/7?q=a+b"
        assert extract_query(path) == {"q": "a b"}

    def test_build_concrete_path_without_query(self):
        assert build_concrete_path("/users/{id}", {"id": 7}) == "/users/7"

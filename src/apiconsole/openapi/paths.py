"""Path template codec.

Converts between a templated path (/users/{id}) and a concrete path plus
parameter map, in both directions. Extraction is a best-effort positional
zip used to pre-fill forms from history; it never validates a route.
"""

import re
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, quote, unquote, urlencode

PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")

# Characters left unescaped in a path value, besides letters, digits and "_.-~"
PATH_VALUE_SAFE = "!*'()"


def path_parameter_names(template: str) -> list[str]:
    """Names of the {placeholders} in a template, in order of appearance."""
    return PLACEHOLDER_PATTERN.findall(template)


def encode_path_value(value: Any) -> str:
    """Percent-encode one path parameter value (like encodeURIComponent)."""
    return quote(str(value), safe=PATH_VALUE_SAFE)


def instantiate_path(template: str, params: Mapping[str, Any]) -> str:
    """Fill a path template with percent-encoded parameter values.

    Placeholders without a supplied value (missing or None) are left as the
    literal {name} token so the problem surfaces at the transport instead of
    blocking the caller.

    Example:
        >>> instantiate_path("/users/{id}/files/{name}", {"id": 42, "name": "a b"})
        '/users/42/files/a%20b'
        >>> instantiate_path("/users/{id}", {})
        '/users/{id}'
    """

    def replace(match: re.Match) -> str:
        value = params.get(match.group(1))
        if value is None:
            return match.group(0)
        return encode_path_value(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def split_path(concrete_path: str) -> tuple[str, str]:
    """Split a concrete path at the first '?' into (path, query string)."""
    path, _, query = concrete_path.partition("?")
    return path, query


def extract_path_params(template: str, concrete_path: str) -> dict[str, str]:
    """Recover path parameter values from a concrete path.

    Both paths are split on "/" and zipped by position; a placeholder segment
    at position i captures the percent-decoded segment i of the concrete path.
    Literal segments are not compared, so mismatching paths still yield
    whatever lines up.

    Example:
        >>> extract_path_params("/users/{id}", "/users/42?active=true")
        {'id': '42'}
    """
    path, _ = split_path(concrete_path)
    concrete_parts = path.split("/")

    params: dict[str, str] = {}
    for index, part in enumerate(template.split("/")):
        if not (part.startswith("{") and part.endswith("}")):
            continue
        if index < len(concrete_parts) and concrete_parts[index]:
            params[part[1:-1]] = unquote(concrete_parts[index])
    return params


def extract_query(concrete_path: str) -> dict[str, str]:
    """Parse the query string of a concrete path ({} when there is none).

    Example:
        >>> extract_query("/users/42?active=true&q=a+b")
        {'active': 'true', 'q': 'a b'}
    """
    _, query = split_path(concrete_path)
    if not query:
        return {}
    return dict(parse_qsl(query, keep_blank_values=True))


def clean_query(params: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Drop unset query values (None or "") and stringify the rest."""
    cleaned: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)
    return cleaned


def build_concrete_path(
    template: str,
    path_params: Mapping[str, Any],
    query_params: Optional[Mapping[str, Any]] = None,
) -> str:
    """Concrete path including the query string, as recorded in history."""
    path = instantiate_path(template, path_params)
    query = urlencode(clean_query(query_params))
    return f"{path}?{query}" if query else path

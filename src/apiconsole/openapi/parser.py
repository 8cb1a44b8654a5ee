"""OpenAPI / Swagger document loader.

Fetches and parses OpenAPI 3.x and Swagger 2.0 documents from URLs, files or
already-parsed mappings, and exposes a structured view of their operations,
schemas and security declarations.

Malformed sections never abort loading: anything missing or of the wrong
shape is treated as empty and logged.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

import requests
import yaml

from ..core.errors import DocumentError
from ..core.logging import get_logger
from .models import EndpointInfo, OpenAPIInfo, SecurityRequirement, SecuritySchemeDef
from .security import get_global_security, normalize_requirement, parse_security_schemes

logger = get_logger(__name__)

HTTP_METHODS = ["get", "put", "post", "delete", "options", "head", "patch", "trace"]

UNTAGGED = "Untagged"


class OpenAPISpec:
    """Parsed OpenAPI specification.

    Example:
        # From URL
        spec = OpenAPISpec.from_url("https://petstore.example.com/openapi.json")

        # From file
        spec = OpenAPISpec.from_file("openapi.yaml")

        # Access information
        endpoints = spec.get_endpoints()
        schemes = spec.get_security_schemes()
        info = spec.get_info()
    """

    def __init__(self, spec_dict: dict[str, Any]):
        """Initialize from a parsed document.

        Args:
            spec_dict: Parsed OpenAPI/Swagger document (JSON/YAML as dict)

        Raises:
            DocumentError: If the document is not a mapping
        """
        if not isinstance(spec_dict, dict):
            raise DocumentError(
                f"OpenAPI document must be a mapping, got {type(spec_dict).__name__}"
            )

        self.spec = spec_dict

        if "openapi" in spec_dict:
            self.spec_version = str(spec_dict["openapi"])
        elif "swagger" in spec_dict:
            self.spec_version = str(spec_dict["swagger"])
        else:
            logger.warning("Document has no 'openapi' or 'swagger' field; assuming 3.0.0")
            self.spec_version = "3.0.0"

        self.is_swagger2 = self.spec_version.startswith("2.")
        logger.info(f"Loaded OpenAPI document version {self.spec_version}")

    @classmethod
    def from_url(cls, url: str, timeout: float = 30) -> "OpenAPISpec":
        """Fetch and parse a document from a URL.

        The fetch is never authenticated.

        Raises:
            DocumentError: If the document cannot be fetched or parsed
        """
        logger.info(f"Fetching OpenAPI document from {url}")

        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DocumentError(f"Failed to fetch OpenAPI document from {url}: {e}") from e

        content_type = response.headers.get("content-type", "").lower()

        try:
            if "json" in content_type or url.endswith(".json"):
                spec_dict = response.json()
            elif "yaml" in content_type or url.endswith((".yaml", ".yml")):
                spec_dict = yaml.safe_load(response.text)
            else:
                spec_dict = _parse_text(response.text)
        except (ValueError, yaml.YAMLError) as e:
            raise DocumentError(f"Failed to parse OpenAPI document: {e}") from e

        return cls(spec_dict)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "OpenAPISpec":
        """Load and parse a document from a local JSON or YAML file.

        Raises:
            DocumentError: If the file cannot be read or parsed
        """
        path_obj = Path(path)

        if not path_obj.exists():
            raise DocumentError(f"OpenAPI document not found: {path}")

        logger.info(f"Loading OpenAPI document from {path}")

        try:
            content = path_obj.read_text(encoding="utf-8")

            if path_obj.suffix == ".json":
                spec_dict = json.loads(content)
            elif path_obj.suffix in (".yaml", ".yml"):
                spec_dict = yaml.safe_load(content)
            else:
                spec_dict = _parse_text(content)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise DocumentError(f"Failed to parse OpenAPI document from {path}: {e}") from e

        return cls(spec_dict)

    @classmethod
    def load(cls, source: Union[str, Path], timeout: float = 30) -> "OpenAPISpec":
        """Load from a URL (http/https) or a file path."""
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            return cls.from_url(source, timeout=timeout)
        return cls.from_file(source)

    # ------------------------------------------------------------------
    # Document sections
    # ------------------------------------------------------------------

    def _section(self, *keys: str) -> dict[str, Any]:
        """Nested mapping lookup that degrades to {} on any bad shape."""
        node: Any = self.spec
        for key in keys:
            if not isinstance(node, dict):
                return {}
            node = node.get(key)
        if node is None:
            return {}
        if not isinstance(node, dict):
            logger.warning(f"Section '{'.'.join(keys)}' is not a mapping; ignoring it")
            return {}
        return node

    def get_info(self) -> OpenAPIInfo:
        """Extract general API information (title, version, servers, tags)."""
        info_obj = self._section("info")

        if self.is_swagger2:
            servers = self._swagger2_servers()
        else:
            servers = [s for s in self.spec.get("servers") or [] if isinstance(s, dict)]

        tags = self.spec.get("tags") or []

        return OpenAPIInfo(
            title=info_obj.get("title", "Untitled API"),
            version=str(info_obj.get("version", "1.0.0")),
            description=info_obj.get("description"),
            spec_version=self.spec_version,
            servers=servers,
            tags=[t for t in tags if isinstance(t, dict)] if isinstance(tags, list) else [],
            external_docs=self.spec.get("externalDocs"),
        )

    def _swagger2_servers(self) -> list[dict[str, Any]]:
        host = self.spec.get("host")
        if not host:
            return []
        base_path = self.spec.get("basePath", "") or ""
        schemes = self.spec.get("schemes") or ["https"]
        return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]

    def get_base_url(self) -> Optional[str]:
        return self.get_info().get_base_url()

    def get_schema_registry(self) -> dict[str, Any]:
        """Named schema definitions used to resolve $ref pointers."""
        if self.is_swagger2:
            return self._section("definitions")
        return self._section("components", "schemas")

    def get_security_schemes(self) -> dict[str, SecuritySchemeDef]:
        return parse_security_schemes(self.spec)

    def get_global_security(self) -> SecurityRequirement:
        return get_global_security(self.spec)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_endpoints(self) -> list[EndpointInfo]:
        """Extract all operations in document order (path order, then method order)."""
        endpoints = []

        for path, path_item in self._section("paths").items():
            if not isinstance(path_item, dict):
                continue

            for method, operation in path_item.items():
                if method not in HTTP_METHODS or not isinstance(operation, dict):
                    continue
                endpoints.append(self._build_endpoint(path, method, path_item, operation))

        if not endpoints:
            logger.warning("No operations found in OpenAPI document")
        else:
            logger.info(f"Found {len(endpoints)} endpoints in OpenAPI document")
        return endpoints

    def get_endpoint(self, path: str, method: str) -> Optional[EndpointInfo]:
        """Get a specific operation by path template and method (case insensitive)."""
        path_item = self._section("paths").get(path)
        if not isinstance(path_item, dict):
            return None

        method_lower = method.lower()
        operation = path_item.get(method_lower)
        if method_lower not in HTTP_METHODS or not isinstance(operation, dict):
            return None

        return self._build_endpoint(path, method_lower, path_item, operation)

    def group_endpoints_by_tag(self) -> dict[str, list[EndpointInfo]]:
        """Group operations by tag, preserving document order within each tag.

        Operations without tags are grouped under "Untagged". An operation with
        several tags appears under each of them.
        """
        grouped: dict[str, list[EndpointInfo]] = {}
        for endpoint in self.get_endpoints():
            for tag in endpoint.tags or [UNTAGGED]:
                grouped.setdefault(tag, []).append(endpoint)
        return grouped

    def _build_endpoint(
        self,
        path: str,
        method: str,
        path_item: dict[str, Any],
        operation: dict[str, Any],
    ) -> EndpointInfo:
        security = None
        if "security" in operation:
            security = normalize_requirement(operation["security"])

        tags = operation.get("tags") or []

        return EndpointInfo(
            path=path,
            method=method.upper(),
            summary=operation.get("summary"),
            description=operation.get("description"),
            operation_id=operation.get("operationId"),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            parameters=self._merge_parameters(path_item, operation),
            request_body_schema=self._extract_request_body_schema(operation),
            security=security,
            deprecated=bool(operation.get("deprecated", False)),
            operation=operation,
        )

    def _merge_parameters(
        self, path_item: dict[str, Any], operation: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Path-level parameters overlaid by operation parameters on (name, in)."""
        merged: dict[tuple[Any, Any], dict[str, Any]] = {}
        for source in (path_item.get("parameters"), operation.get("parameters")):
            if not isinstance(source, list):
                continue
            for param in source:
                if not isinstance(param, dict):
                    continue
                param = self._resolve_parameter(param)
                merged[(param.get("name"), param.get("in"))] = param
        return list(merged.values())

    def _resolve_parameter(self, param: dict[str, Any]) -> dict[str, Any]:
        ref = param.get("$ref")
        if not isinstance(ref, str):
            return param
        for prefix, section in (
            ("#/components/parameters/", ("components", "parameters")),
            ("#/parameters/", ("parameters",)),
        ):
            if ref.startswith(prefix):
                resolved = self._section(*section).get(ref[len(prefix):])
                if isinstance(resolved, dict):
                    return resolved
        logger.warning(f"Unresolved parameter reference: {ref}")
        return param

    def _extract_request_body_schema(self, operation: dict) -> Optional[dict[str, Any]]:
        """Extract the JSON request body schema from an operation.

        OpenAPI 3 reads requestBody.content; Swagger 2 reads the "in: body"
        parameter.
        """
        if self.is_swagger2:
            for param in operation.get("parameters") or []:
                if isinstance(param, dict) and param.get("in") == "body":
                    schema = param.get("schema")
                    return schema if isinstance(schema, dict) else None
            return None

        request_body = operation.get("requestBody")
        if not isinstance(request_body, dict):
            return None

        ref = request_body.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/components/requestBodies/"):
            request_body = self._section("components", "requestBodies").get(
                ref[len("#/components/requestBodies/"):]
            )
            if not isinstance(request_body, dict):
                logger.warning(f"Unresolved request body reference: {ref}")
                return None

        content = request_body.get("content")
        if not isinstance(content, dict):
            return None

        media_type = content.get("application/json")
        if isinstance(media_type, dict) and isinstance(media_type.get("schema"), dict):
            return media_type["schema"]

        # Return first available schema
        for media_type in content.values():
            if isinstance(media_type, dict) and isinstance(media_type.get("schema"), dict):
                return media_type["schema"]

        return None


def _parse_text(text: str) -> Any:
    """Try JSON first, fall back to YAML."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return yaml.safe_load(text)

"""Synthetic example payloads from JSON-Schema-like nodes.

Used to pre-fill request bodies when there is no history to replay. Only the
subset of JSON Schema that matters for a plausible payload is understood:
$ref, type, properties, required, items, format and example.

Optional object properties are included according to an ExampleMode; the
random mode draws from an injectable random.Random so fixtures can be made
reproducible by seeding it.
"""

import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from ..core.errors import UnresolvedReferenceError
from ..core.logging import get_logger

logger = get_logger(__name__)

REF_PREFIXES = ("#/components/schemas/", "#/definitions/")

DEFAULT_MAX_DEPTH = 32

SAMPLE_EMAIL = "user@example.com"
SAMPLE_PASSWORD = "password123"
SAMPLE_STRING = "string"
SAMPLE_INTEGER = 123
SAMPLE_NUMBER = 123.45


class ExampleMode(str, Enum):
    """How optional object properties are treated."""

    RANDOM = "random"  # each optional property included with 50% probability
    ALL = "all"  # every property included
    REQUIRED = "required"  # only required properties included


def resolve_ref(ref: str, schemas: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Look up a local schema reference in the document's schema registry.

    Supports "#/components/schemas/Name" (OpenAPI 3) and "#/definitions/Name"
    (Swagger 2). Returns None when the reference cannot be resolved.
    """
    if not isinstance(ref, str):
        return None
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix):
            name = ref[len(prefix):].replace("~1", "/").replace("~0", "~")
            resolved = schemas.get(name)
            return resolved if isinstance(resolved, dict) else None
    return None


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExampleGenerator:
    """Builds example values for schema nodes.

    Example:
        >>> gen = ExampleGenerator(spec.get_schema_registry(), mode=ExampleMode.ALL)
        >>> gen.generate({"$ref": "#/components/schemas/Pet"})
        {'id': 123, 'name': 'string', 'tags': ['string']}
    """

    def __init__(
        self,
        schemas: Optional[dict[str, Any]] = None,
        mode: ExampleMode = ExampleMode.RANDOM,
        rng: Optional[random.Random] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        clock: Optional[Callable[[], datetime]] = None,
        strict: bool = False,
    ):
        """Initialize the generator.

        Args:
            schemas: Named schema definitions used to resolve $ref pointers
            mode: Treatment of optional object properties
            rng: Random source for ExampleMode.RANDOM (default: unseeded)
            max_depth: Nesting limit; deeper nodes synthesize to None
            clock: Source of the current time for date-time values
            strict: Raise UnresolvedReferenceError instead of using None
        """
        self.schemas = schemas if isinstance(schemas, dict) else {}
        self.mode = ExampleMode(mode)
        self.rng = rng or random.Random()
        self.max_depth = max_depth
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.strict = strict

    def generate(self, schema: Any) -> Any:
        """Synthesize an example value for a schema node."""
        return self._generate(schema, visiting=(), depth=0)

    def _generate(self, schema: Any, visiting: tuple[str, ...], depth: int) -> Any:
        if not isinstance(schema, dict):
            return None

        if depth > self.max_depth:
            logger.warning(f"Schema nesting exceeds {self.max_depth} levels; truncating")
            return None

        ref = schema.get("$ref")
        if ref is not None:
            if ref in visiting:
                logger.warning(f"Schema reference cycle at {ref}; using null")
                return None
            resolved = resolve_ref(ref, self.schemas)
            if resolved is None:
                if self.strict:
                    raise UnresolvedReferenceError(ref)
                logger.warning(f"Unresolved schema reference: {ref}")
                return None
            return self._generate(resolved, visiting + (ref,), depth + 1)

        schema_type = self._schema_type(schema)

        if schema_type == "object" and isinstance(schema.get("properties"), dict):
            required = schema.get("required")
            required = set(required) if isinstance(required, list) else set()
            example = {}
            for name, prop in schema["properties"].items():
                if name in required or self._include_optional():
                    example[name] = self._generate(prop, visiting, depth + 1)
            return example

        if schema_type == "array":
            items = schema.get("items") or {"type": "string"}
            return [self._generate(items, visiting, depth + 1)]

        if "example" in schema:
            return schema["example"]

        if schema_type == "string":
            fmt = schema.get("format")
            if fmt == "email":
                return SAMPLE_EMAIL
            if fmt == "date-time":
                return format_timestamp(self.clock())
            if fmt == "password":
                return SAMPLE_PASSWORD
            return SAMPLE_STRING
        if schema_type == "integer":
            return SAMPLE_INTEGER
        if schema_type == "number":
            return SAMPLE_NUMBER
        if schema_type == "boolean":
            return True
        return None

    @staticmethod
    def _schema_type(schema: dict[str, Any]) -> Optional[str]:
        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            # OpenAPI 3.1 style: ["string", "null"]
            schema_type = next((t for t in schema_type if t != "null"), None)
        if schema_type is None and isinstance(schema.get("properties"), dict):
            return "object"
        return schema_type

    def _include_optional(self) -> bool:
        if self.mode is ExampleMode.ALL:
            return True
        if self.mode is ExampleMode.REQUIRED:
            return False
        return self.rng.random() < 0.5

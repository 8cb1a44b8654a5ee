"""Data models for apiconsole.

This module defines the Pydantic models that flow between the interpreter,
the transport and the file-backed stores. All models serialize to JSON with
the same field names the stores use on disk.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ============================================================================
# Credentials
# ============================================================================


class Credential(BaseModel):
    """User-entered secret material for one named security scheme.

    Which fields matter depends on the scheme kind:
    - API key: value
    - HTTP basic/digest: username, password
    - HTTP bearer: token
    - OAuth2 / OpenID Connect: access_token (stored as "accessToken")

    Values are opaque; only presence/non-blankness is ever checked.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    value: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    access_token: Optional[str] = Field(default=None, alias="accessToken")

    @field_validator("value", "username", "password", "token", "access_token", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        # Hand-edited stores may hold numeric secrets (PINs, numeric keys)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def get(self, field_name: str) -> Optional[str]:
        """Return a field's value if it is non-blank, else None."""
        raw = getattr(self, field_name, None)
        if raw is None or not str(raw).strip():
            return None
        return raw

    def has_data(self) -> bool:
        """True if any field carries a non-blank value."""
        return any(
            self.get(name) is not None
            for name in ("value", "username", "password", "token", "access_token")
        )

    def to_store(self) -> dict[str, str]:
        """Serialize using wire names, omitting empty fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Requests and responses
# ============================================================================


class RequestDescriptor(BaseModel):
    """A concrete HTTP request, built incrementally and mutated in place.

    The path codec produces the URL; credential application then writes
    headers and query parameters onto the same instance so several schemes
    of one requirement alternative compose onto one request.
    """

    url: str
    method: str
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        return v.upper()


class RequestForm(BaseModel):
    """User-facing inputs for one operation call."""

    path_params: dict[str, Any] = Field(default_factory=dict)
    query_params: dict[str, Any] = Field(default_factory=dict)
    body: Any = None


class TransportResponse(BaseModel):
    """Outcome of one HTTP exchange as seen by the caller."""

    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    data: Any = None

    @property
    def success(self) -> bool:
        return 200 <= self.status < 300


# ============================================================================
# History
# ============================================================================


class HistoryRequest(BaseModel):
    """The request side of a history entry.

    Only the concrete path (with query string) is persisted, never the
    parameter maps; replay re-derives them from the path.
    """

    path: str
    method: str
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


class HistoryEntry(BaseModel):
    """One recorded request/response pair."""

    request: HistoryRequest
    response: TransportResponse
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EndpointHistory(BaseModel):
    """Recent calls for one endpoint key (METHOD:path-template)."""

    last_request: Optional[HistoryRequest] = None
    last_response: Optional[TransportResponse] = None
    history: list[HistoryEntry] = Field(default_factory=list)

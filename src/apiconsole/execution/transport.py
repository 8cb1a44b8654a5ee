"""HTTP transport collaborator.

The orchestrator hands finished RequestDescriptors to a Transport. Failures
are reported uniformly: non-2xx responses and network errors both raise
TransportError with a TransportResponse attached (status 0 for network
failures). Nothing is retried automatically.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from ..core.errors import TransportError
from ..core.logging import get_logger
from ..core.models import RequestDescriptor, TransportResponse

logger = get_logger(__name__)

NETWORK_ERROR = "Network Error"


class Transport(ABC):
    """Abstract base class for anything that can execute a request.

    Example:
        class RecordingTransport(Transport):
            def __init__(self):
                self.sent = []

            def execute(self, descriptor):
                self.sent.append(descriptor)
                return TransportResponse(status=200, status_text="OK", data={})
    """

    @abstractmethod
    def execute(self, descriptor: RequestDescriptor) -> TransportResponse:
        """Issue the request.

        Returns:
            TransportResponse for 2xx statuses

        Raises:
            TransportError: For non-2xx statuses (response attached) and for
                network failures (status 0)
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class RequestsTransport(Transport):
    """Transport backed by the requests library."""

    def __init__(self, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def execute(self, descriptor: RequestDescriptor) -> TransportResponse:
        body = descriptor.body
        kwargs: dict[str, Any] = {}
        if isinstance(body, (str, bytes)):
            kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body

        logger.debug(f"{descriptor.method} {descriptor.url}")

        try:
            response = self.session.request(
                method=descriptor.method,
                url=descriptor.url,
                params=descriptor.query or None,
                headers=descriptor.headers or None,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            failure = TransportResponse(
                status=0,
                status_text=NETWORK_ERROR,
                data={"error": str(e)},
            )
            raise TransportError(f"Request failed: {e}", failure) from e

        result = TransportResponse(
            status=response.status_code,
            status_text=response.reason or "",
            headers=dict(response.headers),
            data=_decode_body(response),
        )

        if not result.success:
            raise TransportError(
                f"Request failed with status {result.status} {result.status_text}".rstrip(),
                result,
            )
        return result


def _decode_body(response: requests.Response) -> Any:
    """JSON when parseable, text otherwise, None for an empty body."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text

"""Form pre-fill from request history or synthesized examples."""

from typing import Optional

from ..core.models import HistoryEntry, RequestForm
from ..core.storage import HistoryStore
from ..openapi.examples import ExampleGenerator
from ..openapi.models import EndpointInfo
from ..openapi.paths import extract_path_params, extract_query


def prefill_from_history(endpoint: EndpointInfo, entry: HistoryEntry) -> RequestForm:
    """Re-derive a form from a recorded request.

    Only the concrete path is stored, so path and query parameters are
    recovered with the path codec. Segments that still hold the literal
    placeholder (the parameter was never filled in) are skipped.
    """
    stored_path = entry.request.path
    path_params = {
        name: value
        for name, value in extract_path_params(endpoint.path, stored_path).items()
        if value != f"{{{name}}}"
    }
    return RequestForm(
        path_params=path_params,
        query_params=extract_query(stored_path),
        body=entry.request.body,
    )


def prefill_form(
    endpoint: EndpointInfo,
    history: Optional[HistoryStore] = None,
    generator: Optional[ExampleGenerator] = None,
) -> RequestForm:
    """Initial form for an endpoint.

    Uses the most recent history entry when there is one; otherwise fills the
    body with a synthesized example when the operation takes a request body.
    """
    if history is not None:
        entry = history.latest(endpoint.key)
        if entry is not None:
            return prefill_from_history(endpoint, entry)

    if endpoint.request_body_schema is not None and generator is not None:
        return RequestForm(body=generator.generate(endpoint.request_body_schema))

    return RequestForm()

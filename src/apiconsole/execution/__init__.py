"""Request execution.

Public API:
    - RequestOrchestrator: build and send authenticated operation calls
    - Transport / RequestsTransport: the HTTP collaborator
    - prefill_form / prefill_from_history: form pre-fill for replay

Example:
    >>> from apiconsole.execution import RequestOrchestrator, RequestsTransport
    >>>
    >>> orchestrator = RequestOrchestrator.from_spec(spec, config, RequestsTransport())
    >>> response = orchestrator.execute(endpoint, form, history=history_store)
"""

from .orchestrator import PreparedRequest, RequestOrchestrator
from .replay import prefill_form, prefill_from_history
from .transport import RequestsTransport, Transport

__all__ = [
    "RequestOrchestrator",
    "PreparedRequest",
    "Transport",
    "RequestsTransport",
    "prefill_form",
    "prefill_from_history",
]

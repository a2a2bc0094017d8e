"""Error kinds shared by the server and the client.

Every failure that reaches a user is tagged with one of these kinds so that
API error bodies, chat error envelopes and client-side results can be
matched without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of user-visible failure."""

    TRANSPORT_CLOSED = "transport_closed"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"

"""Client-side exceptions.

Every exception carries an ``ErrorKind`` so that callers can branch on the
category of failure without inspecting messages or status codes.
"""

from __future__ import annotations

from typing import Any

from student_hub.shared.errors import ErrorKind


class ClientError(Exception):
    """Base exception for all client errors.

    Provides the error kind, context data and a user-friendly message.
    """

    kind: ErrorKind = ErrorKind.PERSISTENCE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        context: dict[str, Any] | None = None,
        user_message: str | None = None
    ):
        """Initialize client error.

        Args:
            message: Technical error message for logging
            kind: Error kind, defaults to the class kind
            context: Additional context data for debugging
            user_message: Message suitable for showing to the guest
        """
        super().__init__(message)
        if kind is not None:
            self.kind = ErrorKind(kind)
        self.context = context or {}
        self.user_message = user_message or message

    def get_user_message(self) -> str:
        """Get user-friendly error message."""
        return self.user_message


class APIError(ClientError):
    """Exception for unsuccessful API responses."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs
    ):
        """Initialize API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_body: Response body content
            **kwargs: Additional arguments passed to parent
        """
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body


class NetworkError(APIError):
    """Exception for timeouts, refused connections and other network failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            user_message="Unable to reach the server. Please try again later.",
            **kwargs
        )


class NotFoundError(APIError):
    """Exception for resources that do not exist."""

    kind = ErrorKind.NOT_FOUND


class ValidationError(APIError):
    """Exception for requests the server rejected as invalid."""

    kind = ErrorKind.VALIDATION_FAILED


class TransportClosedError(ClientError):
    """Exception for sending over a chat connection that is not open."""

    kind = ErrorKind.TRANSPORT_CLOSED

    def __init__(self, message: str = "Chat connection is not open", **kwargs):
        super().__init__(
            message,
            user_message="Connection lost. Use reconnect to try again.",
            **kwargs
        )

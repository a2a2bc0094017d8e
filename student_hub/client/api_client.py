"""HTTP API client for the Student Hub service.

Typed wrappers around every HTTP operation, built on httpx. Failed requests
raise exceptions from ``student_hub.client.exceptions``; nothing is retried
automatically, recovery is left to the caller.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from student_hub.client.exceptions import (
    APIError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from student_hub.client.models import (
    CategoryStats,
    ChatMessage,
    Discussion,
    DiscussionSummary,
    Reply,
)
from student_hub.shared.errors import ErrorKind

logger = logging.getLogger(__name__)


class APIClient:
    """Async HTTP client for the Student Hub API.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        base_url: str,
        default_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize API client.

        Args:
            base_url: Base URL of the API, e.g. ``http://localhost:3114/api``
            default_timeout: Default request timeout in seconds
            transport: Optional httpx transport, mainly for testing
        """
        self._base_url = base_url.rstrip('/')
        self._default_timeout = default_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        # Request tracking for monitoring
        self._request_count = 0
        self._error_count = 0

    async def __aenter__(self) -> APIClient:
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_client(self) -> None:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "User-Agent": "StudentHub-Client/1.0",
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self._default_timeout),
                transport=self._transport,
                follow_redirects=True,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Execute an HTTP request and decode the JSON body.

        Args:
            method: HTTP method
            path: API endpoint path
            json_data: JSON request body
            params: Query parameters

        Returns:
            Any: Decoded response body

        Raises:
            NetworkError: If the server could not be reached
            APIError: If the server answered with an error status
        """
        await self._ensure_client()

        self._request_count += 1
        start_time = time.time()
        try:
            response = await self._client.request(method, path, json=json_data, params=params)
        except httpx.TimeoutException as e:
            self._error_count += 1
            raise NetworkError(f"Request timed out: {method} {path}", context={"error": str(e)}) from e
        except httpx.RequestError as e:
            self._error_count += 1
            raise NetworkError(f"Request failed: {method} {path}: {e}", context={"error": str(e)}) from e

        logger.debug(
            "API request completed",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "elapsed": round(time.time() - start_time, 3),
            }
        )

        if response.status_code >= 400:
            self._error_count += 1
            self._handle_error_response(response)

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise APIError(
                f"Invalid JSON in response to {method} {path}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Raise the exception matching an error response.

        Args:
            response: HTTP response with error status

        Raises:
            NotFoundError: For 404
            ValidationError: For 400 and 422
            APIError: For any other error status
        """
        status_code = response.status_code
        error_data: Any = None

        try:
            error_data = response.json()
            detail = error_data.get("detail", f"HTTP {status_code}")
            if isinstance(detail, dict):
                # Error body nested inside an HTTPException detail
                error_message = detail.get("detail", f"HTTP {status_code}")
            else:
                error_message = detail
        except (json.JSONDecodeError, AttributeError):
            error_message = f"HTTP {status_code}: {response.text}"

        context = {"status_code": status_code, "response": error_data}

        if status_code == 404:
            raise NotFoundError(error_message, status_code=status_code, response_body=response.text, context=context)

        if status_code in (400, 422):
            raise ValidationError(error_message, status_code=status_code, response_body=response.text, context=context)

        raise APIError(
            error_message,
            status_code=status_code,
            response_body=response.text,
            kind=ErrorKind.PERSISTENCE_UNAVAILABLE,
            context=context,
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def list_recent_messages(self, limit: Optional[int] = None) -> List[ChatMessage]:
        """Most recent chat messages, oldest first.

        Items that are not valid messages are logged and skipped.
        """
        params = {"limit": limit} if limit else None
        data = await self._request("GET", "/chat/messages", params=params)
        messages = []
        for item in data:
            try:
                messages.append(ChatMessage.from_api(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed chat message in history: {e}")
        return messages

    async def random_username(self) -> str:
        data = await self._request("GET", "/usernames/random")
        return data["username"]

    # ------------------------------------------------------------------
    # Discussions
    # ------------------------------------------------------------------

    async def create_discussion(
        self,
        title: str,
        content: str,
        category: str,
        guest_name: Optional[str] = None
    ) -> str:
        """Start a discussion and return its ID."""
        data = await self._request(
            "POST",
            "/discussions",
            json_data={"title": title, "content": content, "category": category, "guestName": guest_name},
        )
        return str(data["id"])

    async def get_discussion(self, discussion_id: str) -> Discussion:
        data = await self._request("GET", f"/discussions/{discussion_id}")
        return Discussion.from_api(data)

    async def view_discussion(self, discussion_id: str) -> Discussion:
        """Count one view and return the discussion."""
        data = await self._request("POST", f"/discussions/{discussion_id}/view")
        return Discussion.from_api(data)

    async def like_discussion(self, discussion_id: str, event: str) -> Discussion:
        """Send ``like`` or ``unlike`` and return the updated discussion."""
        data = await self._request("POST", f"/discussions/{discussion_id}/like", json_data={"event": event})
        return Discussion.from_api(data)

    async def touch_discussion(self, discussion_id: str) -> Discussion:
        data = await self._request("POST", f"/discussions/{discussion_id}/touch")
        return Discussion.from_api(data)

    async def create_reply(
        self,
        discussion_id: str,
        content: str,
        guest_name: Optional[str] = None,
        parent_reply_id: Optional[str] = None
    ) -> Discussion:
        """Post a reply and return the discussion including it."""
        payload: Dict[str, Any] = {"content": content, "guestName": guest_name}
        if parent_reply_id:
            payload["parentReplyId"] = parent_reply_id
        data = await self._request("POST", f"/discussions/{discussion_id}/replies", json_data=payload)
        return Discussion.from_api(data)

    async def like_reply(self, reply_id: str, event: str) -> Reply:
        """Send ``like``, ``dislike`` or ``neutral`` and return the updated reply."""
        data = await self._request("POST", f"/replies/{reply_id}/like", json_data={"event": event})
        return Reply.from_api(data)

    async def list_recent_discussions(self) -> List[DiscussionSummary]:
        data = await self._request("GET", "/discussions/recent")
        return [DiscussionSummary.from_api(item) for item in data]

    async def list_discussions_by_category(
        self,
        category: str,
        sort_by: str = "latest",
        time_range: str = "all-time"
    ) -> List[DiscussionSummary]:
        data = await self._request(
            "GET",
            f"/discussions/categories/{category}",
            params={"sortBy": sort_by, "timeRange": time_range},
        )
        return [DiscussionSummary.from_api(item) for item in data]

    async def category_stats(self) -> Dict[str, CategoryStats]:
        data = await self._request("GET", "/discussions/category-stats")
        return {
            category: CategoryStats(threads=int(counts["threads"]), messages=int(counts["messages"]))
            for category, counts in data.items()
        }

    # ------------------------------------------------------------------
    # Academic tools
    # ------------------------------------------------------------------

    async def attendance(
        self,
        total_classes: int,
        attended_classes: int,
        desired_percentage: float = 75
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/tools/attendance",
            json_data={
                "totalClasses": total_classes,
                "attendedClasses": attended_classes,
                "desiredPercentage": desired_percentage,
            },
        )

    async def gpa(self, courses: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
        """GPA of courses given as ``{"name", "credits", "grade"}`` mappings."""
        return await self._request("POST", "/tools/gpa", json_data={"courses": list(courses)})

    async def predict_cgpa(
        self,
        current_cgpa: float,
        completed_credits: float,
        semesters: Sequence[Dict[str, Any]]
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/tools/cgpa/predict",
            json_data={
                "currentCgpa": current_cgpa,
                "completedCredits": completed_credits,
                "semesters": list(semesters),
            },
        )

    async def required_gpa(
        self,
        current_cgpa: float,
        completed_credits: float,
        desired_cgpa: float,
        remaining_semesters: int,
        credits_per_semester: float
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/tools/cgpa/required",
            json_data={
                "currentCgpa": current_cgpa,
                "completedCredits": completed_credits,
                "desiredCgpa": desired_cgpa,
                "remainingSemesters": remaining_semesters,
                "creditsPerSemester": credits_per_semester,
            },
        )

    def get_stats(self) -> Dict[str, int]:
        """Request and error counts since the client was created."""
        return {"requests": self._request_count, "errors": self._error_count}

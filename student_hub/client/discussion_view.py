"""Client-side view of one discussion thread."""

from __future__ import annotations

import logging
from typing import List, Optional

from student_hub.client.api_client import APIClient
from student_hub.client.exceptions import ClientError, ValidationError
from student_hub.client.models import Discussion
from student_hub.shared.errors import ErrorKind
from student_hub.shared.reply_tree import ReplyNode, build_reply_tree, count_nodes

logger = logging.getLogger(__name__)


class DiscussionThreadView:
    """A discussion and its reply forest, kept in sync with the server.

    The forest is always rebuilt from a fresh fetch rather than patched in
    place, so a posted reply appears exactly where the server placed it.
    """

    def __init__(self, api_client: APIClient, discussion_id: str):
        self.api_client = api_client
        self.discussion_id = str(discussion_id)
        self.discussion: Optional[Discussion] = None
        self.forest: List[ReplyNode] = []
        self.error: Optional[ErrorKind] = None

    @property
    def reply_count(self) -> int:
        return count_nodes(self.forest)

    def _apply(self, discussion: Discussion) -> Discussion:
        self.discussion = discussion
        self.forest = build_reply_tree(discussion.replies)
        self.error = None
        return discussion

    async def open(self) -> Discussion:
        """Load the thread for display, counting one view.

        Raises:
            ClientError: If the fetch fails; the previous state is kept
        """
        try:
            discussion = await self.api_client.view_discussion(self.discussion_id)
        except ClientError as e:
            self.error = e.kind
            raise
        return self._apply(discussion)

    async def refresh(self) -> Discussion:
        """Fetch the discussion and rebuild the reply forest.

        Does not count a view.

        Raises:
            ClientError: If the fetch fails; the previous state is kept
        """
        try:
            discussion = await self.api_client.get_discussion(self.discussion_id)
        except ClientError as e:
            self.error = e.kind
            raise
        return self._apply(discussion)

    async def submit_reply(
        self,
        content: str,
        guest_name: Optional[str] = None,
        parent_id: Optional[str] = None
    ) -> Discussion:
        """Post a reply, then re-fetch the thread.

        Args:
            content: Reply text, must not be blank
            guest_name: Display name, ``Anonymous`` on the server when omitted
            parent_id: Reply being answered, None for a top-level reply

        Raises:
            ValidationError: If the content is blank
            ClientError: If posting or re-fetching fails
        """
        if not content or not content.strip():
            raise ValidationError("Reply content must not be empty")

        try:
            await self.api_client.create_reply(
                self.discussion_id,
                content.strip(),
                guest_name=guest_name,
                parent_reply_id=parent_id,
            )
        except ClientError as e:
            logger.warning(f"Posting reply failed: {e}", extra={"discussion_id": self.discussion_id})
            self.error = e.kind
            raise

        return await self.refresh()

"""
Application service: community stories, events and discussions.

All counters (likes, comment counts, participants, replies, views) are
changed through the store's atomic primitives.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from treeadopt.config import settings
from treeadopt.domain.exceptions import NotFoundError, ValidationError
from treeadopt.domain.models import (
    Comment,
    CommunityEvent,
    DiscussionReply,
    DiscussionTopic,
    EventStatus,
    Story,
)
from treeadopt.infrastructure.document_store import DocumentStore


logger = logging.getLogger(__name__)

STORIES = "stories"
EVENTS = "events"
DISCUSSIONS = "discussions"
USERS = "users"

DEFAULT_DISPLAY_NAME = "Anonymous"
DEFAULT_AVATAR = "/default-avatar.png"

_QUOTED = re.compile(r"""^["'](.+)["']$""")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def comments_path(story_id: str) -> str:
    return f"{STORIES}/{story_id}/comments"


def replies_path(topic_id: str) -> str:
    return f"{DISCUSSIONS}/{topic_id}/replies"


def clean_avatar_url(url: Optional[str]) -> Optional[str]:
    """Strip one pair of surrounding quotes left over from bad profile writes."""
    if not url or not isinstance(url, str):
        return url
    return _QUOTED.sub(r"\1", url)


def parse_event_date(value: Any) -> datetime:
    """
    Coerce an event date to an aware datetime.

    Raises:
        ValidationError: If the value is not a date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("Invalid date format")
    else:
        raise ValidationError("Invalid date format")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class CommentPage(BaseModel):
    comments: List[Comment]
    total_comments: int


class CommunitySnapshot(BaseModel):
    stories: List[Story]
    events: List[CommunityEvent]
    topics: List[DiscussionTopic]


class CommunityService:
    """Create-read-like-delete operations for the community pages."""

    def __init__(
        self,
        store: DocumentStore,
        retry_attempts: int = settings.community_retry_attempts,
        retry_initial_delay: float = settings.community_retry_initial_delay,
    ):
        self.store = store
        self.retry_attempts = retry_attempts
        self.retry_initial_delay = retry_initial_delay

    # ============================================================
    # Stories
    # ============================================================

    async def add_story(self, story: Dict[str, Any]) -> str:
        """
        Publish a story.

        Missing author display name or avatar are filled from the user's
        profile, falling back to defaults.

        Raises:
            ValidationError: If the story has no user id
        """
        story = dict(story)
        user_id = story.get("user_id")
        if not user_id:
            raise ValidationError("User ID is required")

        if not story.get("user_display_name") or not story.get("user_avatar"):
            profile = await self.store.get(USERS, user_id) or {}
            story["user_display_name"] = story.get("user_display_name") or profile.get("display_name")
            story["user_avatar"] = story.get("user_avatar") or profile.get("avatar_url")

        story.update({
            "user_display_name": story.get("user_display_name") or DEFAULT_DISPLAY_NAME,
            "user_avatar": clean_avatar_url(story.get("user_avatar")) or DEFAULT_AVATAR,
            "created_at": _utcnow(),
            "likes": 0,
            "comment_count": 0,
            "liked_by": [],
        })
        story_id = await self.store.add(STORIES, story)
        logger.info(f"Story added successfully with ID: {story_id}")
        return story_id

    async def get_stories(self, limit: int = 20) -> List[Story]:
        docs = await self.store.query(STORIES, order_by="created_at", descending=True, limit=limit)
        return [Story(**{**data, "id": doc_id}) for doc_id, data in docs]

    async def like_story(self, story_id: str, user_id: str) -> bool:
        """Toggle ``user_id``'s like; returns True if the story is now liked."""
        return await self.store.toggle_membership(STORIES, story_id, "liked_by", "likes", user_id)

    async def delete_story(self, story_id: str) -> None:
        for comment_id, _ in await self.store.query(comments_path(story_id)):
            await self.store.delete(comments_path(story_id), comment_id)
        await self.store.delete(STORIES, story_id)

    async def get_comments(self, story_id: str) -> CommentPage:
        docs = await self.store.query(comments_path(story_id), order_by="created_at", descending=True)
        story = await self.store.get(STORIES, story_id)
        if story is None:
            raise NotFoundError(f"Story '{story_id}' not found")
        return CommentPage(
            comments=[Comment(**{**data, "id": doc_id}) for doc_id, data in docs],
            total_comments=story.get("comment_count") or len(docs),
        )

    async def add_comment(self, story_id: str, comment: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a comment and bump the story's comment count.

        Returns:
            The stored comment with its id and the story's new comment count
        """
        if await self.store.get(STORIES, story_id) is None:
            raise NotFoundError(f"Story '{story_id}' not found")

        data = {**comment, "created_at": _utcnow(), "likes": 0, "liked_by": []}
        comment_id = await self.store.add(comments_path(story_id), data)
        story = await self.store.increment(STORIES, story_id, {"comment_count": 1})
        return {**data, "id": comment_id, "story_comment_count": story["comment_count"]}

    async def like_comment(self, story_id: str, comment_id: str, user_id: str) -> bool:
        return await self.store.toggle_membership(
            comments_path(story_id), comment_id, "liked_by", "likes", user_id
        )

    async def delete_comment(self, story_id: str, comment_id: str) -> int:
        """Delete a comment; returns the story's new comment count."""
        if await self.store.get(comments_path(story_id), comment_id) is None:
            raise NotFoundError(f"Comment '{comment_id}' not found")
        await self.store.delete(comments_path(story_id), comment_id)
        story = await self.store.increment(STORIES, story_id, {"comment_count": -1})
        if story["comment_count"] < 0:
            await self.store.update(STORIES, story_id, {"comment_count": 0})
            return 0
        return story["comment_count"]

    # ============================================================
    # Events
    # ============================================================

    async def add_event(self, event: Dict[str, Any]) -> str:
        event = dict(event)
        event.update({
            "date": parse_event_date(event.get("date")),
            "created_at": _utcnow(),
            "participant_count": 0,
            "participants": [],
            "status": EventStatus.UPCOMING.value,
        })
        event_id = await self.store.add(EVENTS, event)
        logger.info(f"Event added with ID: {event_id}")
        return event_id

    async def get_upcoming_events(self, limit: int = 10) -> List[CommunityEvent]:
        docs = await self.store.query(EVENTS, order_by="date", limit=limit)
        events = []
        for doc_id, data in docs:
            try:
                data["date"] = parse_event_date(data.get("date"))
            except ValidationError:
                logger.info(f"Filtering out event {doc_id} with invalid date: {data.get('date')!r}")
                continue
            events.append(CommunityEvent(**{**data, "id": doc_id}))
        return sorted(events, key=lambda e: e.date)

    async def join_event(self, event_id: str, user_id: str) -> bool:
        """
        Toggle participation; returns True if the user joined.

        Raises:
            CapacityError: If the event is full
        """
        return await self.store.toggle_membership(
            EVENTS, event_id, "participants", "participant_count", user_id,
            capacity_field="max_participants",
        )

    async def delete_event(self, event_id: str) -> None:
        await self.store.delete(EVENTS, event_id)

    async def update_event_status(self, event_id: str, status: EventStatus) -> None:
        await self.store.update(EVENTS, event_id, {"status": EventStatus(status).value})

    # ============================================================
    # Discussions
    # ============================================================

    async def add_topic(self, topic: Dict[str, Any]) -> str:
        now = _utcnow()
        topic = {
            **topic,
            "created_at": now,
            "last_active": now,
            "reply_count": 0,
            "views": 0,
            "tags": topic.get("tags") or [],
        }
        return await self.store.add(DISCUSSIONS, topic)

    async def delete_topic(self, topic_id: str) -> None:
        for reply_id, _ in await self.store.query(replies_path(topic_id)):
            await self.store.delete(replies_path(topic_id), reply_id)
        await self.store.delete(DISCUSSIONS, topic_id)

    async def get_topics(self, limit: int = 20) -> List[DiscussionTopic]:
        docs = await self.store.query(DISCUSSIONS, order_by="last_active", descending=True, limit=limit)
        return [DiscussionTopic(**{**data, "id": doc_id}) for doc_id, data in docs]

    async def add_reply(self, topic_id: str, reply: Dict[str, Any]) -> str:
        if await self.store.get(DISCUSSIONS, topic_id) is None:
            raise NotFoundError(f"Topic '{topic_id}' not found")
        now = _utcnow()
        reply_id = await self.store.add(replies_path(topic_id), {**reply, "created_at": now})
        await self.store.increment(DISCUSSIONS, topic_id, {"reply_count": 1}, updates={"last_active": now})
        return reply_id

    async def get_replies(self, topic_id: str, limit: int = 50) -> List[DiscussionReply]:
        docs = await self.store.query(replies_path(topic_id), order_by="created_at", limit=limit)
        return [DiscussionReply(**{**data, "id": doc_id}) for doc_id, data in docs]

    async def increment_views(self, topic_id: str) -> int:
        topic = await self.store.increment(DISCUSSIONS, topic_id, {"views": 1})
        return topic["views"]

    # ============================================================
    # Initial page load
    # ============================================================

    async def load_community(self) -> CommunitySnapshot:
        """
        Load stories, events and topics for the community page.

        Retried with exponential backoff; the last error is re-raised.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_initial_delay, exp_base=2),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying community load (attempt {attempt.retry_state.attempt_number})"
                    )
                return CommunitySnapshot(
                    stories=await self.get_stories(),
                    events=await self.get_upcoming_events(),
                    topics=await self.get_topics(),
                )

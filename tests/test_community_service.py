"""
Unit tests for the community service.

Tests cover:
- Story creation, likes and comments
- Concurrent counter updates
- Event dates, capacity and participation
- Discussion replies and views
- Retried initial load
"""
import asyncio
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, patch

from treeadopt.domain.exceptions import CapacityError, NotFoundError, ValidationError
from treeadopt.services.application.community_service import (
    DISCUSSIONS,
    EVENTS,
    STORIES,
    USERS,
    clean_avatar_url,
    parse_event_date,
)


# ============================================================
# Helper Tests
# ============================================================

class TestHelpers:
    """Tests for avatar and date helpers."""

    @pytest.mark.parametrize("raw, expected", [
        ('"https://cdn.example.com/a.png"', "https://cdn.example.com/a.png"),
        ("'https://cdn.example.com/a.png'", "https://cdn.example.com/a.png"),
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        (None, None),
        ("", ""),
    ])
    def test_clean_avatar_url(self, raw, expected):
        assert clean_avatar_url(raw) == expected

    def test_parse_event_date_iso_z(self):
        assert parse_event_date("2030-03-01T09:00:00Z") == datetime(2030, 3, 1, 9, tzinfo=timezone.utc)

    def test_parse_event_date_naive_is_utc(self):
        assert parse_event_date(datetime(2030, 3, 1)).tzinfo is timezone.utc

    @pytest.mark.parametrize("value", ["next tuesday", None, 12345])
    def test_parse_event_date_rejects_garbage(self, value):
        with pytest.raises(ValidationError, match="Invalid date format"):
            parse_event_date(value)


# ============================================================
# Story Tests
# ============================================================

class TestStories:
    """Tests for stories, likes and comments."""

    @pytest.mark.asyncio
    async def test_add_story_requires_user(self, community_service):
        with pytest.raises(ValidationError, match="User ID is required"):
            await community_service.add_story({"content": "hello"})

    @pytest.mark.asyncio
    async def test_add_story_fills_profile(self, community_service, store):
        await store.set(USERS, "user-1", {"display_name": "Asha", "avatar_url": '"https://cdn.example.com/a.png"'})

        story_id = await community_service.add_story({"user_id": "user-1", "content": "First neem!"})

        story = await store.get(STORIES, story_id)
        assert story["user_display_name"] == "Asha"
        assert story["user_avatar"] == "https://cdn.example.com/a.png"
        assert story["likes"] == 0
        assert story["comment_count"] == 0
        assert story["liked_by"] == []

    @pytest.mark.asyncio
    async def test_add_story_defaults(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-7", "content": "hi"})

        story = await store.get(STORIES, story_id)
        assert story["user_display_name"] == "Anonymous"
        assert story["user_avatar"] == "/default-avatar.png"

    @pytest.mark.asyncio
    async def test_like_toggles(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})

        assert await community_service.like_story(story_id, "user-2") is True
        assert (await store.get(STORIES, story_id))["likes"] == 1
        assert await community_service.like_story(story_id, "user-2") is False
        story = await store.get(STORIES, story_id)
        assert story["likes"] == 0
        assert story["liked_by"] == []

    @pytest.mark.asyncio
    async def test_concurrent_likes_are_not_lost(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})

        await asyncio.gather(
            community_service.like_story(story_id, "user-2"),
            community_service.like_story(story_id, "user-3"),
        )

        story = await store.get(STORIES, story_id)
        assert story["likes"] == 2
        assert sorted(story["liked_by"]) == ["user-2", "user-3"]

    @pytest.mark.asyncio
    async def test_stories_newest_first(self, community_service, store):
        first = await community_service.add_story({"user_id": "user-1", "content": "one"})
        second = await community_service.add_story({"user_id": "user-1", "content": "two"})
        await store.update(STORIES, first, {"created_at": datetime(2020, 1, 1, tzinfo=timezone.utc)})

        stories = await community_service.get_stories()

        assert [s.id for s in stories] == [second, first]

    @pytest.mark.asyncio
    async def test_comment_counts(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})

        first = await community_service.add_comment(story_id, {"user_id": "user-2", "text": "nice"})
        second = await community_service.add_comment(story_id, {"user_id": "user-3", "text": "wow"})

        assert first["story_comment_count"] == 1
        assert second["story_comment_count"] == 2
        page = await community_service.get_comments(story_id)
        assert page.total_comments == 2
        assert {c.text for c in page.comments} == {"wow", "nice"}

        assert await community_service.delete_comment(story_id, first["id"]) == 1
        assert (await store.get(STORIES, story_id))["comment_count"] == 1

    @pytest.mark.asyncio
    async def test_delete_comment_never_goes_negative(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})
        comment = await community_service.add_comment(story_id, {"user_id": "user-2", "text": "nice"})
        await store.update(STORIES, story_id, {"comment_count": 0})

        assert await community_service.delete_comment(story_id, comment["id"]) == 0
        assert (await store.get(STORIES, story_id))["comment_count"] == 0

    @pytest.mark.asyncio
    async def test_comment_on_missing_story(self, community_service):
        with pytest.raises(NotFoundError):
            await community_service.add_comment("nope", {"user_id": "user-2", "text": "hello?"})

    @pytest.mark.asyncio
    async def test_like_comment(self, community_service):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})
        comment = await community_service.add_comment(story_id, {"user_id": "user-2", "text": "nice"})

        assert await community_service.like_comment(story_id, comment["id"], "user-1") is True
        page = await community_service.get_comments(story_id)
        assert page.comments[0].likes == 1

    @pytest.mark.asyncio
    async def test_delete_story_removes_comments(self, community_service, store):
        story_id = await community_service.add_story({"user_id": "user-1", "content": "hi"})
        await community_service.add_comment(story_id, {"user_id": "user-2", "text": "nice"})

        await community_service.delete_story(story_id)

        assert await store.get(STORIES, story_id) is None
        assert await store.query(f"{STORIES}/{story_id}/comments") == []


# ============================================================
# Event Tests
# ============================================================

class TestEvents:
    """Tests for community events."""

    @pytest.mark.asyncio
    async def test_add_event_rejects_bad_date(self, community_service):
        with pytest.raises(ValidationError, match="Invalid date format"):
            await community_service.add_event({"title": "Drive", "date": "soon"})

    @pytest.mark.asyncio
    async def test_upcoming_events_in_date_order(self, community_service, store):
        await community_service.add_event({"title": "Later", "date": "2031-01-01T00:00:00Z"})
        await community_service.add_event({"title": "Sooner", "date": "2030-01-01T00:00:00Z"})

        events = await community_service.get_upcoming_events()

        assert [e.title for e in events] == ["Sooner", "Later"]
        assert events[0].status == "upcoming"

    @pytest.mark.asyncio
    async def test_upcoming_events_skip_bad_dates_only(self, community_service, store):
        await store.add(EVENTS, {"title": "Broken", "date": "not a date"})

        assert await community_service.get_upcoming_events() == []

    @pytest.mark.asyncio
    async def test_join_and_leave(self, community_service, store):
        event_id = await community_service.add_event({"title": "Drive", "date": "2030-01-01T00:00:00Z"})

        assert await community_service.join_event(event_id, "user-1") is True
        assert (await store.get(EVENTS, event_id))["participant_count"] == 1
        assert await community_service.join_event(event_id, "user-1") is False
        assert (await store.get(EVENTS, event_id))["participant_count"] == 0

    @pytest.mark.asyncio
    async def test_capacity_is_enforced(self, community_service, store):
        event_id = await community_service.add_event({
            "title": "Drive", "date": "2030-01-01T00:00:00Z", "max_participants": 2,
        })

        results = await asyncio.gather(
            community_service.join_event(event_id, "user-1"),
            community_service.join_event(event_id, "user-2"),
            community_service.join_event(event_id, "user-3"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if r is True) == 2
        assert sum(1 for r in results if isinstance(r, CapacityError)) == 1
        assert (await store.get(EVENTS, event_id))["participant_count"] == 2

    @pytest.mark.asyncio
    async def test_update_status(self, community_service, store):
        event_id = await community_service.add_event({"title": "Drive", "date": "2030-01-01T00:00:00Z"})

        await community_service.update_event_status(event_id, "cancelled")

        assert (await store.get(EVENTS, event_id))["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_update_status_of_missing_event(self, community_service):
        with pytest.raises(NotFoundError):
            await community_service.update_event_status("nope", "completed")


# ============================================================
# Discussion Tests
# ============================================================

class TestDiscussions:
    """Tests for discussion topics and replies."""

    @pytest.mark.asyncio
    async def test_reply_bumps_count_and_activity(self, community_service, store):
        topic_id = await community_service.add_topic({"title": "Best shade trees?", "user_id": "user-1"})
        before = (await store.get(DISCUSSIONS, topic_id))["last_active"]

        await community_service.add_reply(topic_id, {"user_id": "user-2", "text": "Neem"})
        await community_service.add_reply(topic_id, {"user_id": "user-3", "text": "Banyan"})

        topic = await store.get(DISCUSSIONS, topic_id)
        assert topic["reply_count"] == 2
        assert topic["last_active"] >= before
        replies = await community_service.get_replies(topic_id)
        assert [r.text for r in replies] == ["Neem", "Banyan"]

    @pytest.mark.asyncio
    async def test_concurrent_views(self, community_service):
        topic_id = await community_service.add_topic({"title": "Watering tips"})

        await asyncio.gather(*(community_service.increment_views(topic_id) for _ in range(5)))

        topics = await community_service.get_topics()
        assert topics[0].views == 5

    @pytest.mark.asyncio
    async def test_reply_to_missing_topic(self, community_service):
        with pytest.raises(NotFoundError):
            await community_service.add_reply("nope", {"text": "hello"})

    @pytest.mark.asyncio
    async def test_delete_topic_removes_replies(self, community_service, store):
        topic_id = await community_service.add_topic({"title": "Watering tips"})
        await community_service.add_reply(topic_id, {"text": "Mornings"})

        await community_service.delete_topic(topic_id)

        assert await store.get(DISCUSSIONS, topic_id) is None
        assert await store.query(f"{DISCUSSIONS}/{topic_id}/replies") == []


# ============================================================
# Initial Load Tests
# ============================================================

class TestLoadCommunity:
    """Tests for the retried community page load."""

    @pytest.mark.asyncio
    async def test_loads_all_sections(self, community_service):
        await community_service.add_story({"user_id": "user-1", "content": "hi"})
        await community_service.add_topic({"title": "Watering tips"})

        snapshot = await community_service.load_community()

        assert len(snapshot.stories) == 1
        assert snapshot.events == []
        assert len(snapshot.topics) == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, community_service):
        mock = AsyncMock(side_effect=[RuntimeError("unavailable"), RuntimeError("unavailable"), []])

        with patch.object(community_service, "get_stories", mock):
            snapshot = await community_service.load_community()

        assert snapshot.stories == []
        assert mock.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_last_attempt(self, community_service):
        mock = AsyncMock(side_effect=RuntimeError("unavailable"))

        with patch.object(community_service, "get_stories", mock):
            with pytest.raises(RuntimeError, match="unavailable"):
                await community_service.load_community()

        assert mock.await_count == 3

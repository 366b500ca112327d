"""
API router for community stories, events and discussions.
"""
from typing import Annotated, List
from fastapi import APIRouter, Query

from treeadopt.api.dependencies import CommunityServiceDep, CurrentSessionDep
from treeadopt.api.v1.models.requests import (
    CommentCreate,
    EventCreate,
    EventStatusUpdate,
    ReplyCreate,
    StoryCreate,
    TopicCreate,
)
from treeadopt.api.v1.models.responses import CountResponse, CreatedResponse, ToggleResponse
from treeadopt.domain.models import CommunityEvent, DiscussionReply, DiscussionTopic, Story
from treeadopt.services.application.community_service import CommentPage, CommunitySnapshot


router = APIRouter(
    prefix="/community",
    tags=["community"],
)


@router.get(
    "",
    response_model=CommunitySnapshot,
    summary="Load the community page",
    description="Stories, upcoming events and discussion topics. Retried with exponential backoff.",
)
async def load_community(community: CommunityServiceDep) -> CommunitySnapshot:
    return await community.load_community()


# ============================================================
# Stories
# ============================================================

@router.get("/stories", response_model=List[Story])
async def list_stories(
    community: CommunityServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> List[Story]:
    return await community.get_stories(limit)


@router.post("/stories", response_model=CreatedResponse, status_code=201)
async def add_story(
    body: StoryCreate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> CreatedResponse:
    story_id = await community.add_story({**body.model_dump(), "user_id": session.user_id})
    return CreatedResponse(id=story_id)


@router.delete("/stories/{story_id}", status_code=204)
async def delete_story(story_id: str, session: CurrentSessionDep, community: CommunityServiceDep) -> None:
    await community.delete_story(story_id)


@router.post("/stories/{story_id}/like", response_model=ToggleResponse)
async def like_story(story_id: str, session: CurrentSessionDep, community: CommunityServiceDep) -> ToggleResponse:
    return ToggleResponse(active=await community.like_story(story_id, session.user_id))


@router.get("/stories/{story_id}/comments", response_model=CommentPage)
async def list_comments(story_id: str, community: CommunityServiceDep) -> CommentPage:
    return await community.get_comments(story_id)


@router.post("/stories/{story_id}/comments", status_code=201)
async def add_comment(
    story_id: str,
    body: CommentCreate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> dict:
    return await community.add_comment(story_id, {
        "text": body.text,
        "user_id": session.user_id,
        "user_display_name": session.user.display_name,
    })


@router.post("/stories/{story_id}/comments/{comment_id}/like", response_model=ToggleResponse)
async def like_comment(
    story_id: str,
    comment_id: str,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> ToggleResponse:
    return ToggleResponse(active=await community.like_comment(story_id, comment_id, session.user_id))


@router.delete("/stories/{story_id}/comments/{comment_id}", response_model=CountResponse)
async def delete_comment(
    story_id: str,
    comment_id: str,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> CountResponse:
    return CountResponse(count=await community.delete_comment(story_id, comment_id))


# ============================================================
# Events
# ============================================================

@router.get("/events", response_model=List[CommunityEvent])
async def list_events(
    community: CommunityServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> List[CommunityEvent]:
    return await community.get_upcoming_events(limit)


@router.post("/events", response_model=CreatedResponse, status_code=201)
async def add_event(
    body: EventCreate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> CreatedResponse:
    event_id = await community.add_event({**body.model_dump(), "created_by": session.user_id})
    return CreatedResponse(id=event_id)


@router.post("/events/{event_id}/join", response_model=ToggleResponse)
async def join_event(event_id: str, session: CurrentSessionDep, community: CommunityServiceDep) -> ToggleResponse:
    return ToggleResponse(active=await community.join_event(event_id, session.user_id))


@router.put("/events/{event_id}/status", status_code=204)
async def update_event_status(
    event_id: str,
    body: EventStatusUpdate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> None:
    await community.update_event_status(event_id, body.status)


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(event_id: str, session: CurrentSessionDep, community: CommunityServiceDep) -> None:
    await community.delete_event(event_id)


# ============================================================
# Discussions
# ============================================================

@router.get("/discussions", response_model=List[DiscussionTopic])
async def list_topics(
    community: CommunityServiceDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> List[DiscussionTopic]:
    return await community.get_topics(limit)


@router.post("/discussions", response_model=CreatedResponse, status_code=201)
async def add_topic(
    body: TopicCreate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> CreatedResponse:
    topic_id = await community.add_topic({**body.model_dump(), "user_id": session.user_id})
    return CreatedResponse(id=topic_id)


@router.delete("/discussions/{topic_id}", status_code=204)
async def delete_topic(topic_id: str, session: CurrentSessionDep, community: CommunityServiceDep) -> None:
    await community.delete_topic(topic_id)


@router.get("/discussions/{topic_id}/replies", response_model=List[DiscussionReply])
async def list_replies(
    topic_id: str,
    community: CommunityServiceDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> List[DiscussionReply]:
    return await community.get_replies(topic_id, limit)


@router.post("/discussions/{topic_id}/replies", response_model=CreatedResponse, status_code=201)
async def add_reply(
    topic_id: str,
    body: ReplyCreate,
    session: CurrentSessionDep,
    community: CommunityServiceDep,
) -> CreatedResponse:
    reply_id = await community.add_reply(topic_id, {"text": body.text, "user_id": session.user_id})
    return CreatedResponse(id=reply_id)


@router.post("/discussions/{topic_id}/views", response_model=CountResponse)
async def increment_views(topic_id: str, community: CommunityServiceDep) -> CountResponse:
    return CountResponse(count=await community.increment_views(topic_id))

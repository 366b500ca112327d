"""
API router for user profiles and the leaderboard.
"""
from typing import Annotated, List
from fastapi import APIRouter, Query

from treeadopt.api.dependencies import CurrentSessionDep, ProfileServiceDep
from treeadopt.domain.models import LeaderboardEntry, ProfileUpdate, UserProfile


router = APIRouter(tags=["users"])


@router.get(
    "/users/me",
    response_model=UserProfile,
    summary="Profile of the signed-in user",
    responses={
        401: {"description": "Not signed in"},
        404: {"description": "No profile yet (nothing adopted or edited)"},
    }
)
async def get_my_profile(
    session: CurrentSessionDep,
    profile_service: ProfileServiceDep,
) -> UserProfile:
    return await profile_service.get_profile(session.user_id)


@router.patch(
    "/users/me",
    response_model=UserProfile,
    summary="Edit the signed-in user's profile",
    description="""
    Update display name, bio, location or avatar. Only the fields sent are
    changed. Adoption counters cannot be edited here.
    """,
    responses={
        400: {"description": "No fields given or blank display name"},
        401: {"description": "Not signed in"},
    }
)
async def update_my_profile(
    body: ProfileUpdate,
    session: CurrentSessionDep,
    profile_service: ProfileServiceDep,
) -> UserProfile:
    return await profile_service.update_profile(session.user_id, body)


@router.get(
    "/leaderboard",
    response_model=List[LeaderboardEntry],
    summary="Top users by CO₂ impact",
)
async def leaderboard(
    profile_service: ProfileServiceDep,
    limit: Annotated[int, Query(ge=1, le=50, description="Number of users to return")] = 10,
) -> List[LeaderboardEntry]:
    return await profile_service.top_users(limit)

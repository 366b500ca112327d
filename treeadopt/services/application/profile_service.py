"""
Application service: user profiles and the impact leaderboard.

Both read the ``users`` documents whose counters the AdoptionRecorder keeps.
Profile edits never touch those counters.
"""
import logging
from datetime import datetime, timezone
from typing import List

from treeadopt.domain.exceptions import NotFoundError, ValidationError
from treeadopt.domain.models import LeaderboardEntry, ProfileUpdate, UserProfile
from treeadopt.infrastructure.document_store import DocumentStore
from treeadopt.services.application.adoption_service import USERS


logger = logging.getLogger(__name__)

MAX_LEADERBOARD_SIZE = 50


class ProfileService:
    """Reads and edits user profiles; ranks users by CO₂ impact."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def get_profile(self, user_id: str) -> UserProfile:
        """
        Fetch a user's profile.

        Raises:
            NotFoundError: If the user has no profile yet
        """
        data = await self.store.get(USERS, user_id)
        if data is None:
            raise NotFoundError("Profile not found")
        return UserProfile(**{**data, "id": user_id})

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        """
        Apply the fields set on ``update``, creating the profile if needed.

        Raises:
            ValidationError: If no field is set or the display name is blank
        """
        changes = {
            field: value.strip() if isinstance(value, str) else value
            for field, value in update.model_dump(exclude_unset=True).items()
        }
        if not changes:
            raise ValidationError("No profile fields to update")
        if "display_name" in changes and not changes["display_name"]:
            raise ValidationError("Display name cannot be empty")

        changes["updated_at"] = datetime.now(timezone.utc)
        await self.store.set(USERS, user_id, changes, merge=True)
        logger.info(f"Profile updated for {user_id}: {sorted(changes)}")
        return await self.get_profile(user_id)

    async def top_users(self, limit: int = 10) -> List[LeaderboardEntry]:
        """Users ranked by total CO₂ impact, highest first."""
        limit = max(1, min(limit, MAX_LEADERBOARD_SIZE))
        docs = await self.store.query(
            USERS,
            order_by="total_impact_kg",
            descending=True,
            limit=limit,
        )
        return [
            LeaderboardEntry(
                rank=rank,
                user_id=doc_id,
                display_name=data.get("display_name") or "Anonymous",
                trees_planted=data.get("trees_planted") or 0,
                total_impact_kg=data.get("total_impact_kg") or 0,
            )
            for rank, (doc_id, data) in enumerate(docs, start=1)
        ]

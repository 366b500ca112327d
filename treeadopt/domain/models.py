"""
Domain models for tree adoption and community data.

These models represent the core domain entities and should be independent
of any infrastructure concerns (payment SDKs, databases, etc.).
"""
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class PlanDuration(IntEnum):
    """Adoption durations on offer, in years."""
    ONE_YEAR = 1
    TWO_YEARS = 2
    FIVE_YEARS = 5


class TreeStatus(str, Enum):
    AVAILABLE = "available"
    ADOPTED = "adopted"


class AdoptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    GIFT = "gift"
    FAILED = "failed"


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ============================================================
# Catalog and checkout
# ============================================================

class AdoptionPlan(BaseModel):
    """Fixed-price adoption tier."""
    model_config = ConfigDict(frozen=True)

    duration: PlanDuration
    price: int = Field(description="Price in major currency units")
    label: str
    discount_label: Optional[str] = None


class AdopterContact(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class GiftDetails(BaseModel):
    recipient_name: str
    message: Optional[str] = None


class AdoptionRequest(BaseModel):
    """Checkout payload; lives only for the duration of one checkout."""
    tree_id: str
    selected_plan: AdoptionPlan
    adopter_contact: AdopterContact
    gift_details: Optional[GiftDetails] = None


# ============================================================
# Payments
# ============================================================

class PaymentIntent(BaseModel):
    """Local view of a provider-side payment intent."""
    id: str
    client_secret: Optional[str] = None
    amount: int = Field(description="Amount in minor currency units")
    currency: str
    status: str


class PaymentOutcome(BaseModel):
    """Terminal result of a payment confirmation."""
    status: Literal["succeeded", "provider_error", "failed"]
    message: Optional[str] = None
    error_type: Optional[str] = None
    error_code: Optional[str] = None
    payment_intent: Optional[PaymentIntent] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


# ============================================================
# Persisted documents
# ============================================================

class TreeListing(BaseModel):
    """Tree document from the ``trees`` collection."""
    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str
    common_name: Optional[str] = None
    scientific_name: Optional[str] = None
    location: Optional[str] = None
    status: TreeStatus = TreeStatus.AVAILABLE
    adopted_by: Optional[str] = None
    adopted_at: Optional[datetime] = None
    health_metrics: Dict[str, Any] = Field(default_factory=dict)
    characteristics: Dict[str, Any] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.common_name or self.scientific_name or "Tree"


class MaintenanceTask(BaseModel):
    type: str
    frequency: str
    next_due_at: datetime


class HealthSnapshot(BaseModel):
    overall_health: str = "Excellent"
    growth_progress: int = 85


class AdoptionRecord(BaseModel):
    """Document in the ``adoptions`` collection."""
    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = None
    user_id: str
    tree_id: str
    tree_name: str
    species: Optional[str] = None
    duration: PlanDuration
    amount_paid: int
    payment_id: str
    status: AdoptionStatus = AdoptionStatus.PENDING
    location: str
    health: HealthSnapshot = Field(default_factory=HealthSnapshot)
    maintenance_schedule: List[MaintenanceTask] = Field(default_factory=list)
    adopter_contact: AdopterContact
    gift_details: Optional[GiftDetails] = None
    needs_review: bool = False
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"})


class UserAggregate(BaseModel):
    """Per-user counters kept in the ``users`` collection."""
    trees_planted: int = 0
    total_impact_kg: int = 0
    is_profile_complete: bool = False


class UserProfile(UserAggregate):
    """A user's document in the ``users`` collection."""
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Fields a user may edit on their own profile; counters are not among them."""
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=200)
    avatar_url: Optional[str] = Field(default=None, max_length=500)


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str = "Anonymous"
    trees_planted: int = 0
    total_impact_kg: int = 0


class UserIdentity(BaseModel):
    """Identity vouched for by the external auth provider."""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


# ============================================================
# Community
# ============================================================

class Story(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str
    user_display_name: str = "Anonymous"
    user_avatar: str = "/default-avatar.png"
    content: str = ""
    likes: int = 0
    liked_by: List[str] = Field(default_factory=list)
    comment_count: int = 0
    created_at: Optional[datetime] = None


class Comment(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str
    text: str
    likes: int = 0
    liked_by: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class CommunityEvent(BaseModel):
    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str
    title: str
    date: datetime
    max_participants: Optional[int] = None
    participant_count: int = 0
    participants: List[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.UPCOMING
    created_at: Optional[datetime] = None


class DiscussionTopic(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str
    user_id: Optional[str] = None
    reply_count: int = 0
    views: int = 0
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_active: Optional[datetime] = None


class DiscussionReply(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: Optional[str] = None
    text: str = ""
    created_at: Optional[datetime] = None

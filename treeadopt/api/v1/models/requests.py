"""
API request models using Pydantic.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from treeadopt.domain.models import AdopterContact, EventStatus, GiftDetails, PlanDuration


class CreatePaymentIntentRequest(BaseModel):
    """Amount is validated by the service so that bad input gets the documented 400."""
    amount: Optional[Any] = Field(
        default=None,
        description="Amount in major currency units (rupees)",
        examples=[199],
    )


class SignInRequest(BaseModel):
    user_id: str = Field(description="User id issued by the auth provider")
    email: Optional[str] = None
    display_name: Optional[str] = None


class GateRequest(BaseModel):
    password: str


class CheckoutRequest(BaseModel):
    plan_duration: PlanDuration = Field(
        default=PlanDuration.ONE_YEAR,
        description="Adoption duration in years",
    )
    adopter_contact: AdopterContact
    gift_option: bool = False
    gift_details: Optional[GiftDetails] = None


class ConfirmAdoptionRequest(BaseModel):
    payment_method: Optional[str] = Field(
        default=None,
        description="Payment method id; omit when the browser already confirmed the intent",
    )


class ReconcileRequest(BaseModel):
    older_than_minutes: Optional[int] = Field(default=None, ge=0)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


class StoryCreate(BaseModel):
    content: str
    title: Optional[str] = None
    image_url: Optional[str] = None
    user_display_name: Optional[str] = None
    user_avatar: Optional[str] = None


class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


class EventCreate(BaseModel):
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: Union[datetime, str]
    max_participants: Optional[int] = Field(default=None, ge=1)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class TopicCreate(BaseModel):
    title: str
    content: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ReplyCreate(BaseModel):
    text: str = Field(min_length=1)


class UploadRequest(BaseModel):
    data: Optional[Any] = None
    resource_type: Literal["raw", "image"] = "raw"
    upload_preset: Optional[str] = None


class DeleteMediaRequest(BaseModel):
    public_id: Optional[str] = None
    resource_type: Literal["raw", "image"] = "image"

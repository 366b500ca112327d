"""
API response models using Pydantic.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from treeadopt.domain.models import AdoptionPlan


class PaymentIntentResponse(BaseModel):
    """Response model for the payment intent endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    client_secret: Optional[str] = Field(alias="clientSecret")
    payment_intent_id: str = Field(alias="paymentIntentId")


class PlansResponse(BaseModel):
    plans: List[AdoptionPlan]
    default_duration: int


class SessionResponse(BaseModel):
    token: str
    user_id: str
    expires_at: datetime


class GateResponse(BaseModel):
    granted: bool


class PublicConfigResponse(BaseModel):
    """Values the browser needs; never includes secrets."""
    stripe_publishable_key: str
    nft_contract_address: str
    aptos_node_url: str
    currency: str


class ChatResponse(BaseModel):
    reply: str


class ToggleResponse(BaseModel):
    active: bool = Field(description="True when the like/participation is now on")


class CreatedResponse(BaseModel):
    id: str


class CountResponse(BaseModel):
    count: int


class UploadResponse(BaseModel):
    success: bool = True
    url: str
    public_id: str = Field(serialization_alias="publicId")


class DeleteMediaResponse(BaseModel):
    success: bool = True
    result: dict

    class Config:
        json_schema_extra = {
            "example": {"success": True, "result": {"result": "ok"}}
        }

"""
Pydantic schemas for webhook pushes.
"""
from typing import List
from uuid import UUID
from pydantic import BaseModel, Field


class WebhookPushRequest(BaseModel):
    """Request model for pushing profiles to a webhook."""
    webhook_id: UUID = Field(..., description="Webhook to deliver to")
    profile_ids: List[UUID] = Field(..., min_length=1, description="Profiles to push")


class WebhookPushResponse(BaseModel):
    success: bool = Field(..., description="True when the push ran; see failed_pushes for per-profile failures")
    webhook_name: str = Field(..., description="Name of the webhook")
    total_profiles: int = Field(..., description="Number of profiles requested")
    pushed_successfully: int = Field(..., description="Number of profiles delivered")
    failed_pushes: int = Field(..., description="Number of failed deliveries")
    errors: List[str] = Field(default_factory=list, description="Per-profile error messages")

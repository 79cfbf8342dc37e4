"""
Pydantic schemas for profiles.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class MergeDuplicatesRequest(BaseModel):
    """Request model for merging duplicate profiles."""
    pattern: str = Field(..., min_length=1, description="Name or identifier substring selecting candidate profiles")


class MergeGroupResult(BaseModel):
    key: str = Field(..., description="Identifier naming the group")
    status: str = Field(..., description="merged or error")
    keeperId: Optional[str] = Field(None, description="Profile kept for the group")
    duplicateIds: List[str] = Field(default_factory=list, description="Profiles merged into the keeper")
    mergedCount: Optional[int] = Field(None, description="Number of profiles merged")
    error: Optional[str] = Field(None, description="Why the group could not be merged")


class MergeDuplicatesResponse(BaseModel):
    groups: List[MergeGroupResult] = Field(..., description="One entry per duplicate group")
    mergedProfiles: int = Field(..., description="Total number of profiles removed")

"""
Pydantic schemas for job progress.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class ProgressRecord(BaseModel):
    """Polled state of a long-running job."""
    status: str = Field(..., description="starting, scraping, processing, saving, completed or error")
    progress: int = Field(0, ge=0, le=100, description="Percent complete")
    currentStep: Optional[str] = Field(None, description="Human-readable description of the current step")
    totalPosts: Optional[int] = Field(None, description="Number of targets in the job")
    processedPosts: Optional[int] = Field(None, description="Number of targets processed so far")
    error: Optional[str] = Field(None, description="Error message when status is error")
    result: Optional[Dict[str, Any]] = Field(None, description="Job result once completed")

    @classmethod
    def from_orm_record(cls, record) -> "ProgressRecord":
        return cls(
            status=record.status,
            progress=record.progress or 0,
            currentStep=record.current_step,
            totalPosts=record.total_posts,
            processedPosts=record.processed_posts,
            error=record.error_message,
            result=record.result,
        )


class JobStartedResponse(BaseModel):
    progressId: str = Field(..., description="Id to poll at /scrape/progress/{progressId}")
    status: str = Field("starting", description="Initial job status")

"""
FlexReviews API Models
======================

Pydantic models for API request/response serialization.
Field names match the dashboard's camelCase JSON.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ReviewUpdates(BaseModel):
    """Mutable review attributes. Only website approval is supported."""
    isApprovedForWebsite: Optional[bool] = Field(None, alias="is_approved_for_website")

    class Config:
        populate_by_name = True


class PatchReviewRequest(BaseModel):
    """PATCH /api/reviews/hostaway body."""
    reviewId: str = Field(alias="review_id", min_length=1)
    updates: ReviewUpdates = Field(default_factory=ReviewUpdates)

    class Config:
        populate_by_name = True


class PatchReviewResponse(BaseModel):
    status: str = "success"
    message: str
    reviewId: str
    updates: Dict[str, Any]
    approvedCount: int


class ActionRequest(BaseModel):
    """POST /api/reviews/all body."""
    action: str


class SourceHealth(BaseModel):
    name: str
    configured: bool
    status: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    environment: str = "development"
    sources: List[SourceHealth] = Field(default_factory=list)
    approvedReviews: int = 0
    approvalStateStale: bool = False

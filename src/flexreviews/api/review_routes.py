"""
Review API Routes
=================

GET   /api/reviews/all       - aggregated reviews (filters + approval + paging)
POST  /api/reviews/all       - {"action": "status"} -> integration status
GET   /api/reviews/hostaway  - primary source only, newest first
PATCH /api/reviews/hostaway  - set website approval for one review
GET   /api/reviews/stats     - PropertyStats for the filtered collection
GET   /api/reviews/google    - reviews of one Google place, or findings
GET   /api/listings/hostaway - listing catalog

Filter values arrive as raw strings and are validated by ReviewFilters;
an invalid value is answered with 400 instead of being ignored.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..exceptions import FlexReviewsError
from .models import ActionRequest, PatchReviewRequest, PatchReviewResponse
from .services import ReviewService, get_review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reviews"])


def review_params(
    listingId: Optional[str] = Query(None, description="Canonical listing id"),
    limit: Optional[str] = Query(None, description="Page size"),
    offset: Optional[str] = Query(None, description="Page offset"),
    channel: Optional[str] = Query(None, description="Booking channel"),
    minRating: Optional[str] = Query(None, description="Minimum average rating (0-5)"),
    sentiment: Optional[str] = Query(None, description="positive, neutral or negative"),
    dateRange: Optional[str] = Query(None, description="Only reviews from the last N days"),
) -> Dict[str, Any]:
    """Collect the raw review query parameters that were actually supplied."""
    params = {
        "listingId": listingId,
        "limit": limit,
        "offset": offset,
        "channel": channel,
        "minRating": minRating,
        "sentiment": sentiment,
        "dateRange": dateRange,
    }
    return {k: v for k, v in params.items() if v is not None}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


# ============================================================================
# AGGREGATED REVIEWS
# ============================================================================

@router.get("/reviews/all")
async def get_all_reviews(
    params: Dict[str, Any] = Depends(review_params),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews from every source, filtered and approval-annotated."""
    try:
        page = await service.get_all_reviews(params)
    except FlexReviewsError:
        raise
    except Exception as e:
        logger.exception(f"Aggregated review fetch failed: {e}")
        return _error(500, "Failed to fetch reviews")

    return {
        "status": "success",
        "result": [r.to_dict() for r in page["reviews"]],
        "meta": {
            "total": page["total"],
            "sources": page["sources"],
            "breakdown": page["breakdown"],
        },
    }


@router.post("/reviews/all")
async def review_action(
    request: ActionRequest,
    service: ReviewService = Depends(get_review_service),
):
    """Non-query actions. Only "status" is supported."""
    if request.action != "status":
        return _error(400, "Unknown action")
    return {"status": "success", "result": service.integration_status()}


# ============================================================================
# PRIMARY SOURCE
# ============================================================================

@router.get("/reviews/hostaway")
async def get_hostaway_reviews(
    params: Dict[str, Any] = Depends(review_params),
    service: ReviewService = Depends(get_review_service),
):
    """Hostaway reviews only (mock dataset when the API is unavailable)."""
    try:
        page = await service.get_hostaway_reviews(params)
    except FlexReviewsError:
        raise
    except Exception as e:
        logger.exception(f"Hostaway review fetch failed: {e}")
        return _error(500, "Failed to fetch reviews")

    return {
        "status": "success",
        "result": [r.to_dict() for r in page["reviews"]],
        "meta": {"total": page["total"], "source": page["source"]},
    }


@router.patch("/reviews/hostaway", response_model=PatchReviewResponse)
async def update_review(
    request: PatchReviewRequest,
    service: ReviewService = Depends(get_review_service),
):
    """Approve or unapprove a review for the public property page."""
    updates = request.updates.model_dump(exclude_none=True, by_alias=False)
    try:
        approved_count = service.set_approval(request.reviewId, request.updates.isApprovedForWebsite)
    except Exception as e:
        logger.exception(f"Approval update failed for {request.reviewId}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update review")

    return PatchReviewResponse(
        message="Review updated successfully",
        reviewId=request.reviewId,
        updates=updates,
        approvedCount=approved_count,
    )


# ============================================================================
# STATISTICS
# ============================================================================

@router.get("/reviews/stats")
async def get_review_stats(
    params: Dict[str, Any] = Depends(review_params),
    approvedOnly: bool = Query(False, description="Only website-approved reviews"),
    service: ReviewService = Depends(get_review_service),
):
    """Aggregate analytics for the dashboard or a property page."""
    try:
        stats = await service.get_stats(params, approved_only=approvedOnly)
    except FlexReviewsError:
        raise
    except Exception as e:
        logger.exception(f"Review stats failed: {e}")
        return _error(500, "Failed to compute review statistics")

    return {"status": "success", "result": stats.to_dict()}


# ============================================================================
# GOOGLE / LISTINGS
# ============================================================================

@router.get("/reviews/google")
async def get_google_reviews(
    placeId: Optional[str] = Query(None, description="Google place id"),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews of one Google place; integration findings without a place id."""
    outcome = await service.get_google_reviews(placeId)
    if "result" in outcome:
        outcome = {**outcome, "result": [r.to_dict() for r in outcome["result"]]}
    return outcome


@router.get("/listings/hostaway")
async def get_listings(service: ReviewService = Depends(get_review_service)):
    """Managed listings (bundled catalog when the API is unavailable)."""
    try:
        listings, source = service.get_listings()
    except Exception as e:
        logger.exception(f"Listing fetch failed: {e}")
        return _error(500, "Failed to fetch listings")

    return {
        "status": "success",
        "result": listings,
        "meta": {"total": len(listings), "source": source},
    }

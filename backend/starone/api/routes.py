"""
StarOne - API Routes

FastAPI route handlers for all endpoints.
"""

from fastapi import APIRouter, Depends, Request

from starone.api.schemas import (
    AnalyzeRequest, AnalysisResponse, ErrorResponse, QuotaStatus
)
from starone.config import get_settings
from starone.core.analysis import AnalysisService
from starone.core.identity import get_identity
from starone.core.quota import QuotaTracker

router = APIRouter()


def get_analysis_service(request: Request) -> AnalysisService:
    """Analysis service built by the application lifespan."""
    return request.app.state.analysis_service


def get_quota_tracker(request: Request) -> QuotaTracker:
    """Quota tracker built by the application lifespan."""
    return request.app.state.quota_tracker


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse}
    },
    summary="Analyze an app's negative reviews",
    description="Fetch recent Google Play reviews for an app and summarize its negative feedback."
)
async def analyze(
    request: AnalyzeRequest,
    identity: str = Depends(get_identity),
    service: AnalysisService = Depends(get_analysis_service)
) -> AnalysisResponse:
    """Run an analysis for the calling identity."""
    return await service.run(request, identity)


@router.get(
    "/quota",
    response_model=QuotaStatus,
    summary="Get remaining quota",
    description="Report how many analyses the caller has left in the current window."
)
async def get_quota(
    identity: str = Depends(get_identity),
    tracker: QuotaTracker = Depends(get_quota_tracker)
) -> QuotaStatus:
    """Current allowance; does not consume an analysis."""
    return await tracker.check_quota(identity)


@router.get(
    "/health",
    summary="Health check",
    description="Check if the API is running."
)
async def health_check(tracker: QuotaTracker = Depends(get_quota_tracker)):
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "starone",
        "model": settings.openai_model,
        "quota_backend": tracker.store.backend
    }

"""
StarOne - API Schemas

Pydantic models for request/response validation.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Union
from enum import Enum
from datetime import datetime


# ============================================================================
# Enums
# ============================================================================

class ErrorCode(str, Enum):
    """Externally reported error categories."""
    INVALID_REQUEST = "ERR_INVALID_REQUEST"
    APP_NOT_FOUND = "ERR_APP_NOT_FOUND"
    REVIEWS_UNAVAILABLE = "ERR_REVIEWS_UNAVAILABLE"
    INSUFFICIENT_DATA = "ERR_INSUFFICIENT_DATA"
    GENERATION_FAILED = "ERR_GENERATION_FAILED"
    QUOTA_EXCEEDED = "ERR_QUOTA_EXCEEDED"
    INTERNAL_ERROR = "ERR_INTERNAL"


# ============================================================================
# Request Models
# ============================================================================

class AnalyzeRequest(BaseModel):
    """Request model for POST /analyze endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    app_id: Optional[str] = Field(
        default=None,
        alias="appId",
        description="Google Play package name, e.g. 'com.example.app'"
    )
    country: Optional[str] = Field(default=None, description="Store country (default 'us')")
    lang: Optional[str] = Field(default=None, description="Store language (default 'en')")


# ============================================================================
# Catalog Models
# ============================================================================

RawDate = Union[datetime, int, float, str, None]


class AppMetadata(BaseModel):
    """Snapshot of the catalog's app details."""
    model_config = ConfigDict(frozen=True)

    title: str = "Unknown"
    icon: str = ""
    updated: RawDate = None
    installs: str = "Unknown"
    score: float = 0
    ratings: int = 0
    price: str = "Free"
    free: bool = True
    offers_iap: bool = False


class RawReview(BaseModel):
    """A single catalog review, as fetched."""
    model_config = ConfigDict(frozen=True)

    user_name: Optional[str] = None
    user_image: Optional[str] = None
    score: int = Field(..., ge=1, le=5, description="Star rating")
    date: RawDate = None
    text: Optional[str] = None


class ReviewCorpus(BaseModel):
    """Negative reviews joined into one prompt document."""
    text: str = ""
    count: int = 0
    reviews: List[RawReview] = Field(default_factory=list)


# ============================================================================
# Insight Models
# ============================================================================

class AppIdea(BaseModel):
    """Structured product idea; extra keys from the model are preserved."""
    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = ""
    pain_point: str = ""
    differentiation: str = ""
    value_proposition: str = ""


# An idea is either free text or a structured record
Idea = Union[str, AppIdea]


class InsightResult(BaseModel):
    """Structured insights recovered from the model output."""
    model_config = ConfigDict(frozen=True)

    top_complaints: List[str] = Field(default_factory=list)
    feature_requests: List[str] = Field(default_factory=list)
    sentiment_summary: str = "Analysis completed"
    app_ideas: List[Idea] = Field(default_factory=list)


# ============================================================================
# Response Models
# ============================================================================

class BadReview(BaseModel):
    """Negative review excerpt entry."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_name: str = Field(default="Anonymous", alias="userName")
    user_image: Optional[str] = Field(default=None, alias="userImage")
    score: int
    date: str
    text: str = ""


class AnalysisResponse(BaseModel):
    """Complete analysis report returned by POST /analyze."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    app_name: str = Field(..., alias="appName")
    app_icon: str = Field(..., alias="appIcon")
    last_updated: str = Field(..., alias="lastUpdated")
    installs: str
    score: float
    ratings: int
    price: str
    free: bool
    offers_iap: bool = Field(..., alias="offersIAP")
    top_complaints: List[str] = Field(default_factory=list)
    feature_requests: List[str] = Field(default_factory=list)
    sentiment_summary: str
    app_ideas: List[Idea] = Field(default_factory=list)
    bad_reviews: List[BadReview] = Field(default_factory=list, alias="badReviews")


class QuotaStatus(BaseModel):
    """Remaining allowance for an identity."""
    allowed: bool
    remaining: int
    limit: int


class QuotaRecord(BaseModel):
    """Usage count within a window that opened at window_start (epoch seconds)."""
    count: int = 0
    window_start: float


# ============================================================================
# Error Response Model
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error category label")
    error_code: ErrorCode = Field(..., description="Error code")
    details: Optional[str] = Field(default=None, description="Human-readable cause")
    remaining: Optional[int] = Field(default=None, description="Remaining quota (quota errors)")
    limit: Optional[int] = Field(default=None, description="Quota limit (quota errors)")

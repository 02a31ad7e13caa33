"""
StarOne - Error Taxonomy

Every failure of an analysis request is reported as exactly one of these.
"""

from typing import Optional

from starone.api.schemas import ErrorCode, ErrorResponse


class AnalysisError(Exception):
    """Base class for externally reported analysis failures."""

    status_code = 500
    error = "Internal server error"
    error_code = ErrorCode.INTERNAL_ERROR
    default_details: Optional[str] = None

    def __init__(self, details: Optional[str] = None):
        self.details = details if details is not None else self.default_details
        super().__init__(self.details or self.error)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.error,
            error_code=self.error_code,
            details=self.details
        )


class InvalidRequest(AnalysisError):
    status_code = 400
    error = "Invalid request"
    error_code = ErrorCode.INVALID_REQUEST
    default_details = "appId is required and must be a non-empty string"


class AppNotFound(AnalysisError):
    status_code = 404
    error = "App not found"
    error_code = ErrorCode.APP_NOT_FOUND

    def __init__(self, app_id: str, details: Optional[str] = None):
        self.app_id = app_id
        super().__init__(
            details or f"Could not find app with ID: {app_id}. Please verify the App ID is correct."
        )


class ReviewsUnavailable(AnalysisError):
    status_code = 503
    error = "Failed to fetch reviews"
    error_code = ErrorCode.REVIEWS_UNAVAILABLE
    default_details = "Could not retrieve reviews from Google Play"


class InsufficientData(AnalysisError):
    status_code = 422
    error = "Insufficient data"
    error_code = ErrorCode.INSUFFICIENT_DATA
    default_details = "No negative reviews found for this app. Try an app with more user feedback."


class GenerationFailed(AnalysisError):
    status_code = 500
    error = "AI analysis failed"
    error_code = ErrorCode.GENERATION_FAILED
    default_details = "Could not analyze reviews. Please try again."


class QuotaExceeded(AnalysisError):
    status_code = 429
    error = "Rate limit exceeded"
    error_code = ErrorCode.QUOTA_EXCEEDED

    def __init__(self, limit: int, remaining: int = 0):
        self.limit = limit
        self.remaining = remaining
        super().__init__(
            f"You have used all {limit} analyses for the current 24 hour window. Please try again later."
        )

    def to_response(self) -> ErrorResponse:
        response = super().to_response()
        response.remaining = self.remaining
        response.limit = self.limit
        return response


class InternalError(AnalysisError):
    default_details = "An unexpected error occurred. Please try again."


# ----------------------------------------------------------------------------
# Insight extraction failures (internal, folded into GenerationFailed)
# ----------------------------------------------------------------------------

class ExtractionError(Exception):
    """Base class for insight extraction failures."""


class GenerationFailure(ExtractionError):
    """The generation service could not be reached or refused the call."""


class ParseFailure(ExtractionError):
    """No JSON object could be recovered from the model output."""

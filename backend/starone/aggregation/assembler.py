"""
StarOne - Report Assembler

Merges catalog metadata, extracted insights and review excerpts
into the final analysis report.
"""

from typing import Any, List, Optional, Sequence
from datetime import datetime, timezone
import logging

from dateutil import parser as date_parser

from starone.api.schemas import (
    AnalysisResponse, AppMetadata, BadReview, InsightResult, RawReview
)

logger = logging.getLogger(__name__)

# Epoch values at or above this are milliseconds, below it seconds
EPOCH_MILLIS_THRESHOLD = 1e11

SECONDS_PER_DAY = 86400

# Defaults that differ in year, month and day; a string missing any of
# those parses to two different datetimes
DATE_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _from_epoch(number: float) -> datetime:
    seconds = number / 1000 if abs(number) >= EPOCH_MILLIS_THRESHOLD else number
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _parse_date_string(text: str) -> datetime:
    """Parse a date string only if it names a full calendar date."""
    first, second = (date_parser.parse(text, default=default) for default in DATE_FILL_DEFAULTS)
    if first != second:
        raise ValueError(f"Incomplete date: {text!r}")
    return first


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a datetime, epoch number, numeric string or date string; None if impossible."""
    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, bool):
            return None
        elif isinstance(value, (int, float)):
            parsed = _from_epoch(value)
        elif isinstance(value, str):
            text = value.strip()
            try:
                number = float(text)
            except ValueError:
                parsed = _parse_date_string(text)
            else:
                parsed = _from_epoch(number)
        else:
            return None
    except (ValueError, TypeError, OverflowError, OSError):
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_relative_date(value: Any, now: Optional[datetime] = None) -> str:
    """
    Render a date relative to now: Today, Yesterday, N days/weeks/months/years ago.

    Counts are floored and always plural ("1 months ago"). Values that
    cannot be parsed are returned unchanged.
    """
    if value is None:
        return "Unknown"
    if isinstance(value, str) and value.strip() in ("", "Unknown"):
        return "Unknown"

    parsed = parse_date(value)
    if parsed is None:
        return value if isinstance(value, str) else str(value)

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_days = int(abs((now - parsed).total_seconds()) // SECONDS_PER_DAY)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        return f"{diff_days // 7} weeks ago"
    if diff_days < 365:
        return f"{diff_days // 30} months ago"
    return f"{diff_days // 365} years ago"


class ReportAssembler:
    """Builds the AnalysisResponse. Pure: no I/O, no failure modes."""

    def __init__(self, excerpt_size: int = 10):
        self.excerpt_size = excerpt_size

    def _build_bad_reviews(
        self,
        reviews: Sequence[RawReview],
        now: datetime
    ) -> List[BadReview]:
        """Newest-first excerpt with display dates."""
        excerpt = []

        for review in reviews[:self.excerpt_size]:
            excerpt.append(BadReview(
                user_name=review.user_name or "Anonymous",
                user_image=review.user_image,
                score=review.score,
                date=format_relative_date(review.date, now=now),
                text=review.text or ""
            ))

        return excerpt

    def assemble(
        self,
        metadata: AppMetadata,
        insights: InsightResult,
        reviews: Sequence[RawReview],
        now: Optional[datetime] = None
    ) -> AnalysisResponse:
        """
        Merge metadata, insights and the review excerpt.

        Args:
            metadata: Catalog snapshot
            insights: Extracted insights
            reviews: Negative reviews, newest first
            now: Reference time for relative dates

        Returns:
            Complete AnalysisResponse
        """
        now = now or datetime.now(timezone.utc)

        return AnalysisResponse(
            app_name=metadata.title,
            app_icon=metadata.icon,
            last_updated=format_relative_date(metadata.updated, now=now),
            installs=metadata.installs,
            score=metadata.score,
            ratings=metadata.ratings,
            price=metadata.price,
            free=metadata.free,
            offers_iap=metadata.offers_iap,
            top_complaints=list(insights.top_complaints),
            feature_requests=list(insights.feature_requests),
            sentiment_summary=insights.sentiment_summary,
            app_ideas=list(insights.app_ideas),
            bad_reviews=self._build_bad_reviews(reviews, now)
        )

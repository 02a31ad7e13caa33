"""
StarOne - Google Play Store Adapter

Fetches app details and reviews from the Google Play Store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.error import HTTPError, URLError
import asyncio
import logging

from google_play_scraper import Sort, app as gplay_app, reviews as gplay_reviews
from google_play_scraper.exceptions import ExtraHTTPError, NotFoundError
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying, before_sleep_log, retry_if_exception,
    stop_after_attempt, wait_exponential
)

from starone.adapters.base import BaseCatalogAdapter
from starone.api.schemas import AppMetadata, RawReview
from starone.core.errors import AppNotFound, ReviewsUnavailable

logger = logging.getLogger(__name__)


class CatalogErrorKind(str, Enum):
    """How a catalog failure should be treated."""
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    MALFORMED = "malformed"


def classify_catalog_error(exc: BaseException) -> CatalogErrorKind:
    """
    Decide how a catalog exception is handled.

    | exception                          | kind      |
    |------------------------------------|-----------|
    | NotFoundError, HTTP 404            | NOT_FOUND |
    | HTTP 429 / 5xx, ExtraHTTPError     | TRANSIENT |
    | network errors (URLError, OSError) | TRANSIENT |
    | other HTTP 4xx, anything else      | MALFORMED |
    """
    if isinstance(exc, NotFoundError):
        return CatalogErrorKind.NOT_FOUND
    if isinstance(exc, HTTPError):
        if exc.code == 404:
            return CatalogErrorKind.NOT_FOUND
        if exc.code == 429 or exc.code >= 500:
            return CatalogErrorKind.TRANSIENT
        return CatalogErrorKind.MALFORMED
    if isinstance(exc, (ExtraHTTPError, URLError, OSError)):
        return CatalogErrorKind.TRANSIENT
    return CatalogErrorKind.MALFORMED


def is_transient_catalog_error(exc: BaseException) -> bool:
    return classify_catalog_error(exc) is CatalogErrorKind.TRANSIENT


def local_to_utc(value: Any) -> Any:
    """Make a naive scraper timestamp (host local time) timezone-aware UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.astimezone(timezone.utc)
    return value


class PlayStoreAdapter(BaseCatalogAdapter):
    """Google Play Store adapter backed by google-play-scraper."""

    def __init__(
        self,
        max_attempts: int = 3,
        app_lookup: Callable[..., Dict[str, Any]] = gplay_app,
        review_lookup: Callable[..., Any] = gplay_reviews,
        retry_wait: Optional[Any] = None
    ):
        self.max_attempts = max_attempts
        self.app_lookup = app_lookup
        self.review_lookup = review_lookup
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    @property
    def platform(self) -> str:
        return "android"

    async def _call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run a blocking scraper call in a thread, retrying transient failures."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(is_transient_catalog_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        ):
            with attempt:
                return await asyncio.to_thread(func, *args, **kwargs)

    def _parse_app_details(self, data: Dict[str, Any]) -> AppMetadata:
        """Map a scraper details record onto AppMetadata with fixed defaults."""
        price = data.get("price")
        free = data.get("free")

        return AppMetadata(
            title=data.get("title") or "Unknown",
            icon=data.get("icon") or "",
            updated=data.get("updated"),
            installs=str(data.get("installs") or "Unknown"),
            score=float(data.get("score") or 0),
            ratings=int(data.get("ratings") or 0),
            price=str(price) if price else "Free",
            free=bool(free) if free is not None else True,
            offers_iap=bool(data.get("offersIAP") or False)
        )

    def _parse_reviews(self, entries: List[Dict[str, Any]]) -> List[RawReview]:
        """Convert scraper review records, skipping malformed entries."""
        parsed = []

        for entry in entries:
            try:
                parsed.append(RawReview(
                    user_name=entry.get("userName"),
                    user_image=entry.get("userImage"),
                    score=int(entry["score"]),
                    date=local_to_utc(entry.get("at")),
                    text=entry.get("content")
                ))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed review entry: {e}")
                continue

        return parsed

    async def fetch_app_details(
        self,
        app_id: str,
        country: str = "us",
        lang: str = "en"
    ) -> AppMetadata:
        """Fetch the app's Play Store listing."""
        logger.info(f"Fetching Play Store details for {app_id} ({lang}-{country})")

        try:
            data = await self._call(self.app_lookup, app_id, lang=lang, country=country)
        except Exception as e:
            kind = classify_catalog_error(e)
            logger.error(f"App lookup failed for {app_id} ({kind.value}): {e}")
            raise AppNotFound(app_id) from e

        if not isinstance(data, dict):
            logger.error(f"App lookup for {app_id} returned {type(data).__name__}")
            raise AppNotFound(app_id)

        try:
            return self._parse_app_details(data)
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Malformed app details for {app_id}: {e}")
            raise AppNotFound(app_id) from e

    async def fetch_reviews(
        self,
        app_id: str,
        country: str = "us",
        lang: str = "en",
        count: int = 150
    ) -> List[RawReview]:
        """Fetch the newest `count` reviews from the Play Store."""
        logger.info(f"Fetching {count} newest Play Store reviews for {app_id} ({lang}-{country})")

        try:
            response = await self._call(
                self.review_lookup,
                app_id,
                lang=lang,
                country=country,
                sort=Sort.NEWEST,
                count=count
            )
        except Exception as e:
            kind = classify_catalog_error(e)
            logger.error(f"Review fetch failed for {app_id} ({kind.value}): {e}")
            raise ReviewsUnavailable() from e

        # The scraper returns (reviews, continuation_token)
        result = response[0] if isinstance(response, tuple) else response

        if not isinstance(result, list):
            logger.error(f"Review fetch for {app_id} returned {type(result).__name__}")
            raise ReviewsUnavailable()

        reviews = self._parse_reviews(result)
        logger.info(f"Fetched {len(reviews)} reviews for app {app_id}")
        return reviews

"""
StarOne - Base Catalog Adapter

Abstract base class for app catalog adapters.
"""

from abc import ABC, abstractmethod
from typing import List
from starone.api.schemas import AppMetadata, RawReview
from starone.services.corpus import select_negative_reviews


class BaseCatalogAdapter(ABC):
    """Abstract base adapter for fetching app details and reviews."""

    @property
    @abstractmethod
    def platform(self) -> str:
        """Return platform identifier."""
        pass

    @abstractmethod
    async def fetch_app_details(
        self,
        app_id: str,
        country: str = "us",
        lang: str = "en"
    ) -> AppMetadata:
        """
        Fetch the app's store listing.

        Raises:
            AppNotFound: on any lookup failure
        """
        pass

    @abstractmethod
    async def fetch_reviews(
        self,
        app_id: str,
        country: str = "us",
        lang: str = "en",
        count: int = 150
    ) -> List[RawReview]:
        """
        Fetch the most recent reviews, newest first.

        Raises:
            ReviewsUnavailable: on any fetch failure
        """
        pass

    async def fetch_negative_review_window(
        self,
        app_id: str,
        country: str = "us",
        lang: str = "en",
        count: int = 150
    ) -> List[RawReview]:
        """Fetch the recent review window and keep only negative, non-empty reviews."""
        reviews = await self.fetch_reviews(app_id, country=country, lang=lang, count=count)
        return select_negative_reviews(reviews)

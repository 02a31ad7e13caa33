from types import SimpleNamespace
from typing import List, Optional

import pytest

from starone.adapters.base import BaseCatalogAdapter
from starone.api.schemas import AppMetadata, RawReview
from starone.config import Settings
from starone.core.quota import InMemoryQuotaStore, QuotaTracker


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingCompletionsClient:
    """
    Fake AsyncOpenAI client that records chat.completions.create calls
    and returns configured contents (or raises configured exceptions).
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if not self.responses:
            raise AssertionError("No more fake completions configured")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=item))],
            usage=SimpleNamespace(total_tokens=100)
        )


class FakeCatalog(BaseCatalogAdapter):
    """In-memory catalog; exceptions given instead of data are raised."""

    def __init__(self, details=None, reviews=None):
        self.details = details if details is not None else AppMetadata(title="Example App")
        self.reviews = reviews if reviews is not None else []
        self.calls = []

    @property
    def platform(self) -> str:
        return "fake"

    async def fetch_app_details(self, app_id, country="us", lang="en"):
        self.calls.append(("details", app_id, country, lang))
        if isinstance(self.details, BaseException):
            raise self.details
        return self.details

    async def fetch_reviews(self, app_id, country="us", lang="en", count=150):
        self.calls.append(("reviews", app_id, country, lang, count))
        if isinstance(self.reviews, BaseException):
            raise self.reviews
        return list(self.reviews)


def review(score: int, text: Optional[str] = "It keeps crashing", **kwargs) -> RawReview:
    return RawReview(score=score, text=text, **kwargs)


def scenario_reviews() -> List[RawReview]:
    """
    150 newest-first reviews: 40 negative with text (every third index
    below 120), 3 negative with blank text, the rest 5 stars.
    """
    reviews = []
    for i in range(150):
        if i % 3 == 0 and i < 120:
            reviews.append(review(1 + i % 3, f"review {i}", user_name=f"user {i}"))
        elif i in (1, 4, 7):
            reviews.append(review(2, "   "))
        else:
            reviews.append(review(5, "great"))
    return reviews


@pytest.fixture
def settings():
    return Settings(_env_file=None, openai_api_key="sk-test")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return QuotaTracker(InMemoryQuotaStore(), limit=2, window_seconds=86400, clock=clock)

"""
StarOne - Review Corpus Builder

Turns the fetched review window into one prompt document.
"""

from typing import Iterable, List
import logging

from starone.api.schemas import RawReview, ReviewCorpus

logger = logging.getLogger(__name__)

# Highest star rating still treated as negative feedback
NEGATIVE_SCORE_MAX = 3

# Separator between review bodies in the corpus
REVIEW_DELIMITER = "\n\n---\n\n"


def _has_text(review: RawReview) -> bool:
    return bool(review.text and review.text.strip())


def select_negative_reviews(reviews: Iterable[RawReview]) -> List[RawReview]:
    """Keep reviews rated 3 stars or less with a non-blank body, in order."""
    return [
        review for review in reviews
        if review.score <= NEGATIVE_SCORE_MAX and _has_text(review)
    ]


def build_corpus(reviews: Iterable[RawReview]) -> ReviewCorpus:
    """
    Build the analysis corpus from raw reviews.

    A corpus with count 0 must not be sent to the model.
    """
    negative = select_negative_reviews(reviews)
    text = REVIEW_DELIMITER.join(review.text.strip() for review in negative)

    logger.info(f"Built corpus from {len(negative)} negative reviews ({len(text)} chars)")
    return ReviewCorpus(text=text, count=len(negative), reviews=negative)

"""
StarOne - Analysis Orchestrator

Runs one analysis request through the review pipeline.
"""

import asyncio
import logging
from typing import Optional

from starone.adapters.base import BaseCatalogAdapter
from starone.aggregation.assembler import ReportAssembler
from starone.api.schemas import AnalysisResponse, AnalyzeRequest
from starone.config import Settings, get_settings
from starone.core.errors import (
    AnalysisError, GenerationFailed, GenerationFailure, InsufficientData,
    InternalError, InvalidRequest, ParseFailure, QuotaExceeded
)
from starone.core.identity import ANONYMOUS_IDENTITY
from starone.core.quota import QuotaTracker
from starone.pipelines.insights import InsightPipeline
from starone.services.corpus import build_corpus

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Sequences one analysis request.

    Lifecycle:
    VALIDATE → CHECK QUOTA → FETCH (details ‖ reviews) → BUILD CORPUS
    → EXTRACT INSIGHTS → RECORD USAGE → ASSEMBLE → DONE | error
    """

    def __init__(
        self,
        catalog: BaseCatalogAdapter,
        insights: InsightPipeline,
        quota: QuotaTracker,
        assembler: Optional[ReportAssembler] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog
        self.insights = insights
        self.quota = quota
        self.assembler = assembler or ReportAssembler(excerpt_size=self.settings.excerpt_size)

    def _validate(self, request: AnalyzeRequest) -> AnalyzeRequest:
        """Reject missing input and fill locale defaults."""
        app_id = request.app_id.strip() if isinstance(request.app_id, str) else ""
        if not app_id:
            raise InvalidRequest()

        if not self.insights.is_configured:
            logger.error("Generation service is not configured (OPENAI_API_KEY missing)")
            raise InternalError("Server configuration error")

        return AnalyzeRequest(
            app_id=app_id,
            country=(request.country or "").strip() or self.settings.default_country,
            lang=(request.lang or "").strip() or self.settings.default_lang
        )

    async def run(self, request: AnalyzeRequest, identity: str = ANONYMOUS_IDENTITY) -> AnalysisResponse:
        """
        Run the full analysis.

        Raises:
            AnalysisError: exactly one taxonomy member per failure
        """
        try:
            return await self._run(request, identity)
        except AnalysisError:
            raise
        except Exception as e:
            logger.exception(f"Analysis failed with unexpected error: {e}")
            raise InternalError() from e

    async def _run(self, request: AnalyzeRequest, identity: str) -> AnalysisResponse:
        # ===== VALIDATE =====
        request = self._validate(request)
        app_id = request.app_id
        bucket = "anonymous" if identity == ANONYMOUS_IDENTITY else "user"

        # ===== QUOTA =====
        status = await self.quota.check_quota(identity)
        if not status.allowed:
            logger.info(f"Quota exceeded for {bucket} identity")
            raise QuotaExceeded(limit=status.limit, remaining=0)

        logger.info(
            f"Analyzing {app_id} ({request.lang}-{request.country}) from the {self.catalog.platform} catalog, "
            f"{status.remaining} analyses left"
        )

        # ===== FETCH =====
        details_result, reviews_result = await asyncio.gather(
            self.catalog.fetch_app_details(app_id, country=request.country, lang=request.lang),
            self.catalog.fetch_negative_review_window(
                app_id,
                country=request.country,
                lang=request.lang,
                count=self.settings.review_window
            ),
            return_exceptions=True
        )

        # Details failures take precedence over review failures
        for result in (details_result, reviews_result):
            if isinstance(result, BaseException):
                raise result

        metadata, negative_reviews = details_result, reviews_result

        # ===== CORPUS =====
        corpus = build_corpus(negative_reviews)
        if corpus.count == 0:
            logger.info(f"No negative reviews for {app_id}")
            raise InsufficientData()

        # ===== INSIGHTS =====
        logger.info(f"Extracting insights with {self.insights.name} pipeline v{self.insights.VERSION}")
        try:
            insights = await self.insights.analyze(corpus.text)
        except GenerationFailure as e:
            logger.error(f"Generation failed for {app_id}: {e}")
            raise GenerationFailed() from e
        except ParseFailure as e:
            logger.error(f"Unparseable model output for {app_id}: {e}")
            raise GenerationFailed() from e

        # ===== RECORD USAGE =====
        await self.quota.record_usage(identity)

        # ===== ASSEMBLE =====
        report = self.assembler.assemble(metadata, insights, corpus.reviews)

        logger.info(f"Analysis of {app_id} completed from {corpus.count} negative reviews")
        return report

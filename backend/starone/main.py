"""
StarOne - Main Application

FastAPI application entry point with middleware and route configuration.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from starone.adapters.playstore import PlayStoreAdapter
from starone.aggregation.assembler import ReportAssembler
from starone.api.routes import router
from starone.config import get_settings
from starone.core.analysis import AnalysisService
from starone.core.errors import AnalysisError, InvalidRequest
from starone.core.quota import (
    InMemoryQuotaStore, QuotaTracker, RedisQuotaStore, connect_redis
)
from starone.pipelines.insights import InsightPipeline

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    # Startup
    logger.info("Starting StarOne Backend...")
    settings = get_settings()
    logger.info(f"OpenAI Model: {settings.openai_model}")

    # Quota store: Redis when reachable, otherwise process memory
    redis_client = await connect_redis(settings.redis_url)
    if redis_client:
        store = RedisQuotaStore(redis_client)
        logger.info("Using Redis quota store")
    else:
        store = InMemoryQuotaStore()
        logger.warning("Redis not available, using in-memory quota store")

    tracker = QuotaTracker(
        store,
        limit=settings.quota_limit,
        window_seconds=settings.quota_window_seconds
    )
    insights = InsightPipeline(settings=settings)
    if not insights.is_configured:
        logger.warning("OPENAI_API_KEY is not set; analyses will fail")

    app.state.quota_tracker = tracker
    app.state.analysis_service = AnalysisService(
        catalog=PlayStoreAdapter(max_attempts=settings.catalog_max_attempts),
        insights=insights,
        quota=tracker,
        assembler=ReportAssembler(excerpt_size=settings.excerpt_size),
        settings=settings
    )

    yield

    # Shutdown
    logger.info("Shutting down StarOne Backend...")
    if redis_client:
        await redis_client.aclose()


# Create FastAPI application
app = FastAPI(
    title="StarOne",
    description="Find product gaps in an app's negative Google Play reviews",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    """Render taxonomy errors as the public error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json", exclude_none=True)
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as invalid requests."""
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) or "body" for error in exc.errors()})
    error = InvalidRequest(f"Invalid or missing fields: {', '.join(fields)}")
    return await analysis_error_handler(request, error)


# Include API routes
app.include_router(router, prefix="/api", tags=["Analysis"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint redirect to docs."""
    return {
        "service": "StarOne",
        "version": "1.0.0",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("starone.main:app", host=settings.api_host, port=settings.api_port)

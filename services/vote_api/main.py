"""
FastAPI application for the WorldDAO vote API.

Records one vote per address per session and reports session winners.
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from pydantic import ValidationError
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.shared.models import get_current_timestamp
from services.vote_api.config import settings
from services.vote_api.deployments import read_latest_deployments, compare_deployments
from services.vote_api.ledger import VoteLedger, create_ledger
from services.vote_api.models import (
    VoteRequest,
    VoteResponse,
    WinnerResponse,
    HealthResponse,
    ErrorResponse,
    DeploymentCheckResponse,
)

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Prometheus metrics
vote_counter = Counter(
    "votes_submitted_total",
    "Total number of votes recorded",
    ["session_id"]
)
vote_errors = Counter(
    "vote_errors_total",
    "Total number of vote submission errors",
    ["error_type"]
)
request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status"]
)

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

MISSING_VOTE_FIELDS = "missing fields: sessionId, index, address"
INVALID_SESSION_ID = "missing/invalid sessionId"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"Starting {settings.SERVICE_NAME} service...")

    try:
        ledger = create_ledger(settings)
        await ledger.initialize()
        app.state.ledger = ledger
        logger.info(f"{settings.SERVICE_NAME} started with {ledger.name} ledger")
    except Exception as e:
        logger.error(f"Failed to start {settings.SERVICE_NAME}: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service...")
    await app.state.ledger.close()


# Create FastAPI app
app = FastAPI(
    title="WorldDAO Vote API",
    description="API for recording session votes and computing winners",
    version=settings.API_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render HTTP errors as {"error": ...}."""
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "method not allowed"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors (400), not 422."""
    vote_errors.labels(error_type="validation_error").inc()
    message = MISSING_VOTE_FIELDS if request.url.path == "/api/vote" else "invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    """Middleware to track request duration."""
    start = time.perf_counter()
    response = await call_next(request)
    request_duration.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).observe(time.perf_counter() - start)
    return response


def get_ledger(request: Request) -> VoteLedger:
    return request.app.state.ledger


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.post(
    "/api/vote",
    response_model=VoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or duplicate vote"},
        429: {"description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
@limiter.limit(settings.RATE_LIMIT)
async def submit_vote(
    request: Request,
    payload: Optional[dict] = Body(None),
    ledger: VoteLedger = Depends(get_ledger)
):
    """
    Record a vote for a session.

    - **sessionId**: Voting session identifier
    - **index**: Chosen candidate slot
    - **address**: Voter wallet address

    Each address may vote once per session.
    """
    try:
        vote = VoteRequest(**(payload or {}))
    except ValidationError:
        vote_errors.labels(error_type="missing_fields").inc()
        return error_response(status.HTTP_400_BAD_REQUEST, MISSING_VOTE_FIELDS)

    try:
        recorded = await ledger.record_vote(
            vote.session_id,
            vote.index,
            vote.address,
            get_current_timestamp()
        )
    except Exception as e:
        vote_errors.labels(error_type="internal_error").inc()
        logger.error(f"Error recording vote: {e}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "internal error")

    if not recorded:
        vote_errors.labels(error_type="duplicate").inc()
        return error_response(status.HTTP_400_BAD_REQUEST, "already voted")

    vote_counter.labels(session_id=str(vote.session_id)).inc()
    return VoteResponse(ok=True)


@app.get(
    "/api/votes/winner",
    response_model=WinnerResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid sessionId"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def get_winner(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    ledger: VoteLedger = Depends(get_ledger)
):
    """
    Get the vote counts and leading index for a session.

    Sessions without votes return a null winningIndex and empty counts.
    """
    try:
        session = int(session_id)
    except (TypeError, ValueError):
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_SESSION_ID)

    try:
        result = await ledger.compute_winner(session)
    except Exception as e:
        logger.error(f"Error computing winner for session {session}: {e}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e) or "internal error")

    return WinnerResponse(**result.to_dict())


@app.get(
    "/api/check-deployments",
    response_model=DeploymentCheckResponse,
    responses={
        500: {"model": ErrorResponse, "description": "Deployment check failed"}
    }
)
async def check_deployments():
    """Compare configured contract addresses against the latest local deployment records."""
    try:
        current = settings.contract_addresses
        latest = read_latest_deployments(settings.DEPLOYMENTS_DIR, settings.CHAIN_ID)
        return DeploymentCheckResponse(
            currentAddresses=current,
            latestDeployments=latest,
            comparison=compare_deployments(current, latest)
        )
    except Exception as e:
        logger.error(f"Deployment check failed: {e}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Failed to check deployments: {e}")


@app.get(
    "/api/health",
    response_model=HealthResponse,
    responses={
        503: {"model": HealthResponse, "description": "Service unhealthy"}
    }
)
async def health_check(ledger: VoteLedger = Depends(get_ledger)):
    """Check health of the service and its ledger backend."""
    services = {}

    try:
        healthy = await ledger.check_health()
        services["ledger"] = "connected" if healthy else "disconnected"
    except Exception as e:
        logger.error(f"Ledger health check error: {e}")
        services["ledger"] = "error"

    all_healthy = all(s == "connected" for s in services.values())

    response = HealthResponse(
        status="healthy" if all_healthy else "unhealthy",
        services=services
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json")
    )


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.SERVICE_NAME,
        "version": settings.API_VERSION,
        "status": "running",
        "endpoints": {
            "submit_vote": "/api/vote",
            "winner": "/api/votes/winner?sessionId={sessionId}",
            "check_deployments": "/api/check-deployments",
            "health": "/api/health",
            "metrics": "/metrics"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.vote_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )

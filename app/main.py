import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from app.api.v1.router import router as api_v1_router
from app.core.exceptions import (
    AgentCapacityExceededError,
    AgentNotFoundError,
    AgentUnavailableError,
    AssignmentRuleNotFoundError,
    DataProviderUnavailableError,
    DuplicateRulePriorityError,
    HelpdeskError,
    TicketNotAssignableError,
    TicketNotFoundError,
)
from app.core.config import settings as app_settings
from app.core.rate_limit import limiter
from app.services.workload_rebalance import start_auto_rebalance_loop
from app.core.database import AsyncSessionLocal, dispose_engine

# Configure logging
logging.basicConfig(level=app_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application-level background tasks."""
    # Start the periodic threshold-triggered rebalance loop
    rebalance_task = asyncio.create_task(start_auto_rebalance_loop(AsyncSessionLocal))
    logger.info("Background auto-rebalance task scheduled")
    yield
    # Shutdown: cancel the background task
    rebalance_task.cancel()
    try:
        await rebalance_task
    except asyncio.CancelledError:
        logger.info("Background auto-rebalance task stopped")
    await dispose_engine()


app = FastAPI(
    title="Helpdesk Assignment Engine",
    description="Rule-based routing, weighted agent scoring and workload rebalancing for support tickets",
    version="0.1.0",
    lifespan=lifespan,
)

# Attach rate limiter state so slowapi middleware can find it
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware – restricted to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in app_settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router)


def _error_response(status_code: int, exc: HelpdeskError, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.detail, "type": error_type},
    )


@app.exception_handler(TicketNotFoundError)
async def ticket_not_found_handler(request: Request, exc: TicketNotFoundError):
    logger.warning("Ticket not found: %s", exc.detail)
    return _error_response(404, exc, "ticket_not_found")


@app.exception_handler(AgentNotFoundError)
async def agent_not_found_handler(request: Request, exc: AgentNotFoundError):
    logger.warning("Agent not found: %s", exc.detail)
    return _error_response(404, exc, "agent_not_found")


@app.exception_handler(AssignmentRuleNotFoundError)
async def rule_not_found_handler(request: Request, exc: AssignmentRuleNotFoundError):
    logger.warning("Assignment rule not found: %s", exc.detail)
    return _error_response(404, exc, "assignment_rule_not_found")


@app.exception_handler(DuplicateRulePriorityError)
async def duplicate_rule_priority_handler(
    request: Request, exc: DuplicateRulePriorityError
):
    logger.warning("Duplicate rule priority: %s", exc.detail)
    return _error_response(409, exc, "duplicate_rule_priority")


@app.exception_handler(AgentUnavailableError)
async def agent_unavailable_handler(request: Request, exc: AgentUnavailableError):
    logger.warning("Agent unavailable: %s", exc.detail)
    return _error_response(409, exc, "agent_unavailable")


@app.exception_handler(AgentCapacityExceededError)
async def agent_capacity_handler(request: Request, exc: AgentCapacityExceededError):
    logger.warning("Agent capacity exceeded: %s", exc.detail)
    return _error_response(409, exc, "agent_capacity_exceeded")


@app.exception_handler(TicketNotAssignableError)
async def ticket_not_assignable_handler(request: Request, exc: TicketNotAssignableError):
    logger.warning("Ticket not assignable: %s", exc.detail)
    return _error_response(409, exc, "ticket_not_assignable")


@app.exception_handler(DataProviderUnavailableError)
async def data_provider_unavailable_handler(
    request: Request, exc: DataProviderUnavailableError
):
    logger.error("Data provider unavailable: %s", exc.detail)
    return _error_response(503, exc, "data_provider_unavailable")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Request validation error: %s", exc.errors())
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            # ctx may carry the raised ValueError itself
            "errors": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
            "type": "validation_error",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected/unhandled exceptions.

    Returns a generic 500 response so that raw stack traces are never
    leaked to the client.
    """
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected internal error occurred. Please try again later.",
            "type": "internal_server_error",
        },
    )

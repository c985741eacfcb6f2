"""API Gateway - FastAPI application for access decisions and the live decision feed."""

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trustgate.api.schemas import (
    AuditListResponse,
    CheckAccessRequest,
    CheckAccessResponse,
    ErrorResponse,
)
from trustgate.api.service import AccessEvaluationService
from trustgate.common.config import Config, get_config
from trustgate.common.constants import DataConstants
from trustgate.common.logging import LOG_FORMAT
from trustgate.events.dispatcher import Subscription
from trustgate.orchestration.signal_router import shutdown_executor


def configure_logging(config: Config) -> None:
    """Root logging at the configured TRUSTGATE_LOG_LEVEL."""
    logging.basicConfig(
        level=config.log_level.value,
        format=LOG_FORMAT)


_config = get_config()
configure_logging(_config)
logger = logging.getLogger("trustgate_api")


class ServiceManager:
    """Thread-safe service singleton manager."""

    _instance: Optional[AccessEvaluationService] = None
    _lock = threading.Lock()
    _initialized = False

    @classmethod
    def get_service(cls) -> AccessEvaluationService:
        """Get or create the evaluation service instance (thread-safe)."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = AccessEvaluationService()
                    cls._initialized = True
                    logger.info("AccessEvaluationService initialized")
        return cls._instance

    @classmethod
    def set_service(cls, service: Optional[AccessEvaluationService]) -> None:
        """Install a pre-built service (used by tests and embedding hosts)."""
        with cls._lock:
            cls._instance = service
            cls._initialized = service is not None

    @classmethod
    def shutdown(cls) -> None:
        """Shutdown the service and release resources."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.shutdown()
                cls._instance = None
                cls._initialized = False

                logger.info("AccessEvaluationService shutdown complete")


def get_service() -> AccessEvaluationService:
    """Get the evaluation service instance."""
    return ServiceManager.get_service()


# =============================================================================
# CORS CONFIGURATION
# =============================================================================

def get_cors_origins() -> List[str]:
    """Allowed CORS origins from TRUSTGATE_CORS_ORIGINS.

    Example: TRUSTGATE_CORS_ORIGINS="https://soc.example.com,https://admin.example.com"
    """
    config = get_config()
    if config.is_production and "*" in config.cors_origins:
        logger.warning(
            "Wildcard CORS origin ignored in production. "
            "Set TRUSTGATE_CORS_ORIGINS to explicit origins."
        )
        return [origin for origin in config.cors_origins if origin != "*"]
    return config.cors_origins


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("TrustGate API Gateway starting up...")
    get_service()  # Pre-initialize service
    logger.info("TrustGate API Gateway ready")

    yield

    # Shutdown
    logger.info("TrustGate API Gateway shutting down...")
    ServiceManager.shutdown()
    shutdown_executor()

    logger.info("TrustGate API Gateway shutdown complete")


app = FastAPI(
    title="TrustGate API Gateway",
    description=(
        "Zero-Trust access decisions. Every login attempt is scored on "
        "identity, device, location and behavior."),
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if _config.is_production else "/docs",
    redoc_url=None if _config.is_production else "/redoc",
)


cors_origins = get_cors_origins()
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["POST", "GET"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Handle validation errors."""
    request_id = getattr(request.state, "request_id", None)
    logger.warning(
        "Validation error",
        extra={"request_id": request_id, "error": str(exc)}
    )
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="validation_error",
            message=str(exc),
            request_id=request_id,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors.

    Logs full exception for debugging but returns sanitized message to client.
    """
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "Unexpected error",
        extra={"request_id": request_id, "error_type": type(exc).__name__}
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="internal_error",
            message="An unexpected error occurred",
            request_id=request_id,
        ).model_dump(),
    )


# =============================================================================
# MIDDLEWARE
# =============================================================================

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add request ID to each request for tracing."""
    request_id = f"req_{uuid4().hex[:12]}"
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.post(
    "/check-access",
    response_model=CheckAccessResponse,
    response_model_by_alias=True,
    responses={
        200: {
            "description": "Access decision",
            "model": CheckAccessResponse,
        },
        400: {
            "description": "Invalid request",
            "model": ErrorResponse,
        },
        500: {
            "description": "Internal server error",
            "model": ErrorResponse,
        },
    },
    summary="Decide on a login attempt",
    description=(
        "Scores the attempt on four pillars and returns GRANTED, CHALLENGE "
        "or BLOCKED with a risk score, a reason and one factor per pillar. "
        "Degraded signals and unknown principals still produce a decision."
    ),
)
def check_access(request: CheckAccessRequest) -> CheckAccessResponse:
    """Evaluate a login attempt.

    Declared sync so the blocking pipeline runs in the threadpool.
    """
    service = get_service()

    logger.info(
        "Evaluating access request",
        extra={"principal": request.email, "attempt_id": request.attempt_id}
    )

    response = service.evaluate(request)

    logger.info(
        "Access evaluation complete",
        extra={
            "decision": response.decision,
            "risk_score": response.risk_score,
            "attempt_id": response.attempt_id,
        }
    )

    return response


@app.get(
    "/audit",
    response_model=AuditListResponse,
    response_model_by_alias=True,
    summary="Recent audit entries, newest first",
)
def list_audit(
    principal: Optional[str] = Query(default=None, min_length=1),
    limit: int = Query(
        default=DataConstants.DEFAULT_QUERY_LIMIT,
        ge=1,
        le=DataConstants.MAX_QUERY_LIMIT,
    ),
) -> AuditListResponse:
    entries = get_service().get_audit_entries(
        principal=principal.strip().lower() if principal else None,
        limit=limit,
    )
    return AuditListResponse(entries=entries, count=len(entries))


def _parse_principals(raw: Optional[str]) -> Optional[List[str]]:
    """None subscribes to everyone; an empty value subscribes to no one."""
    if raw is None:
        return None
    return [p for p in raw.split(",") if p.strip()]


async def _forward_entries(websocket: WebSocket, subscription: Subscription) -> None:
    """Drain the subscription on the event loop; holds no worker thread."""
    loop = asyncio.get_running_loop()
    ready = asyncio.Event()
    subscription.set_listener(lambda: loop.call_soon_threadsafe(ready.set))
    try:
        while not subscription.closed:
            # Cleared before draining so a delivery racing the drain still wakes us
            ready.clear()
            entry = subscription.get_nowait()
            while entry is not None:
                await websocket.send_json(entry.to_event())
                entry = subscription.get_nowait()
            if not subscription.closed:
                await ready.wait()
    finally:
        subscription.set_listener(None)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@app.websocket("/ws/decisions")
async def decision_stream(websocket: WebSocket, principals: Optional[str] = None) -> None:
    """Push every new decision for the requested principals.

    The subscription is opened before the handshake completes, so a client
    that has received the accept sees every decision made afterwards.
    """
    subscription = get_service().subscribe(_parse_principals(principals))
    await websocket.accept()

    tasks = [
        asyncio.create_task(_forward_entries(websocket, subscription)),
        asyncio.create_task(_wait_for_disconnect(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning(
                    f"Decision stream ended: {type(task.exception()).__name__}",
                    extra={"subscription_id": subscription.subscription_id},
                )
    finally:
        # Closing first releases a forwarder blocked in subscription.get
        subscription.close()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "service": "trustgate-gateway"}


@app.get("/ready")
async def readiness_check() -> dict:
    """Readiness check endpoint.

    Returns 503 until the service singleton is initialized.
    """
    if not ServiceManager._initialized:
        raise HTTPException(status_code=503, detail="not_ready")
    return {"status": "ready", "service": "trustgate-gateway"}


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "trustgate.api.gateway:app",
        host=_config.api_host,
        port=_config.api_port,
        reload=_config.debug,
        log_level=_config.log_level.value.lower(),
    )

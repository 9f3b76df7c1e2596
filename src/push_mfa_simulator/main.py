"""
Push MFA Simulator - Main application entry point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from push_mfa_simulator import __version__
from push_mfa_simulator.clients.http_client import build_http_client
from push_mfa_simulator.config import settings
from push_mfa_simulator.dependencies import get_key_material_store
from push_mfa_simulator.exceptions import KeyLoadError, TokenParseError
from push_mfa_simulator.logging_config import LoggingMiddleware, logger, setup_logging
from push_mfa_simulator.routers.confirm_router import router as confirm_router
from push_mfa_simulator.routers.enroll_router import router as enroll_router
from push_mfa_simulator.routers.fcm_router import router as fcm_router
from push_mfa_simulator.routers.health_router import router as health_router
from push_mfa_simulator.services.sse_service import sse_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager.

    Loads the device key material early so a broken key mount shows up in the
    startup log, opens the shared HTTP client and starts the SSE registry.
    Open event streams are closed on the exit signal, before the server waits
    for its connections to drain.
    """
    logger.info("Application startup sequence initiated.")

    try:
        material = get_key_material_store().load()
        logger.info(f"Device key {material.key_id} ready ({material.source})")
    except KeyLoadError as e:
        # Requests needing the key will fail until the key source is fixed
        logger.error(f"Device key material unavailable on startup: {e}")

    app.state.http_client = build_http_client(settings)
    sse_service.start()
    sse_service.watch_exit_signals()

    logger.info("Application startup complete.")
    yield
    logger.info("Application shutdown sequence initiated.")

    sse_service.unwatch_exit_signals()
    await sse_service.shutdown()
    await app.state.http_client.aclose()

    logger.info("Application shutdown complete.")


# Initialize FastAPI app
app = FastAPI(
    title="Push MFA Simulator",
    description=(
        "Simulated mobile device for push based multi-factor authentication: "
        "completes enrollments, answers login challenges and mocks FCM delivery."
    ),
    version=__version__,
    root_path=settings.root_path,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Enrollment",
            "description": "Binding the device key to a user account.",
        },
        {
            "name": "Confirmation",
            "description": "Approving or denying pending login challenges.",
        },
        {
            "name": "FCM Mock",
            "description": "Mocked Firebase Cloud Messaging endpoints.",
        },
    ],
)

# Setup logging
setup_logging(app)

# Add logging middleware (after request_id middleware which is added in setup_logging)
app.add_middleware(LoggingMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health_router)
app.include_router(enroll_router, prefix="/enroll", tags=["Enrollment"])
app.include_router(confirm_router, prefix="/confirm", tags=["Confirmation"])
app.include_router(fcm_router, prefix="/fcm", tags=["FCM Mock"])


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTPException: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"ValidationError: {exc.errors()}")
    return JSONResponse(
        status_code=422, content={"detail": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(TokenParseError)
async def token_parse_exception_handler(request: Request, exc: TokenParseError):
    logger.error(f"TokenParseError on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(KeyLoadError)
async def key_load_exception_handler(request: Request, exc: KeyLoadError):
    logger.error(f"KeyLoadError on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500, content={"detail": "Device key material unavailable"}
    )

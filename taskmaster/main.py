from fastapi import FastAPI, HTTPException, status, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from sqlalchemy import text
import logging
import time
import uuid

from .db import Base, engine
from . import db_models  # noqa: F401 (register tables on Base.metadata)
from .api.errors import register_exception_handlers
from .api.router import api_router
from .config import settings
from .logging_utils import setup_logging
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from .rate_limit import limiter, _rate_limit_exceeded_handler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    setup_logging(settings.LOG_LEVEL)
    if settings.DB_CREATE_ALL:
        # Dev convenience; deployments manage the schema with `alembic upgrade head`
        Base.metadata.create_all(bind=engine)
    yield


tags_metadata = [
    {"name": "auth", "description": "Device sign-in: the device id header is the credential."},
    {"name": "tasks", "description": "Task list of the calling device's user."},
    {"name": "push", "description": "Web Push subscriptions and test notifications."},
    {"name": "cron", "description": "Scheduler entry point for due-task reminders."},
]

app = FastAPI(
    title="TaskMaster API",
    version="1.0.0",
    description=(
        "JSON API for the TaskMaster to-do PWA, exposed under /api. "
        f"Send the device id in the {settings.DEVICE_ID_HEADER} header after POST /api/auth."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "ok"}


app.include_router(api_router)

# Unified error handlers
register_exception_handlers(app)

# Rate limiting (global middleware + handler)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    req_id = incoming or uuid.uuid4().hex
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logging.getLogger("taskmaster.request").info(
        "method=%s path=%s status=%s duration_ms=%s request_id=%s",
        request.method,
        request.url.path,
        getattr(response, "status_code", "-"),
        duration_ms,
        req_id,
    )
    return response

# --- Security: CORS and security headers ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if settings.SECURITY_CSP and not request.url.path.startswith(("/docs", "/redoc")):
        # Swagger/ReDoc pull scripts from a CDN; everything else is plain JSON
        response.headers["Content-Security-Policy"] = settings.SECURITY_CSP
    if settings.SECURITY_ENABLE_HSTS:
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains; preload")
    return response


# --- Observability: liveness, readiness, metrics ---

@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)

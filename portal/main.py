"""
Entry point for the Customer Feedback Portal API.

Run with:
    uvicorn portal.main:app --reload --port 8000
"""

import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager

# asyncpg is incompatible with ProactorEventLoop (Windows default in Python 3.8+).
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from portal.core.config import settings

# ---------------------------------------------------------------------------
# Logging configuration, applied once at module load
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Silence noisy third-party loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

from portal.core.errors import PortalError, Unauthorized  # noqa: E402
from portal.core.limiter import limiter  # noqa: E402

# ---------------------------------------------------------------------------
# Lifespan: runs once on startup / shutdown
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s v%s", settings.APP_NAME, settings.APP_VERSION)

    # Pre-warm the DB connection pool so the first user request is not slow.
    from portal.core.database import async_session_factory, engine
    from sqlalchemy import text
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection pool warmed up.")
    except Exception as exc:
        logger.warning("Could not pre-warm DB pool: %s", exc)

    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        from portal.core.user_store import ensure_admin
        try:
            async with async_session_factory() as session:
                admin = await ensure_admin(
                    settings.ADMIN_NAME, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD, session
                )
            logger.info("Bootstrap admin ready (user %s).", admin.id)
        except Exception as exc:
            logger.warning("Could not seed bootstrap admin: %s", exc)

    yield

    await engine.dispose()
    logger.info("Database engine disposed. Shutdown complete.")


# ---------------------------------------------------------------------------
# Application instance
# ---------------------------------------------------------------------------

from portal.api.endpoints import admin, auth, complaints, dashboard, questions, ratings, scan  # noqa: E402
from portal.api.endpoints.profiles import agents_router, employees_router  # noqa: E402

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Customer feedback portal for an insurance company. Customers scan "
        "or search for an agent or employee and leave star ratings or "
        "complaints; staff and admins review them through role-gated endpoints."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Attach limiter state and rate limit exceeded handler
# ---------------------------------------------------------------------------

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    content = {"detail": exc.detail}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = [e.as_dict() for e in errors]
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body") or "body",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Validation error", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = str(exc) if settings.DEBUG else "An unexpected error occurred. Please try again later."
    return JSONResponse(
        status_code=500,
        content={"detail": detail},
    )


# ---------------------------------------------------------------------------
# Middleware order matters: request logging wraps everything
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s → %d  (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

API_PREFIX = "/api/v1"

app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
app.include_router(agents_router, prefix=f"{API_PREFIX}/agents", tags=["Agents"])
app.include_router(employees_router, prefix=f"{API_PREFIX}/employees", tags=["Employees"])
app.include_router(questions.router, prefix=f"{API_PREFIX}/questions", tags=["Questions"])
app.include_router(ratings.router, prefix=f"{API_PREFIX}/ratings", tags=["Ratings"])
app.include_router(complaints.router, prefix=f"{API_PREFIX}/complaints", tags=["Complaints"])
app.include_router(scan.router, prefix=API_PREFIX, tags=["Scan & Search"])
app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["Staff Dashboard"])
app.include_router(admin.router, prefix=f"{API_PREFIX}/admin", tags=["Admin"])

# ---------------------------------------------------------------------------
# Health / root endpoints
# ---------------------------------------------------------------------------

@app.get("/", tags=["Health"], summary="Root")
async def root() -> dict:
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"], summary="Health check")
async def health_check() -> dict:
    return {"status": "healthy"}


@app.get("/health/db", tags=["Health"], summary="Database connectivity check")
async def health_db() -> JSONResponse:
    from sqlalchemy import text
    from portal.core.database import engine
    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            row = result.scalar()
        return JSONResponse({"status": "ok", "result": row})
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return JSONResponse(status_code=503, content={"status": "error", "error": str(exc)})

"""
Taskboard API

FastAPI application serving the Taskboard gateway: cookie-session
authentication plus per-user projects and todos.

Run locally with ``python -m api.main``.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.core.config import settings
from api.core.security import session_user_id
from api.models.database import engine, get_db, init_db
from api.models.schemas import ErrorResponse, HealthResponse
from api.routes import auth, cookies, todos

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup and release pooled connections on shutdown."""
    logger.info(
        f"{settings.app_name} v{settings.app_version} ({settings.environment}) "
        f"using {engine.url.render_as_string(hide_password=True)}"
    )
    try:
        await init_db()
    except SQLAlchemyError as e:
        logger.error(f"Could not prepare the database: {e}")
        raise

    yield

    await engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="""
Taskboard API backs a small multi-user task manager.

* **Auth** - register, log in and out; the session lives in an HTTP-only cookie
* **Projects** - create, rename and delete your projects
* **Todos** - add todos to a project, toggle and delete them

Project and todo endpoints require the session cookie set by
`/api/v1/auth/login`. Other users' rows are never visible.
    """,
    version=settings.app_version,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Credentials must be allowed or browsers drop the session cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with the session user behind it and its duration."""
    started = time.perf_counter()
    response = await call_next(request)
    if not logger.isEnabledFor(logging.DEBUG):
        return response

    elapsed_ms = (time.perf_counter() - started) * 1000
    user_id = session_user_id(request)
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"user={user_id if user_id is not None else '-'} {elapsed_ms:.1f}ms"
    )
    return response


# =============================================================================
# Error Responses
# =============================================================================

def error_response(
    status_code: int,
    error: str,
    detail: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """JSON body shared by every failure: ``{error, detail, status_code}``."""
    body = ErrorResponse(error=error, detail=detail, status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def describe_validation_errors(errors: list[dict[str, Any]]) -> str:
    """Flatten pydantic errors into ``"body -> field: message"`` parts joined by ``"; "``."""
    return "; ".join(
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in errors
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return error_response(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))
    return error_response(exc.status_code, "Error", str(exc.detail), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation Error",
        describe_validation_errors(exc.errors()),
    )


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    detail = None if settings.environment == "production" else str(exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", detail)


# =============================================================================
# Routes
# =============================================================================

for router in (auth.router, todos.router, cookies.router):
    app.include_router(router, prefix=settings.api_v1_prefix)


@app.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse, "description": "Database unreachable"}},
    tags=["Health"],
    summary="Health check",
)
async def health_check(
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """Report whether the API can reach its database."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Health check could not reach the database: {e}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="degraded", version=settings.app_version, database="unavailable")

    return HealthResponse(status="healthy", version=settings.app_version, database="ok")


@app.get("/", tags=["Root"], summary="API information")
async def root() -> dict[str, Any]:
    prefix = settings.api_v1_prefix
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": app.docs_url,
        "openapi": app.openapi_url,
        "endpoints": {
            "auth": f"{prefix}/auth",
            "projects": f"{prefix}/todos/projects",
            "todos": f"{prefix}/todos",
            "cookies": f"{prefix}/cookies",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )

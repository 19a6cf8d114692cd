"""Account Service - user registration, activation, login and password reset."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import SessionLocal
from app.exceptions import AccountError
from app.rate_limit import limiter
from app.routers import auth_router, users_router
from app.services.images import get_image_store
from app.services.tokens import create_token_sweeper

# Logging
logger = logging.getLogger("account_service")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ONE_YEAR_SECONDS = 365 * 24 * 60 * 60


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the token sweeper for the lifetime of the process."""
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)

    sweeper = create_token_sweeper(SessionLocal)
    app.state.token_sweeper = sweeper
    if settings.TOKEN_SWEEP_ENABLED:
        sweeper.start()
    try:
        yield
    finally:
        sweeper.shutdown()


app = FastAPI(title="Account Service", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {"/api/1.0/users", "/api/1.0/auth", "/api/1.0/logout", "/api/1.0/user/password"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLogMiddleware)

# Profile images
image_store = get_image_store()
image_store.create_folders()


class CachedStaticFiles(StaticFiles):
    """Static files with a long client cache; stored names are random and never reused."""

    def file_response(self, *args, **kwargs) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = f"public, max-age={ONE_YEAR_SECONDS}"
        return response


app.mount("/images", CachedStaticFiles(directory=str(image_store.directory)), name="images")

# API routers
app.include_router(users_router)
app.include_router(auth_router)


def error_body(request: Request, message: str, validation_errors: dict | None = None) -> dict:
    body = {
        "path": request.url.path,
        "timestamp": int(time.time() * 1000),
        "message": message,
    }
    if validation_errors:
        body["validationErrors"] = validation_errors
    return body


# --- Account failures ---
@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Map service failures to their HTTP status and the common error body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.message, getattr(exc, "errors", None)),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed path/query/body values are reported like field validation failures."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in ("body", "path", "query")]
        errors.setdefault(".".join(loc) or "body", error["msg"])
    return JSONResponse(status_code=400, content=error_body(request, "Validation failure", errors))


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content=error_body(request, "Rate limit exceeded. Try again later."))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405, ...) with the common error body."""
    return JSONResponse(status_code=exc.status_code, content=error_body(request, str(exc.detail)))


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "account-service", "version": "0.1.0"}

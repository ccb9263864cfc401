import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from xo_finance.api.v1.ai import router as ai_router
from xo_finance.api.v1.catalog import router as catalog_router
from xo_finance.api.v1.payments import router as payments_router
from xo_finance.api.v1.records import router as records_router
from xo_finance.api.v1.users import router as users_router
from xo_finance.core.config import get_settings
from xo_finance.core.errors import AppError

settings = get_settings()

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Ocorreu um erro inesperado."

app = FastAPI(
    title="Xô Planilhas API",
    version="1.0.0",
    docs_url="/docs" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.openapi_enabled else None,
)


@app.on_event("startup")
async def _startup_jobs():
    current = get_settings()
    problems = current.validate_required_config()
    if not problems:
        return
    if current.is_production:
        raise RuntimeError(
            "Configuration validation failed in production environment: " + "; ".join(problems)
        )
    for problem in problems:
        logger.warning("Configuration problem: %s", problem)


if settings.cors_allow_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

app.include_router(users_router, prefix="/api/v1", tags=["users"])
app.include_router(records_router, prefix="/api/v1", tags=["records"])
app.include_router(ai_router, prefix="/api/v1", tags=["ai"])
app.include_router(catalog_router, prefix="/api/v1", tags=["catalog"])
app.include_router(payments_router, prefix="/api/v1", tags=["payments"])


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    payload = exc.to_payload()
    if exc.status_code >= 500 and not exc.retryable and not settings.expose_error_details:
        payload["detail"] = GENERIC_ERROR_MESSAGE
    return JSONResponse(status_code=exc.status_code, content=payload)


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Hide internal details for 5xx unless explicitly enabled.
    if exc.status_code >= 500 and not settings.expose_error_details:
        return JSONResponse(status_code=exc.status_code, content={"detail": GENERIC_ERROR_MESSAGE})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    if settings.expose_error_details:
        return JSONResponse(status_code=500, content={"detail": str(exc)})
    return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR_MESSAGE})


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if not settings.security_headers_enabled:
        return response

    headers = response.headers
    headers.setdefault("X-Content-Type-Options", "nosniff")
    headers.setdefault("X-Frame-Options", "DENY")
    headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'; base-uri 'none'")
    if request.url.path.startswith("/api/"):
        headers.setdefault("Cache-Control", "no-store")
    return response


@app.get("/health")
async def health_check():
    return {"status": "ok"}

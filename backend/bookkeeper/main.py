from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.sessions import SessionMiddleware

from bookkeeper.core.config import settings
from bookkeeper.core.errors import ApiError
from bookkeeper.core.logs import configure_logging
from bookkeeper.db.pool import close_db_pool, open_db_pool
from bookkeeper.routers.api import router as api_router
from bookkeeper.routers.auth import router as auth_router

configure_logging(settings.log_level, settings.log_json)
log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    open_db_pool()
    try:
        yield
    finally:
        close_db_pool()


app = FastAPI(title="Bookkeeper API", lifespan=lifespan)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie="bookkeeper_session",
    same_site="strict",
    https_only=settings.cookie_secure,
)

app.include_router(auth_router)
app.include_router(api_router)


@app.exception_handler(ApiError)
def api_error_handler(_: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(HTTPException)
def http_exc_handler(_: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
def request_validation_handler(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "Invalid request body"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"Invalid {field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": detail})


@app.exception_handler(Exception)
def unhandled_error_handler(_: Request, exc: Exception):
    log.error("unhandled_error", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

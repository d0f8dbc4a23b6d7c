import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from clubdues.config import get_settings
from clubdues.data.base import SessionLocal, create_tables
from clubdues.domain.errors import AuthenticationError, DomainError
from clubdues.domain.services.user_service import ensure_default_admin
from clubdues.integrations.storage import LOCAL_URL_PREFIX
from clubdues.logging_config import setup_logging
from clubdues.presentation.auth_api import router as auth_router
from clubdues.presentation.club_api import router as club_router
from clubdues.presentation.expenses_api import router as expenses_router
from clubdues.presentation.payments_api import router as payments_router
from clubdues.presentation.user_api import router as users_router

settings = get_settings()
setup_logging(settings.log_level, settings.log_dir)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    db = SessionLocal()
    try:
        ensure_default_admin(db, settings)
    finally:
        db.close()
    logger.info("Club dues API started (env=%s, storage=%s)", settings.app_env, settings.storage_backend)
    yield


app = FastAPI(title="Club Dues API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code, content={"message": exc.message}, headers=headers
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": _describe_validation_errors(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(payments_router)
app.include_router(expenses_router)
app.include_router(club_router)

if settings.storage_backend == "local":
    os.makedirs(settings.upload_dir, exist_ok=True)
    app.mount(LOCAL_URL_PREFIX, StaticFiles(directory=settings.upload_dir), name="uploads")


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)

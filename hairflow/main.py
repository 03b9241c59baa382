from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException

from hairflow.config import Settings
from hairflow.controllers import v1
from hairflow.db import init_db
from hairflow.logger import setup_logging
from hairflow.models import ErrorCode
from hairflow.services.storage import close_client, init_storage
from hairflow.services.usage import UsageLimitExceeded

settings = Settings()
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_storage(settings)
    await asyncio.to_thread(init_db, settings)
    yield
    await close_client()


app = FastAPI(
    title="HairFlow API",
    version="1.0.0",
    lifespan=lifespan,
)


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"data": None, "error": {"code": code, "message": message}},
    )


@app.exception_handler(HTTPException)
async def http_error_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "code" in detail:
        code, message = str(detail["code"]), str(detail.get("message", ""))
    else:
        code = ErrorCode.NOT_FOUND.value if exc.status_code == 404 else "HTTP_ERROR"
        message = str(detail)
    response = _error(exc.status_code, code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}"
        for e in exc.errors()
    )
    return _error(400, ErrorCode.VALIDATION_ERROR.value, message or "Invalid request")


@app.exception_handler(UsageLimitExceeded)
async def usage_limit_handler(
    _request: Request, exc: UsageLimitExceeded
) -> JSONResponse:
    return _error(
        429,
        ErrorCode.USAGE_LIMIT.value,
        f"Daily analysis limit reached ({exc.remaining} remaining today). "
        "Upgrade your plan for unlimited use.",
    )


app.include_router(v1.router)

Instrumentator().instrument(app).expose(app)

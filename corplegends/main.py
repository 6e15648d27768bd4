import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from corplegends.api import album_router, health_router, roster_router, trade_router
from corplegends.config import settings
from corplegends.db.database import init_db
from corplegends.models.failure import KnownError, create_known_failure, create_unknown_failure

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("corplegends"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(request: Request, exc: KnownError) -> JSONResponse:
    """Render a classified failure as a finalized response envelope."""
    logger.info(
        "KNOWN_FAILURE",
        extra={"path": request.url.path, "kind": exc.kind.value, "status": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=create_known_failure(exc).model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Classify anything unexpected as an unknown failure instead of a raw 500."""
    logger.exception("UNKNOWN_FAILURE", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )


app.include_router(album_router)
app.include_router(health_router)
app.include_router(roster_router)
app.include_router(trade_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

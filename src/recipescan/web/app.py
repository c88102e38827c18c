"""
RecipeScan Web API - FastAPI application.

A JSON surface over the same pipeline and store the CLI uses. Run with:

    recipescan serve
    uvicorn recipescan.web.app:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipescan import __version__
from recipescan.config import settings
from recipescan.db import get_store
from recipescan.errors import (
    DuplicateTitleError,
    ImageBatchError,
    InputError,
    ProviderError,
    RecipeNotFoundError,
    RecipeScanError,
    UnparseableResponseError,
)
from recipescan.providers.prompt_logger import enable_prompt_logging
from recipescan.providers.prompt_logger import is_enabled as prompt_logging_enabled
from recipescan.web.recipe_routes import router as recipe_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.log_prompts:
        enable_prompt_logging(True)
    logger.info("RecipeScan API starting up...")
    logger.info(f"  Environment: {settings.env}")
    logger.info(f"  Prompt file logging: {prompt_logging_enabled()}")
    yield
    get_store().close()


app = FastAPI(title="RecipeScan", version=__version__, lifespan=lifespan)

# CORS for a local frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipe_router, prefix="/api")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


# =============================================================================
# Error mapping
# =============================================================================


def _status_for(exc: RecipeScanError) -> int:
    if isinstance(exc, RecipeNotFoundError):
        return 404
    if isinstance(exc, DuplicateTitleError):
        return 409
    if isinstance(exc, UnparseableResponseError):
        return 422
    if isinstance(exc, ProviderError):
        return 502
    if isinstance(exc, (InputError, ImageBatchError)):
        return 400
    return 500


@app.exception_handler(RecipeScanError)
async def recipescan_error_handler(request: Request, exc: RecipeScanError):
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc}")

    content = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, ImageBatchError):
        content["failed_images"] = [
            {"index": f.index, "name": f.name, "reason": f.reason}
            for f in exc.result.failures
        ]
    return JSONResponse(status_code=status_code, content=content)

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from transcript_search.api.dependencies import get_context
from transcript_search.api.models import ApiResponse
from transcript_search.api.routes.chat import router as chat_router
from transcript_search.api.routes.ingest import router as ingest_router
from transcript_search.api.routes.search import router as search_router
from transcript_search.config import get_settings, settings
from transcript_search.context import AppContext
from transcript_search.errors import TranscriptSearchError
from transcript_search.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the application context at startup and close it at shutdown."""
    configure_logging()
    app.state.context = await AppContext.create(get_settings())
    try:
        yield
    finally:
        await app.state.context.aclose()


app = FastAPI(
    title="Transcript Search API",
    description="Semantic search and RAG chat over subtitle-style transcripts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ingest_router)
app.include_router(search_router)
app.include_router(chat_router)


def _error_response(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse(status="error", message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(TranscriptSearchError)
async def transcript_search_error_handler(
    request: Request, exc: TranscriptSearchError
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(exc.status_code, str(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems: list[str] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:]) or "body"
        problems.append(f"{field}: {error.get('msg', 'invalid')}")
    return _error_response(400, "Invalid request: " + "; ".join(problems))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, f"Internal server error: {exc}")


@app.get("/health")
async def health(context: Annotated[AppContext, Depends(get_context)]) -> dict[str, Any]:
    database = await context.store.health_check()
    return {"status": "healthy" if database else "degraded", "database": database}

"""Query Service: question answering over ingested documents."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from pydantic import BaseModel
from starlette.responses import Response

from docqa.api.health import check_all_dependencies, check_readiness
from docqa.core.config import settings
from docqa.core.dependencies import services
from docqa.core.exceptions import DimensionMismatchError, ScopeNotFoundError
from docqa.models.chunk import Chunk
from docqa.models.response import ContextStyle, SearchResponse
from docqa.models.scope import CategoryScope, DocumentScope, Scope
from docqa.monitoring.metrics import (
    query_counter,
    query_errors_total,
    query_latency_seconds,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize()
    logger.info("Query Service started")
    yield
    await services.shutdown()
    logger.info("Query Service stopped")


app = FastAPI(title="Document Q&A Query Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

query_processor = services.build_query_processor()


class QueryResponse(SearchResponse):
    """Search response with request latency."""

    latency_ms: float


class ChunkSearchResponse(BaseModel):
    """Raw retrieval response."""

    query: str
    chunks: List[Chunk]


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, ScopeNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    query_errors_total.inc()
    if isinstance(e, DimensionMismatchError):
        logger.error(f"Query aborted: {str(e)}")
        return HTTPException(status_code=500, detail=str(e))
    logger.error(f"Query failed: {str(e)}")
    return HTTPException(status_code=500, detail=f"Query failed: {str(e)}")


async def _answer(
    query: str, scope: Scope, top_k: int, context_style: ContextStyle
) -> QueryResponse:
    start_time = time.time()
    query_counter.labels(scope=scope.kind).inc()

    try:
        result = await query_processor.process_query(
            query=query, scope=scope, top_k=top_k, context_style=context_style
        )
    except Exception as e:
        raise _http_error(e) from e

    latency_ms = (time.time() - start_time) * 1000
    query_latency_seconds.observe(latency_ms / 1000)
    logger.info(f"Query processed in {latency_ms:.2f}ms")
    return QueryResponse(**result.model_dump(), latency_ms=latency_ms)


async def _stream(
    query: str, scope: Scope, top_k: int, context_style: ContextStyle
) -> StreamingResponse:
    query_counter.labels(scope=scope.kind).inc()
    try:
        fragments: AsyncIterator[str] = await query_processor.stream_query(
            query=query, scope=scope, top_k=top_k, context_style=context_style
        )
    except Exception as e:
        raise _http_error(e) from e
    return StreamingResponse(fragments, media_type="text/plain; charset=utf-8")


async def _chunks(query: str, scope: Scope, top_k: int) -> ChunkSearchResponse:
    try:
        result = await query_processor.search_chunks(query=query, scope=scope, top_k=top_k)
    except Exception as e:
        raise _http_error(e) from e
    return ChunkSearchResponse(query=query, chunks=result.chunks)


@app.post("/api/search/category/{category_id}/answer", response_model=QueryResponse)
async def answer_in_category(
    category_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
    context_style: ContextStyle = ContextStyle.LABELED,
) -> QueryResponse:
    """
    Answer a question from the documents of a category.

    Args:
        category_id: Category to search.
        query: User question.
        top_k: Maximum number of chunks.
        context_style: Context layout.

    Returns:
        Answer with confidence, primary document and sources.
    """
    return await _answer(query, CategoryScope(category_id=category_id), top_k, context_style)


@app.post("/api/search/document/{document_id}/answer", response_model=QueryResponse)
async def answer_in_document(
    document_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
    context_style: ContextStyle = ContextStyle.LABELED,
) -> QueryResponse:
    """
    Answer a question from a single document.

    Args:
        document_id: Document to search.
        query: User question.
        top_k: Maximum number of chunks.
        context_style: Context layout.

    Returns:
        Answer with confidence and sources.
    """
    return await _answer(query, DocumentScope(document_id=document_id), top_k, context_style)


@app.post("/api/search/category/{category_id}/answer/stream")
async def answer_in_category_stream(
    category_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
    context_style: ContextStyle = ContextStyle.LABELED,
) -> StreamingResponse:
    """Stream an answer from the documents of a category as plain text."""
    return await _stream(query, CategoryScope(category_id=category_id), top_k, context_style)


@app.post("/api/search/document/{document_id}/answer/stream")
async def answer_in_document_stream(
    document_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
    context_style: ContextStyle = ContextStyle.LABELED,
) -> StreamingResponse:
    """Stream an answer from a single document as plain text."""
    return await _stream(query, DocumentScope(document_id=document_id), top_k, context_style)


@app.post("/api/search/category/{category_id}/chunks", response_model=ChunkSearchResponse)
async def similar_chunks_in_category(
    category_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
) -> ChunkSearchResponse:
    """Return the chunks of a category most similar to a query."""
    return await _chunks(query, CategoryScope(category_id=category_id), top_k)


@app.post("/api/search/document/{document_id}/chunks", response_model=ChunkSearchResponse)
async def similar_chunks_in_document(
    document_id: int,
    query: str = Query(..., min_length=1),
    top_k: int = Query(settings.top_k, ge=1, le=50),
) -> ChunkSearchResponse:
    """Return the chunks of a document most similar to a query."""
    return await _chunks(query, DocumentScope(document_id=document_id), top_k)


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health() -> dict:
    """
    Health check endpoint with dependency verification.

    Returns:
        Health status with service dependencies.
    """
    result = await check_all_dependencies(services)
    return {"service": "query-service", **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(services)
    return {"service": "query-service", **result}

"""Ingest Service: indexes uploaded documents and removes deleted ones."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from docqa.api.health import check_all_dependencies, check_readiness
from docqa.core.dependencies import services
from docqa.core.exceptions import DatabaseError, VectorDBError
from docqa.services.event_consumer import DocumentEventConsumer
from docqa.services.event_processor import EventProcessor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await services.initialize(include_dlq=True)
    logger.info("Ingest Service started")
    consumer_task = asyncio.create_task(event_consumer.run())
    yield
    consumer_task.cancel()
    await services.shutdown()
    logger.info("Ingest Service stopped")


app = FastAPI(title="Document Q&A Ingest Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

pipeline = services.build_ingestion_pipeline()
event_processor = EventProcessor(database=services.database, pipeline=pipeline)
event_consumer = DocumentEventConsumer(event_processor, services.dlq_service)


@app.post("/api/documents/{document_id}/index")
async def index_document(document_id: int) -> dict:
    """
    Extract, chunk, embed and index a stored document.

    Args:
        document_id: Document ID.

    Returns:
        Number of chunks stored.
    """
    try:
        document = await services.database.get_document(document_id)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found with id: {document_id}")

    stored = await pipeline.ingest(document)
    return {"document_id": document_id, "chunks": stored}


@app.get("/api/documents/{document_id}/vectors")
async def count_document_vectors(document_id: int) -> dict:
    """
    Count indexed chunks of a document.

    Args:
        document_id: Document ID.

    Returns:
        Number of chunks in the index.
    """
    try:
        count = await services.vector_db.count_by_document(document_id)
    except VectorDBError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"document_id": document_id, "chunks": count}


@app.delete("/api/documents/{document_id}/vectors", status_code=204)
async def delete_document_vectors(document_id: int) -> None:
    """
    Remove every indexed chunk of a document. Succeeds when none exist.

    Args:
        document_id: Document ID.
    """
    try:
        await pipeline.remove(document_id)
    except VectorDBError as e:
        logger.error(f"Failed to delete vectors: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


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
    result = await check_all_dependencies(services, include_kafka=True)
    return {"service": "ingest-service", **result}


@app.get("/ready")
async def readiness() -> dict:
    """
    Readiness check endpoint.

    Returns:
        Readiness status.
    """
    result = await check_readiness(services, include_kafka=True)
    return {"service": "ingest-service", **result}

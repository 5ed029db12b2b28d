"""Health check service for dependency verification."""

import asyncio
import time
from typing import Any, Dict

from docqa.core.config import settings
from docqa.services.cache import CacheService
from docqa.services.database import DatabaseService
from docqa.services.llm import LLMService
from docqa.services.vector_db import VectorDBService


def _unhealthy(error: Exception) -> Dict[str, Any]:
    return {"status": "unhealthy", "error": str(error), "latency_ms": 0}


async def check_qdrant(vector_db: VectorDBService) -> Dict[str, Any]:
    """
    Check Qdrant connectivity and the chunk collection.

    Args:
        vector_db: VectorDBService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not vector_db.client:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        info = await vector_db.client.get_collection(vector_db.collection_name)
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "points": info.points_count,
        }
    except Exception as e:
        return _unhealthy(e)


async def check_redis(cache_service: CacheService) -> Dict[str, Any]:
    """
    Check Redis connectivity and health.

    Args:
        cache_service: CacheService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not cache_service.client:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        await cache_service.client.ping()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return _unhealthy(e)


async def check_model_endpoint(llm_service: LLMService) -> Dict[str, Any]:
    """
    Check that the model endpoint answers and serves the configured models.

    Args:
        llm_service: LLMService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        models = await asyncio.wait_for(llm_service.client.models.list(), timeout=5.0)
        latency_ms = (time.time() - start_time) * 1000

        available = {model.id for model in models.data}
        missing = [
            name for name in (settings.llm_model, settings.embedding_model)
            if not any(model_id.split(":")[0] == name.split(":")[0] for model_id in available)
        ]
        if missing:
            return {
                "status": "degraded",
                "latency_ms": round(latency_ms, 2),
                "missing_models": missing,
            }
        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        error_msg = str(e).lower()
        if "api key" in error_msg or "authentication" in error_msg:
            return {"status": "unhealthy", "error": "Invalid API key"}
        return _unhealthy(e)


async def check_kafka() -> Dict[str, Any]:
    """
    Check Kafka connectivity.

    Returns:
        Health status dictionary.
    """
    try:
        from aiokafka import AIOKafkaConsumer

        start_time = time.time()
        consumer = AIOKafkaConsumer(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            auto_offset_reset="earliest",
            enable_auto_commit=False,
        )

        await consumer.start()
        latency_ms = (time.time() - start_time) * 1000

        try:
            await asyncio.wait_for(consumer.stop(), timeout=1.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return _unhealthy(e)


async def check_postgres(database: DatabaseService) -> Dict[str, Any]:
    """
    Check PostgreSQL connectivity through the service pool.

    Args:
        database: DatabaseService instance.

    Returns:
        Health status dictionary.
    """
    try:
        start_time = time.time()
        if not database.pool:
            return {"status": "unhealthy", "error": "Not connected", "latency_ms": 0}

        async with database.pool.acquire() as conn:
            await conn.execute("SELECT 1")
        latency_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return _unhealthy(e)

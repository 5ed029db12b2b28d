"""Health check utilities."""

from typing import Dict

from docqa.core.dependencies import ServiceContainer
from docqa.services.health import (
    check_kafka,
    check_model_endpoint,
    check_postgres,
    check_qdrant,
    check_redis,
)


async def check_all_dependencies(
    container: ServiceContainer, include_kafka: bool = False
) -> Dict:
    """
    Check all service dependencies.

    Args:
        container: Shared service container.
        include_kafka: Whether to check Kafka.

    Returns:
        Dictionary with overall status and individual service statuses.
    """
    services = {
        "qdrant": await check_qdrant(container.vector_db),
        "redis": await check_redis(container.cache_service),
        "postgres": await check_postgres(container.database),
        "model": await check_model_endpoint(container.llm_service),
    }
    if include_kafka:
        services["kafka"] = await check_kafka()

    # redis only backs the embedding cache
    required = [name for name in services if name != "redis"]
    overall_status = "healthy"
    for name in required:
        if services[name].get("status") == "unhealthy":
            overall_status = "unhealthy"
    if overall_status == "healthy" and any(
        status.get("status") != "healthy" for status in services.values()
    ):
        overall_status = "degraded"

    return {"status": overall_status, "services": services}


async def check_readiness(
    container: ServiceContainer, include_kafka: bool = False
) -> Dict:
    """
    Check service readiness.

    Args:
        container: Shared service container.
        include_kafka: Whether Kafka is required.

    Returns:
        Readiness status dictionary.
    """
    qdrant_status = await check_qdrant(container.vector_db)
    postgres_status = await check_postgres(container.database)

    result = {
        "qdrant": qdrant_status.get("status") == "healthy",
        "postgres": postgres_status.get("status") == "healthy",
    }

    if include_kafka:
        kafka_status = await check_kafka()
        result["kafka"] = kafka_status.get("status") == "healthy"

    result["ready"] = all(result.values())
    return result

"""Performance benchmarking script for the query service."""

import argparse
import asyncio
import json
import time
from typing import Dict, List

import httpx

QUERIES = [
    "What is the vacation policy?",
    "Summarize the onboarding process",
    "Who approves purchase requests?",
    "What are the security requirements for laptops?",
    "How are expenses reimbursed?",
]


def _percentile(values: List[float], fraction: float) -> float:
    ordered = sorted(values)
    return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]


async def benchmark_query_service(
    base_url: str = "http://localhost:8000",
    category_id: int = 1,
    num_queries: int = 50,
    concurrent: int = 5,
) -> Dict:
    """
    Benchmark category-scoped question answering.

    Args:
        base_url: Base URL of query service.
        category_id: Category to query.
        num_queries: Total number of queries to run.
        concurrent: Number of concurrent requests.

    Returns:
        Benchmark results.
    """
    queries = (QUERIES * (num_queries // len(QUERIES) + 1))[:num_queries]
    latencies: List[float] = []
    confidences: List[float] = []
    errors = 0

    async with httpx.AsyncClient(base_url=base_url, timeout=120.0) as client:

        async def run_query(query: str) -> None:
            nonlocal errors
            start = time.time()
            try:
                response = await client.post(
                    f"/api/search/category/{category_id}/answer",
                    params={"query": query},
                )
            except httpx.HTTPError as e:
                print(f"Error: {e}")
                errors += 1
                return
            if response.status_code == 200:
                latencies.append(time.time() - start)
                confidences.append(response.json()["confidence"])
            else:
                errors += 1

        start_time = time.time()
        for i in range(0, len(queries), concurrent):
            batch = queries[i:i + concurrent]
            await asyncio.gather(*[run_query(q) for q in batch])
        total_time = time.time() - start_time

    if latencies:
        avg_latency = sum(latencies) / len(latencies)
        p50 = _percentile(latencies, 0.5)
        p95 = _percentile(latencies, 0.95)
    else:
        avg_latency = p50 = p95 = 0

    return {
        "total_queries": num_queries,
        "successful": len(latencies),
        "errors": errors,
        "total_time_seconds": total_time,
        "queries_per_second": num_queries / total_time if total_time > 0 else 0,
        "avg_latency_seconds": avg_latency,
        "p50_latency_seconds": p50,
        "p95_latency_seconds": p95,
        "avg_confidence": sum(confidences) / len(confidences) if confidences else 0,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--category", type=int, default=1)
    parser.add_argument("--queries", type=int, default=50)
    parser.add_argument("--concurrent", type=int, default=5)
    args = parser.parse_args()

    results = asyncio.run(
        benchmark_query_service(args.base_url, args.category, args.queries, args.concurrent)
    )
    print(json.dumps(results, indent=2))

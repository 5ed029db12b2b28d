"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

query_counter = Counter("docqa_queries_total",
                        "Total number of queries processed", ["scope"])
query_errors_total = Counter(
    "docqa_query_errors_total", "Total number of query errors")
query_latency_seconds = Histogram(
    "docqa_query_latency_seconds", "Query latency in seconds", buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0])
generation_failures_total = Counter(
    "docqa_generation_failures_total", "Completion calls that fell back to the failure message")
retrieved_chunks = Histogram(
    "docqa_retrieved_chunks", "Chunks retrieved per query", buckets=[0, 1, 2, 3, 5, 10, 20])

documents_ingested_total = Counter("docqa_documents_ingested_total",
                                   "Total number of documents processed by ingestion")
chunks_ingested_total = Counter(
    "docqa_chunks_ingested_total", "Chunks processed by ingestion", ["status"])
ingestion_duration_seconds = Histogram(
    "docqa_ingestion_duration_seconds", "Per-document ingestion duration", buckets=[0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0])
event_errors_total = Counter(
    "docqa_event_errors_total", "Total number of document events that failed")

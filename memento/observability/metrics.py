"""Prometheus metrics for Memento.

Covers embedding generation, provider fallbacks, search paths, batch
reindexing, migrations and reranking.
"""

from prometheus_client import Counter, Gauge, Histogram

# Embedding metrics
EMBEDDING_REQUESTS = Counter(
    "memento_embedding_requests_total",
    "Embedding provider calls",
    labelnames=["provider", "outcome"],
)

EMBEDDING_FALLBACKS = Counter(
    "memento_embedding_fallbacks_total",
    "Times a fallback chain moved past a failing provider",
    labelnames=["from_provider"],
)

EMBEDDING_STATE = Gauge(
    "memento_entities_embedding_state",
    "Entities by embedding presence at the last analysis",
    labelnames=["state"],
)

# Search metrics
SEARCH_REQUESTS = Counter(
    "memento_search_requests_total",
    "Vector searches by the method that produced the results",
    labelnames=["search_method"],
)

SEARCH_LATENCY = Histogram(
    "memento_search_latency_seconds",
    "Vector search latency in seconds",
    labelnames=["search_method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

SEARCH_FALLBACKS = Counter(
    "memento_search_fallbacks_total",
    "Searches answered by the pattern-matching fallback",
    labelnames=["reason"],
)

# Batch metrics
REINDEX_ENTITIES = Counter(
    "memento_reindex_entities_total",
    "Entities handled by reindex runs",
    labelnames=["outcome"],
)

MIGRATION_OPERATIONS = Counter(
    "memento_migration_operations_total",
    "Migration operations executed",
    labelnames=["operation", "dry_run"],
)

# Rerank metrics
RERANK_REQUESTS = Counter(
    "memento_rerank_requests_total",
    "Rerank provider calls",
    labelnames=["provider", "outcome"],
)

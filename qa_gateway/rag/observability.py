from __future__ import annotations

"""Prometheus instrumentation for answer resolution."""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class ResolverMetrics:
    """Counts resolution branches and times outbound provider calls."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        registry = registry if registry is not None else REGISTRY
        self.resolutions = Counter(
            "qa_resolutions_total",
            "Resolved questions by answer source",
            ["source"],
            registry=registry,
        )
        self.provider_calls = Counter(
            "qa_provider_calls_total",
            "Outbound provider calls",
            ["operation", "status"],
            registry=registry,
        )
        self.provider_latency = Histogram(
            "qa_provider_call_duration_seconds",
            "Outbound provider call duration in seconds",
            ["operation"],
            registry=registry,
        )

    def record_resolution(self, source: str) -> None:
        self.resolutions.labels(source).inc()

    @asynccontextmanager
    async def track(self, operation: str) -> AsyncIterator[None]:
        """Time one provider call and count it as ok or error."""
        start = time.monotonic()
        status = "error"
        try:
            yield
            status = "ok"
        finally:
            self.provider_latency.labels(operation).observe(time.monotonic() - start)
            self.provider_calls.labels(operation, status).inc()

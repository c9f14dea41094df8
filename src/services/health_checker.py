# src/services/health_checker.py

"""Price source configuration and connectivity health checker."""

import asyncio
import logging
import time
from dataclasses import dataclass

from src.sources.base_source import SourceClient
from src.sources.http_transport import HttpTransport

logger = logging.getLogger("pharma_prices.health")

_SLOW_THRESHOLD_MS = 5000


@dataclass
class HealthResult:
    """Result of a single source health check."""

    source_id: str
    status: str  # "ok", "slow", "down", "synthetic"
    latency_ms: float
    message: str


async def check_source(
    source: SourceClient, transport: HttpTransport,
) -> HealthResult:
    """Check one source: report synthetic mode, or time a request."""
    source_id = source.source_id
    if not getattr(source, "live", False):
        return HealthResult(
            source_id=source_id,
            status="synthetic",
            latency_ms=0.0,
            message="No API key or synthetic mode, serving estimates",
        )

    base_url: str = getattr(source, "base_url", "")
    start = time.monotonic()
    try:
        resp = await transport.get(base_url)
        elapsed_ms = (time.monotonic() - start) * 1000
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )

    # Any HTTP answer, even 401/404 on the API root, means it is reachable
    if resp.status_code >= 500:
        return HealthResult(
            source_id=source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=f"HTTP {resp.status_code}",
        )
    if elapsed_ms > _SLOW_THRESHOLD_MS:
        return HealthResult(
            source_id=source_id,
            status="slow",
            latency_ms=elapsed_ms,
            message="High latency",
        )
    return HealthResult(
        source_id=source_id,
        status="ok",
        latency_ms=elapsed_ms,
        message="",
    )


class HealthChecker:
    """Runs concurrent health checks against all sources."""

    def __init__(
        self,
        sources: list[SourceClient],
        transport: HttpTransport,
    ) -> None:
        self.sources = sources
        self.transport = transport

    async def check_all(self) -> list[HealthResult]:
        """Check every source concurrently."""
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(check_source(s, self.transport) for s in self.sources)
            )
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results

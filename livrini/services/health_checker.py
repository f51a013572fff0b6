# livrini/services/health_checker.py

"""Backend API connectivity health checker."""

import asyncio
import logging
import time
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from livrini.config.settings import Settings

logger = logging.getLogger("livrini.health")


@dataclass
class HealthResult:
    """Result of a single endpoint health check."""

    endpoint: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def probe_endpoint(base_url: str, endpoint: str) -> HealthResult:
    """GET one public endpoint and classify the response."""
    url = f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"
    session = curl_requests.Session(impersonate=Settings.IMPERSONATE_BROWSER)

    start = time.monotonic()
    try:
        resp = session.get(
            url,
            headers=Settings.DEFAULT_HEADERS,
            timeout=Settings.HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        if not 200 <= resp.status_code < 300:
            return HealthResult(
                endpoint=endpoint,
                status="down",
                latency_ms=elapsed_ms,
                message=f"HTTP {resp.status_code}",
            )

        if elapsed_ms > Settings.HEALTH_SLOW_MS:
            return HealthResult(
                endpoint=endpoint,
                status="slow",
                latency_ms=elapsed_ms,
                message="High latency",
            )

        return HealthResult(
            endpoint=endpoint,
            status="ok",
            latency_ms=elapsed_ms,
            message="",
        )

    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            endpoint=endpoint,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )
    finally:
        session.close()


class HealthChecker:
    """Runs concurrent probes against the configured endpoints."""

    def __init__(self, base_url: str | None = None) -> None:
        self.base_url = base_url or Settings.API_BASE_URL
        self.endpoints = Settings.HEALTH_ENDPOINTS

    async def check_all(self) -> list[HealthResult]:
        tasks = [
            asyncio.to_thread(probe_endpoint, self.base_url, endpoint)
            for endpoint in self.endpoints
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.endpoint,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results

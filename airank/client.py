"""Async client that reports token usage to the collector as OTLP/JSON.

Agents normally export through an OpenTelemetry SDK; this client exists for
scripted traffic and end-to-end tests. Each report carries one
Idempotency-Key that is reused across retries, so a retried report is
counted once.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

import httpx

from airank.config import settings
from airank.services.extractor import TOKEN_TYPE_FIELDS, TokenDelta

logger = logging.getLogger(__name__)

# Errors worth retrying (transient)
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}
_MAX_RETRIES = 3
_BASE_DELAY = 1.0  # seconds


def build_envelope(delta: TokenDelta, handle: str | None = None) -> dict[str, Any]:
    """Render a TokenDelta as a single-metric OTLP/JSON export."""
    data_points = []
    for label, field in TOKEN_TYPE_FIELDS.items():
        value = getattr(delta, field)
        if value:
            data_points.append({
                "attributes": [{"key": settings.token_type_attribute, "value": {"stringValue": label}}],
                "asInt": str(value),
            })

    resource_attributes = []
    if handle:
        resource_attributes.append(
            {"key": settings.handle_resource_attribute, "value": {"stringValue": handle}}
        )

    return {
        "resourceMetrics": [{
            "resource": {"attributes": resource_attributes},
            "scopeMetrics": [{
                "metrics": [{
                    "name": settings.token_metric_name,
                    "sum": {"dataPoints": data_points},
                }],
            }],
        }],
    }


class MetricsReporter:
    """Posts usage reports for one principal."""

    def __init__(
        self,
        secret: str,
        handle: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not secret:
            raise ValueError("A bearer secret is required to report usage.")
        self.handle = handle
        self.base_url = (base_url or settings.collector_url).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {secret}",
            "Content-Type": "application/json",
        }
        if handle:
            self.headers["X-Principal-Handle"] = handle
        self._client = httpx.AsyncClient(timeout=30.0, transport=transport, headers=self.headers)

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "MetricsReporter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @property
    def metrics_url(self) -> str:
        return f"{self.base_url}{settings.otlp_prefix}/v1/metrics"

    async def _post_with_retry(self, payload: dict, headers: dict) -> httpx.Response:
        """POST with exponential backoff retry on transient errors."""
        for attempt in range(_MAX_RETRIES + 1):
            try:
                resp = await self._client.post(self.metrics_url, json=payload, headers=headers)
                if resp.status_code in _RETRYABLE_STATUS_CODES and attempt < _MAX_RETRIES:
                    delay = _BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Retryable %d from collector, retrying in %.1fs (attempt %d/%d)",
                        resp.status_code, delay, attempt + 1, _MAX_RETRIES,
                    )
                    await asyncio.sleep(delay)
                    continue
                resp.raise_for_status()
                return resp
            except (httpx.ConnectError, httpx.TimeoutException) as exc:
                if attempt >= _MAX_RETRIES:
                    raise
                delay = _BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "%s reaching collector, retrying in %.1fs (attempt %d/%d)",
                    type(exc).__name__, delay, attempt + 1, _MAX_RETRIES,
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")

    async def report(self, delta: TokenDelta, idempotency_key: str | None = None) -> dict:
        """Send one usage report; returns the collector's JSON response."""
        headers = {"Idempotency-Key": idempotency_key or uuid.uuid4().hex}
        resp = await self._post_with_retry(build_envelope(delta, self.handle), headers)
        return resp.json()

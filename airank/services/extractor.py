"""Reduce an OTLP/JSON metrics envelope to per-type token counts.

The walk is resourceMetrics -> scopeMetrics -> metrics -> sum.dataPoints.
Anything unexpected along the way is skipped rather than rejected so that
unrelated or half-formed telemetry never fails a report.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Any

from airank.config import settings

# OTLP token type label -> TokenDelta field
TOKEN_TYPE_FIELDS = {
    "input": "input",
    "output": "output",
    "cacheRead": "cache_read",
    "cacheCreation": "cache_write",
}

# Largest value a BigInteger counter column can hold
MAX_TOKEN_VALUE = 2**63 - 1


class ExtractionError(Exception):
    """Raised when the envelope is not a metrics object at all."""


@dataclass(frozen=True)
class TokenDelta:
    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0

    @property
    def total(self) -> int:
        """Ranking tokens: input + output."""
        return self.input + self.output

    @property
    def all_tokens(self) -> int:
        return self.input + self.output + self.cache_read + self.cache_write

    @property
    def is_empty(self) -> bool:
        return self.all_tokens == 0

    def as_breakdown(self) -> dict[str, int]:
        return {
            "input": self.input,
            "output": self.output,
            "cache_read": self.cache_read,
            "cache_write": self.cache_write,
        }


def _list(container: Any, key: str) -> list:
    value = container.get(key) if isinstance(container, dict) else None
    return value if isinstance(value, list) else []


def _attribute(attributes: list, key: str) -> str | None:
    for attr in attributes:
        if isinstance(attr, dict) and attr.get("key") == key:
            value = attr.get("value")
            if isinstance(value, dict) and isinstance(value.get("stringValue"), str):
                return value["stringValue"]
    return None


def _number(data_point: dict) -> int | float | None:
    """Return the data point's value, or None if it is missing or unusable.

    Integers stay integers so values past 2**53 keep every digit. Anything
    negative, non-finite or beyond a signed 64-bit counter is unusable.
    """
    for field in ("asInt", "asDouble"):
        raw = data_point.get(field)
        if raw is None or isinstance(raw, bool):
            continue
        if isinstance(raw, (int, float)):
            value = raw
        elif isinstance(raw, str):
            # OTLP/JSON encodes int64 values as strings
            try:
                value = int(raw) if raw.strip().lstrip("-").isdigit() else float(raw)
            except ValueError:
                return None
        else:
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if value < 0 or value > MAX_TOKEN_VALUE:
            return None
        return value
    return None


def _iter_metrics(envelope: dict):
    for resource_metrics in _list(envelope, "resourceMetrics"):
        for scope_metrics in _list(resource_metrics, "scopeMetrics"):
            for metric in _list(scope_metrics, "metrics"):
                if isinstance(metric, dict):
                    yield metric


def extract_token_delta(
    envelope: Any,
    metric_name: str | None = None,
    type_attribute: str | None = None,
) -> TokenDelta:
    """Sum every recognised token data point in ``envelope`` into a TokenDelta."""
    if not isinstance(envelope, dict):
        raise ExtractionError("metrics envelope must be a JSON object")

    metric_name = metric_name or settings.token_metric_name
    type_attribute = type_attribute or settings.token_type_attribute

    # Exact accumulation; doubles are rounded once, after summing
    sums = dict.fromkeys(TOKEN_TYPE_FIELDS.values(), Fraction(0))
    for metric in _iter_metrics(envelope):
        if metric.get("name") != metric_name:
            continue
        for dp in _list(metric.get("sum"), "dataPoints"):
            if not isinstance(dp, dict):
                continue
            field = TOKEN_TYPE_FIELDS.get(_attribute(_list(dp, "attributes"), type_attribute))
            value = _number(dp)
            if field is None or value is None:
                continue
            total = sums[field] + Fraction(value)
            if total > MAX_TOKEN_VALUE:
                continue
            sums[field] = total

    return TokenDelta(**{field: round(total) for field, total in sums.items()})


def resource_attribute(envelope: Any, key: str) -> str | None:
    """Return the first string resource attribute named ``key``, if any."""
    if not isinstance(envelope, dict):
        return None
    for resource_metrics in _list(envelope, "resourceMetrics"):
        resource = resource_metrics.get("resource") if isinstance(resource_metrics, dict) else None
        value = _attribute(_list(resource, "attributes"), key)
        if value is not None:
            return value
    return None

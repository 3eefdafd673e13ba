"""Seed demo principals with a couple of days of hourly usage."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from airank.services.aggregate_store import AggregateStore
from airank.services.extractor import TokenDelta
from airank.services.registration import register_principal

logger = logging.getLogger(__name__)

PRINCIPALS = [
    {"handle": "ada", "display_name": "Ada", "provider": "github"},
    {"handle": "grace", "display_name": "Grace", "provider": "twitter"},
    {"handle": "linus", "display_name": "Linus", "provider": "github"},
    {"handle": "margaret", "display_name": "Margaret", "provider": "google"},
    {"handle": "ken", "display_name": "Ken", "provider": "twitter"},
]


def _random_delta(intensity: float) -> TokenDelta:
    input_tokens = int(random.randint(2_000, 40_000) * intensity)
    cache_read = int(input_tokens * random.uniform(0.5, 4.0))
    return TokenDelta(
        input=input_tokens,
        output=int(input_tokens * random.uniform(0.1, 0.6)),
        cache_read=cache_read,
        cache_write=int(cache_read * random.uniform(0.05, 0.3)),
    )


async def seed_data(db: AsyncSession, hours: int = 48) -> dict[str, str]:
    """Register demo principals and replay hourly reports; returns handle -> secret."""
    now = datetime.now(timezone.utc)
    secrets_by_handle: dict[str, str] = {}

    for profile in PRINCIPALS:
        principal, secret = await register_principal(db, **profile)
        secrets_by_handle[principal.handle] = secret
        intensity = random.uniform(0.3, 2.0)

        for hour_offset in range(hours, -1, -1):
            if random.random() < 0.4:
                continue  # idle hour
            moment = now - timedelta(hours=hour_offset, minutes=random.randint(0, 59))
            store = AggregateStore(db, clock=lambda moment=moment: moment)
            await store.apply_delta(principal.id, _random_delta(intensity))

    logger.info("Seeded %d principals over %d hours", len(PRINCIPALS), hours)
    return secrets_by_handle

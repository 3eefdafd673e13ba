"""Leaderboard reads: global rank, positional pages, and bucket statistics.

Nothing here writes. Reads are not snapshotted against in-flight ingestion;
a rank may be one report behind, which is fine for an advisory leaderboard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from airank.entities.hourly_bucket import HourlyBucket
from airank.entities.principal import Principal
from airank.services.aggregate_store import Clock, utcnow
from airank.services.credentials import normalize_handle


class PrincipalNotFound(Exception):
    pass


@dataclass
class RankedPrincipal:
    principal: Principal
    rank: int


@dataclass
class GraphPoint:
    time: datetime
    tokens: int
    active_users: int


@dataclass
class LeaderboardStats:
    last_24h_tokens: int = 0
    active_users_24h: int = 0
    peak_throughput: int = 0
    graph_data: list[GraphPoint] = field(default_factory=list)


def savings_score(principal: Principal) -> float:
    """Percentage of input-shaped tokens that were served from cache."""
    cache_read = principal.cache_read_tokens or 0
    denominator = (principal.input_tokens or 0) + cache_read
    if denominator <= 0:
        return 0.0
    return cache_read / denominator * 100


class RankingService:
    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or utcnow

    async def find_by_handle(self, handle: str) -> Principal | None:
        result = await self.db.execute(
            select(Principal).where(Principal.handle == normalize_handle(handle))
        )
        return result.scalar_one_or_none()

    async def rank_for_total(self, total_tokens: int) -> int:
        result = await self.db.execute(
            select(func.count(Principal.id)).where(Principal.total_tokens > total_tokens)
        )
        return int(result.scalar() or 0) + 1

    async def rank(self, principal_id: str) -> int:
        """1 + the number of principals with strictly more total tokens.

        This is a full count on every call; ties share a rank.
        """
        result = await self.db.execute(
            select(Principal.total_tokens).where(Principal.id == principal_id)
        )
        total = result.scalar_one_or_none()
        if total is None:
            raise PrincipalNotFound(principal_id)
        return await self.rank_for_total(total)

    async def page(self, page_number: int, page_size: int) -> list[RankedPrincipal]:
        """One leaderboard page, ranked by position.

        Positional ranks skip the tie rule used by ``rank()``, so equal totals
        straddling a page boundary get consecutive ranks here.
        """
        offset = (page_number - 1) * page_size
        result = await self.db.execute(
            select(Principal)
            .order_by(
                Principal.total_tokens.desc(),
                Principal.created_at.asc(),
                Principal.id.asc(),
            )
            .limit(page_size)
            .offset(offset)
        )
        return [
            RankedPrincipal(principal=p, rank=offset + i + 1)
            for i, p in enumerate(result.scalars().all())
        ]

    async def stats(self) -> LeaderboardStats:
        """24h volume and active principals, plus all-time peak hourly throughput."""
        since = self.clock() - timedelta(hours=24)

        hourly = await self.db.execute(
            select(
                HourlyBucket.hour,
                func.coalesce(func.sum(HourlyBucket.token_count), 0).label("tokens"),
                func.count(func.distinct(HourlyBucket.principal_id)).label("active_users"),
            )
            .where(HourlyBucket.hour >= since)
            .group_by(HourlyBucket.hour)
            .order_by(HourlyBucket.hour.asc())
        )
        graph = [
            GraphPoint(time=row.hour, tokens=int(row.tokens), active_users=int(row.active_users))
            for row in hourly.all()
        ]

        active = await self.db.execute(
            select(func.count(func.distinct(HourlyBucket.principal_id))).where(
                HourlyBucket.hour >= since
            )
        )

        per_hour = (
            select(func.sum(HourlyBucket.token_count).label("tokens"))
            .group_by(HourlyBucket.hour)
            .subquery()
        )
        peak = await self.db.execute(select(func.max(per_hour.c.tokens)))
        peak_tokens = int(peak.scalar() or 0)

        return LeaderboardStats(
            last_24h_tokens=sum(point.tokens for point in graph),
            active_users_24h=int(active.scalar() or 0),
            peak_throughput=round(peak_tokens / 3600),
            graph_data=graph,
        )

    async def history(self, principal_id: str, hours: int = 48) -> list[HourlyBucket]:
        since = self.clock() - timedelta(hours=hours)
        result = await self.db.execute(
            select(HourlyBucket)
            .where(HourlyBucket.principal_id == principal_id)
            .where(HourlyBucket.hour >= since)
            .order_by(HourlyBucket.hour.asc())
        )
        return list(result.scalars().all())

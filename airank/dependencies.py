"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from airank.database import get_db
from airank.services.aggregate_store import AggregateStore, Clock, utcnow
from airank.services.ranking import RankingService


def get_clock() -> Clock:
    """Server clock used for hour buckets and 24h windows; tests override it."""
    return utcnow


def get_aggregate_store(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AggregateStore:
    return AggregateStore(db, clock)


def get_ranking_service(
    db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)
) -> RankingService:
    return RankingService(db, clock)

"""Single-principal lookups for the user dashboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from airank.config import settings
from airank.dependencies import get_ranking_service
from airank.entities.principal import Principal
from airank.routes.leaderboard import principal_to_user
from airank.schemas.ingest import TokenBreakdown
from airank.schemas.leaderboard import HistoryPoint, LeaderboardUser
from airank.services.ranking import PrincipalNotFound, RankingService

router = APIRouter(prefix="/users", tags=["users"])


async def _get_principal(handle: str, ranking: RankingService) -> Principal:
    principal = await ranking.find_by_handle(handle)
    if not principal:
        raise HTTPException(status_code=404, detail="User not found")
    return principal


@router.get("/{handle}", response_model=LeaderboardUser)
async def get_user(handle: str, ranking: RankingService = Depends(get_ranking_service)):
    """One principal with its global rank."""
    principal = await _get_principal(handle, ranking)
    try:
        rank = await ranking.rank(principal.id)
    except PrincipalNotFound:
        raise HTTPException(status_code=404, detail="User not found")
    return principal_to_user(principal, rank)


@router.get("/{handle}/history", response_model=list[HistoryPoint])
async def get_user_history(
    handle: str,
    hours: int = Query(default=settings.history_default_hours, ge=1, le=720),
    ranking: RankingService = Depends(get_ranking_service),
):
    """Hourly token buckets for charting, oldest first."""
    principal = await _get_principal(handle, ranking)
    buckets = await ranking.history(principal.id, hours=hours)
    return [
        HistoryPoint(
            hour=b.hour,
            token_count=b.token_count,
            breakdown=TokenBreakdown(**b.breakdown),
        )
        for b in buckets
    ]

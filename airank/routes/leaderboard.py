"""Leaderboard endpoint: positional pages plus first-page statistics."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from airank.config import settings
from airank.dependencies import get_ranking_service
from airank.entities.principal import Principal
from airank.schemas.leaderboard import (
    GraphPointResponse,
    LeaderboardResponse,
    LeaderboardStatsResponse,
    LeaderboardUser,
)
from airank.services.ranking import RankingService, savings_score

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


def principal_to_user(principal: Principal, rank: int) -> LeaderboardUser:
    """Convert an ORM Principal to the public leaderboard row."""
    return LeaderboardUser(
        id=principal.id,
        handle=principal.handle,
        display_name=principal.display_name,
        avatar_url=principal.avatar_url,
        input_tokens=principal.input_tokens,
        output_tokens=principal.output_tokens,
        cache_read_tokens=principal.cache_read_tokens,
        cache_write_tokens=principal.cache_write_tokens,
        total_tokens=principal.total_tokens,
        savings_score=round(savings_score(principal), 2),
        rank=rank,
        last_active=principal.last_active,
        created_at=principal.created_at,
    )


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    ranking: RankingService = Depends(get_ranking_service),
):
    """Principals ordered by total tokens; stats are only computed for page 1."""
    rows = await ranking.page(page, limit)
    users = [principal_to_user(row.principal, row.rank) for row in rows]

    stats = None
    if page == 1:
        computed = await ranking.stats()
        stats = LeaderboardStatsResponse(
            peak_throughput=computed.peak_throughput,
            last_24h_tokens=computed.last_24h_tokens,
            active_users_24h=computed.active_users_24h,
            graph_data=[
                GraphPointResponse(time=p.time, tokens=p.tokens, active_users=p.active_users)
                for p in computed.graph_data
            ],
        )

    return LeaderboardResponse(users=users, stats=stats)

"""Pydantic schemas for leaderboard and user endpoints."""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel

from airank.schemas.ingest import TokenBreakdown


class LeaderboardUser(BaseModel):
    id: str
    handle: str
    display_name: str | None = None
    avatar_url: str | None = None
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_write_tokens: int
    total_tokens: int
    savings_score: float
    rank: int
    last_active: datetime | None
    created_at: datetime | None


class GraphPointResponse(BaseModel):
    time: datetime
    tokens: int
    active_users: int


class LeaderboardStatsResponse(BaseModel):
    peak_throughput: int
    last_24h_tokens: int
    active_users_24h: int
    graph_data: list[GraphPointResponse]


class LeaderboardResponse(BaseModel):
    users: list[LeaderboardUser]
    stats: LeaderboardStatsResponse | None = None


class HistoryPoint(BaseModel):
    hour: datetime
    token_count: int
    breakdown: TokenBreakdown

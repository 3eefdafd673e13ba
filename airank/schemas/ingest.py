"""Pydantic schemas for the metrics ingestion endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class TokenBreakdown(BaseModel):
    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0


class IngestResponse(BaseModel):
    success: bool
    status: str  # applied, empty, duplicate
    processed: int
    tokens: TokenBreakdown
    bucket_recorded: bool = False

"""OTLP metrics ingestion endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from airank.config import settings
from airank.database import get_db
from airank.dependencies import get_aggregate_store
from airank.schemas.ingest import IngestResponse, TokenBreakdown
from airank.services import credentials
from airank.services.aggregate_store import AggregateStore, ApplyStatus, StorageError
from airank.services.extractor import ExtractionError, extract_token_delta, resource_attribute

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["ingest"])

# Same text for every auth failure so responses reveal nothing about which check failed
AUTH_FAILED = "Invalid or missing credentials"


def _claimed_handle(header: str | None, envelope) -> str | None:
    """Header first, then the resource attribute; blank claims from either count as none."""
    for candidate in (header, resource_attribute(envelope, settings.handle_resource_attribute)):
        handle = credentials.normalize_handle(candidate or "")
        if handle:
            return handle
    return None


@router.post("/metrics", response_model=IngestResponse)
async def ingest_metrics(
    request: Request,
    authorization: str | None = Header(default=None),
    x_principal_handle: str | None = Header(default=None),
    idempotency_key: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
    store: AggregateStore = Depends(get_aggregate_store),
):
    """Accept one OTLP/JSON metrics export and fold its token counts into the totals."""
    secret = credentials.parse_bearer(authorization)
    if not secret:
        raise HTTPException(status_code=401, detail=AUTH_FAILED)

    try:
        envelope = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Malformed metrics payload")

    claimed_handle = _claimed_handle(x_principal_handle, envelope)
    try:
        principal = await credentials.verify(db, secret, claimed_handle)
    except credentials.AuthError:
        raise HTTPException(status_code=401, detail=AUTH_FAILED)
    principal_id = principal.id

    try:
        delta = extract_token_delta(envelope)
    except ExtractionError:
        raise HTTPException(status_code=400, detail="Malformed metrics payload")

    try:
        result = await store.apply_delta(principal_id, delta, idempotency_key=idempotency_key)
    except StorageError:
        logger.error("Failed to record usage for principal %s", principal_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to record usage")

    if result.status is ApplyStatus.APPLIED:
        logger.info(
            "Recorded %d tokens (%d with cache) for principal %s",
            result.processed,
            delta.all_tokens,
            principal_id,
        )

    return IngestResponse(
        success=True,
        status=result.status.value,
        processed=result.processed,
        tokens=TokenBreakdown(**delta.as_breakdown()),
        bucket_recorded=result.bucket_recorded,
    )

"""Durable per-principal totals and hourly history.

Every mutation is a single SQL statement so concurrent reports for one
principal never lose an update: running totals use ``col = col + :n`` and
hourly buckets use an INSERT ... ON CONFLICT DO UPDATE that adds rather
than replaces. Totals and buckets commit in separate transactions; totals
are authoritative, buckets are best-effort chart history.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from airank.config import settings
from airank.entities.hourly_bucket import HourlyBucket
from airank.entities.ingest_receipt import IngestReceipt
from airank.entities.principal import Principal
from airank.services.extractor import TokenDelta

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def hour_boundary(moment: datetime) -> datetime:
    """Truncate ``moment`` to the top of its hour."""
    return moment.replace(minute=0, second=0, microsecond=0)


class StorageError(Exception):
    """Raised when the running-totals update could not be applied."""


class ApplyStatus(str, enum.Enum):
    APPLIED = "applied"
    EMPTY = "empty"
    DUPLICATE = "duplicate"


@dataclass
class AppliedResult:
    status: ApplyStatus
    delta: TokenDelta
    hour: datetime | None = None
    bucket_recorded: bool = False
    processed: int = 0


def _upsert_for(dialect_name: str):
    if dialect_name == "postgresql":
        return pg_insert
    if dialect_name == "sqlite":
        return sqlite_insert
    raise StorageError(f"no atomic upsert available for dialect {dialect_name!r}")


class AggregateStore:
    """Owns every write to Principal counters and HourlyBucket rows."""

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or utcnow

    async def apply_delta(
        self,
        principal_id: str,
        delta: TokenDelta,
        idempotency_key: str | None = None,
    ) -> AppliedResult:
        if delta.is_empty:
            return AppliedResult(status=ApplyStatus.EMPTY, delta=delta)

        now = self.clock()

        if idempotency_key:
            previous = await self._record_receipt(principal_id, idempotency_key, delta, now)
            if previous is not None:
                logger.info(
                    "Duplicate report %r for principal %s ignored", idempotency_key, principal_id
                )
                return AppliedResult(
                    status=ApplyStatus.DUPLICATE, delta=delta, processed=previous
                )

        await self._increment_totals(principal_id, delta, now)

        hour = hour_boundary(now)
        recorded = await self._merge_bucket(principal_id, delta, hour, now)
        return AppliedResult(
            status=ApplyStatus.APPLIED,
            delta=delta,
            hour=hour,
            bucket_recorded=recorded,
            processed=delta.total,
        )

    async def _record_receipt(
        self, principal_id: str, key: str, delta: TokenDelta, now: datetime
    ) -> int | None:
        """Insert a receipt for ``key`` inside the pending totals transaction.

        Returns None for a fresh key, or the processed count of the delivery
        that already claimed it.
        """
        cutoff = now - timedelta(hours=settings.idempotency_window_hours)
        try:
            await self.db.execute(
                delete(IngestReceipt).where(
                    IngestReceipt.principal_id == principal_id,
                    IngestReceipt.received_at < cutoff,
                )
            )
            await self.db.execute(
                insert(IngestReceipt).values(
                    principal_id=principal_id,
                    idempotency_key=key,
                    processed=delta.total,
                    received_at=now,
                )
            )
        except IntegrityError:
            await self.db.rollback()
            result = await self.db.execute(
                select(IngestReceipt.processed).where(
                    IngestReceipt.principal_id == principal_id,
                    IngestReceipt.idempotency_key == key,
                )
            )
            return result.scalar_one_or_none() or 0
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            await self.db.rollback()
            raise StorageError(f"failed to record receipt: {e}") from e
        return None

    async def _increment_totals(
        self, principal_id: str, delta: TokenDelta, now: datetime
    ) -> None:
        stmt = (
            update(Principal)
            .where(Principal.id == principal_id)
            .values(
                input_tokens=Principal.input_tokens + delta.input,
                output_tokens=Principal.output_tokens + delta.output,
                cache_read_tokens=Principal.cache_read_tokens + delta.cache_read,
                cache_write_tokens=Principal.cache_write_tokens + delta.cache_write,
                last_active=now,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                raise StorageError(f"principal {principal_id} does not exist")
            await self.db.commit()
        except (SQLAlchemyError, OverflowError, ValueError) as e:
            # Drivers raise OverflowError themselves for out-of-range integers
            await self.db.rollback()
            raise StorageError(f"failed to update totals: {e}") from e

    async def _merge_bucket(
        self, principal_id: str, delta: TokenDelta, hour: datetime, now: datetime
    ) -> bool:
        try:
            upsert = _upsert_for(self.db.get_bind().dialect.name)
            stmt = upsert(HourlyBucket).values(
                principal_id=principal_id,
                hour=hour,
                token_count=delta.all_tokens,
                input_tokens=delta.input,
                output_tokens=delta.output,
                cache_read_tokens=delta.cache_read,
                cache_write_tokens=delta.cache_write,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[HourlyBucket.principal_id, HourlyBucket.hour],
                set_={
                    "token_count": HourlyBucket.token_count + stmt.excluded.token_count,
                    "input_tokens": HourlyBucket.input_tokens + stmt.excluded.input_tokens,
                    "output_tokens": HourlyBucket.output_tokens + stmt.excluded.output_tokens,
                    "cache_read_tokens": (
                        HourlyBucket.cache_read_tokens + stmt.excluded.cache_read_tokens
                    ),
                    "cache_write_tokens": (
                        HourlyBucket.cache_write_tokens + stmt.excluded.cache_write_tokens
                    ),
                    "updated_at": stmt.excluded.updated_at,
                },
            )
            await self.db.execute(stmt)
            await self.db.commit()
        except (SQLAlchemyError, StorageError, OverflowError, ValueError):
            await self.db.rollback()
            logger.warning(
                "Failed to merge hourly bucket for principal %s at %s",
                principal_id,
                hour.isoformat(),
                exc_info=True,
            )
            return False
        return True

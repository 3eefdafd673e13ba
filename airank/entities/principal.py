"""Principal model: a registered reporting identity with running token totals."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Computed, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from airank.database import Base


class Principal(Base):
    __tablename__ = "principals"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    handle: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str] = mapped_column(String(500), nullable=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=True)  # twitter, github, google
    secret_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Running totals, only ever incremented in SQL by AggregateStore
    input_tokens: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    output_tokens: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    cache_read_tokens: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    cache_write_tokens: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    # Ranking key: input + output, cache traffic excluded
    total_tokens: Mapped[int] = mapped_column(
        BigInteger, Computed("input_tokens + output_tokens", persisted=True), index=True
    )

    last_active: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    __mapper_args__ = {"eager_defaults": True}

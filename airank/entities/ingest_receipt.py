"""IngestReceipt model: remembers idempotency keys so retried reports count once."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from airank.database import Base


class IngestReceipt(Base):
    __tablename__ = "ingest_receipts"
    __table_args__ = (
        UniqueConstraint(
            "principal_id", "idempotency_key", name="uq_ingest_receipts_principal_key"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    principal_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("principals.id"), nullable=False
    )
    idempotency_key: Mapped[str] = mapped_column(String(200), nullable=False)
    processed: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

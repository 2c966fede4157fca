from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from stockledger.database import Base


class TenantSnapshotRecord(Base):
    """One JSON document per tenant holding all of its ledger state."""

    __tablename__ = "tenant_snapshots"

    tenant_id: Mapped[str] = mapped_column(String, primary_key=True)  # licence key
    document: Mapped[str] = mapped_column(Text, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # bumped on every commit
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

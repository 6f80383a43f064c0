"""
Analytics event model.
One row per recorded traffic/revenue observation; rows are append-only.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.core.exceptions import ImmutableRecordError

# Values produced by the seed/ingest process. Filters match them verbatim.
REGIONS: tuple[str, ...] = (
    "North America", "Europe", "Asia", "South America", "Africa", "Oceania",
)
CATEGORIES: tuple[str, ...] = (
    "Electronics", "Clothing", "Books", "Home & Garden", "Sports", "Toys",
)
SOURCES: tuple[str, ...] = (
    "Direct", "Organic Search", "Paid Ads", "Social Media", "Email", "Referral",
)


class AnalyticsEvent(Base):
    """A single analytics observation."""

    __tablename__ = "analytics"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    # Metrics
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=0
    )
    users: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bounce_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=0
    )  # percentage, 0-100
    conversion: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=0
    )  # percentage, 0-100

    # Dimensions
    region: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AnalyticsEvent {self.region}/{self.category}/{self.source} at {self.timestamp}>"


@event.listens_for(AnalyticsEvent, "before_update")
def _reject_update(mapper, connection, target: AnalyticsEvent) -> None:
    raise ImmutableRecordError("AnalyticsEvent", "update")


@event.listens_for(AnalyticsEvent, "before_delete")
def _reject_delete(mapper, connection, target: AnalyticsEvent) -> None:
    raise ImmutableRecordError("AnalyticsEvent", "delete")

"""
Pydantic schemas for analytics filters, query results and response envelopes.
JSON field names are camelCase to match the dashboard client.
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialised with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Filters ──────────────────────────────────────────────────────────────────
class ChartGranularity(str, enum.Enum):
    """Time bucket size for chart queries."""
    DAY = "day"
    HOUR = "hour"
    TIMESTAMP = "timestamp"  # exact timestamp equality, no truncation


class AnalyticsFilters(BaseModel):
    """
    Normalised analytics query constraints.
    Every field is optional; an unset field places no constraint on the query.
    Dates are timezone-aware UTC and both bounds are inclusive.
    """

    model_config = ConfigDict(frozen=True)

    start_date: datetime | None = None
    end_date: datetime | None = None
    region: str | None = None
    category: str | None = None
    source: str | None = None
    page: int | None = None
    limit: int | None = None
    granularity: ChartGranularity | None = None


# ── Ingest ───────────────────────────────────────────────────────────────────
class AnalyticsEventCreate(BaseModel):
    """One event accepted by the bulk ingest process."""
    timestamp: datetime
    revenue: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    users: int = Field(default=0, ge=0)
    sessions: int = Field(default=0, ge=0)
    bounce_rate: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    conversion: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    region: str = Field(..., min_length=1, max_length=50)
    category: str = Field(..., min_length=1, max_length=50)
    source: str = Field(..., min_length=1, max_length=50)

    @field_validator("timestamp")
    @classmethod
    def timestamp_to_utc(cls, v: datetime) -> datetime:
        # SQLite drops tzinfo on write; stored values must already be UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


# ── Query Results ────────────────────────────────────────────────────────────
class AnalyticsEventResponse(CamelModel):
    id: uuid.UUID
    timestamp: datetime
    revenue: float
    users: int
    sessions: int
    bounce_rate: float
    conversion: float
    region: str
    category: str
    source: str
    created_at: datetime


class AnalyticsAggregate(CamelModel):
    """Summary over every event matching a filter."""
    total_revenue: float = 0
    total_users: int = 0
    total_sessions: int = 0
    avg_bounce_rate: float = 0
    avg_conversion: float = 0
    unique_regions: int = 0
    unique_categories: int = 0
    unique_sources: int = 0


class ChartBucket(CamelModel):
    """Per-bucket sums and averages for the chart view."""
    date: str  # YYYY-MM-DD of the bucket start
    timestamp: datetime  # bucket start
    revenue: float
    users: int
    sessions: int
    bounce_rate: float
    conversion: float


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


# ── Envelopes ────────────────────────────────────────────────────────────────
class AggregateEnvelope(BaseModel):
    success: bool = True
    data: AnalyticsAggregate


class ChartEnvelope(BaseModel):
    success: bool = True
    data: list[ChartBucket]


class AnalyticsListEnvelope(BaseModel):
    success: bool = True
    data: list[AnalyticsEventResponse]
    pagination: PaginationMeta


class AnalyticsRecordEnvelope(BaseModel):
    success: bool = True
    data: AnalyticsEventResponse

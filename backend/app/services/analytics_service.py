"""
Analytics service: filtered aggregate, chart, listing and lookup queries
over the analytics event table, plus the bulk ingest path.
"""

import math
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import ColumnElement, Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.models.analytics import AnalyticsEvent
from app.schemas.analytics import (
    AnalyticsEventCreate,
    AnalyticsFilters,
    ChartGranularity,
)

logger = get_logger("analytics_service")
settings = get_settings()

DEFAULT_PAGE = 1

# strftime patterns used to truncate timestamps on SQLite
_SQLITE_BUCKET_FORMATS = {
    ChartGranularity.DAY: "%Y-%m-%d 00:00:00",
    ChartGranularity.HOUR: "%Y-%m-%d %H:00:00",
}


# ── Statement builders (shared with the Celery workers) ──────────────────────
def build_filter_conditions(filters: AnalyticsFilters) -> list[ColumnElement[bool]]:
    """Translate filters into WHERE clauses; absent fields add nothing."""
    conditions: list[ColumnElement[bool]] = []
    if filters.start_date is not None:
        conditions.append(AnalyticsEvent.timestamp >= filters.start_date)
    if filters.end_date is not None:
        conditions.append(AnalyticsEvent.timestamp <= filters.end_date)
    if filters.region is not None:
        conditions.append(AnalyticsEvent.region == filters.region)
    if filters.category is not None:
        conditions.append(AnalyticsEvent.category == filters.category)
    if filters.source is not None:
        conditions.append(AnalyticsEvent.source == filters.source)
    return conditions


def build_aggregate_query(filters: AnalyticsFilters) -> Select:
    return select(
        func.coalesce(func.sum(AnalyticsEvent.revenue), 0).label("total_revenue"),
        func.coalesce(func.sum(AnalyticsEvent.users), 0).label("total_users"),
        func.coalesce(func.sum(AnalyticsEvent.sessions), 0).label("total_sessions"),
        func.coalesce(func.avg(AnalyticsEvent.bounce_rate), 0).label("avg_bounce_rate"),
        func.coalesce(func.avg(AnalyticsEvent.conversion), 0).label("avg_conversion"),
        func.count(func.distinct(AnalyticsEvent.region)).label("unique_regions"),
        func.count(func.distinct(AnalyticsEvent.category)).label("unique_categories"),
        func.count(func.distinct(AnalyticsEvent.source)).label("unique_sources"),
    ).where(*build_filter_conditions(filters))


def aggregate_row_to_dict(row) -> dict:
    return {
        "total_revenue": _money(row.total_revenue),
        "total_users": int(row.total_users or 0),
        "total_sessions": int(row.total_sessions or 0),
        "avg_bounce_rate": _ratio(row.avg_bounce_rate),
        "avg_conversion": _ratio(row.avg_conversion),
        "unique_regions": row.unique_regions or 0,
        "unique_categories": row.unique_categories or 0,
        "unique_sources": row.unique_sources or 0,
    }


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


def _ratio(value) -> float:
    return round(float(value or 0), 2)


def _coerce_bucket(value) -> datetime:
    """Bucket keys come back as datetimes (PostgreSQL) or strings (SQLite)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AnalyticsService:
    """Handles analytics queries and aggregations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Aggregates ───────────────────────────────────────────────────────
    async def get_aggregates(self, filters: AnalyticsFilters) -> dict:
        """Sums, averages and distinct counts over every matching event."""
        result = await self.db.execute(build_aggregate_query(filters))
        return aggregate_row_to_dict(result.one())

    # ── Chart ────────────────────────────────────────────────────────────
    def _bucket_expression(self, granularity: ChartGranularity):
        column = AnalyticsEvent.timestamp
        if granularity == ChartGranularity.TIMESTAMP:
            return column

        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return func.date_trunc(granularity.value, func.timezone("UTC", column))
        return func.strftime(_SQLITE_BUCKET_FORMATS[granularity], column)

    async def get_chart_data(
        self,
        filters: AnalyticsFilters,
        granularity: ChartGranularity | None = None,
    ) -> list[dict]:
        """
        Per-bucket sums and averages, ascending by bucket start.

        Buckets are UTC calendar days unless another granularity is given
        (explicitly or on the filters). ``TIMESTAMP`` groups rows with
        identical timestamps only.
        """
        granularity = granularity or filters.granularity or ChartGranularity.DAY
        bucket = self._bucket_expression(granularity).label("bucket")

        result = await self.db.execute(
            select(
                bucket,
                func.coalesce(func.sum(AnalyticsEvent.revenue), 0).label("revenue"),
                func.coalesce(func.sum(AnalyticsEvent.users), 0).label("users"),
                func.coalesce(func.sum(AnalyticsEvent.sessions), 0).label("sessions"),
                func.coalesce(func.avg(AnalyticsEvent.bounce_rate), 0).label("bounce_rate"),
                func.coalesce(func.avg(AnalyticsEvent.conversion), 0).label("conversion"),
            ).where(
                *build_filter_conditions(filters)
            ).group_by(
                bucket
            ).order_by(
                bucket
            )
        )

        points = []
        for row in result.all():
            start = _coerce_bucket(row.bucket)
            points.append({
                "date": start.date().isoformat(),
                "timestamp": start,
                "revenue": _money(row.revenue),
                "users": int(row.users or 0),
                "sessions": int(row.sessions or 0),
                "bounce_rate": _ratio(row.bounce_rate),
                "conversion": _ratio(row.conversion),
            })
        return points

    # ── Listing ──────────────────────────────────────────────────────────
    async def get_paginated_data(self, filters: AnalyticsFilters) -> dict:
        """Newest-first page of raw events with total and page count."""
        page = filters.page if filters.page is not None else DEFAULT_PAGE
        limit = filters.limit if filters.limit is not None else settings.ANALYTICS_DEFAULT_PAGE_SIZE
        conditions = build_filter_conditions(filters)

        total = (await self.db.execute(
            select(func.count(AnalyticsEvent.id)).where(*conditions)
        )).scalar() or 0

        result = await self.db.execute(
            select(AnalyticsEvent)
            .where(*conditions)
            .order_by(desc(AnalyticsEvent.timestamp), AnalyticsEvent.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )

        return {
            "data": list(result.scalars().all()),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit),
            },
        }

    # ── Lookup ───────────────────────────────────────────────────────────
    async def get_by_id(self, record_id: uuid.UUID) -> AnalyticsEvent | None:
        """Get a single event, or None when no row has this id."""
        return await self.db.get(AnalyticsEvent, record_id)

    # ── Ingest ───────────────────────────────────────────────────────────
    async def ingest_events(
        self,
        events: Iterable[AnalyticsEventCreate],
        batch_size: int | None = None,
    ) -> dict:
        """
        Insert events in batches. This is the only write path for the table.
        Returns the inserted count and revenue.
        """
        batch_size = batch_size or settings.ANALYTICS_INGEST_BATCH_SIZE
        inserted = 0
        revenue = Decimal("0")
        batch: list[AnalyticsEvent] = []

        for payload in events:
            batch.append(AnalyticsEvent(**payload.model_dump()))
            revenue += payload.revenue
            if len(batch) >= batch_size:
                inserted += await self._flush_batch(batch)
                batch = []

        if batch:
            inserted += await self._flush_batch(batch)

        logger.info("Ingested %d analytics events (revenue %s)", inserted, revenue)
        return {"count": inserted, "revenue": float(revenue)}

    async def _flush_batch(self, batch: list[AnalyticsEvent]) -> int:
        self.db.add_all(batch)
        await self.db.flush()
        logger.debug("Flushed batch of %d events", len(batch))
        return len(batch)

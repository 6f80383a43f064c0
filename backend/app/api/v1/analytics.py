"""
Analytics API endpoints.
Aggregates, chart series, paginated listing and single-record lookup,
all driven by the same query-string filters.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.rate_limiter import rate_limit_api
from app.core.validators import get_analytics_filters
from app.schemas.analytics import (
    AggregateEnvelope,
    AnalyticsAggregate,
    AnalyticsEventResponse,
    AnalyticsFilters,
    AnalyticsListEnvelope,
    AnalyticsRecordEnvelope,
    ChartBucket,
    ChartEnvelope,
    PaginationMeta,
)
from app.services.analytics_service import AnalyticsService

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"],
    dependencies=[Depends(get_current_user), Depends(rate_limit_api)],
)


# ── Aggregates ───────────────────────────────────────────────────────────────
@router.get("/aggregates", response_model=AggregateEnvelope)
async def get_aggregates(
    filters: AnalyticsFilters = Depends(get_analytics_filters),
    db: AsyncSession = Depends(get_db),
):
    """Totals, averages and distinct dimension counts for the filtered events."""
    service = AnalyticsService(db)
    data = await service.get_aggregates(filters)
    return AggregateEnvelope(data=AnalyticsAggregate(**data))


# ── Chart ────────────────────────────────────────────────────────────────────
@router.get("/chart", response_model=ChartEnvelope)
async def get_chart(
    filters: AnalyticsFilters = Depends(get_analytics_filters),
    db: AsyncSession = Depends(get_db),
):
    """Time series bucketed by UTC day (or ``granularity=hour|timestamp``)."""
    service = AnalyticsService(db)
    points = await service.get_chart_data(filters)
    return ChartEnvelope(data=[ChartBucket(**point) for point in points])


# ── Listing ──────────────────────────────────────────────────────────────────
@router.get("", response_model=AnalyticsListEnvelope)
@router.get("/", response_model=AnalyticsListEnvelope, include_in_schema=False)
async def list_analytics(
    filters: AnalyticsFilters = Depends(get_analytics_filters),
    db: AsyncSession = Depends(get_db),
):
    """Newest-first page of raw records."""
    service = AnalyticsService(db)
    result = await service.get_paginated_data(filters)
    return AnalyticsListEnvelope(
        data=[AnalyticsEventResponse.model_validate(record) for record in result["data"]],
        pagination=PaginationMeta(**result["pagination"]),
    )


# ── Lookup ───────────────────────────────────────────────────────────────────
@router.get("/{record_id}", response_model=AnalyticsRecordEnvelope)
async def get_analytics_record(
    record_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single analytics record by id."""
    service = AnalyticsService(db)
    record = await service.get_by_id(record_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analytics record not found",
        )
    return AnalyticsRecordEnvelope(data=AnalyticsEventResponse.model_validate(record))

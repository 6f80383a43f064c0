import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from app.core.exceptions import ImmutableRecordError
from app.models.analytics import AnalyticsEvent
from app.schemas.analytics import AnalyticsFilters, ChartGranularity
from app.services.analytics_service import AnalyticsService

ZERO_AGGREGATE = {
    "total_revenue": 0.0,
    "total_users": 0,
    "total_sessions": 0,
    "avg_bounce_rate": 0.0,
    "avg_conversion": 0.0,
    "unique_regions": 0,
    "unique_categories": 0,
    "unique_sources": 0,
}


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ── Aggregates ───────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_aggregates_over_everything(db_session, seeded):
    result = await AnalyticsService(db_session).get_aggregates(AnalyticsFilters())

    assert result == {
        "total_revenue": 651.0,
        "total_users": 36,
        "total_sessions": 62,
        "avg_bounce_rate": 45.0,
        "avg_conversion": 2.5,
        "unique_regions": 3,
        "unique_categories": 3,
        "unique_sources": 3,
    }


@pytest.mark.asyncio
async def test_aggregates_respect_dimension_filters(db_session, seeded):
    result = await AnalyticsService(db_session).get_aggregates(
        AnalyticsFilters(region="North America")
    )

    assert result["total_revenue"] == 400.5
    assert result["total_users"] == 15
    assert result["unique_regions"] == 1
    assert result["unique_categories"] == 2
    assert result["unique_sources"] == 1


@pytest.mark.asyncio
async def test_date_bounds_are_inclusive(db_session, seeded):
    filters = AnalyticsFilters(
        start_date=_utc(2024, 1, 1, 23, 59, 59),
        end_date=_utc(2024, 1, 2, 10, 30, 0),
    )
    result = await AnalyticsService(db_session).get_aggregates(filters)

    assert result["total_revenue"] == 500.75
    assert result["total_sessions"] == 40


@pytest.mark.asyncio
async def test_no_matches_yields_zeroes(db_session, seeded):
    result = await AnalyticsService(db_session).get_aggregates(AnalyticsFilters(region="Mars"))
    assert result == ZERO_AGGREGATE


@pytest.mark.asyncio
async def test_inverted_range_yields_zeroes(db_session, seeded):
    filters = AnalyticsFilters(start_date=_utc(2024, 2, 1), end_date=_utc(2024, 1, 1))
    result = await AnalyticsService(db_session).get_aggregates(filters)
    assert result == ZERO_AGGREGATE


@pytest.mark.asyncio
async def test_repeated_queries_return_identical_results(db_session, seeded):
    service = AnalyticsService(db_session)
    filters = AnalyticsFilters(category="Books")

    assert await service.get_aggregates(filters) == await service.get_aggregates(filters)
    assert await service.get_chart_data(filters) == await service.get_chart_data(filters)


# ── Chart ────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_chart_buckets_by_utc_day(db_session, seeded):
    points = await AnalyticsService(db_session).get_chart_data(AnalyticsFilters())

    assert [p["date"] for p in points] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    first = points[0]
    assert first["timestamp"] == _utc(2024, 1, 1)
    assert first["revenue"] == 300.75
    assert first["users"] == 30
    assert first["sessions"] == 50
    assert first["bounce_rate"] == 50.0
    assert first["conversion"] == 3.0


@pytest.mark.asyncio
async def test_chart_reconciles_with_aggregates(db_session, seeded):
    service = AnalyticsService(db_session)
    filters = AnalyticsFilters(start_date=_utc(2024, 1, 1, 12), end_date=_utc(2024, 1, 31))

    points = await service.get_chart_data(filters)
    totals = await service.get_aggregates(filters)

    revenue = sum(Decimal(str(p["revenue"])) for p in points)
    assert revenue == Decimal(str(totals["total_revenue"]))
    assert sum(p["users"] for p in points) == totals["total_users"]
    assert sum(p["sessions"] for p in points) == totals["total_sessions"]


@pytest.mark.asyncio
async def test_chart_hourly_buckets(db_session, seeded):
    points = await AnalyticsService(db_session).get_chart_data(
        AnalyticsFilters(), granularity=ChartGranularity.HOUR
    )

    assert [p["timestamp"] for p in points] == [
        _utc(2024, 1, 1, 0),
        _utc(2024, 1, 1, 23),
        _utc(2024, 1, 2, 10),
        _utc(2024, 1, 3, 8),
    ]


@pytest.mark.asyncio
async def test_chart_exact_timestamp_groups_identical_times(db_session, seeded, make_event):
    service = AnalyticsService(db_session)
    await service.ingest_events([make_event(timestamp=_utc(2024, 1, 1, 0, 0, 0), users=7)])
    await db_session.commit()

    points = await service.get_chart_data(
        AnalyticsFilters(granularity=ChartGranularity.TIMESTAMP)
    )

    assert len(points) == 4
    assert points[0]["timestamp"] == _utc(2024, 1, 1, 0, 0, 0)
    assert points[0]["users"] == 17


@pytest.mark.asyncio
async def test_chart_empty_when_nothing_matches(db_session, seeded):
    assert await AnalyticsService(db_session).get_chart_data(AnalyticsFilters(source="Radio")) == []


# ── Listing ──────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_pagination_slices_newest_first(db_session, make_event):
    service = AnalyticsService(db_session)
    start = _utc(2024, 6, 1)
    await service.ingest_events(
        [make_event(timestamp=start + timedelta(hours=i)) for i in range(45)]
    )
    await db_session.commit()

    pages = [
        await service.get_paginated_data(AnalyticsFilters(page=page, limit=20))
        for page in (1, 2, 3)
    ]

    assert pages[0]["pagination"] == {"page": 1, "limit": 20, "total": 45, "pages": 3}
    assert [len(p["data"]) for p in pages] == [20, 20, 5]

    newest = pages[0]["data"][0].timestamp.replace(tzinfo=timezone.utc)
    assert newest == start + timedelta(hours=44)

    seen = {record.id for p in pages for record in p["data"]}
    assert len(seen) == 45


@pytest.mark.asyncio
async def test_listing_keeps_boundary_timestamps(db_session, seeded):
    start, end = _utc(2024, 1, 1, 0, 0, 0), _utc(2024, 1, 2, 10, 30, 0)
    result = await AnalyticsService(db_session).get_paginated_data(
        AnalyticsFilters(start_date=start, end_date=end)
    )

    stamps = [record.timestamp.replace(tzinfo=timezone.utc) for record in result["data"]]
    assert stamps == [end, _utc(2024, 1, 1, 23, 59, 59), start]


@pytest.mark.asyncio
async def test_pagination_defaults_and_empty_result(db_session):
    result = await AnalyticsService(db_session).get_paginated_data(AnalyticsFilters())

    assert result["data"] == []
    assert result["pagination"] == {"page": 1, "limit": 20, "total": 0, "pages": 0}


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(db_session, seeded):
    result = await AnalyticsService(db_session).get_paginated_data(
        AnalyticsFilters(page=5, limit=2)
    )

    assert result["data"] == []
    assert result["pagination"]["total"] == 4
    assert result["pagination"]["pages"] == 2


# ── Lookup ───────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_get_by_id(db_session, seeded):
    record = (await db_session.execute(select(AnalyticsEvent).limit(1))).scalar_one()
    service = AnalyticsService(db_session)

    assert (await service.get_by_id(record.id)).id == record.id
    assert await service.get_by_id(uuid.uuid4()) is None


# ── Ingest & immutability ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_ingest_in_batches(db_session, make_event):
    events = [make_event(revenue=Decimal("10.25")) for _ in range(5)]

    result = await AnalyticsService(db_session).ingest_events(events, batch_size=2)
    await db_session.commit()

    assert result == {"count": 5, "revenue": 51.25}
    total = await AnalyticsService(db_session).get_paginated_data(AnalyticsFilters())
    assert total["pagination"]["total"] == 5


@pytest.mark.asyncio
async def test_ingest_stores_offset_timestamps_as_utc(db_session, make_event):
    service = AnalyticsService(db_session)
    plus_two = timezone(timedelta(hours=2))
    await service.ingest_events(
        [make_event(timestamp=datetime(2024, 1, 1, 1, 0, tzinfo=plus_two))]
    )
    await db_session.commit()

    new_year = await service.get_aggregates(AnalyticsFilters(start_date=_utc(2024, 1, 1)))
    assert new_year["total_revenue"] == 0.0

    points = await service.get_chart_data(AnalyticsFilters())
    assert [p["date"] for p in points] == ["2023-12-31"]
    assert points[0]["timestamp"] == _utc(2023, 12, 31)


@pytest.mark.asyncio
async def test_records_cannot_be_updated(db_session, seeded):
    record = (await db_session.execute(select(AnalyticsEvent).limit(1))).scalar_one()
    record.revenue = Decimal("1.00")

    with pytest.raises(ImmutableRecordError):
        await db_session.flush()


@pytest.mark.asyncio
async def test_records_cannot_be_deleted(db_session, seeded):
    record = (await db_session.execute(select(AnalyticsEvent).limit(1))).scalar_one()
    await db_session.delete(record)

    with pytest.raises(ImmutableRecordError):
        await db_session.flush()

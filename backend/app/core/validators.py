"""
Request validators for analytics queries.

Raw query-string values are turned into an ``AnalyticsFilters`` object here,
field by field. Anything malformed rejects the whole request with HTTP 422.
No defaults are applied here.

Recognised keys
  • startDate / endDate: ISO-8601 date-time, inclusive bounds
  • region / category / source: exact-match strings
  • page / limit: positive base-10 integers (limit is capped)
  • granularity: chart bucket size
"""

import re
from collections.abc import Mapping
from datetime import datetime, timezone

from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.schemas.analytics import AnalyticsFilters, ChartGranularity

# Date-time only: a bare date or a unix timestamp is not accepted.
_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?"
    r"(Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)
_DIGITS = re.compile(r"^[0-9]+$")

_PASSTHROUGH_FIELDS: dict[str, str] = {
    "region": "region",
    "category": "category",
    "source": "source",
}


def parse_iso_datetime(value: str, field: str) -> datetime:
    """
    Parse an ISO-8601 date-time string and normalise it to UTC.
    Naive values are taken to be UTC already.
    """
    raw = value.strip()
    if not _ISO_DATETIME.match(raw):
        raise HTTPException(
            status_code=422,
            detail=f"{field} must be an ISO-8601 date-time (e.g. 2024-01-31T00:00:00Z).",
        )
    if raw[-1] in "zZ":
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=f"{field} is not a valid date-time: {value!r}.",
        ) from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_positive_int(value: str, field: str, maximum: int | None = None) -> int:
    """Accept only plain decimal digits, value >= 1 and <= maximum when given."""
    raw = value.strip()
    if not _DIGITS.match(raw):
        raise HTTPException(
            status_code=422,
            detail=f"{field} must be a whole number.",
        )
    number = int(raw)
    if number < 1:
        raise HTTPException(status_code=422, detail=f"{field} must be at least 1.")
    if maximum is not None and number > maximum:
        raise HTTPException(
            status_code=422,
            detail=f"{field} cannot exceed {maximum}.",
        )
    return number


def parse_granularity(value: str) -> ChartGranularity:
    try:
        return ChartGranularity(value.strip().lower())
    except ValueError:
        allowed = [g.value for g in ChartGranularity]
        raise HTTPException(
            status_code=422,
            detail=f"granularity must be one of: {allowed}.",
        ) from None


def parse_analytics_query(
    params: Mapping[str, str],
    max_limit: int | None = None,
) -> AnalyticsFilters:
    """
    Build an ``AnalyticsFilters`` from raw query parameters.
    Only keys that are present end up set on the result.
    """
    if max_limit is None:
        max_limit = get_settings().ANALYTICS_MAX_PAGE_SIZE

    fields: dict = {}

    if params.get("startDate") is not None:
        fields["start_date"] = parse_iso_datetime(params["startDate"], "startDate")
    if params.get("endDate") is not None:
        fields["end_date"] = parse_iso_datetime(params["endDate"], "endDate")

    for key, attr in _PASSTHROUGH_FIELDS.items():
        value = params.get(key)
        if value:
            fields[attr] = value

    if params.get("page") is not None:
        fields["page"] = parse_positive_int(params["page"], "page")
    if params.get("limit") is not None:
        fields["limit"] = parse_positive_int(params["limit"], "limit", maximum=max_limit)

    if params.get("granularity") is not None:
        fields["granularity"] = parse_granularity(params["granularity"])

    return AnalyticsFilters(**fields)


async def get_analytics_filters(request: Request) -> AnalyticsFilters:
    """FastAPI dependency: parse the current request's query string."""
    return parse_analytics_query(request.query_params)

"""
engagement_dashboard/features/engagement/filters.py

Filter engine: narrows a snapshot of the working set.
Pure functions; the input sequence is never modified.
"""

import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional

from engagement_dashboard.core.errors import ValidationError
from engagement_dashboard.models.engagement import (
    ENGAGEMENT_SOURCES,
    ENGAGEMENT_TYPES,
    EngagementRecord,
    FilterCriteria,
)

DEFAULT_LIMIT = 10


def apply_filters(records: Iterable[EngagementRecord], criteria: FilterCriteria) -> List[EngagementRecord]:
    """
    Apply every criterion (logical AND), then truncate to criteria.limit.

    The date range is only applied when both bounds are present; both bounds
    and both score bounds are inclusive.
    """
    filtered = list(records)

    if criteria.type:
        filtered = [r for r in filtered if r.type == criteria.type]

    if criteria.source:
        filtered = [r for r in filtered if r.source == criteria.source]

    if criteria.has_date_range:
        start = _as_utc(criteria.start_date)
        end = _as_utc(criteria.end_date)
        filtered = [r for r in filtered if start <= _as_utc(r.timestamp) <= end]

    if criteria.min_score is not None:
        filtered = [r for r in filtered if r.score >= criteria.min_score]

    if criteria.max_score is not None:
        filtered = [r for r in filtered if r.score <= criteria.max_score]

    return filtered[: criteria.limit]


def criteria_from_params(
    *,
    type: Optional[str] = None,
    source: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: Optional[str] = None,
    min_score: Optional[str] = None,
    max_score: Optional[str] = None,
    default_limit: int = DEFAULT_LIMIT,
) -> FilterCriteria:
    """
    Build FilterCriteria from raw query-string values.

    Unknown type/source values are rejected (ValidationError). Numbers and dates
    that do not parse are treated as unset.
    """
    type_value = _parse_choice("type", type, ENGAGEMENT_TYPES)
    source_value = _parse_choice("source", source, ENGAGEMENT_SOURCES)

    parsed_limit = _parse_int(limit)
    if parsed_limit is None or parsed_limit < 0:
        parsed_limit = default_limit

    return FilterCriteria(
        type=type_value,
        source=source_value,
        start_date=parse_date_bound(start_date),
        end_date=parse_date_bound(end_date, end_of_day=True),
        min_score=_parse_float(min_score),
        max_score=_parse_float(max_score),
        limit=parsed_limit,
    )


def parse_date_bound(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse YYYY-MM-DD or an ISO-8601 instant into an aware UTC datetime.

    A bare date used as an end bound covers the whole day.
    """
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            bound = datetime.combine(day, time.min, tzinfo=timezone.utc)
            if end_of_day:
                bound = bound + timedelta(days=1) - timedelta(microseconds=1)
            return bound
        return _as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def _parse_choice(name: str, value: Optional[str], allowed: tuple) -> Optional[str]:
    if value is None or not value.strip():
        return None
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise ValidationError(f"Invalid {name} '{value}'. Must be one of: {', '.join(allowed)}")
    return normalized


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return None
    # NaN and infinities are treated as unset
    return parsed if math.isfinite(parsed) else None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

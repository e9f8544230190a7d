"""
engagement_dashboard/features/analytics/reducers.py

Pure deterministic reducers for engagement analytics.
All reducers: (records) -> immutable read model. Inputs are never reordered.
"""

import hashlib
from collections import Counter, OrderedDict
from datetime import timezone
from typing import Dict, List, Optional, Sequence

from engagement_dashboard.models.engagement import (
    AnalyticsSummary,
    EngagementRecord,
    SegmentMetrics,
    TrendDataPoint,
)

TOP_ENGAGEMENTS_LIMIT = 5

SCORE_BUCKETS = (
    ("0-20", 20),
    ("21-40", 40),
    ("41-60", 60),
    ("61-80", 80),
    ("81-100", None),
)

SEGMENTS = ("all", "premium", "standard", "new")
_USER_SEGMENTS = ("premium", "standard", "new")
CONVERSION_TYPES = frozenset({"share", "download"})


def summarize(records: Sequence[EngagementRecord]) -> AnalyticsSummary:
    """
    Reduce a filtered record set to an AnalyticsSummary.

    Pure function: same records => identical output.

    Args:
        records: Already-filtered records

    Returns:
        AnalyticsSummary (immutable)
    """
    type_counts = Counter(r.type for r in records)
    source_counts = Counter(r.source for r in records)

    return AnalyticsSummary(
        totalEngagements=len(records),
        typeBreakdown=dict(type_counts),
        sourceBreakdown=dict(source_counts),
        averageScore=average_score(records),
        topEngagements=top_engagements(records),
        scoreDistribution=score_distribution(records),
        trendData=trend_data(records),
    )


def average_score(records: Sequence[EngagementRecord]) -> Optional[float]:
    """Mean score rounded to 2 decimals; None for an empty set."""
    if not records:
        return None
    return round(sum(r.score for r in records) / len(records), 2)


def top_engagements(records: Sequence[EngagementRecord], limit: int = TOP_ENGAGEMENTS_LIMIT) -> List[EngagementRecord]:
    # sorted() is stable and works on a copy, so ties keep input order
    return sorted(records, key=lambda r: r.score, reverse=True)[:limit]


def score_distribution(records: Sequence[EngagementRecord]) -> Dict[str, int]:
    buckets: Dict[str, int] = OrderedDict((label, 0) for label, _ in SCORE_BUCKETS)
    for r in records:
        for label, upper in SCORE_BUCKETS:
            if upper is None or r.score <= upper:
                buckets[label] += 1
                break
    return dict(buckets)


def trend_data(records: Sequence[EngagementRecord]) -> List[TrendDataPoint]:
    """Per-day count and average score, ascending by UTC date."""
    by_day: Dict[str, List[float]] = {}
    for r in records:
        ts = r.timestamp if r.timestamp.tzinfo else r.timestamp.replace(tzinfo=timezone.utc)
        day = ts.astimezone(timezone.utc).date().isoformat()
        by_day.setdefault(day, []).append(r.score)

    return [
        TrendDataPoint(date=day, count=len(scores), averageScore=round(sum(scores) / len(scores), 2))
        for day, scores in sorted(by_day.items())
    ]


def segment_for_user(user_id: str) -> str:
    """Stable user -> segment assignment (independent of PYTHONHASHSEED)."""
    digest = hashlib.sha256(user_id.encode("utf-8")).digest()
    return _USER_SEGMENTS[digest[0] % len(_USER_SEGMENTS)]


def reduce_segment(segment: str, records: Sequence[EngagementRecord]) -> SegmentMetrics:
    """
    Reduce records to metrics for one segment.

    Args:
        segment: "all" | "premium" | "standard" | "new"
        records: Working-set snapshot

    Returns:
        SegmentMetrics (immutable)
    """
    if segment not in SEGMENTS:
        raise ValueError(f"Invalid segment. Must be one of: {', '.join(SEGMENTS)}")

    members = [r for r in records if segment == "all" or segment_for_user(r.user_id) == segment]
    conversions = sum(1 for r in members if r.type in CONVERSION_TYPES)
    conversion_rate = round(conversions * 100 / len(members), 2) if members else 0.0

    return SegmentMetrics(
        totalEngagements=len(members),
        averageScore=average_score(members),
        conversionRate=conversion_rate,
        uniqueUsers=len({r.user_id for r in members}),
    )


def reduce_segment_comparison(segments: Sequence[str], records: Sequence[EngagementRecord]) -> Dict[str, object]:
    """Metrics per requested segment plus an aggregate over their union."""
    per_segment = {name: reduce_segment(name, records) for name in segments}

    if "all" in segments:
        union = list(records)
    else:
        wanted = set(segments)
        union = [r for r in records if segment_for_user(r.user_id) in wanted]

    return {
        "segments": list(segments),
        "data": {name: metrics.model_dump() for name, metrics in per_segment.items()},
        "aggregate": reduce_segment("all", union).model_dump(),
    }

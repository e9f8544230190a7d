"""
engagement_dashboard/tests/test_analytics_reducers.py

Tests for the engagement analytics reducers.
"""

import pytest

from engagement_dashboard.features.analytics.reducers import (
    SEGMENTS,
    reduce_segment,
    reduce_segment_comparison,
    score_distribution,
    segment_for_user,
    summarize,
    top_engagements,
    trend_data,
)


@pytest.fixture
def mixed_records(make_record):
    return [
        make_record(id=1, type="click", source="web", score=10.0, user_id="user_0001", days_ago=2),
        make_record(id=2, type="click", source="mobile", score=20.0, user_id="user_0002", days_ago=1),
        make_record(id=3, type="share", source="email", score=30.0, user_id="user_0003", days_ago=1),
        make_record(id=4, type="download", source="web", score=85.5, user_id="user_0001", days_ago=0),
    ]


class TestSummarize:
    def test_type_breakdown_sums_to_total(self, mixed_records):
        summary = summarize(mixed_records)

        assert summary.totalEngagements == 4
        assert sum(summary.typeBreakdown.values()) == summary.totalEngagements
        assert summary.typeBreakdown == {"click": 2, "share": 1, "download": 1}

    def test_breakdown_omits_absent_types(self, mixed_records):
        assert "view" not in summarize(mixed_records).typeBreakdown

    def test_source_breakdown(self, mixed_records):
        assert summarize(mixed_records).sourceBreakdown == {"web": 2, "mobile": 1, "email": 1}

    def test_average_of_three_scores(self, make_record):
        data = [make_record(id=i, score=s) for i, s in enumerate([10.0, 20.0, 30.0], start=1)]
        assert summarize(data).averageScore == 20.00

    def test_average_rounded_to_two_decimals(self, make_record):
        data = [make_record(id=1, score=1.0), make_record(id=2, score=1.0), make_record(id=3, score=2.0)]
        assert summarize(data).averageScore == 1.33

    def test_empty_input(self):
        summary = summarize([])

        assert summary.totalEngagements == 0
        assert summary.averageScore is None
        assert summary.typeBreakdown == {}
        assert summary.topEngagements == []
        assert summary.trendData == []

    def test_same_records_identical_output(self, mixed_records):
        assert summarize(mixed_records).model_dump_json() == summarize(mixed_records).model_dump_json()

    def test_wire_format_uses_engagement_score(self, mixed_records):
        wire = summarize(mixed_records).to_wire()
        assert "engagement_score" in wire["topEngagements"][0]


class TestTopEngagements:
    def test_highest_five_descending_ties_in_input_order(self, make_record):
        scores = [5, 95, 40, 95, 10, 60, 30]
        data = [make_record(id=i, score=float(s)) for i, s in enumerate(scores, start=1)]

        top = top_engagements(data)

        assert [r.score for r in top] == [95.0, 95.0, 60.0, 40.0, 30.0]
        assert [r.id for r in top[:2]] == [2, 4]

    def test_input_is_not_reordered(self, make_record):
        data = [make_record(id=i, score=float(s)) for i, s in enumerate([1, 3, 2], start=1)]
        top_engagements(data)
        assert [r.id for r in data] == [1, 2, 3]

    def test_fewer_than_five(self, make_record):
        assert len(top_engagements([make_record(id=1)])) == 1


def test_score_distribution_buckets(make_record):
    data = [make_record(id=i, score=s) for i, s in enumerate([0.0, 20.0, 20.5, 55.0, 80.0, 99.9, 120.0], start=1)]

    assert score_distribution(data) == {"0-20": 2, "21-40": 1, "41-60": 1, "61-80": 1, "81-100": 2}


def test_trend_data_groups_by_day_ascending(mixed_records):
    points = trend_data(mixed_records)

    assert [p.date for p in points] == ["2025-06-13", "2025-06-14", "2025-06-15"]
    assert [p.count for p in points] == [1, 2, 1]
    assert points[1].averageScore == 25.0


class TestSegments:
    def test_assignment_is_stable(self):
        assert segment_for_user("user_0042") == segment_for_user("user_0042")
        assert segment_for_user("user_0042") in SEGMENTS

    def test_all_segment_covers_everything(self, mixed_records):
        metrics = reduce_segment("all", mixed_records)

        assert metrics.totalEngagements == 4
        assert metrics.uniqueUsers == 3
        assert metrics.conversionRate == 50.0

    def test_user_segments_partition_records(self, mixed_records):
        totals = sum(reduce_segment(name, mixed_records).totalEngagements for name in ("premium", "standard", "new"))
        assert totals == len(mixed_records)

    def test_empty_segment(self):
        metrics = reduce_segment("premium", [])
        assert metrics.totalEngagements == 0
        assert metrics.averageScore is None
        assert metrics.conversionRate == 0.0

    def test_unknown_segment_raises(self, mixed_records):
        with pytest.raises(ValueError):
            reduce_segment("vip", mixed_records)

    def test_comparison_shape(self, mixed_records):
        payload = reduce_segment_comparison(["premium", "new"], mixed_records)

        assert payload["segments"] == ["premium", "new"]
        assert set(payload["data"]) == {"premium", "new"}
        expected = payload["data"]["premium"]["totalEngagements"] + payload["data"]["new"]["totalEngagements"]
        assert payload["aggregate"]["totalEngagements"] == expected

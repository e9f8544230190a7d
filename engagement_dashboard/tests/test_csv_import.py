"""Tests for CSV upload cleaning."""

import random

import pytest

from engagement_dashboard.core.errors import ValidationError
from engagement_dashboard.features.engagement.csv_import import parse_csv


def _parse(text, fixed_now):
    return parse_csv(text.encode("utf-8"), now=fixed_now, rng=random.Random(7))


def test_unknown_type_becomes_view(fixed_now):
    result = _parse("id,type,user_id,score,source,timestamp\n1,Bogus,u1,50,web,2025-06-01T10:00:00Z\n", fixed_now)

    assert result.records[0].type == "view"
    assert [e.column for e in result.errors] == ["type"]
    assert result.errors[0].value == "Bogus"


def test_clean_row_passes_through(fixed_now):
    result = _parse(
        "id,type,user_id,engagement_score,source,timestamp\n"
        "42, Share ,user_9,77.5,MOBILE,2025-06-01T10:00:00Z\n",
        fixed_now,
    )
    record = result.records[0]

    assert record.id == 42
    assert record.type == "share"
    assert record.user_id == "user_9"
    assert record.score == 77.5
    assert record.source == "mobile"
    assert record.timestamp.isoformat() == "2025-06-01T10:00:00+00:00"
    assert result.errors == []


def test_alternate_column_names(fixed_now):
    result = _parse("engagement_type,userId,score,date\nlike,abc,12,2025-06-02\n", fixed_now)
    record = result.records[0]

    assert record.type == "like"
    assert record.user_id == "abc"
    assert record.score == 12.0
    assert record.timestamp.date().isoformat() == "2025-06-02"


def test_numeric_user_id_used_as_id(fixed_now):
    result = _parse("type,user_id,score\nclick,123,5\n", fixed_now)
    assert result.records[0].id == 123


def test_missing_values_get_defaults_and_are_reported(fixed_now):
    result = _parse("id,type,user_id,score,source,timestamp\n,,,abc,nowhere,not-a-date\n", fixed_now)
    record = result.records[0]

    assert record.type == "view"
    assert record.source == "web"
    assert record.user_id == "user_1"
    assert record.score == 0.0
    assert record.timestamp == fixed_now
    columns = {e.column for e in result.errors}
    assert {"type", "user_id", "engagement_score", "source", "timestamp"} <= columns
    assert all(e.row == 1 for e in result.errors)


def test_scores_are_not_clamped(fixed_now):
    result = _parse("type,user_id,score\nview,u,150\nview,u,-3\n", fixed_now)
    assert [r.score for r in result.records] == [150.0, -3.0]


def test_blank_rows_skipped_and_bom_tolerated(fixed_now):
    content = b"\xef\xbb\xbf" + b"type,user_id,score\nview,a,1\n,,\nclick,b,2\n"
    result = parse_csv(content, now=fixed_now)

    assert result.processed == 2
    assert [r.type for r in result.records] == ["view", "click"]


def test_sample_is_first_five(fixed_now):
    rows = "".join(f"view,u{i},{i}\n" for i in range(8))
    result = _parse("type,user_id,score\n" + rows, fixed_now)

    assert result.processed == 8
    assert [r.user_id for r in result.sample] == ["u0", "u1", "u2", "u3", "u4"]


@pytest.mark.parametrize(
    "content",
    [
        b"",
        b"type,user_id,score\n",
        b"\xff\xfe\x00bad",
    ],
)
def test_unusable_files_rejected(content, fixed_now):
    with pytest.raises(ValidationError):
        parse_csv(content, now=fixed_now)


@pytest.mark.parametrize("raw", ["inf", "-Infinity", "1e999", "-1e999", "nan"])
def test_non_finite_scores_default_to_zero(raw, fixed_now):
    result = _parse(f"type,user_id,score,source\nclick,u1,{raw},web\nview,u2,10,web\n", fixed_now)

    assert [r.score for r in result.records] == [0.0, 10.0]
    assert [(e.row, e.column, e.value) for e in result.errors] == [(1, "engagement_score", raw)]

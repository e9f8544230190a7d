"""
CSV import: uploaded bytes -> cleaned engagement records.

Rows are never rejected. A value that cannot be used is replaced by a default
and reported as a CSVRowError so the caller can show what was substituted.
"""

import csv
import io
import logging
import math
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from engagement_dashboard.core.errors import ValidationError
from engagement_dashboard.models.engagement import (
    DEFAULT_SOURCE,
    DEFAULT_TYPE,
    ENGAGEMENT_SOURCES,
    ENGAGEMENT_TYPES,
    CSVRowError,
    EngagementRecord,
    coerce_source,
    coerce_type,
)

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5


class CSVImportResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: List[EngagementRecord]
    errors: List[CSVRowError]

    @property
    def processed(self) -> int:
        return len(self.records)

    @property
    def sample(self) -> List[EngagementRecord]:
        return self.records[:SAMPLE_SIZE]


def parse_csv(
    content: bytes,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> CSVImportResult:
    """
    Parse and clean an uploaded CSV file.

    Args:
        content: Raw file bytes (UTF-8, optional BOM)
        now: Timestamp used for rows without a usable timestamp
        rng: Random source for synthesized ids

    Returns:
        CSVImportResult with cleaned records and substitution report

    Raises:
        ValidationError: file is not UTF-8, has no header, or has no data rows
    """
    if now is None:
        now = datetime.now(timezone.utc)
    rng = rng or random.Random()

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("CSV file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError("CSV file is empty")
    reader.fieldnames = [name.strip().lower() if name else "" for name in reader.fieldnames]

    records: List[EngagementRecord] = []
    errors: List[CSVRowError] = []
    for row_number, row in enumerate(reader, start=1):
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        record, row_errors = clean_row(row, row_number, now=now, rng=rng)
        records.append(record)
        errors.extend(row_errors)

    if not records:
        raise ValidationError("CSV file contains no data rows")

    logger.info(
        "csv.import",
        extra={"rows": len(records), "substitutions": len(errors)},
    )
    return CSVImportResult(records=records, errors=errors)


def clean_row(
    row: Dict[str, Optional[str]],
    row_number: int,
    *,
    now: datetime,
    rng: random.Random,
) -> Tuple[EngagementRecord, List[CSVRowError]]:
    """Map one CSV row onto an EngagementRecord, substituting defaults."""
    errors: List[CSVRowError] = []

    def note(column: str, error: str, value: Optional[str]) -> None:
        errors.append(CSVRowError(row=row_number, column=column, error=error, value=value or ""))

    raw_id = _first(row, "id")
    record_id = _to_int(raw_id)
    if record_id is None:
        record_id = _to_int(_first(row, "user_id"))
    if record_id is None:
        record_id = rng.randint(1, 1_000_000)
        if raw_id:
            note("id", "not an integer, generated", raw_id)

    raw_type = _first(row, "type", "engagement_type")
    engagement_type = coerce_type(raw_type)
    if (raw_type or "").strip().lower() not in ENGAGEMENT_TYPES:
        note("type", f"missing or unknown type, defaulted to '{DEFAULT_TYPE}'", raw_type)

    user_id = _first(row, "user_id", "userid")
    if not user_id:
        user_id = f"user_{row_number}"
        note("user_id", "missing, synthesized", None)

    raw_score = _first(row, "score", "engagement_score")
    score = _to_float(raw_score)
    if score is None:
        score = 0.0
        note("engagement_score", "not a finite number, defaulted to 0", raw_score)

    raw_source = _first(row, "source")
    source = coerce_source(raw_source)
    if (raw_source or "").strip().lower() not in ENGAGEMENT_SOURCES:
        note("source", f"missing or unknown source, defaulted to '{DEFAULT_SOURCE}'", raw_source)

    raw_timestamp = _first(row, "timestamp", "date")
    timestamp = _to_datetime(raw_timestamp)
    if timestamp is None:
        timestamp = now
        if raw_timestamp:
            note("timestamp", "not ISO-8601, defaulted to upload time", raw_timestamp)

    record = EngagementRecord(
        id=record_id,
        type=engagement_type,
        source=source,
        timestamp=timestamp,
        user_id=user_id,
        score=score,
    )
    return record, errors


def _first(row: Dict[str, Optional[str]], *keys: str) -> Optional[str]:
    for key in keys:
        value = row.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def _to_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

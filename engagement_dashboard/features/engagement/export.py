"""Export service: engagement records as CSV."""

import csv
import io
import logging
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from engagement_dashboard.models.engagement import EngagementRecord

logger = logging.getLogger(__name__)

CSV_COLUMNS = ("id", "type", "source", "timestamp", "user_id", "engagement_score")


class CSVExportService:
    """Service for exporting engagement records."""

    def filename(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        return f"engagements_{now.strftime('%Y%m%d_%H%M%S')}.csv"

    def iter_csv(self, records: Iterable[EngagementRecord]) -> Iterator[str]:
        """Yield the header line, then one line per record.

        Lines are produced lazily so a StreamingResponse can send them as
        they are written.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer)

        def flush() -> str:
            value = buffer.getvalue()
            buffer.seek(0)
            buffer.truncate(0)
            return value

        writer.writerow(CSV_COLUMNS)
        yield flush()

        count = 0
        for record in records:
            wire = record.to_wire()
            writer.writerow([wire[column] for column in CSV_COLUMNS])
            count += 1
            yield flush()

        logger.info("csv.export", extra={"rows": count})

    def to_csv(self, records: Iterable[EngagementRecord]) -> str:
        return "".join(self.iter_csv(records))


export_service = CSVExportService()

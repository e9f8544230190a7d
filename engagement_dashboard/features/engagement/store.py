"""
engagement_dashboard/features/engagement/store.py

Single-slot store for the uploaded working set.
In-memory only; the slot lives as long as the process does.
"""

from typing import List, Optional, Sequence

from engagement_dashboard.models.engagement import EngagementRecord


class EngagementStore:
    """
    Holds the uploaded engagement records, if any.

    One owner (the app instance) creates it and injects it into routes.
    Writes replace the whole slot; reads always hand out a copy.
    """

    def __init__(self) -> None:
        self._records: Optional[List[EngagementRecord]] = None

    def replace(self, records: Sequence[EngagementRecord]) -> int:
        """Replace the working set with uploaded records. Returns the new size."""
        self._records = list(records)
        return len(self._records)

    def clear(self) -> None:
        self._records = None

    def read(self) -> Optional[List[EngagementRecord]]:
        """
        Snapshot of the uploaded records.

        Returns:
            A new list, or None when nothing has been uploaded.
        """
        if self._records is None:
            return None
        return list(self._records)

    @property
    def has_uploaded(self) -> bool:
        return self._records is not None

    def count(self) -> int:
        return len(self._records) if self._records is not None else 0

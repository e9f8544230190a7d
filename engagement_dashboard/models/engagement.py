"""
engagement_dashboard/models/engagement.py
Engagement models: EngagementRecord, FilterCriteria, AnalyticsSummary.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field


EngagementType = Literal["click", "view", "share", "comment", "like", "download"]
EngagementSource = Literal["web", "mobile", "email", "social", "direct"]

ENGAGEMENT_TYPES: tuple = get_args(EngagementType)
ENGAGEMENT_SOURCES: tuple = get_args(EngagementSource)

DEFAULT_TYPE = "view"
DEFAULT_SOURCE = "web"


def coerce_type(value: Optional[object]) -> str:
    """Normalize a raw type value, falling back to 'view'."""
    text = str(value).strip().lower() if value is not None else ""
    return text if text in ENGAGEMENT_TYPES else DEFAULT_TYPE


def coerce_source(value: Optional[object]) -> str:
    """Normalize a raw source value, falling back to 'web'."""
    text = str(value).strip().lower() if value is not None else ""
    return text if text in ENGAGEMENT_SOURCES else DEFAULT_SOURCE


class EngagementRecord(BaseModel):
    """One user-interaction event with a score."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    type: EngagementType
    source: EngagementSource
    timestamp: datetime
    user_id: str
    score: float = Field(alias="engagement_score", description="Not clamped to [0, 100]")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class FilterCriteria(BaseModel):
    """Independent, optional constraints; None means no constraint."""

    model_config = ConfigDict(frozen=True)

    type: Optional[EngagementType] = None
    source: Optional[EngagementSource] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    limit: int = Field(default=10, ge=0)

    @property
    def has_date_range(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def is_filtered(self) -> bool:
        return any(
            value is not None
            for value in (self.type, self.source, self.min_score, self.max_score)
        ) or self.has_date_range


class TrendDataPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    count: int = Field(ge=0)
    averageScore: float


class AnalyticsSummary(BaseModel):
    """Derived per request, never stored."""

    model_config = ConfigDict(frozen=True)

    totalEngagements: int = Field(ge=0)
    typeBreakdown: Dict[str, int]
    sourceBreakdown: Dict[str, int]
    averageScore: Optional[float] = Field(description="None when there is nothing to average")
    topEngagements: List[EngagementRecord]
    scoreDistribution: Dict[str, int]
    trendData: List[TrendDataPoint]

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SegmentMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    totalEngagements: int = Field(ge=0)
    averageScore: Optional[float]
    conversionRate: float
    uniqueUsers: int = Field(ge=0)


class CSVRowError(BaseModel):
    """A value that was replaced by a default while cleaning an uploaded row."""

    model_config = ConfigDict(frozen=True)

    row: int = Field(ge=1)
    column: str
    error: str
    value: str

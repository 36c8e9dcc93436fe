"""Analysis state persisted between the two pipeline stages."""

import json
import logging
from datetime import datetime

from pydantic import BaseModel, ValidationError

from src.core.exceptions import MissingStateError
from src.core.firestore import FirestoreClient

from .models import PeriodMetrics
from .periods import ReportPeriod

logger = logging.getLogger(__name__)

# Property names in the key-value store
TOTAL_QUESTIONS = "totalQuestions"
TOTAL_SESSIONS = "totalSessions"
WEEKDAY_TOTAL = "weekdayTotal"
WEEKEND_TOTAL = "weekendTotal"
DAILY_COUNTS = "dailyCounts"
HOURLY_COUNTS = "hourlyCounts"
TARGET_MONTH_NAME = "targetMonthName"
TARGET_YEAR = "targetYear"
REF_MONTH_NAME = "refMonthName"
REF_YEAR = "refYear"
ANALYZED_AT = "analyzedAt"

REQUIRED_PROPERTIES = [
    TOTAL_QUESTIONS,
    TOTAL_SESSIONS,
    WEEKDAY_TOTAL,
    WEEKEND_TOTAL,
    DAILY_COUNTS,
    TARGET_MONTH_NAME,
    TARGET_YEAR,
    REF_MONTH_NAME,
    REF_YEAR,
]


class ReportState(BaseModel):
    """Target-month metrics and period labels written by the analyze stage."""

    metrics: PeriodMetrics
    reference: ReportPeriod
    analyzed_at: datetime | None = None

    @property
    def target(self) -> ReportPeriod:
        return ReportPeriod.from_month_name(self.metrics.month_name, self.metrics.year)

    def to_properties(self) -> dict[str, str]:
        """Serialize every field as a string property."""
        m = self.metrics
        properties = {
            TOTAL_QUESTIONS: str(m.total_questions),
            TOTAL_SESSIONS: str(m.total_sessions),
            WEEKDAY_TOTAL: str(m.weekday_total),
            WEEKEND_TOTAL: str(m.weekend_total),
            DAILY_COUNTS: json.dumps(m.daily_counts),
            HOURLY_COUNTS: json.dumps(m.hourly_counts),
            TARGET_MONTH_NAME: m.month_name,
            TARGET_YEAR: str(m.year),
            REF_MONTH_NAME: self.reference.month_name,
            REF_YEAR: str(self.reference.year),
        }
        if self.analyzed_at:
            properties[ANALYZED_AT] = self.analyzed_at.isoformat()
        return properties

    @classmethod
    def from_properties(cls, properties: dict[str, str]) -> "ReportState":
        """
        Rebuild state from string properties.

        Raises:
            MissingStateError: Required properties absent or unreadable
        """
        missing = [key for key in REQUIRED_PROPERTIES if properties.get(key) in (None, "")]
        if missing:
            raise MissingStateError(
                f"No analysis state found (missing {', '.join(missing)}); run the analyze stage first"
            )

        try:
            fields = {
                "month_name": properties[TARGET_MONTH_NAME],
                "year": int(properties[TARGET_YEAR]),
                "total_questions": int(properties[TOTAL_QUESTIONS]),
                "total_sessions": int(properties[TOTAL_SESSIONS]),
                "weekday_total": int(properties[WEEKDAY_TOTAL]),
                "weekend_total": int(properties[WEEKEND_TOTAL]),
                "daily_counts": json.loads(properties[DAILY_COUNTS]),
            }
            if properties.get(HOURLY_COUNTS):
                fields["hourly_counts"] = json.loads(properties[HOURLY_COUNTS])
            metrics = PeriodMetrics(**fields)
            reference = ReportPeriod.from_month_name(
                properties[REF_MONTH_NAME], int(properties[REF_YEAR])
            )
            analyzed_at = (
                datetime.fromisoformat(properties[ANALYZED_AT])
                if properties.get(ANALYZED_AT) else None
            )
        except (TypeError, ValueError, ValidationError) as e:
            raise MissingStateError(f"Stored analysis state is unreadable: {e}")

        return cls(metrics=metrics, reference=reference, analyzed_at=analyzed_at)


class ReportStateStore:
    """Read and write ReportState through the key-value store."""

    def __init__(self, firestore: FirestoreClient):
        self.firestore = firestore

    async def save(self, state: ReportState) -> None:
        await self.firestore.set_properties(state.to_properties())
        logger.info(f"Saved analysis state for {state.metrics.label}")

    async def load(self) -> ReportState:
        properties = await self.firestore.get_properties()
        return ReportState.from_properties(properties)

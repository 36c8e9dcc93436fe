"""Monthly chat report pipeline."""

from .models import PeakTrough, PeriodMetrics, PipelineStatus, RawLogRow, SessionRecord, StageResult
from .periods import ReportPeriod

__all__ = [
    "PeakTrough",
    "PeriodMetrics",
    "PipelineStatus",
    "RawLogRow",
    "SessionRecord",
    "StageResult",
    "ReportPeriod",
]

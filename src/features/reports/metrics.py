"""Session extraction from raw chat-log rows."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from src.core.exceptions import DataShapeError

from .models import RawLogRow, SessionRecord

logger = logging.getLogger(__name__)


@dataclass
class SessionExtraction:
    """Deduplicated sessions plus the raw row count."""

    records: list[SessionRecord]
    total_questions: int


def parse_rows(
    rows: Iterable[Mapping[str, Any]],
    session_column: str = "sessionID",
    date_column: str = "date",
    time_column: str = "time",
) -> list[RawLogRow]:
    """Convert sheet row dicts into RawLogRows."""
    parsed = []
    for index, row in enumerate(rows, start=2):
        try:
            parsed.append(RawLogRow(
                session_id=row.get(session_column),
                date=row.get(date_column),
                time=row.get(time_column),
            ))
        except ValidationError as e:
            # Row 1 is the header
            raise DataShapeError(f"Row {index} has an unreadable date or time: {e.errors()[0]['msg']}")
    return parsed


def extract_sessions(rows: Sequence[RawLogRow], sort_rows: bool = False) -> SessionExtraction:
    """
    Keep the first row of every session.

    The rows are expected in chronological order, so the first row seen for
    a session id is its earliest turn. Pass ``sort_rows=True`` to sort by
    timestamp first when the source order cannot be trusted; the sort is
    stable, so rows with equal timestamps keep their source order.

    Args:
        rows: Raw log rows
        sort_rows: Sort by merged timestamp before deduplicating

    Returns:
        Session records in order of first appearance and the raw row count
    """
    ordered = sorted(rows, key=lambda row: row.timestamp) if sort_rows else rows

    seen = set()
    records = []
    for row in ordered:
        if row.session_id in seen:
            continue
        seen.add(row.session_id)
        records.append(SessionRecord.from_row(row))

    logger.debug(f"Extracted {len(records)} sessions from {len(rows)} rows")
    return SessionExtraction(records=records, total_questions=len(rows))

"""Chat log workbooks stored in Cloud Storage.

Each calendar year has one ``.xlsx`` workbook and each month one sheet named
after the month. Row 1 is the header.
"""

import io
import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel

from src.config import Settings

from .exceptions import DataShapeError, DataUnavailableError, StorageNotFoundError
from .storage import StorageClient

logger = logging.getLogger(__name__)


def validate_header(header: Iterable[str], required: Sequence[str]) -> None:
    """Raise DataShapeError naming every required column absent from the header."""
    present = set(header)
    missing = [column for column in required if column not in present]
    if missing:
        raise DataShapeError(f"Missing required columns: {', '.join(missing)}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class LogSheetSource:
    """Read raw chat-log rows for one month."""

    def __init__(self, storage: StorageClient, settings: Settings):
        self.storage = storage
        self.settings = settings

    def workbook_name(self, year: int) -> str:
        return self.settings.workbook_name_pattern.format(year=year)

    async def read_month(self, year: int, month_name: str) -> list[dict[str, Any]]:
        """
        Read every non-blank row of a month sheet.

        Args:
            year: Calendar year selecting the workbook
            month_name: English month name selecting the sheet

        Returns:
            Row dicts keyed by the configured session/date/time column names

        Raises:
            DataUnavailableError: Workbook or sheet not found
            DataShapeError: Required columns missing from the header
        """
        name = self.workbook_name(year)
        try:
            content = await self.storage.download_file(name, self.settings.logs_folder)
        except StorageNotFoundError:
            raise DataUnavailableError(f"Log workbook '{name}' not found in '{self.settings.logs_folder}'")

        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (BadZipFile, OSError, KeyError) as e:
            raise DataUnavailableError(f"Log workbook '{name}' could not be opened: {e}")

        try:
            if month_name not in workbook.sheetnames:
                raise DataUnavailableError(f"Sheet '{month_name}' not found in '{name}'")

            rows = workbook[month_name].iter_rows(values_only=True)
            header = next(rows, None) or ()
            columns = [str(cell).strip() if cell is not None else "" for cell in header]

            try:
                validate_header(columns, self.settings.required_columns)
            except DataShapeError as e:
                raise DataShapeError(f"Sheet '{month_name}' in '{name}': {e}")

            indexes = {col: columns.index(col) for col in self.settings.required_columns}
            records = []
            for values in rows:
                if all(_is_blank(v) for v in values):
                    continue
                records.append({
                    col: values[idx] if idx < len(values) else None
                    for col, idx in indexes.items()
                })
        finally:
            workbook.close()

        logger.info(f"Read {len(records)} rows from '{name}' / {month_name}")
        return records


def coerce_date(value: Any) -> date:
    """Calendar part of a date cell."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 1:
        # General-formatted cell holding an Excel date serial
        return from_excel(value).date()
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%m/%d/%Y", "%d.%m.%Y"):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
    raise ValueError(f"Unrecognized date value: {value!r}")


def coerce_time(value: Any) -> time:
    """Time-of-day part of a time cell."""
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value < 1:
        # Excel stores a bare time as a fraction of a day
        seconds = min(round(value * 86400), 86399)
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%H:%M:%S", "%H:%M", "%I:%M:%S %p", "%I:%M %p"):
            try:
                return datetime.strptime(text, fmt).time()
            except ValueError:
                continue
    raise ValueError(f"Unrecognized time value: {value!r}")

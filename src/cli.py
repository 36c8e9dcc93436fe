"""Command-line triggers for the two pipeline stages.

Usage:
    python -m src.cli analyze [--month YYYY-MM]
    python -m src.cli report
"""

import argparse
import asyncio
import json
import logging
import sys

from src.config import get_settings
from src.core.exceptions import ReportPipelineError
from src.features.reports.periods import ReportPeriod
from src.features.reports.service import get_report_service
from src.main import configure_logging

logger = logging.getLogger(__name__)


async def run(stage: str, month: str | None = None) -> int:
    """Run one stage and print its result. Returns the exit code."""
    service = get_report_service()
    try:
        if stage == "analyze":
            period = ReportPeriod.parse(month) if month else None
            result = await service.analyze(period=period)
        else:
            result = await service.generate_report()
    except ReportPipelineError as e:
        logger.error(f"{stage} failed: {e}")
        return 1

    print(json.dumps(result.model_dump(), indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Monthly chat report pipeline")
    subparsers = parser.add_subparsers(dest="stage", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Compute metrics and upload charts")
    analyze_parser.add_argument("--month", help="Target month as YYYY-MM (default: previous month)")
    subparsers.add_parser("report", help="Generate the narrative report document")

    args = parser.parse_args()
    configure_logging(get_settings().log_level)

    month = getattr(args, "month", None)
    if month:
        try:
            ReportPeriod.parse(month)
        except ValueError as e:
            parser.error(str(e))

    sys.exit(asyncio.run(run(args.stage, month)))


if __name__ == "__main__":
    main()

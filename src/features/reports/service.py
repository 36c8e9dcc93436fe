"""Monthly report pipeline: analyze and report stages."""

import logging
from datetime import date, datetime, timezone
from functools import lru_cache

from src.config import Settings, get_settings
from src.core.charts import ChartRenderer, get_chart_renderer
from src.core.documents import ReportDocument
from src.core.exceptions import (
    DataShapeError,
    DataUnavailableError,
    MissingStateError,
    StorageNotFoundError,
)
from src.core.firestore import FirestoreClient, get_firestore_client
from src.core.gemini import GeminiClient, get_gemini_client
from src.core.spreadsheet import LogSheetSource
from src.core.storage import StorageClient, get_storage_client, join_path

from .aggregation import (
    build_period_metrics,
    compute_peak_trough,
    filter_records,
    group_by_and_count,
)
from .metrics import SessionExtraction, extract_sessions, parse_rows
from .models import PeriodMetrics, PipelineStatus, SessionRecord, StageResult
from .periods import ReportPeriod, resolve_periods
from .prompts import SYSTEM_PROMPT, build_narrative_prompt, extract_marked_section
from .state import ReportState, ReportStateStore

logger = logging.getLogger(__name__)

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Chart key -> (title, x label, y label)
CHARTS = {
    "hourly": ("Sessions by Hour", "Hour of day", "Sessions"),
    "weekday_hourly": ("Weekday Sessions by Hour", "Hour of day", "Sessions"),
    "weekend_hourly": ("Weekend Sessions by Hour", "Hour of day", "Sessions"),
    "daily": ("Sessions by Day of Week", "Day", "Sessions"),
}

MONTH_YEAR_PLACEHOLDER = "{{MONTH_YEAR}}"
NARRATIVE_PLACEHOLDER = "{{NARRATIVE}}"

# Placeholder -> charts inserted side by side in its place
IMAGE_PLACEHOLDERS = {
    "{{CHART_HOURLY}}": ["hourly"],
    "{{CHART_WEEKDAY_WEEKEND}}": ["weekday_hourly", "weekend_hourly"],
    "{{CHART_DAILY}}": ["daily"],
}


class ReportService:
    """Service running the two pipeline stages."""

    def __init__(
        self,
        settings: Settings,
        storage: StorageClient,
        firestore: FirestoreClient,
        gemini: GeminiClient,
        charts: ChartRenderer,
        source: LogSheetSource | None = None,
    ):
        self.settings = settings
        self.storage = storage
        self.firestore = firestore
        self.gemini = gemini
        self.charts = charts
        self.source = source or LogSheetSource(storage, settings)
        self.state_store = ReportStateStore(firestore)
        self.status = PipelineStatus.IDLE

    def chart_folder(self, period: ReportPeriod) -> str:
        return join_path(self.settings.charts_folder, period.label)

    @staticmethod
    def chart_name(period: ReportPeriod, key: str) -> str:
        return f"{period.label} - {key}.png"

    def report_name(self, period: ReportPeriod) -> str:
        return self.settings.report_name_pattern.format(label=period.label)

    async def compute_metrics(self, period: ReportPeriod) -> tuple[PeriodMetrics, SessionExtraction]:
        """Read one month of logs and aggregate it."""
        rows = await self.source.read_month(period.year, period.month_name)
        raw_rows = parse_rows(
            rows,
            session_column=self.settings.session_column,
            date_column=self.settings.date_column,
            time_column=self.settings.time_column,
        )
        extraction = extract_sessions(raw_rows, sort_rows=self.settings.sort_rows_before_dedup)
        metrics = build_period_metrics(period.month_name, period.year, extraction)
        logger.info(
            f"{period.label}: {metrics.total_questions} questions, "
            f"{metrics.total_sessions} sessions"
        )
        return metrics, extraction

    def render_charts(
        self,
        metrics: PeriodMetrics,
        records: list[SessionRecord],
    ) -> dict[str, bytes]:
        """Render every report chart in memory."""
        tables = {
            "hourly": metrics.hourly_counts,
            "weekday_hourly": group_by_and_count(filter_records(records, weekend=False), "hour"),
            "weekend_hourly": group_by_and_count(filter_records(records, weekend=True), "hour"),
            "daily": metrics.daily_counts,
        }
        images = {}
        for key, (title, x_label, y_label) in CHARTS.items():
            images[key] = self.charts.render_bar_chart(
                tables[key],
                title=f"{title} - {metrics.label}",
                x_label=x_label,
                y_label=y_label,
            )
        return images

    async def analyze(
        self,
        period: ReportPeriod | None = None,
        today: date | None = None,
    ) -> StageResult:
        """
        Stage 1: compute the target month's metrics, persist them and upload charts.

        Args:
            period: Target month override (defaults to the previous month)
            today: Run date used to resolve the default target month

        Returns:
            Stage result with the uploaded chart locations
        """
        if period:
            target, reference = period, period.previous()
        else:
            target, reference = resolve_periods(today)

        self.status = PipelineStatus.STAGE_ONE_RUNNING
        logger.info(f"Analyze stage started for {target.label} (reference {reference.label})")

        try:
            metrics, extraction = await self.compute_metrics(target)
            images = self.render_charts(metrics, extraction.records)

            # Metrics are persisted only once everything above succeeded
            await self.state_store.save(ReportState(
                metrics=metrics,
                reference=reference,
                analyzed_at=datetime.now(timezone.utc),
            ))

            folder = self.chart_folder(target)
            await self.storage.ensure_folder(folder)
            locations = []
            for key, image in images.items():
                location = await self.storage.upload_file(
                    image, self.chart_name(target, key), folder, content_type="image/png"
                )
                locations.append(location)
        except Exception as e:
            self.status = PipelineStatus.FAILED
            logger.error(f"Analyze stage failed for {target.label}: {type(e).__name__}: {e}")
            raise

        self.status = PipelineStatus.STAGE_ONE_COMPLETE
        logger.info(f"Analyze stage complete for {target.label}: {len(locations)} charts uploaded")
        return StageResult(
            stage="analyze",
            status=self.status,
            period=target.label,
            total_questions=metrics.total_questions,
            total_sessions=metrics.total_sessions,
            locations=locations,
        )

    async def reference_metrics(self, period: ReportPeriod, warnings: list[str]) -> PeriodMetrics:
        """Recompute the reference month, falling back to zero values."""
        try:
            metrics, _ = await self.compute_metrics(period)
            return metrics
        except (DataUnavailableError, DataShapeError) as e:
            message = f"Reference month {period.label} unavailable, using zero values: {e}"
            logger.warning(message)
            warnings.append(message)
            return PeriodMetrics(month_name=period.month_name, year=period.year)

    async def load_state(self) -> ReportState:
        """Load the persisted analysis state."""
        return await self.state_store.load()

    async def generate_report(self) -> StageResult:
        """
        Stage 2: write the narrative and assemble the report document.

        Returns:
            Stage result with the report location
        """
        self.status = PipelineStatus.STAGE_TWO_RUNNING
        warnings: list[str] = []
        target_label = "unknown period"

        try:
            api_key = await self.firestore.get_property(self.settings.api_key_property)
            if not api_key:
                raise MissingStateError(
                    f"API key property '{self.settings.api_key_property}' is not set"
                )

            state = await self.state_store.load()
            current = state.metrics
            target = state.target
            target_label = target.label
            logger.info(f"Report stage started for {target_label}")

            reference = await self.reference_metrics(state.reference, warnings)

            if not await self.storage.file_exists(self.settings.template_name, self.settings.templates_folder):
                raise StorageNotFoundError(
                    f"Template '{self.settings.template_name}' not found in '{self.settings.templates_folder}'"
                )
            if not await self.storage.folder_exists(self.settings.reports_folder):
                raise StorageNotFoundError(f"Reports folder '{self.settings.reports_folder}' not found")

            peak_trough = compute_peak_trough(current.daily_counts)
            prompt = build_narrative_prompt(current, reference, peak_trough)
            response = await self.gemini.generate_text(
                prompt, system_prompt=SYSTEM_PROMPT, api_key=api_key
            )
            narrative = extract_marked_section(response)

            template = await self.storage.download_file(
                self.settings.template_name, self.settings.templates_folder
            )
            document = ReportDocument(template)
            await self.fill_document(document, target, narrative, warnings)
            content = document.to_bytes()

            name = self.report_name(target)
            if await self.storage.delete_file(name, self.settings.reports_folder):
                logger.info(f"Replaced previous report '{name}'")
            location = await self.storage.upload_file(
                content, name, self.settings.reports_folder, content_type=DOCX_CONTENT_TYPE
            )
        except Exception as e:
            self.status = PipelineStatus.FAILED
            logger.error(f"Report stage failed for {target_label}: {type(e).__name__}: {e}")
            raise

        self.status = PipelineStatus.DONE
        logger.info(f"Report for {target_label} written to {location}")
        return StageResult(
            stage="report",
            status=self.status,
            period=target_label,
            total_questions=current.total_questions,
            total_sessions=current.total_sessions,
            locations=[location],
            warnings=warnings,
        )

    async def fill_document(
        self,
        document: ReportDocument,
        period: ReportPeriod,
        narrative: str,
        warnings: list[str],
    ) -> None:
        """Substitute text and chart placeholders, collecting warnings for misses."""

        def warn(message: str) -> None:
            logger.warning(message)
            warnings.append(message)

        for placeholder, text in (
            (MONTH_YEAR_PLACEHOLDER, period.label),
            (NARRATIVE_PLACEHOLDER, narrative),
        ):
            if not document.replace_text(placeholder, text):
                warn(f"Placeholder {placeholder} not found in template")

        folder = self.chart_folder(period)
        for placeholder, keys in IMAGE_PLACEHOLDERS.items():
            if document.find_paragraph(placeholder) is None:
                warn(f"Placeholder {placeholder} not found in template")
                continue

            images = []
            for key in keys:
                name = self.chart_name(period, key)
                try:
                    images.append(await self.storage.download_file(name, folder))
                except StorageNotFoundError:
                    warn(f"Chart '{name}' not found in '{folder}'")
            if not images:
                continue

            width = self.settings.chart_width_inches / len(keys)
            document.insert_images(placeholder, images, width)


@lru_cache
def get_report_service() -> ReportService:
    """Get the process-wide report service instance."""
    settings = get_settings()
    return ReportService(
        settings=settings,
        storage=get_storage_client(),
        firestore=get_firestore_client(),
        gemini=get_gemini_client(),
        charts=get_chart_renderer(),
    )

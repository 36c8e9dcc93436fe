"""Shared fixtures and in-memory fakes for the report pipeline."""

import io
from datetime import date, time

import pytest
from docx import Document
from fastapi.testclient import TestClient
from openpyxl import Workbook

from src.config import Settings
from src.core.charts import ChartRenderer
from src.core.exceptions import StorageNotFoundError
from src.core.rate_limiter import limiter
from src.core.storage import join_path
from src.features.reports.service import ReportService, get_report_service
from src.main import app

HEADER = ["sessionID", "date", "time"]

# 2026-09-01 is a Tuesday
SEPTEMBER_ROWS = [
    HEADER,
    ["s1", date(2026, 9, 1), time(9, 10)],
    ["s1", date(2026, 9, 1), time(9, 20)],
    ["s2", date(2026, 9, 1), time(14, 0)],
    ["s3", date(2026, 9, 2), time(14, 30)],
    ["s3", date(2026, 9, 2), time(14, 35)],
    ["s3", date(2026, 9, 2), time(14, 40)],
    ["s4", date(2026, 9, 5), time(11, 0)],
    ["s5", date(2026, 9, 6), time(20, 0)],
]

TEMPLATE_PARAGRAPHS = [
    "Chat Assistant Report {{MONTH_YEAR}}",
    "{{NARRATIVE}}",
    "{{CHART_HOURLY}}",
    "{{CHART_WEEKDAY_WEEKEND}}",
    "{{CHART_DAILY}}",
]


class FakeStorage:
    """In-memory stand-in for StorageClient."""

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.folders: set[str] = set()

    async def folder_exists(self, folder: str) -> bool:
        prefix = join_path(folder)
        return prefix in self.folders or any(path.startswith(prefix + "/") for path in self.files)

    async def create_folder(self, folder: str) -> str:
        self.folders.add(join_path(folder))
        return f"gs://test-bucket/{join_path(folder)}/"

    async def ensure_folder(self, folder: str) -> str:
        return await self.create_folder(folder)

    async def file_exists(self, name: str, folder: str = "") -> bool:
        return join_path(folder, name) in self.files

    async def upload_file(
        self,
        file_content: bytes,
        name: str,
        folder: str = "",
        content_type: str = "application/octet-stream",
    ) -> str:
        path = join_path(folder, name)
        self.files[path] = file_content
        return f"gs://test-bucket/{path}"

    async def download_file(self, name: str, folder: str = "") -> bytes:
        path = join_path(folder, name)
        if path not in self.files:
            raise StorageNotFoundError(f"File not found: {path}")
        return self.files[path]

    async def delete_file(self, name: str, folder: str = "") -> bool:
        return self.files.pop(join_path(folder, name), None) is not None


class FakeFirestore:
    """In-memory stand-in for the FirestoreClient property store."""

    def __init__(self):
        self.properties: dict[str, str] = {}

    async def set_properties(self, properties: dict[str, str]) -> None:
        self.properties.update(properties)

    async def get_property(self, key: str) -> str | None:
        return self.properties.get(key)

    async def get_properties(self) -> dict[str, str]:
        return dict(self.properties)


class FakeGemini:
    """Returns a canned response, or raises it when it is an exception."""

    def __init__(self):
        self.response: str | Exception = "[[SUMMARY]]\nUsage grew steadily this month.\n[[END]]"
        self.prompts: list[str] = []
        self.api_keys: list[str | None] = []

    async def generate_text(self, prompt, system_prompt=None, api_key=None, model_id=None):
        self.prompts.append(prompt)
        self.api_keys.append(api_key)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def make_workbook(sheets: dict[str, list[list]]) -> bytes:
    """Build .xlsx bytes with one sheet per entry."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def make_template(paragraphs: list[str]) -> bytes:
    """Build .docx bytes with one paragraph per entry."""
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def settings():
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, gcs_bucket_name="test-bucket")


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def firestore():
    return FakeFirestore()


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture
def charts():
    return ChartRenderer(width=4, height=3, dpi=40)


@pytest.fixture
def png(charts):
    """A small real PNG image."""
    return charts.render_bar_chart({"a": 1, "b": 2}, title="t", x_label="x", y_label="y")


@pytest.fixture
def service(settings, storage, firestore, gemini, charts):
    return ReportService(
        settings=settings,
        storage=storage,
        firestore=firestore,
        gemini=gemini,
        charts=charts,
    )


@pytest.fixture
def upload_workbook(storage, settings):
    """Store a log workbook for a year."""

    def _upload(year: int, sheets: dict[str, list[list]]) -> None:
        name = settings.workbook_name_pattern.format(year=year)
        storage.files[join_path(settings.logs_folder, name)] = make_workbook(sheets)

    return _upload


@pytest.fixture
def report_storage(storage, settings):
    """Storage holding the template and an empty reports folder."""
    storage.files[join_path(settings.templates_folder, settings.template_name)] = make_template(
        TEMPLATE_PARAGRAPHS
    )
    storage.folders.add(settings.reports_folder)
    return storage


@pytest.fixture
def client(service):
    """Test client with the report service wired to the fakes."""
    app.dependency_overrides[get_report_service] = lambda: service
    limiter.enabled = False
    yield TestClient(app)
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def september_rows():
    """Eight turns across five sessions in September 2026."""
    return [list(row) for row in SEPTEMBER_ROWS]


@pytest.fixture
def template_factory():
    return make_template


@pytest.fixture
def workbook_factory():
    return make_workbook

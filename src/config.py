"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google Cloud
    google_cloud_project: str = ""

    # Gemini / Vertex AI
    vertex_region: str = "europe-west1"
    narrative_model: str = "gemini-2.5-flash"
    api_key_property: str = "GEMINI_API_KEY"

    # Cloud Storage
    gcs_bucket_name: str = ""
    logs_folder: str = "Chat Logs"
    charts_folder: str = "Charts"
    reports_folder: str = "Reports"
    templates_folder: str = "Templates"
    template_name: str = "Monthly Report Template.docx"
    workbook_name_pattern: str = "Chat Logs {year}.xlsx"
    report_name_pattern: str = "Monthly Report - {label}.docx"

    # Log sheet columns
    session_column: str = "sessionID"
    date_column: str = "date"
    time_column: str = "time"

    # Firestore key-value store
    state_collection: str = "report_state"
    state_document: str = "properties"

    # Report layout
    chart_width_inches: float = 6.0
    sort_rows_before_dedup: bool = False

    # Application
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8080
    log_level: str = "INFO"

    # Rate limiting
    rate_limit_per_minute: int = 10

    @property
    def required_columns(self) -> list[str]:
        return [self.session_column, self.date_column, self.time_column]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Exceptions raised by the reporting pipeline."""


class ReportPipelineError(Exception):
    """Base class for pipeline failures that abort a stage."""

    pass


class DataUnavailableError(ReportPipelineError):
    """Raised when a log workbook or month sheet cannot be located."""

    pass


class DataShapeError(ReportPipelineError):
    """Raised when a log sheet is missing required columns or values."""

    pass


class StorageNotFoundError(ReportPipelineError):
    """Raised when an expected folder, file or template is absent."""

    pass


class UpstreamServiceError(ReportPipelineError):
    """Raised when a chart, narrative or document call fails or returns an unexpected shape."""

    pass


class MissingStateError(ReportPipelineError):
    """Raised when the report stage runs without persisted analysis state."""

    pass

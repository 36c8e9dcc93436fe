"""Report pipeline API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from src.core.exceptions import (
    DataShapeError,
    DataUnavailableError,
    MissingStateError,
    ReportPipelineError,
    StorageNotFoundError,
    UpstreamServiceError,
)
from src.core.rate_limiter import get_trigger_limit, limiter

from .models import StageResult
from .periods import ReportPeriod
from .service import ReportService, get_report_service
from .state import ReportState

router = APIRouter(prefix="/api/reports", tags=["reports"])

ERROR_STATUS = {
    DataUnavailableError: status.HTTP_404_NOT_FOUND,
    StorageNotFoundError: status.HTTP_404_NOT_FOUND,
    DataShapeError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UpstreamServiceError: status.HTTP_502_BAD_GATEWAY,
    MissingStateError: status.HTTP_409_CONFLICT,
}


def _to_http_error(error: ReportPipelineError) -> HTTPException:
    code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return HTTPException(status_code=code, detail=str(error))


@router.post("/analyze", response_model=StageResult)
@limiter.limit(get_trigger_limit)
async def analyze(
    request: Request,
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    service: ReportService = Depends(get_report_service),
):
    """
    Run the analyze stage.

    Computes metrics for the previous calendar month, or for year/month
    when both are given, persists them and uploads the charts.
    """
    if (year is None) != (month is None):
        raise HTTPException(status_code=400, detail="Provide both year and month, or neither")

    period = ReportPeriod(year=year, month=month) if year is not None else None
    try:
        return await service.analyze(period=period)
    except ReportPipelineError as e:
        raise _to_http_error(e)


@router.post("/generate", response_model=StageResult)
@limiter.limit(get_trigger_limit)
async def generate(
    request: Request,
    service: ReportService = Depends(get_report_service),
):
    """
    Run the report stage.

    Requires a completed analyze stage. Returns the report location.
    """
    try:
        return await service.generate_report()
    except ReportPipelineError as e:
        raise _to_http_error(e)


@router.get("/state", response_model=ReportState)
async def get_state(service: ReportService = Depends(get_report_service)):
    """Get the analysis state persisted by the last analyze run."""
    try:
        return await service.load_state()
    except MissingStateError as e:
        raise _to_http_error(e)


@router.get("/status")
async def get_status(service: ReportService = Depends(get_report_service)):
    """Get the lifecycle status of the last stage run in this process."""
    return {"status": service.status.value}

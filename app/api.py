"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)
from fastapi.responses import PlainTextResponse

from app.schemas import (
    AnalysisResult,
    AnalyzeResponse,
    FileUploadResponse,
    MachineResult,
    ProcessingStatus,
    Summary,
)
from services.errors import AnalysisError
from services.exporter import EXPORT_FILENAME, export_rows
from services.parser import InputFormat
from services.pipeline import ProcessorService, build_default_processor, decode_upload

router = APIRouter()


def get_processor() -> ProcessorService:
    return build_default_processor()


@router.post(
    "/uploads",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=FileUploadResponse,
    summary="Upload machine sensor data for asynchronous risk analysis.",
)
async def upload_file(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(..., description="CSV or whitespace separated sensor readings."),
    input_format: Optional[InputFormat] = Query(
        None,
        alias="format",
        description="Skip format detection and parse with the given layout.",
    ),
    processor: ProcessorService = Depends(get_processor),
) -> FileUploadResponse:
    try:
        upload_id = processor.enqueue_file(background_tasks, file, input_format)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return FileUploadResponse(upload_id=upload_id)


@router.get(
    "/uploads/{upload_id}",
    response_model=AnalysisResult,
    summary="Fetch processing status, classified machines and summary for an upload.",
)
async def get_upload_result(
    upload_id: str,
    processor: ProcessorService = Depends(get_processor),
) -> AnalysisResult:
    try:
        return processor.fetch_result(upload_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/uploads/{upload_id}/export",
    response_class=PlainTextResponse,
    summary="Download the classified machines of an upload as CSV.",
)
async def export_upload(
    upload_id: str,
    processor: ProcessorService = Depends(get_processor),
) -> PlainTextResponse:
    try:
        result = processor.fetch_result(upload_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    if result.status is not ProcessingStatus.processed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Upload {upload_id!r} is {result.status.value}; nothing to export.",
        )

    body = export_rows(machine.to_scored() for machine in result.machines)
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get(
    "/machines",
    response_model=AnalysisResult,
    summary="Current fleet: the most recent successfully processed upload.",
)
async def get_current_machines(
    processor: ProcessorService = Depends(get_processor),
) -> AnalysisResult:
    try:
        return processor.fetch_latest()
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Parse and classify sensor text synchronously.",
)
async def analyze_text(
    request: Request,
    input_format: Optional[InputFormat] = Query(None, alias="format"),
    processor: ProcessorService = Depends(get_processor),
) -> AnalyzeResponse:
    try:
        text = decode_upload(await request.body())
        batch = processor.analyze_text(text, input_format)
    except AnalysisError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "code": exc.code,
                "reason": exc.message,
                "row_number": exc.row_number,
                "field": exc.field,
            },
        ) from exc
    return AnalyzeResponse(
        input_format=batch.input_format.value,
        machines=[MachineResult.from_scored(machine) for machine in batch.machines],
        summary=Summary.from_summary(batch.summary),
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}

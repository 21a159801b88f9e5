"""Upload processing orchestration: store, parse, classify, summarize."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from fastapi import BackgroundTasks, UploadFile

from app.schemas import (
    STAGE_PROGRESS,
    AnalysisResult,
    MachineResult,
    ProcessingError,
    ProcessingStage,
    ProcessingStatus,
    Summary,
)
from datastore.result_table import ResultTable, build_default_table
from models.records import MachineRecord, ScoredMachineRecord
from services.aggregator import Aggregator, RiskSummary
from services.classifier import RiskClassifier, build_classifier
from services.errors import AnalysisError, EmptySubmission, InvalidEncoding, TooManyRows
from services.parser import InputFormat, detect_format, parse
from settings import get_settings
from storage.upload_store import UploadStore, build_default_store

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROWS = 10_000


@dataclass
class AnalysisBatch:
    """One complete parsed-and-classified submission."""

    input_format: InputFormat
    machines: List[ScoredMachineRecord]
    summary: RiskSummary


def resolve_format(text: str, fmt: Optional[InputFormat]) -> InputFormat:
    if fmt is not None:
        return fmt
    for line in text.split("\n"):
        if line.strip():
            return detect_format(line)
    return InputFormat.positional


def enforce_size_policy(records: Sequence[MachineRecord], max_rows: int) -> None:
    """Reject a parsed submission that is empty or larger than ``max_rows``."""
    if len(records) > max_rows:
        raise TooManyRows(len(records), max_rows)
    if not records:
        raise EmptySubmission()


def decode_upload(raw_bytes: bytes) -> str:
    try:
        return raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidEncoding() from None


def run_analysis(
    text: str,
    classifier: RiskClassifier,
    aggregator: Aggregator,
    max_rows: int = DEFAULT_MAX_ROWS,
    fmt: Optional[InputFormat] = None,
) -> AnalysisBatch:
    """Parse, size-check, classify and summarize ``text`` in one go."""
    input_format = resolve_format(text, fmt)
    records = parse(text, input_format)
    enforce_size_policy(records, max_rows)
    machines = classifier.classify_all(records)
    return AnalysisBatch(
        input_format=input_format,
        machines=machines,
        summary=aggregator.summarize(machines),
    )


class ProcessorService:
    """Coordinates storage, background analysis, and result retrieval."""

    def __init__(
        self,
        store: UploadStore,
        table: ResultTable,
        aggregator: Aggregator,
        classifier: RiskClassifier,
        workers: int = 4,
        max_rows: int = DEFAULT_MAX_ROWS,
        stage_delay: float = 0.0,
    ) -> None:
        self.store = store
        self.table = table
        self.aggregator = aggregator
        self.classifier = classifier
        self.max_rows = max_rows
        self.stage_delay = stage_delay
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self._futures: Dict[str, Future[None]] = {}
        self._futures_lock = Lock()

    def enqueue_file(
        self,
        background_tasks: BackgroundTasks,
        file: UploadFile,
        fmt: Optional[InputFormat] = None,
    ) -> str:
        """Persist file data and trigger asynchronous analysis."""
        upload_id = str(uuid4())
        filename = Path(file.filename or "upload.csv").name
        key = f"{upload_id}/{filename}"

        file.file.seek(0)
        contents = file.file.read()
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        if not contents:
            raise ValueError("Uploaded file is empty.")

        self.store.put_object(key, contents)

        uploaded_at = datetime.now(timezone.utc)
        self.table.put_item(
            AnalysisResult(
                upload_id=upload_id,
                status=ProcessingStatus.uploaded,
                filename=filename,
                uploaded_at=uploaded_at,
            )
        )
        logger.info(
            "Accepted upload", extra={"upload_id": upload_id, "object_key": key}
        )

        future = self.executor.submit(
            self._process_file,
            upload_id=upload_id,
            key=key,
            filename=filename,
            uploaded_at=uploaded_at,
            fmt=fmt,
        )
        with self._futures_lock:
            self._futures[upload_id] = future
        future.add_done_callback(lambda _f, uid=upload_id: self._clear_future(uid))

        background_tasks.add_task(file.close)
        return upload_id

    def analyze_text(self, text: str, fmt: Optional[InputFormat] = None) -> AnalysisBatch:
        """Run the whole analysis synchronously. Raises ``AnalysisError``."""
        return run_analysis(text, self.classifier, self.aggregator, self.max_rows, fmt)

    def fetch_result(self, upload_id: str) -> AnalysisResult:
        """Retrieve analysis output from the result table."""
        result = self.table.get_item(upload_id)
        if result is None:
            raise KeyError(f"Analysis result for upload {upload_id!r} not found.")
        return result

    def fetch_latest(self) -> AnalysisResult:
        """Most recent successful upload; it supersedes every earlier one."""
        processed = [
            result
            for result in self.table.scan()
            if result.status is ProcessingStatus.processed and result.processed_at
        ]
        if not processed:
            raise KeyError("No processed uploads available yet.")
        return max(processed, key=lambda result: result.processed_at)

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _clear_future(self, upload_id: str) -> None:
        with self._futures_lock:
            self._futures.pop(upload_id, None)

    def _advance(self, result: AnalysisResult, stage: ProcessingStage) -> None:
        result.stage = stage
        result.progress = STAGE_PROGRESS[stage]
        self.table.put_item(result)
        logger.debug(
            "Upload stage changed",
            extra={"upload_id": result.upload_id, "stage": stage.value},
        )
        if self.stage_delay:
            time.sleep(self.stage_delay)

    def _process_file(
        self,
        upload_id: str,
        key: str,
        filename: str,
        uploaded_at: datetime,
        fmt: Optional[InputFormat] = None,
    ) -> None:
        start_time = time.perf_counter()
        result = AnalysisResult(
            upload_id=upload_id,
            status=ProcessingStatus.processing,
            filename=filename,
            uploaded_at=uploaded_at,
        )

        try:
            self._advance(result, ProcessingStage.reading)
            text = decode_upload(self.store.get_object(key))

            self._advance(result, ProcessingStage.parsing)
            input_format = resolve_format(text, fmt)
            result.input_format = input_format.value
            records = parse(text, input_format)

            self._advance(result, ProcessingStage.validating)
            enforce_size_policy(records, self.max_rows)

            self._advance(result, ProcessingStage.classifying)
            machines = self.classifier.classify_all(records)
            summary = self.aggregator.summarize(machines)

            result.machines = [MachineResult.from_scored(machine) for machine in machines]
            result.summary = Summary.from_summary(summary)
            result.status = ProcessingStatus.processed
            result.stage = ProcessingStage.complete
            result.progress = STAGE_PROGRESS[ProcessingStage.complete]
        except AnalysisError as exc:
            logger.warning(
                "Rejected upload: %s",
                exc.message,
                extra={
                    "upload_id": upload_id,
                    "object_key": key,
                    "error_code": exc.code,
                    "row_number": exc.row_number,
                    "field": exc.field,
                },
            )
            result.status = ProcessingStatus.failed
            result.errors = [
                ProcessingError(
                    code=exc.code,
                    reason=exc.message,
                    row_number=exc.row_number,
                    field=exc.field,
                )
            ]
        except Exception as exc:
            logger.exception(
                "Unexpected failure while processing upload",
                extra={"upload_id": upload_id, "object_key": key},
            )
            result.status = ProcessingStatus.failed
            result.errors = [ProcessingError(code="internal_error", reason=str(exc))]

        result.processed_at = datetime.now(timezone.utc)
        result.processing_ms = int((time.perf_counter() - start_time) * 1000)
        self.table.put_item(result)
        logger.info(
            "Finished upload",
            extra={
                "upload_id": upload_id,
                "status": result.status.value,
                "processing_ms": result.processing_ms,
                "row_count": len(result.machines),
            },
        )


@lru_cache
def build_default_processor(
    workers: Optional[int] = None,
) -> ProcessorService:
    """Factory that wires the processor from environment settings."""
    settings = get_settings()
    return ProcessorService(
        store=build_default_store(),
        table=build_default_table(),
        aggregator=Aggregator(),
        classifier=build_classifier(settings.risk_score_mode, settings.risk_score_seed),
        workers=workers or settings.processor_workers,
        max_rows=settings.max_upload_rows,
        stage_delay=settings.stage_delay_seconds,
    )

"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import RiskLevel, ScoredMachineRecord
from services.aggregator import RiskSummary


class ProcessingStatus(str, Enum):
    """Processing lifecycle states exposed via the API."""

    uploaded = "uploaded"
    processing = "processing"
    processed = "processed"
    failed = "failed"


class ProcessingStage(str, Enum):
    """Steps an upload walks through, in order."""

    queued = "queued"
    reading = "reading"
    parsing = "parsing"
    validating = "validating"
    classifying = "classifying"
    complete = "complete"


STAGE_PROGRESS: Dict[ProcessingStage, int] = {
    ProcessingStage.queued: 0,
    ProcessingStage.reading: 20,
    ProcessingStage.parsing: 40,
    ProcessingStage.validating: 60,
    ProcessingStage.classifying: 80,
    ProcessingStage.complete: 100,
}


class FileUploadResponse(BaseModel):
    """Immediate response payload after accepting a file upload."""

    upload_id: str = Field(..., description="Generated identifier for the uploaded file.")


class MachineResult(BaseModel):
    """One classified machine, using the export column names."""

    machine_id: str
    temp: float
    vibration: float
    runtime: float
    risk_level: RiskLevel
    risk_score: float = Field(..., ge=0.0, lt=1.0)
    prediction_confidence: float = Field(..., ge=0.85, lt=1.0)

    @classmethod
    def from_scored(cls, machine: ScoredMachineRecord) -> "MachineResult":
        return cls(
            machine_id=machine.machine_id,
            temp=machine.temperature,
            vibration=machine.vibration,
            runtime=machine.runtime_hours,
            risk_level=machine.risk_level,
            risk_score=machine.risk_score,
            prediction_confidence=machine.prediction_confidence,
        )

    def to_scored(self) -> ScoredMachineRecord:
        return ScoredMachineRecord(
            machine_id=self.machine_id,
            temperature=self.temp,
            vibration=self.vibration,
            runtime_hours=self.runtime,
            risk_level=self.risk_level,
            risk_score=self.risk_score,
            prediction_confidence=self.prediction_confidence,
        )


class Summary(BaseModel):
    """Fleet statistics computed for a processed upload."""

    machine_count: int = Field(..., ge=0)
    healthy_count: int = Field(0, ge=0)
    at_risk_count: int = Field(0, ge=0)
    critical_count: int = Field(0, ge=0)
    mean_risk_score: Optional[float] = None
    max_temperature: Optional[float] = None
    max_vibration: Optional[float] = None
    max_runtime_hours: Optional[float] = None
    score_histogram: List[int] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: RiskSummary) -> "Summary":
        return cls(
            machine_count=summary.machine_count,
            healthy_count=summary.level_counts[RiskLevel.healthy],
            at_risk_count=summary.level_counts[RiskLevel.at_risk],
            critical_count=summary.level_counts[RiskLevel.critical],
            mean_risk_score=summary.mean_risk_score,
            max_temperature=summary.max_temperature,
            max_vibration=summary.max_vibration,
            max_runtime_hours=summary.max_runtime_hours,
            score_histogram=list(summary.score_histogram),
        )


class ProcessingError(BaseModel):
    """Why a submission was rejected."""

    code: str
    reason: str
    row_number: Optional[int] = Field(default=None, ge=1)
    field: Optional[str] = None


class AnalysisResult(BaseModel):
    """Full record representing an uploaded file and its classification."""

    upload_id: str
    status: ProcessingStatus
    stage: ProcessingStage = ProcessingStage.queued
    progress: int = Field(default=0, ge=0, le=100)
    filename: Optional[str] = None
    input_format: Optional[str] = None
    uploaded_at: datetime
    processed_at: Optional[datetime] = None
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    machines: List[MachineResult] = Field(default_factory=list)
    summary: Optional[Summary] = None
    errors: List[ProcessingError] = Field(default_factory=list)


class AnalyzeResponse(BaseModel):
    """Synchronous analysis output."""

    input_format: str
    machines: List[MachineResult]
    summary: Summary

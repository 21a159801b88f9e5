"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RiskLevel(str, Enum):
    """Health bands assigned by the classifier, mildest first."""

    healthy = "Healthy"
    at_risk = "At Risk"
    critical = "Critical"


@dataclass(frozen=True, slots=True)
class MachineRecord:
    """A single validated row of machine sensor data."""

    machine_id: str
    temperature: float
    vibration: float
    runtime_hours: float


@dataclass(frozen=True, slots=True)
class RiskBreakdown:
    temp_risk: int
    vibration_risk: int
    runtime_risk: int

    @property
    def total(self) -> int:
        return self.temp_risk + self.vibration_risk + self.runtime_risk


@dataclass(frozen=True, slots=True)
class ScoredMachineRecord:
    """A machine record with its assigned risk band, score and confidence."""

    machine_id: str
    temperature: float
    vibration: float
    runtime_hours: float
    risk_level: RiskLevel
    risk_score: float
    prediction_confidence: float

    @classmethod
    def from_record(
        cls,
        record: MachineRecord,
        risk_level: RiskLevel,
        risk_score: float,
        prediction_confidence: float,
    ) -> "ScoredMachineRecord":
        return cls(
            machine_id=record.machine_id,
            temperature=record.temperature,
            vibration=record.vibration,
            runtime_hours=record.runtime_hours,
            risk_level=risk_level,
            risk_score=risk_score,
            prediction_confidence=prediction_confidence,
        )

"""Fleet-level statistics for a batch of scored machines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from models.records import RiskLevel, ScoredMachineRecord

HISTOGRAM_BINS = 10


def _empty_level_counts() -> Dict[RiskLevel, int]:
    return {level: 0 for level in RiskLevel}


def _empty_histogram() -> List[int]:
    return [0] * HISTOGRAM_BINS


@dataclass
class RiskSummary:
    """Computed statistics for one classified upload."""

    machine_count: int = 0
    level_counts: Dict[RiskLevel, int] = field(default_factory=_empty_level_counts)
    mean_risk_score: float | None = None
    max_temperature: float | None = None
    max_vibration: float | None = None
    max_runtime_hours: float | None = None
    score_histogram: List[int] = field(default_factory=_empty_histogram)


def _max(current: float | None, value: float) -> float:
    return value if current is None or value > current else current


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize(self, machines: Iterable[ScoredMachineRecord]) -> RiskSummary:
        summary = RiskSummary()
        total_score = 0.0

        for machine in machines:
            summary.machine_count += 1
            summary.level_counts[machine.risk_level] += 1
            total_score += machine.risk_score

            summary.max_temperature = _max(summary.max_temperature, machine.temperature)
            summary.max_vibration = _max(summary.max_vibration, machine.vibration)
            summary.max_runtime_hours = _max(summary.max_runtime_hours, machine.runtime_hours)

            bin_index = min(int(machine.risk_score * HISTOGRAM_BINS), HISTOGRAM_BINS - 1)
            summary.score_histogram[max(bin_index, 0)] += 1

        if summary.machine_count:
            summary.mean_risk_score = total_score / summary.machine_count

        return summary

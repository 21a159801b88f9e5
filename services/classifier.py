"""Rule-based machine health classification."""

from __future__ import annotations

import math
import random
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from models.records import MachineRecord, RiskBreakdown, RiskLevel, ScoredMachineRecord

TEMP_CRITICAL = 80.0
TEMP_WARNING = 65.0
VIBRATION_CRITICAL = 8.0
VIBRATION_WARNING = 5.0
RUNTIME_LIMIT = 20_000.0

CONFIDENCE_FLOOR = 0.85
CONFIDENCE_WIDTH = 0.15

# (minimum total risk, level, score band low, score band high), checked in order.
RISK_BANDS: Tuple[Tuple[int, RiskLevel, float, float], ...] = (
    (4, RiskLevel.critical, 0.8, 1.0),
    (2, RiskLevel.at_risk, 0.4, 0.8),
    (0, RiskLevel.healthy, 0.0, 0.3),
)


class ScoreMode(str, Enum):
    random = "random"
    deterministic = "deterministic"


def assess(record: MachineRecord) -> RiskBreakdown:
    """Compute per-axis threshold contributions. Thresholds are exclusive."""
    if record.temperature > TEMP_CRITICAL:
        temp_risk = 2
    elif record.temperature > TEMP_WARNING:
        temp_risk = 1
    else:
        temp_risk = 0

    if record.vibration > VIBRATION_CRITICAL:
        vibration_risk = 2
    elif record.vibration > VIBRATION_WARNING:
        vibration_risk = 1
    else:
        vibration_risk = 0

    runtime_risk = 1 if record.runtime_hours > RUNTIME_LIMIT else 0
    return RiskBreakdown(
        temp_risk=temp_risk,
        vibration_risk=vibration_risk,
        runtime_risk=runtime_risk,
    )


def _draw(rng: random.Random, low: float, high: float) -> float:
    # Rounding can land on ``high`` for the largest draws; keep the interval half-open.
    return min(low + rng.random() * (high - low), math.nextafter(high, low))


def band_for(total_risk: int) -> Tuple[int, RiskLevel, float, float]:
    for band in RISK_BANDS:
        if total_risk >= band[0]:
            return band
    return RISK_BANDS[-1]


class RiskClassifier:
    """Maps machine records to a risk band and a score inside that band.

    The band is always a pure function of the readings. In ``random`` mode the
    score and confidence are drawn from ``rng``; pass a seeded
    ``random.Random`` for reproducible output. ``deterministic`` mode derives
    both from the total risk instead.
    """

    def __init__(
        self,
        mode: ScoreMode = ScoreMode.random,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.mode = ScoreMode(mode)
        self._rng = rng or random.Random()

    def classify(self, record: MachineRecord) -> ScoredMachineRecord:
        total = assess(record).total
        floor, level, low, high = band_for(total)

        if self.mode is ScoreMode.deterministic:
            # Totals span two values per band, so this stays below ``high``.
            score = low + (high - low) * (total - floor) / 2
            confidence = CONFIDENCE_FLOOR + 0.025 * total
        else:
            score = _draw(self._rng, low, high)
            confidence = _draw(self._rng, CONFIDENCE_FLOOR, CONFIDENCE_FLOOR + CONFIDENCE_WIDTH)

        return ScoredMachineRecord.from_record(
            record,
            risk_level=level,
            risk_score=score,
            prediction_confidence=confidence,
        )

    def classify_all(self, records: Iterable[MachineRecord]) -> List[ScoredMachineRecord]:
        return [self.classify(record) for record in records]


def build_classifier(mode: str, seed: Optional[int] = None) -> RiskClassifier:
    rng = random.Random(seed) if seed is not None else None
    return RiskClassifier(mode=ScoreMode(mode), rng=rng)

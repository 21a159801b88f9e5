"""Unit tests for the rule-based risk classifier."""

from __future__ import annotations

import random

import pytest

from models.records import MachineRecord, RiskLevel
from services.classifier import RiskClassifier, ScoreMode, assess, build_classifier
from services.parser import parse

_BANDS = {
    RiskLevel.healthy: (0.0, 0.3),
    RiskLevel.at_risk: (0.4, 0.8),
    RiskLevel.critical: (0.8, 1.0),
}


def _record(temp: float, vibration: float, runtime: float) -> MachineRecord:
    return MachineRecord("MACH1", temp, vibration, runtime)


def test_all_thresholds_exceeded_is_critical() -> None:
    (record,) = parse("MACH1 95 9.2 25000")

    breakdown = assess(record)
    scored = RiskClassifier().classify(record)

    assert (breakdown.temp_risk, breakdown.vibration_risk, breakdown.runtime_risk) == (2, 2, 1)
    assert breakdown.total == 5
    assert scored.risk_level is RiskLevel.critical
    assert scored.machine_id == "MACH1"
    assert scored.temperature == 95.0


def test_nominal_readings_are_healthy() -> None:
    (record,) = parse("MACH1 60 2 1000")

    assert assess(record).total == 0
    assert RiskClassifier().classify(record).risk_level is RiskLevel.healthy


@pytest.mark.parametrize(
    ("record", "expected"),
    [
        (_record(80.0, 0, 0), (1, 0, 0)),
        (_record(80.0001, 0, 0), (2, 0, 0)),
        (_record(65.0, 0, 0), (0, 0, 0)),
        (_record(65.5, 0, 0), (1, 0, 0)),
        (_record(0, 8.0, 0), (0, 1, 0)),
        (_record(0, 8.01, 0), (0, 2, 0)),
        (_record(0, 5.0, 0), (0, 0, 0)),
        (_record(0, 5.01, 0), (0, 1, 0)),
        (_record(0, 0, 20000), (0, 0, 0)),
        (_record(0, 0, 20000.5), (0, 0, 1)),
    ],
)
def test_thresholds_are_exclusive(record: MachineRecord, expected: tuple[int, int, int]) -> None:
    breakdown = assess(record)

    assert (breakdown.temp_risk, breakdown.vibration_risk, breakdown.runtime_risk) == expected


@pytest.mark.parametrize(
    ("record", "level"),
    [
        (_record(70, 6, 100), RiskLevel.at_risk),
        (_record(85, 0, 100), RiskLevel.at_risk),
        (_record(70, 6, 25000), RiskLevel.at_risk),
        (_record(85, 6, 100), RiskLevel.at_risk),
        (_record(85, 9, 100), RiskLevel.critical),
        (_record(85, 6, 25000), RiskLevel.critical),
        (_record(70, 0, 25000), RiskLevel.at_risk),
        (_record(0, 0, 25000), RiskLevel.healthy),
    ],
)
def test_banding(record: MachineRecord, level: RiskLevel) -> None:
    assert RiskClassifier(rng=random.Random(1)).classify(record).risk_level is level


def test_risk_total_is_monotonic_in_each_axis() -> None:
    temps = [0, 65, 65.1, 80, 80.1, 120]
    vibrations = [0, 5, 5.1, 8, 8.1, 20]
    runtimes = [0, 20000, 20000.1, 90000]

    for temp in temps:
        for vibration in vibrations:
            totals = [assess(_record(temp, vibration, r)).total for r in runtimes]
            assert totals == sorted(totals)
        for runtime in runtimes:
            totals = [assess(_record(temp, v, runtime)).total for v in vibrations]
            assert totals == sorted(totals)
    for vibration in vibrations:
        for runtime in runtimes:
            totals = [assess(_record(t, vibration, runtime)).total for t in temps]
            assert totals == sorted(totals)


def test_random_scores_stay_within_band() -> None:
    classifier = RiskClassifier(rng=random.Random(1234))
    samples = [
        _record(temp, vibration, runtime)
        for temp in (50, 70, 90)
        for vibration in (1, 6, 9)
        for runtime in (100, 30000)
    ]

    for _ in range(50):
        for record in samples:
            scored = classifier.classify(record)
            low, high = _BANDS[scored.risk_level]
            assert low <= scored.risk_score < high
            assert 0.85 <= scored.prediction_confidence < 1.0


def test_seeded_classifiers_are_reproducible() -> None:
    record = _record(90, 9, 25000)

    first = build_classifier("random", seed=7).classify(record)
    second = build_classifier("random", seed=7).classify(record)

    assert first == second


@pytest.mark.parametrize(
    ("record", "score", "confidence"),
    [
        (_record(60, 2, 1000), 0.0, 0.85),
        (_record(70, 2, 1000), 0.15, 0.875),
        (_record(70, 6, 1000), 0.4, 0.9),
        (_record(85, 6, 1000), 0.6, 0.925),
        (_record(85, 9, 1000), 0.8, 0.95),
        (_record(85, 9, 25000), 0.9, 0.975),
    ],
)
def test_deterministic_scores(record: MachineRecord, score: float, confidence: float) -> None:
    scored = RiskClassifier(mode=ScoreMode.deterministic).classify(record)

    assert scored.risk_score == pytest.approx(score)
    assert scored.prediction_confidence == pytest.approx(confidence)


def test_classify_all_preserves_order() -> None:
    records = [_record(90, 9, 25000), _record(10, 1, 10)]

    scored = RiskClassifier(mode=ScoreMode.deterministic).classify_all(records)

    assert [machine.risk_level for machine in scored] == [RiskLevel.critical, RiskLevel.healthy]


def test_random_scores_never_reach_band_ceiling() -> None:
    class TopOfRangeRandom(random.Random):
        def random(self) -> float:
            return 1.0 - 2**-53

    classifier = RiskClassifier(rng=TopOfRangeRandom())

    critical = classifier.classify(_record(95, 9.2, 25000))
    healthy = classifier.classify(_record(60, 2, 1000))

    assert critical.risk_score < 1.0
    assert critical.prediction_confidence < 1.0
    assert healthy.risk_score < 0.3

from __future__ import annotations

from models.records import RiskLevel, ScoredMachineRecord
from services.exporter import EXPORT_HEADER, export_rows, format_number


def test_export_rows_formats_scores_to_three_places() -> None:
    machines = [
        ScoredMachineRecord("MACH001", 72.5, 4.2, 15680.0, RiskLevel.at_risk, 0.51234, 0.9),
        ScoredMachineRecord("MACH004", 91.2, 9.5, 25100.0, RiskLevel.critical, 0.8, 0.98765),
    ]

    lines = export_rows(machines).split("\n")

    assert lines == [
        "machine_id,temp,vibration,runtime,risk_level,risk_score,prediction_confidence",
        "MACH001,72.5,4.2,15680,At Risk,0.512,0.900",
        "MACH004,91.2,9.5,25100,Critical,0.800,0.988",
    ]


def test_export_rows_without_machines_is_header_only() -> None:
    assert export_rows([]) == EXPORT_HEADER


def test_format_number_drops_integral_fraction() -> None:
    assert format_number(20000.0) == "20000"
    assert format_number(-3.0) == "-3"
    assert format_number(0.1) == "0.1"

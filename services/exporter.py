"""Delimited-text export of scored machines."""

from __future__ import annotations

from typing import Iterable

from models.records import ScoredMachineRecord

EXPORT_HEADER = "machine_id,temp,vibration,runtime,risk_level,risk_score,prediction_confidence"
EXPORT_FILENAME = "machine_risk_analysis.csv"


def format_number(value: float) -> str:
    """Shortest text for a reading: ``15680`` rather than ``15680.0``."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def export_rows(machines: Iterable[ScoredMachineRecord]) -> str:
    lines = [EXPORT_HEADER]
    for machine in machines:
        lines.append(
            ",".join(
                (
                    machine.machine_id,
                    format_number(machine.temperature),
                    format_number(machine.vibration),
                    format_number(machine.runtime_hours),
                    machine.risk_level.value,
                    f"{machine.risk_score:.3f}",
                    f"{machine.prediction_confidence:.3f}",
                )
            )
        )
    return "\n".join(lines)

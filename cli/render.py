from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_LEVEL_COLORS = {
    "Healthy": typer.colors.GREEN,
    "At Risk": typer.colors.YELLOW,
    "Critical": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _percent(value: Any) -> str:
    if value is None:
        return "n/a"
    return f"{value * 100:.1f}%"


def render_summary(summary: Dict[str, Any] | None) -> None:
    echo_heading("Summary")
    if not summary:
        typer.echo("No summary available.")
        return
    echo_key_values(
        [
            ("machines", summary.get("machine_count")),
            ("healthy", summary.get("healthy_count")),
            ("at_risk", summary.get("at_risk_count")),
            ("critical", summary.get("critical_count")),
            ("mean_risk_score", _percent(summary.get("mean_risk_score"))),
        ]
    )


def render_machines(machines: List[Dict[str, Any]], limit: int) -> None:
    echo_heading("Machines")
    if not machines:
        typer.echo("No machines classified.")
        return
    typer.echo(f"{'machine_id':<14}{'temp':>8}{'vibration':>11}{'runtime':>10}  {'risk':<9}{'score':>8}")
    for machine in machines[:limit]:
        level = machine.get("risk_level", "")
        typer.echo(
            f"{machine.get('machine_id', ''):<14}"
            f"{machine.get('temp', 0.0):>8.1f}"
            f"{machine.get('vibration', 0.0):>11.1f}"
            f"{machine.get('runtime', 0.0):>10.0f}  ",
            nl=False,
        )
        typer.secho(f"{level:<9}", fg=_LEVEL_COLORS.get(level), nl=False)
        typer.echo(f"{_percent(machine.get('risk_score')):>8}")
    if len(machines) > limit:
        typer.echo(f"... {len(machines) - limit} more")


def render_errors(errors: List[Dict[str, Any]]) -> None:
    echo_heading("Errors")
    if not errors:
        typer.echo("No errors recorded.")
        return
    for error in errors:
        location = f"row {error['row_number']}" if error.get("row_number") else "file"
        typer.echo(f"  - {location}: {error.get('reason')} [{error.get('code')}]")


def render_result(payload: Dict[str, Any], limit: int = 50) -> None:
    echo_heading("Analysis Result")
    echo_key_values(
        [
            ("upload_id", payload.get("upload_id")),
            ("status", payload.get("status")),
            ("stage", payload.get("stage")),
            ("progress", f"{payload.get('progress', 0)}%"),
            ("input_format", payload.get("input_format")),
            ("uploaded_at", payload.get("uploaded_at")),
            ("processed_at", payload.get("processed_at")),
            ("processing_ms", payload.get("processing_ms")),
        ]
    )
    typer.echo()
    render_summary(payload.get("summary"))
    typer.echo()
    render_machines(payload.get("machines") or [], limit)
    typer.echo()
    render_errors(payload.get("errors") or [])

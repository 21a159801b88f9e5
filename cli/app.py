from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from app.schemas import MachineResult, Summary
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_errors, render_machines, render_result, render_summary
from services.aggregator import Aggregator
from services.classifier import ScoreMode, build_classifier
from services.errors import AnalysisError
from services.exporter import export_rows
from services.parser import InputFormat
from services.pipeline import decode_upload, run_analysis
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for analyzing machine sensor data and talking to the analyzer service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Analyzer API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between status checks when waiting for completion.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to wait when polling for results.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to sensor data."),
    input_format: Optional[InputFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Parse as this layout instead of detecting it.",
    ),
    wait: bool = typer.Option(
        False,
        "--wait/--no-wait",
        help="Wait for analysis to finish and display the result.",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Override poll interval while waiting.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Override timeout while waiting.",
    ),
) -> None:
    """Upload sensor data for asynchronous analysis."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    upload_id = state.client.upload_file(
        file, input_format.value if input_format is not None else None
    )
    typer.secho(f"Upload accepted. upload_id={upload_id}", fg=typer.colors.GREEN)

    if not wait:
        return

    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    poll_timeout = timeout if timeout is not None else state.config.poll_timeout
    typer.echo(f"Waiting for analysis (interval={interval}s, timeout={poll_timeout}s)...")
    result = state.client.poll_result(upload_id, interval=interval, timeout=poll_timeout)
    typer.echo()
    render_result(result, limit=state.config.table_limit)


@app.command("result")
def result_command(
    ctx: typer.Context,
    upload_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
) -> None:
    """Fetch status, classified machines and summary for an upload."""
    state = _get_state(ctx)
    payload = state.client.get_result(upload_id)
    render_result(payload, limit=state.config.table_limit)


@app.command("export")
def export_command(
    ctx: typer.Context,
    upload_id: str = typer.Argument(..., help="Identifier returned from the upload command."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Write the CSV here instead of printing it.",
    ),
) -> None:
    """Download the classified machines of an upload as CSV."""
    state = _get_state(ctx)
    body = state.client.download_export(upload_id)
    if output is None:
        typer.echo(body)
        return
    output.write_text(body + "\n", encoding="utf-8")
    typer.secho(f"Wrote {output}", fg=typer.colors.GREEN)


@app.command("analyze")
def analyze_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to sensor data."),
    input_format: Optional[InputFormat] = typer.Option(
        None,
        "--format",
        "-f",
        help="Parse as this layout instead of detecting it.",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Seed the score generator for reproducible output.",
    ),
    deterministic: bool = typer.Option(
        False,
        "--deterministic",
        help="Derive scores from the risk total instead of sampling them.",
    ),
    export_path: Optional[Path] = typer.Option(
        None,
        "--export",
        dir_okay=False,
        help="Also write the classified machines as CSV to this path.",
    ),
) -> None:
    """Parse and classify a file locally, without the service."""
    state = _get_state(ctx)
    settings = get_settings()
    mode = ScoreMode.deterministic if deterministic else ScoreMode(settings.risk_score_mode)
    classifier = build_classifier(
        mode.value, seed if seed is not None else settings.risk_score_seed
    )
    try:
        batch = run_analysis(
            decode_upload(file.read_bytes()),
            classifier,
            Aggregator(),
            max_rows=settings.max_upload_rows,
            fmt=input_format,
        )
    except AnalysisError as exc:
        render_errors(
            [{"code": exc.code, "reason": exc.message, "row_number": exc.row_number}]
        )
        raise typer.Exit(code=1)

    typer.echo(f"Parsed {len(batch.machines)} machines ({batch.input_format.value} format).")
    typer.echo()
    render_summary(Summary.from_summary(batch.summary).model_dump(mode="json"))
    typer.echo()
    render_machines(
        [MachineResult.from_scored(machine).model_dump(mode="json") for machine in batch.machines],
        state.config.table_limit,
    )

    if export_path is not None:
        export_path.write_text(export_rows(batch.machines) + "\n", encoding="utf-8")
        typer.secho(f"Wrote {export_path}", fg=typer.colors.GREEN)

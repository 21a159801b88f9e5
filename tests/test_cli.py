from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app


class StubClient:
    def __init__(self, config, upload_response: str = "upload-123") -> None:
        self.config = config
        self.upload_response = upload_response
        self.uploaded: tuple[Path, str | None] | None = None
        self.poll_calls: List[tuple[str, float, float]] = []
        self.result_payload: Dict[str, Any] = {
            "upload_id": upload_response,
            "status": "processed",
            "stage": "complete",
            "progress": 100,
            "input_format": "delimited",
            "uploaded_at": "2024-01-01T00:00:00Z",
            "processed_at": "2024-01-01T00:00:01Z",
            "processing_ms": 123,
            "machines": [
                {
                    "machine_id": "MACH004",
                    "temp": 91.2,
                    "vibration": 9.5,
                    "runtime": 25100.0,
                    "risk_level": "Critical",
                    "risk_score": 0.9,
                    "prediction_confidence": 0.95,
                }
            ],
            "summary": {
                "machine_count": 1,
                "healthy_count": 0,
                "at_risk_count": 0,
                "critical_count": 1,
                "mean_risk_score": 0.9,
            },
            "errors": [],
        }
        self.export_body = "machine_id,temp,vibration,runtime,risk_level,risk_score,prediction_confidence"
        self.closed = False

    def upload_file(self, path: Path, input_format: str | None = None) -> str:
        self.uploaded = (path, input_format)
        return self.upload_response

    def poll_result(self, upload_id: str, interval: float, timeout: float) -> Dict[str, Any]:
        self.poll_calls.append((upload_id, interval, timeout))
        return self.result_payload

    def get_result(self, upload_id: str) -> Dict[str, Any]:
        payload = self.result_payload.copy()
        payload["upload_id"] = upload_id
        return payload

    def download_export(self, upload_id: str) -> str:
        return self.export_body

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_upload_without_wait(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)
    data_path = tmp_path / "data.csv"
    data_path.write_text("machine_id,temp,vibration,runtime\nMACH1,50,3,100\n")

    result = runner.invoke(app, ["upload", str(data_path)])

    assert result.exit_code == 0
    assert "Upload accepted" in result.stdout
    assert stub.uploaded == (data_path, None)
    assert not stub.poll_calls
    assert stub.closed is True


def test_upload_with_wait_and_format(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)
    data_path = tmp_path / "data.txt"
    data_path.write_text("MACH1 50 3 100\n")

    result = runner.invoke(
        app,
        ["upload", str(data_path), "--format", "positional", "--wait", "--poll-interval", "0.1", "--timeout", "5"],
    )

    assert result.exit_code == 0
    assert "Analysis Result" in result.stdout
    assert "MACH004" in result.stdout
    assert stub.uploaded == (data_path, "positional")
    assert stub.poll_calls == [("upload-123", 0.1, 5.0)]
    assert stub.closed is True


def test_result_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["result", "upload-999"])

    assert result.exit_code == 0
    assert "upload_id: upload-999" in result.stdout
    assert "critical: 1" in result.stdout
    assert "mean_risk_score: 90.0%" in result.stdout
    assert stub.closed is True


def test_export_command_writes_file(monkeypatch, runner: CliRunner, tmp_path) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)
    output = tmp_path / "out.csv"

    result = runner.invoke(app, ["export", "upload-1", "--output", str(output)])

    assert result.exit_code == 0
    assert output.read_text() == stub.export_body + "\n"


def test_analyze_command_runs_locally(runner: CliRunner, tmp_path) -> None:
    data_path = tmp_path / "machines.txt"
    data_path.write_text("MACH1 95 9.2 25000\nMACH2 60 2 1000\n")
    export_path = tmp_path / "scored.csv"

    result = runner.invoke(
        app,
        ["analyze", str(data_path), "--deterministic", "--export", str(export_path)],
    )

    assert result.exit_code == 0
    assert "Parsed 2 machines (positional format)." in result.stdout
    assert "critical: 1" in result.stdout
    assert "healthy: 1" in result.stdout
    assert export_path.read_text().splitlines() == [
        "machine_id,temp,vibration,runtime,risk_level,risk_score,prediction_confidence",
        "MACH1,95,9.2,25000,Critical,0.900,0.975",
        "MACH2,60,2,1000,Healthy,0.000,0.850",
    ]


def test_analyze_command_reports_parse_errors(runner: CliRunner, tmp_path) -> None:
    data_path = tmp_path / "bad.csv"
    data_path.write_text("machine_id,temp,vibration,runtime\nMACH1,abc,3.0,100\n")

    result = runner.invoke(app, ["analyze", str(data_path)])

    assert result.exit_code == 1
    assert "row 2: Invalid temp value in row 2: abc [invalid_numeric_field]" in result.stdout

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig

_PENDING_STATUSES = {"uploaded", "processing"}


class ApiClient:
    """Minimal HTTP client for the analyzer service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def upload_file(self, path: Path, input_format: Optional[str] = None) -> str:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a readable file.")

        params = {"format": input_format} if input_format else None
        try:
            with path.open("rb") as handle:
                response = self._client.post(
                    "/uploads",
                    params=params,
                    files={"file": (path.name, handle, "text/csv")},
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        upload_id = response.json().get("upload_id")
        if not isinstance(upload_id, str):
            raise typer.BadParameter("Unexpected response payload when uploading file.")
        return upload_id

    def get_result(self, upload_id: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/uploads/{upload_id}")
            if response.status_code == 404:
                raise typer.BadParameter(f"Upload {upload_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def download_export(self, upload_id: str) -> str:
        try:
            response = self._client.get(f"/uploads/{upload_id}/export")
            if response.status_code == 404:
                raise typer.BadParameter(f"Upload {upload_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.text

    def poll_result(self, upload_id: str, interval: float, timeout: float) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout
        last_payload: Dict[str, Any] | None = None
        while time.monotonic() <= deadline:
            last_payload = self.get_result(upload_id)
            if last_payload.get("status") not in _PENDING_STATUSES:
                return last_payload
            time.sleep(interval)
        typer.secho(
            (
                f"Timed out waiting for analysis of {upload_id}. "
                f"Last stage: {last_payload.get('stage') if last_payload else 'unknown'}"
            ),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            detail = exc.response.json().get("detail")
        except ValueError:
            detail = exc.response.text.strip()
        if isinstance(detail, dict):
            detail = detail.get("reason")
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

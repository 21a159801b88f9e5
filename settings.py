from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_NAME_ENV = "UPLOAD_STORE_NAME"
_STORE_ROOT_ENV = "UPLOAD_STORE_ROOT_PATH"
_TABLE_NAME_ENV = "RESULT_TABLE_NAME"
_TABLE_PATH_ENV = "RESULT_TABLE_PERSISTENCE_PATH"
_WORKER_COUNT_ENV = "PROCESSOR_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_MAX_ROWS_ENV = "MAX_UPLOAD_ROWS"
_STAGE_DELAY_ENV = "STAGE_DELAY_SECONDS"
_SCORE_MODE_ENV = "RISK_SCORE_MODE"
_SCORE_SEED_ENV = "RISK_SCORE_SEED"

_SCORE_MODES = {"random", "deterministic"}


@dataclass(frozen=True)
class Settings:
    store_name: str
    store_root_path: Optional[str]
    table_name: str
    table_persistence_path: Optional[str]
    processor_workers: int
    log_level: str
    max_upload_rows: int
    stage_delay_seconds: float
    risk_score_mode: str
    risk_score_seed: Optional[int]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_delay(default: float) -> float:
    value = os.getenv(_STAGE_DELAY_ENV)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_seed() -> Optional[int]:
    value = os.getenv(_SCORE_SEED_ENV)
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _read_score_mode(default: str) -> str:
    candidate = _read_str_env(_SCORE_MODE_ENV, default).lower()
    return candidate if candidate in _SCORE_MODES else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_name=_read_str_env(_STORE_NAME_ENV, "uploads"),
        store_root_path=_read_optional_env(_STORE_ROOT_ENV, "./tmp/uploads"),
        table_name=_read_str_env(_TABLE_NAME_ENV, "analysis_results"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/results.json"),
        processor_workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        log_level=_read_log_level("INFO"),
        max_upload_rows=_read_positive_int(_MAX_ROWS_ENV, 10_000),
        stage_delay_seconds=_read_delay(0.0),
        risk_score_mode=_read_score_mode("random"),
        risk_score_seed=_read_seed(),
    )

from __future__ import annotations

from typing import Iterable

from datastore.result_table import build_default_table
from services.classifier import ScoreMode
from services.pipeline import build_default_processor
from settings import get_settings
from storage.upload_store import build_default_store


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


_CACHES = (get_settings, build_default_store, build_default_table, build_default_processor)


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_root = tmp_path / "uploads"
    table_path = tmp_path / "results.json"

    monkeypatch.setenv("UPLOAD_STORE_NAME", "custom-store")
    monkeypatch.setenv("UPLOAD_STORE_ROOT_PATH", str(store_root))
    monkeypatch.setenv("RESULT_TABLE_NAME", "custom-table")
    monkeypatch.setenv("RESULT_TABLE_PERSISTENCE_PATH", str(table_path))
    monkeypatch.setenv("PROCESSOR_WORKER_COUNT", "2")
    monkeypatch.setenv("MAX_UPLOAD_ROWS", "250")
    monkeypatch.setenv("STAGE_DELAY_SECONDS", "0.25")
    monkeypatch.setenv("RISK_SCORE_MODE", "Deterministic")
    _clear_caches(_CACHES)

    store = build_default_store()
    table = build_default_table()
    processor = build_default_processor()

    try:
        assert store.name == "custom-store"
        assert store.root_path == store_root
        assert table.name == "custom-table"
        assert table.persistence_path == table_path
        assert processor.executor._max_workers == 2
        assert processor.max_rows == 250
        assert processor.stage_delay == 0.25
        assert processor.classifier.mode is ScoreMode.deterministic
    finally:
        processor.shutdown()
        _clear_caches(_CACHES)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("PROCESSOR_WORKER_COUNT", "-3")
    monkeypatch.setenv("MAX_UPLOAD_ROWS", "lots")
    monkeypatch.setenv("STAGE_DELAY_SECONDS", "-1")
    monkeypatch.setenv("RISK_SCORE_MODE", "psychic")
    monkeypatch.setenv("RISK_SCORE_SEED", "abc")
    get_settings.cache_clear()

    try:
        settings = get_settings()
        assert settings.processor_workers == 4
        assert settings.max_upload_rows == 10_000
        assert settings.stage_delay_seconds == 0.0
        assert settings.risk_score_mode == "random"
        assert settings.risk_score_seed is None
    finally:
        get_settings.cache_clear()

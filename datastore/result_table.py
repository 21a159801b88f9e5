from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from pydantic import ValidationError

from app.schemas import AnalysisResult
from settings import get_settings

logger = logging.getLogger(__name__)


class ResultTable:
    """Analysis results keyed by upload id, with optional JSON persistence."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._items: Dict[str, AnalysisResult] = {}
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: AnalysisResult) -> None:
        with self._lock:
            self._items[item.upload_id] = item.model_copy(deep=True)
            self._persist()

    def get_item(self, key: str) -> Optional[AnalysisResult]:
        with self._lock:
            item = self._items.get(key)
            return item.model_copy(deep=True) if item is not None else None

    def scan(self) -> list[AnalysisResult]:
        """Return deep copies of all stored results."""

        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            upload_id: item.model_dump(mode="json")
            for upload_id, item in self._items.items()
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            data = json.loads(self.persistence_path.read_text() or "{}")
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable result table file %s", self.persistence_path
            )
            return

        for upload_id, payload in data.items():
            try:
                self._items[upload_id] = AnalysisResult.model_validate(payload)
            except ValidationError:
                logger.warning(
                    "Dropping malformed stored result", extra={"upload_id": upload_id}
                )


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ResultTable:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return ResultTable(name=table_name, persistence_path=persistence)

"""
infrastructure.persistence.meal_store - Per-date JSON meal history.

One file per calendar date (meals_YYYY-MM-DD.json) holding a JSON array of
records. Each save reads the whole collection, appends, and rewrites it
atomically (temp file in the same directory, then os.replace).

A missing file is an empty collection. Anything else that stops the file
from being read is a StorageError, and the save does not happen.

Implements MealStore (structural typing — no explicit inheritance).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path

from domain.exceptions import StorageError
from domain.models import MealRecord

logger = logging.getLogger(__name__)


class JsonMealStore:
    """Meal records under meals_dir, one JSON file per date."""

    def __init__(self, meals_dir: Path):
        self._meals_dir = Path(meals_dir)

    def path_for(self, day: date) -> str:
        return str(self._meals_dir / f"meals_{day.isoformat()}.json")

    def load(self, day: date) -> list[MealRecord]:
        raw = self._read(Path(self.path_for(day)))
        try:
            return [MealRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"malformed meal record in {self.path_for(day)}: {e}") from e

    def append(self, record: MealRecord) -> int:
        """Append record to its date's collection; returns the new meal count."""
        path = Path(self.path_for(record.date))
        records = self._read(path)
        records.append(record.to_dict())
        self._write(path, records)
        logger.info("Saved meal to %s (%d meals)", path, len(records))
        return len(records)

    def _read(self, path: Path) -> list[dict]:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"failed to read existing meals from {path}: {e}") from e

        try:
            data = json.loads(text)
        except ValueError as e:
            raise StorageError(f"failed to parse existing meals in {path}: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"{path} does not hold a list of meals")
        return data

    def _write(self, path: Path, records: list[dict]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".meals-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(records, f, indent=2)
                os.replace(tmp, path)
            except BaseException:
                os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"failed to write meals to {path}: {e}") from e

"""JSON file repository for tracker state."""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from calorie_tracker.services.log_store import StateRepository
from calorie_tracker.services.records import CorruptStateError


@dataclass
class JsonFileStateRepository(StateRepository):
    """Stores every state key in a single JSON document on disk."""

    path: Path

    def read_all(self) -> dict[str, str]:
        """Return stored keys, raising CorruptStateError on unreadable files."""
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CorruptStateError(f"Unreadable state file {self.path}") from exc
        if not isinstance(document, dict):
            raise CorruptStateError(f"State file {self.path} is not an object")
        return {
            str(key): value
            for key, value in document.items()
            if isinstance(value, str)
        }

    def write_many(self, values: dict[str, str]) -> None:
        """Merge values into the document and replace the file atomically."""
        document = self._read_for_update()
        document.update(values)
        self._replace(document)

    def delete_many(self, keys: list[str]) -> None:
        """Drop keys from the document and replace the file atomically."""
        document = self._read_for_update()
        for key in keys:
            document.pop(key, None)
        self._replace(document)

    def _read_for_update(self) -> dict[str, str]:
        try:
            return self.read_all()
        except CorruptStateError:
            return {}

    def _replace(self, document: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

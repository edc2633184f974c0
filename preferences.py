import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Any


logger = logging.getLogger(__name__)


class PreferencesError(Exception):
    pass


class Preferences:
    """Named values kept in a JSON file.

    The file is read once; every `set` rewrites it in full.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._values = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                values = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PreferencesError(f"Could not read {self.path}") from e
        if not isinstance(values, dict):
            raise PreferencesError(f"{self.path} does not hold an object")
        return values

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_bool(self, key: str, default: bool) -> bool:
        value = self._values.get(key, default)
        if not isinstance(value, bool):
            logger.warning("Ignoring non-boolean %s=%r", key, value)
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            values = {**self._values, key: value}
            self._write(values)
            self._values = values

    def _write(self, values: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(values, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise PreferencesError(f"Could not write {self.path}") from e

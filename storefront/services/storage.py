"""
Almacenamiento local clave-valor (equivalente al localStorage del navegador).

Cada clave guarda un valor JSON. `get` devuelve None si la clave no existe y
lanza StorageUnavailable si el archivo no se puede leer o está corrupto; el
llamador decide cómo recuperarse.
"""
from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from storefront.core.errors import StorageUnavailable
from storefront.utils.atomic_file import write_json_atomic


class JsonFileStorage:
    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"unreadable storage file {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"unexpected payload in {self.path}")
        return data

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            try:
                data = self._read_all()
            except StorageUnavailable:
                # archivo corrupto: se reescribe desde cero
                data = {}
            data[key] = value
            try:
                write_json_atomic(self.path, data)
            except (OSError, TypeError, ValueError) as exc:
                raise StorageUnavailable(f"cannot write {self.path}: {exc}") from exc


class MemoryStorage:
    """Misma interfaz que JsonFileStorage; serializa a texto para imitar el disco."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageUnavailable(f"corrupted value for {key!r}") from exc

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

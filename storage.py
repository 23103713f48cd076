"""
Local key-value persistence for a client session.

Three keys are used: the buy cart, the rental cart and the shopping
mode. Values are JSON strings. Writers are last-write-wins: two sessions
sharing a namespace overwrite each other's snapshots.
"""

import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import TypeAdapter, ValidationError

from schemas import CartLine

logger = logging.getLogger(__name__)

BUY_CART_KEY = "buyCart"
RENT_CART_KEY = "rentCart"
MODE_KEY = "shoppingMode"

DEFAULT_STORAGE_DIR = os.getenv("CART_STORAGE_DIR", os.path.join("data", "sessions"))

_lines_adapter = TypeAdapter(List[CartLine])


class LocalStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """One JSON document per namespace, rewritten on every set."""

    def __init__(self, directory, namespace: str):
        if not re.fullmatch(r"[A-Za-z0-9_\-]{1,128}", namespace):
            raise ValueError(f"invalid storage namespace: {namespace!r}")
        self.path = Path(directory) / f"{namespace}.json"
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write(data)

    def _write(self, data: Dict[str, str]) -> None:
        # each writer gets its own temp file, the rename is atomic
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f"{self.path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp, self.path)
        except Exception:
            os.unlink(tmp)
            raise


def dump_lines(lines: List[CartLine]) -> str:
    return _lines_adapter.dump_json(lines).decode("utf-8")


def load_lines(raw: Optional[str], kind: str) -> List[CartLine]:
    """Parse a stored cart snapshot, keeping only lines of the given kind.

    A missing or corrupt snapshot yields an empty cart.
    """
    if not raw:
        return []
    try:
        lines = _lines_adapter.validate_json(raw)
    except ValidationError as e:
        logger.warning("Discarding corrupt %s cart snapshot: %s", kind, e)
        return []
    return [line for line in lines if line.kind == kind]

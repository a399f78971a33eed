"""Shared JSON store used as the single source of truth between processes.

Each key is one JSON file in the data directory. Writes go through a
temporary file and an atomic rename, so readers in other processes either
see the old blob or the new one. A watcher thread compares file signatures
and calls subscribers when some other process has rewritten a key.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from threading import Thread, Event
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger("medi_remind.store")

ChangeCallback = Callable[[str], None]


class SharedStore:
    def __init__(self, data_dir: str = None, watch_interval: float = 1.0):
        base = Path(data_dir) if data_dir else Path(__file__).resolve().parents[1] / "data"
        self.data_dir = base
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.watch_interval = watch_interval

        self._lock = threading.RLock()
        self._subscribers: Dict[str, List[ChangeCallback]] = {}
        self._seen: Dict[str, Optional[Tuple[int, int, int]]] = {}
        self._stop = Event()
        self._thread = None

    # ------------------------------------------------------------------
    # Blob access
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _signature(self, key: str) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self._path(key))
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def get(self, key: str) -> Any:
        """Return the decoded blob for ``key``, or None if absent or unreadable."""
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable blob {path.name}: {e}")
            return None

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=2, default=str)
                os.replace(tmp, self._path(key))
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
            self._seen[key] = self._signature(key)

    def remove(self, key: str) -> None:
        with self._lock:
            try:
                os.unlink(self._path(key))
            except FileNotFoundError:
                pass
            self._seen[key] = None

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Read-modify-write ``key`` under the in-process lock.

        Other processes are not locked out: concurrent writers from two
        processes are last-writer-wins.
        """
        with self._lock:
            current = self.get(key)
            if current is None:
                current = default
            new_value = fn(current)
            self.put(key, new_value)
            return new_value

    # ------------------------------------------------------------------
    # External change notification
    # ------------------------------------------------------------------

    def subscribe(self, key: str, callback: ChangeCallback) -> None:
        with self._lock:
            self._subscribers.setdefault(key, []).append(callback)
            self._seen.setdefault(key, self._signature(key))

    def unsubscribe(self, key: str, callback: ChangeCallback) -> None:
        with self._lock:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def check_external_changes(self) -> List[str]:
        """Fire callbacks for keys rewritten since we last wrote or saw them."""
        changed = []
        with self._lock:
            for key in list(self._subscribers):
                sig = self._signature(key)
                if sig != self._seen.get(key):
                    self._seen[key] = sig
                    changed.append(key)
            pending = [(key, list(self._subscribers.get(key, []))) for key in changed]

        for key, callbacks in pending:
            for cb in callbacks:
                try:
                    cb(key)
                except Exception:
                    logger.exception(f"Change callback for '{key}' failed")
        return changed

    def start_watching(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = Thread(target=self._watch, name="store-watcher", daemon=True)
        self._thread.start()

    def stop_watching(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _watch(self):
        while not self._stop.is_set():
            try:
                self.check_external_changes()
            except Exception:
                logger.exception("Store watcher error")
            self._stop.wait(self.watch_interval)

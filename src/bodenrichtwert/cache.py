"""Coordinate-keyed result cache persisted as one JSON file.

Reference values change once or twice a year, so entries live for months.
Nearby coordinates share an entry because the values are zone based.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .models import Record
from .settings import get_settings


logger = logging.getLogger("brw.cache")

KEY_DIGITS = 5
SECONDS_PER_DAY = 86_400.0
DAYS_PER_MONTH = 30.0
# seconds between batched writes of the cache file
SAVE_INTERVAL = 5.0


def cache_key(lat: float, lon: float) -> str:
    return f"{lat:.{KEY_DIGITS}f}:{lon:.{KEY_DIGITS}f}"


class ResultCache:
    """Entries are written to disk in batches.

    ``set`` only marks the cache dirty; ``flush`` (or ``close``) writes it. Callers
    on an event loop check ``save_due`` and run ``flush`` off the loop.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        ttl_days: Optional[float] = None,
        clock: Callable[[], float] = time.time,
        save_interval: float = SAVE_INTERVAL,
    ):
        settings = get_settings()
        self.path = Path(path or settings.cache_path)
        self.ttl_days = settings.cache_ttl_days if ttl_days is None else float(ttl_days)
        self.save_interval = save_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._io_lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._stats = {"hits": 0, "misses": 0, "writes": 0}
        self._dirty = False
        self._last_save = clock()
        self._load()

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_days * SECONDS_PER_DAY

    @property
    def save_due(self) -> bool:
        return self._dirty and self._clock() - self._last_save >= self.save_interval

    def _expired(self, entry: Dict[str, Any], now: float) -> bool:
        return now - float(entry.get("written_at", 0)) >= self.ttl_seconds

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, json.JSONDecodeError):
            logger.warning("unreadable cache file %s, starting empty", self.path)
            return
        if not isinstance(raw, dict):
            return
        now = self._clock()
        dropped = 0
        for key, entry in raw.items():
            try:
                record = entry["record"]
                valid = float(record["value"]) > 0 and not self._expired(entry, now)
            except (KeyError, TypeError, ValueError):
                valid = False
            if valid:
                self._entries[key] = entry
            else:
                dropped += 1
        if dropped:
            logger.info("dropped %d stale cache entries from %s", dropped, self.path)
            self._save()

    def _save(self) -> None:
        # caller holds self._lock or has no concurrent users yet
        self._dirty = False
        self._last_save = self._clock()
        self._write(dict(self._entries))

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        with self._io_lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(entries, handle, ensure_ascii=False)
            os.replace(tmp, self.path)
            self._stats["writes"] += 1

    def flush(self) -> bool:
        """Write pending entries; returns False when nothing was pending."""

        with self._lock:
            if not self._dirty:
                return False
            snapshot = dict(self._entries)
            self._dirty = False
            self._last_save = self._clock()
        self._write(snapshot)
        logger.debug("cache flushed (%d entries) to %s", len(snapshot), self.path)
        return True

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> "ResultCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get(self, key: str) -> Optional[Record]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._expired(entry, self._clock()):
                self._stats["misses"] += 1
                return None
            self._stats["hits"] += 1
            return Record.from_dict(entry["record"])

    def set(self, key: str, record: Record) -> bool:
        if record is None or not record.value > 0:
            return False
        with self._lock:
            self._entries[key] = {"record": record.to_dict(), "written_at": self._clock()}
            self._dirty = True
        return True

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "cache_path": str(self.path),
                "ttl_months": round(self.ttl_days / DAYS_PER_MONTH, 1),
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "writes": self._stats["writes"],
            }

    def cleanup(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._entries.items() if self._expired(entry, now)]
            for key in expired:
                del self._entries[key]
            if expired:
                self._save()
            return len(expired)

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._save()
            return removed

    def __len__(self) -> int:
        return len(self._entries)

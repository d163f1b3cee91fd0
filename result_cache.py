"""
In-memory, content-addressed cache of evaluation records.
"""

from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from data_models import EvaluationMode, EvaluationRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
DEFAULT_HIGH_WATER_MARK = 50


def normalize_text(text: str) -> str:
    """Unify line endings and strip outer whitespace."""
    return text.replace("\r\n", "\n").replace("\r", "\n").strip()


def fingerprint(mode: EvaluationMode, text: str) -> str:
    """
    Compute the cache key for an evaluation input.

    Args:
        mode: Evaluation mode the text will be evaluated in.
        text: Résumé text, or résumé plus job description for job matching.

    Returns:
        Hex MD5 digest of ``mode:length:text`` over the normalized text.
    """
    normalized = normalize_text(text)
    mode_value = mode.value if isinstance(mode, EvaluationMode) else str(mode)
    composite = f"{mode_value}:{len(normalized)}:{normalized}"
    return hashlib.md5(composite.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    fingerprint: str
    record: EvaluationRecord
    created_at: float


class ContentCache:
    """
    Thread-safe fingerprint -> EvaluationRecord map with TTL eviction.

    Expired entries are ignored on read and purged only by a sweep, which runs
    after a ``put`` leaves more than ``high_water_mark`` entries. There is no
    size-based eviction, so the bound is soft.
    """

    def __init__(
        self,
        enabled: bool = True,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.enabled = enabled
        self.ttl_seconds = ttl_seconds
        self.high_water_mark = high_water_mark
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[EvaluationRecord]:
        """Return a copy of the cached record, or None when missing or expired."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            LOGGER.debug("Cache miss for key %s...", key[:8])
            return None
        if self._is_expired(entry, self._clock()):
            LOGGER.debug("Cache entry %s... expired", key[:8])
            return None
        LOGGER.debug("Cache hit for key %s...", key[:8])
        return copy.deepcopy(entry.record)

    def put(self, key: str, record: EvaluationRecord) -> None:
        """Store a record, overwriting any previous entry for the key."""
        if not self.enabled:
            return
        entry = CacheEntry(fingerprint=key, record=copy.deepcopy(record), created_at=self._clock())
        with self._lock:
            self._entries[key] = entry
            if len(self._entries) > self.high_water_mark:
                self._sweep_locked()

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        LOGGER.info("Cleared %d cached evaluations", count)

    def status(self) -> Dict[str, object]:
        with self._lock:
            size = len(self._entries)
        return {
            "enabled": self.enabled,
            "size": size,
            "ttl": _describe_ttl(self.ttl_seconds),
            "entryCount": size,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self.ttl_seconds

    def _sweep_locked(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            LOGGER.debug("Swept %d expired cache entries", len(expired))


def _describe_ttl(seconds: float) -> str:
    hours = seconds / 3600
    if hours == int(hours):
        return f"{int(hours)} hours"
    return f"{seconds:g} seconds"

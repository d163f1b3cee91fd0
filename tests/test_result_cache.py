from __future__ import annotations

from data_models import EvaluationMode, EvaluationRecord
from result_cache import ContentCache, fingerprint, normalize_text


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_fingerprint_ignores_line_endings_and_outer_whitespace() -> None:
    first = fingerprint(EvaluationMode.RESUME_ONLY, "Jane Doe\r\nEngineer\n")
    second = fingerprint(EvaluationMode.RESUME_ONLY, "  Jane Doe\nEngineer")
    assert first == second
    assert normalize_text("a\rb\r\n") == "a\nb"


def test_fingerprint_depends_on_mode() -> None:
    text = "Jane Doe, Python developer"
    assert fingerprint(EvaluationMode.RESUME_ONLY, text) != fingerprint(EvaluationMode.JOB_MATCH, text)


def test_put_then_get_returns_equal_copy() -> None:
    cache = ContentCache()
    record = EvaluationRecord(ats_score=7.5, strengths=["Python"])
    cache.put("k", record)

    cached = cache.get("k")
    assert cached == record
    assert cached is not record

    cached.strengths.append("mutated")
    record.ats_score = 1.0
    assert cache.get("k").strengths == ["Python"]
    assert cache.get("k").ats_score == 7.5


def test_expired_entry_is_a_miss() -> None:
    clock = FakeClock()
    cache = ContentCache(ttl_seconds=60, clock=clock)
    cache.put("k", EvaluationRecord())

    clock.now += 60
    assert cache.get("k") is not None
    clock.now += 1
    assert cache.get("k") is None


def test_sweep_runs_only_above_high_water_mark() -> None:
    clock = FakeClock()
    cache = ContentCache(ttl_seconds=10, high_water_mark=3, clock=clock)
    for key in ("a", "b", "c"):
        cache.put(key, EvaluationRecord())
    clock.now += 11
    assert len(cache) == 3

    cache.put("d", EvaluationRecord())
    assert len(cache) == 1
    assert cache.get("d") is not None


def test_disabled_cache_stores_nothing() -> None:
    cache = ContentCache(enabled=False)
    cache.put("k", EvaluationRecord())
    assert cache.get("k") is None
    assert len(cache) == 0


def test_status_and_clear() -> None:
    cache = ContentCache()
    cache.put("k", EvaluationRecord())
    assert cache.status() == {"enabled": True, "size": 1, "ttl": "24 hours", "entryCount": 1}

    cache.clear()
    assert cache.status()["size"] == 0

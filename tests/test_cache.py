import json

from bodenrichtwert.cache import ResultCache, cache_key
from bodenrichtwert.models import Estimation, Record


RECORD = Record(
    value=1850.0,
    effective_date="2024-01-01",
    land_use_class="W - Wohnbaufläche",
    development_status="B",
    zone_id="02113048",
    municipality="Hamburg",
    jurisdiction="Hamburg",
    source="BORIS-HH",
    license="© FHH, LGV, dl-de/by-2-0",
)

ESTIMATE = Record(
    value=1650.0,
    effective_date="2024-01-01",
    land_use_class="Wohnbaufläche (geschätzt)",
    jurisdiction="Bayern",
    source="ImmoScout24 Atlas (Schätzwert)",
    estimation=Estimation(
        method="ImmoScout Atlas Marktpreise × preisabhängiger Faktor",
        basis_price=3000.0,
        applied_factor=0.55,
        as_of="2024-Q3",
        disclaimer="Schätzwert",
    ),
)


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_cache_key_quantizes_coordinates():
    assert cache_key(53.5511, 9.9937) == "53.55110:9.99370"
    assert cache_key(53.551101, 9.993699) == cache_key(53.5511, 9.9937)


def test_round_trip_then_cleanup_with_zero_ttl(tmp_path):
    cache = ResultCache(path=str(tmp_path / "c.json"), ttl_days=180)
    key = cache_key(53.5511, 9.9937)
    assert cache.set(key, RECORD)
    assert cache.get(key) == RECORD
    cache.ttl_days = 0
    assert cache.cleanup() == 1
    assert cache.get(key) is None


def test_estimation_survives_round_trip(tmp_path):
    cache = ResultCache(path=str(tmp_path / "c.json"), ttl_days=180)
    cache.set("k", ESTIMATE)
    cache.flush()
    restored = ResultCache(path=str(tmp_path / "c.json"), ttl_days=180).get("k")
    assert restored == ESTIMATE
    assert restored.is_estimate


def test_non_positive_values_not_stored(tmp_path):
    cache = ResultCache(path=str(tmp_path / "c.json"), ttl_days=180)
    assert not cache.set("k", Record(value=0.0))
    assert not cache.set("k", None)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_expiry_by_clock(tmp_path):
    clock = FakeClock()
    cache = ResultCache(path=str(tmp_path / "c.json"), ttl_days=1, clock=clock)
    cache.set("k", RECORD)
    clock.now += 86_399
    assert cache.get("k") == RECORD
    clock.now += 2
    assert cache.get("k") is None


def test_persisted_and_purged_on_load(tmp_path):
    path = tmp_path / "c.json"
    clock = FakeClock()
    payload = {
        "fresh": {"record": RECORD.to_dict(), "written_at": clock.now - 10},
        "stale": {"record": RECORD.to_dict(), "written_at": clock.now - 400 * 86_400},
        "zero": {"record": dict(RECORD.to_dict(), value=0), "written_at": clock.now},
        "broken": {"written_at": clock.now},
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    cache = ResultCache(path=str(path), ttl_days=180, clock=clock)
    assert len(cache) == 1
    assert cache.get("fresh") == RECORD
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert sorted(on_disk) == ["fresh"]


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "c.json"
    path.write_text("{not json", encoding="utf-8")
    cache = ResultCache(path=str(path), ttl_days=180)
    assert len(cache) == 0


def test_stats_and_clear(tmp_path):
    cache = ResultCache(path=str(tmp_path / "sub" / "c.json"), ttl_days=180)
    cache.set("a", RECORD)
    cache.set("b", RECORD)
    cache.get("a")
    cache.get("missing")
    stats = cache.stats()
    assert stats["entries"] == 2
    assert stats["ttl_months"] == 6.0
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["cache_path"].endswith("c.json")
    assert cache.clear() == 2
    assert cache.clear() == 0
    assert cache.stats()["entries"] == 0


def test_default_path_from_settings(tmp_path):
    cache = ResultCache()
    assert str(cache.path) == str(tmp_path / "cache.json")


def test_sets_are_batched_into_one_write(tmp_path):
    path = tmp_path / "c.json"
    clock = FakeClock()
    cache = ResultCache(path=str(path), ttl_days=180, clock=clock, save_interval=5.0)
    for i in range(20):
        cache.set(f"k{i}", RECORD)
    assert not path.exists()
    assert not cache.save_due
    clock.now += 5
    assert cache.save_due
    assert cache.flush()
    assert not cache.flush()
    assert cache.stats()["writes"] == 1
    assert len(json.loads(path.read_text(encoding="utf-8"))) == 20


def test_close_writes_pending_entries(tmp_path):
    path = tmp_path / "c.json"
    with ResultCache(path=str(path), ttl_days=180) as cache:
        cache.set("k", RECORD)
    assert ResultCache(path=str(path), ttl_days=180).get("k") == RECORD

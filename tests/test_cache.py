"""Tests for the geocode cache."""

import json
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from icn_pipeline.utils.cache import GeocodeCache, make_address_key


class TestMakeAddressKey:
    def test_case_folded_and_joined(self):
        assert make_address_key(" 1 Main St ", "Melbourne", "VIC", "3000") == "1 main st|melbourne|vic|3000"

    def test_placeholders_dropped(self):
        key = make_address_key("Address Not Available", "City Not Available", "SA", "")
        assert key == "sa"

    def test_equivalent_addresses_share_key(self):
        assert make_address_key("1 MAIN ST", "melbourne", "vic", "3000") == \
            make_address_key("1 Main St", "Melbourne", "VIC", "3000")


class TestGeocodeCache:
    def test_set_and_get(self):
        cache = GeocodeCache(path=None)
        cache.set("k", -37.8, 144.9, is_geocoded=True, address="1 Main St")
        entry = cache.get("k")
        assert entry["latitude"] == -37.8
        assert entry["longitude"] == 144.9
        assert entry["is_geocoded"] is True
        assert cache.has("k")
        assert cache.size == 1

    def test_missing_key(self):
        assert GeocodeCache(path=None).get("nope") is None

    def test_expired_entry_removed(self):
        cache = GeocodeCache(path=None, ttl_days=30)
        with patch("icn_pipeline.utils.cache.time.time", return_value=1_000_000.0):
            cache.set("k", 1.0, 2.0, is_geocoded=True)
        with patch("icn_pipeline.utils.cache.time.time", return_value=1_000_000.0 + 31 * 86400):
            assert cache.get("k") is None
        assert cache.size == 0

    def test_fresh_entry_kept(self):
        cache = GeocodeCache(path=None, ttl_days=30)
        with patch("icn_pipeline.utils.cache.time.time", return_value=1_000_000.0):
            cache.set("k", 1.0, 2.0, is_geocoded=True)
        with patch("icn_pipeline.utils.cache.time.time", return_value=1_000_000.0 + 29 * 86400):
            assert cache.get("k") is not None

    def test_clear(self):
        cache = GeocodeCache(path=None)
        cache.set("a", 1.0, 2.0, is_geocoded=True)
        cache.set("b", 1.0, 2.0, is_geocoded=False)
        assert cache.clear() == 2
        assert cache.size == 0

    def test_stats(self):
        cache = GeocodeCache(path=None)
        cache.set("a", 1.0, 2.0, is_geocoded=True)
        cache.set("b", 3.0, 4.0, is_geocoded=False)
        stats = cache.stats()
        assert stats["total"] == 2
        assert stats["geocoded"] == 1
        assert stats["fallback"] == 1
        assert stats["size_bytes"] > 0
        assert stats["last_updated"] is not None

    def test_empty_stats(self):
        stats = GeocodeCache(path=None).stats()
        assert stats["total"] == 0
        assert stats["last_updated"] is None


class TestExportImport:
    def test_round_trip_restores_entries_exactly(self):
        source = GeocodeCache(path=None)
        source.set("a", -34.9285, 138.6007, is_geocoded=False, address="SA, Australia")
        source.set("b", -37.8, 144.9, is_geocoded=True, address="1 Main St")

        target = GeocodeCache(path=None)
        assert target.import_cache(source.export_cache())
        assert target.get("a") == source.get("a")
        assert target.get("b") == source.get("b")

    def test_export_has_version(self):
        blob = json.loads(GeocodeCache(path=None, version="2.0.0").export_cache())
        assert blob["version"] == "2.0.0"
        assert blob["entries"] == {}

    def test_version_mismatch_rejected(self):
        old = GeocodeCache(path=None, version="0.9.0")
        old.set("a", 1.0, 2.0, is_geocoded=True)
        cache = GeocodeCache(path=None, version="1.0.0")
        cache.set("b", 1.0, 2.0, is_geocoded=True)

        assert cache.import_cache(old.export_cache()) is False
        assert cache.has("b")
        assert not cache.has("a")

    def test_malformed_json_rejected(self):
        assert GeocodeCache(path=None).import_cache("{not json") is False

    def test_wrong_structure_rejected(self):
        assert GeocodeCache(path=None).import_cache('["a", "b"]') is False

    def test_non_object_entry_rejected(self):
        cache = GeocodeCache(path=None, version="1.0.0")
        cache.set("keep", 1.0, 2.0, is_geocoded=True)
        blob = json.dumps({"version": "1.0.0", "entries": {"k": 5}})
        assert cache.import_cache(blob) is False
        assert cache.has("keep")

    def test_entry_without_coordinates_rejected(self):
        cache = GeocodeCache(path=None, version="1.0.0")
        blob = json.dumps({"version": "1.0.0", "entries": {"k": {"foo": 1}}})
        assert cache.import_cache(blob) is False
        assert cache.size == 0

    def test_imported_coordinates_normalised(self):
        cache = GeocodeCache(path=None, version="1.0.0")
        blob = json.dumps({"version": "1.0.0", "entries": {
            "k": {"latitude": "-37,8", "longitude": "144.9", "is_geocoded": True},
        }})
        assert cache.import_cache(blob)
        entry = cache.get("k")
        assert (entry["latitude"], entry["longitude"]) == (-37.8, 144.9)
        assert entry["is_geocoded"] is True


class TestPersistence:
    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        cache = GeocodeCache(path=path)
        cache.set("k", 1.5, 2.5, is_geocoded=True)
        cache.save()

        reloaded = GeocodeCache(path=path)
        assert reloaded.get("k")["latitude"] == 1.5

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        cache = GeocodeCache(path=path)
        cache.set("k", 1.5, 2.5, is_geocoded=True)
        cache.save()
        cache.clear()
        assert not path.exists()

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        path.write_text("garbage")
        assert GeocodeCache(path=path).size == 0

    def test_damaged_entries_in_file_ignored(self, tmp_path):
        path = tmp_path / "geocode_cache.json"
        path.write_text(json.dumps({"version": "1.0.0", "entries": {"k": 5}}))
        assert GeocodeCache(path=path, version="1.0.0").size == 0

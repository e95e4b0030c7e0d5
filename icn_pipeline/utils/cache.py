"""
JSON-backed cache for geocoded addresses.

Entries are keyed by a normalised address string and hold the resolved
coordinate, the address text that was sent, and whether the coordinate came
from the API or the state-capital fallback. The whole cache can be exported
as a versioned JSON blob and imported again, and is optionally persisted to
a single JSON file under the .cache/ directory.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from config import GEOCODE_CACHE_PATH, GEOCODE_CACHE_TTL_DAYS, GEOCODE_CACHE_VERSION
from icn_pipeline.utils.geo_utils import normalise_lat_lng
from icn_pipeline.validation import ADDRESS_PLACEHOLDER, CITY_PLACEHOLDER, is_invalid

logger = logging.getLogger(__name__)

_KEY_PLACEHOLDERS = {ADDRESS_PLACEHOLDER.lower(), CITY_PLACEHOLDER.lower()}


class GeocodeCache:
    """Thread-safe address -> coordinate cache with TTL and JSON export."""

    def __init__(
        self,
        path: Optional[Path] = GEOCODE_CACHE_PATH,
        ttl_days: float = GEOCODE_CACHE_TTL_DAYS,
        version: str = GEOCODE_CACHE_VERSION,
    ):
        """
        Args:
            path: JSON file to persist to. None keeps the cache in memory only.
            ttl_days: Time-to-live in days. 0 means no expiration.
            version: Format version written to exports and checked on import.
        """
        self.path = Path(path) if path is not None else None
        self.ttl_seconds = ttl_days * 86400 if ttl_days > 0 else 0
        self.version = version
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._last_updated: Optional[float] = None
        self._lock = threading.RLock()

        if self.path is not None and self.path.exists():
            self._load_file()

    def _load_file(self) -> None:
        try:
            blob = self.path.read_text()
        except OSError as e:
            logger.warning(f"Could not read geocode cache {self.path}: {e}")
            return
        if self.import_cache(blob):
            logger.info(f"Loaded {self.size} geocode cache entries from {self.path}")
        else:
            logger.warning(f"Ignoring unusable geocode cache file {self.path}")

    def _is_expired(self, entry: Dict[str, Any]) -> bool:
        if not self.ttl_seconds:
            return False
        return time.time() - entry.get("_cached_at", 0) > self.ttl_seconds

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Look up a cached coordinate.

        Returns:
            A copy of the entry, or None if not found / expired.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                logger.debug(f"Geocode cache expired for {key!r}")
                del self._entries[key]
                return None
            return dict(entry)

    def set(
        self,
        key: str,
        latitude: float,
        longitude: float,
        is_geocoded: bool,
        address: str = "",
    ) -> None:
        """Store (or overwrite) the coordinate for ``key``."""
        now = time.time()
        with self._lock:
            self._entries[key] = {
                "latitude": latitude,
                "longitude": longitude,
                "_cached_at": now,
                "is_geocoded": is_geocoded,
                "address": address,
            }
            self._last_updated = now

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self) -> int:
        """Remove all entries (and the persisted file). Returns count removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._last_updated = None
            if self.path is not None:
                self.path.unlink(missing_ok=True)
        logger.info(f"Cleared {count} geocode cache entries")
        return count

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def _payload(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": self._last_updated,
            "entries": self._entries,
        }

    def export_cache(self) -> str:
        """Serialise the whole cache to a versioned JSON blob."""
        with self._lock:
            return json.dumps(self._payload())

    def import_cache(self, blob: str) -> bool:
        """
        Replace the cache contents with a previously exported blob.

        Every entry must be an object with a usable latitude/longitude;
        coordinates are normalised on the way in.

        Returns:
            False (leaving the cache untouched) on malformed JSON, a version
            mismatch or an unusable entry, True otherwise.
        """
        try:
            payload = json.loads(blob)
        except (TypeError, ValueError) as e:
            logger.warning(f"Geocode cache import failed: {e}")
            return False

        if not isinstance(payload, dict) or not isinstance(payload.get("entries"), dict):
            logger.warning("Geocode cache import failed: unexpected structure")
            return False
        if payload.get("version") != self.version:
            logger.warning(
                f"Geocode cache version mismatch: {payload.get('version')!r} != {self.version!r}"
            )
            return False

        entries = {}
        for key, entry in payload["entries"].items():
            coord = normalise_lat_lng(entry) if isinstance(entry, dict) else None
            if coord is None:
                logger.warning(f"Geocode cache import failed: unusable entry {key!r}")
                return False
            entries[key] = dict(entry, latitude=coord[0], longitude=coord[1])

        with self._lock:
            self._entries = entries
            self._last_updated = payload.get("last_updated")
        return True

    def save(self) -> None:
        """Flush the cache to ``path``. No-op for memory-only caches."""
        if self.path is None:
            return
        blob = self.export_cache()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            f.write(blob)
        logger.debug(f"Saved {self.size} geocode cache entries to {self.path}")

    def stats(self) -> Dict[str, Any]:
        """Entry counts, serialised size in bytes, and last update time."""
        with self._lock:
            entries = list(self._entries.values())
            geocoded = sum(1 for e in entries if e.get("is_geocoded"))
            size = len(json.dumps(self._payload()).encode())
            last_updated = self._last_updated

        return {
            "total": len(entries),
            "geocoded": geocoded,
            "fallback": len(entries) - geocoded,
            "size_bytes": size,
            "last_updated": (
                datetime.fromtimestamp(last_updated).isoformat(timespec="seconds")
                if last_updated else None
            ),
        }


def make_address_key(street: str, city: str, state: str, postcode: str) -> str:
    """
    Build a cache key from address parts.

    Parts are trimmed and case-folded; invalid values and the address/city
    placeholders are dropped so equivalent addresses share a key.
    """
    parts = []
    for part in (street, city, state, postcode):
        if is_invalid(part):
            continue
        text = str(part).strip().lower()
        if text in _KEY_PLACEHOLDERS:
            continue
        parts.append(text)
    return "|".join(parts)

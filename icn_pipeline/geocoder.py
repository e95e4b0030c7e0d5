"""
Geocode company billing addresses.

Uses the Google Geocoding API to turn a composed address into coordinates.
Every resolution, successful or not, is cached: when the API returns no
result or fails, the state capital's coordinate is used and cached with
is_geocoded=False so the next load does not retry it.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import requests

from config import (
    DEFAULT_FALLBACK_STATE,
    GEOCODE_BATCH_DELAY_S,
    GEOCODE_BATCH_SIZE,
    GEOCODE_RATE_LIMIT,
    GEOCODE_TIMEOUT,
    GEOCODE_URL,
    GOOGLE_MAPS_API_KEY,
    REGIONS,
)
from icn_pipeline.errors import GeocodingError
from icn_pipeline.utils.cache import GeocodeCache, make_address_key
from icn_pipeline.utils.rate_limiter import RateLimiter
from icn_pipeline.validation import ADDRESS_PLACEHOLDER, CITY_PLACEHOLDER, is_invalid

logger = logging.getLogger(__name__)

geocode_limiter = RateLimiter(GEOCODE_RATE_LIMIT, name="GoogleGeocoding")

OVER_QUERY_LIMIT_HOLD_S = 2.0

# City names that mark an address as New Zealand rather than Australian
NZ_CITY_HINTS = ("auckland", "wellington", "christchurch")
_NZ_REGION_RE = re.compile(r",\s*(NI|SI)\b")
_COUNTRY_RE = re.compile(r"\b(australia|new zealand)\b|,\s*(nz|au)\b", re.IGNORECASE)

Coord = Tuple[float, float]  # (lat, lon)
GeocodeFn = Callable[[str], Optional[Coord]]


@dataclass
class AddressQuery:
    """The address parts a company is geocoded from."""
    street: str
    city: str
    state: str
    postcode: str

    @classmethod
    def from_company(cls, company) -> "AddressQuery":
        addr = company.billing_address
        return cls(street=addr.street, city=addr.city, state=addr.state, postcode=addr.postcode)

    @property
    def key(self) -> str:
        return make_address_key(self.street, self.city, self.state, self.postcode)


@dataclass
class ResolvedCoordinates:
    latitude: float
    longitude: float
    is_geocoded: bool = True
    from_cache: bool = False


def get_fallback_coordinates(state: str) -> Coord:
    """Capital-city coordinate for a state code (VIC for unknown codes)."""
    region = REGIONS.get(state) or REGIONS[DEFAULT_FALLBACK_STATE]
    return region["fallback"]


def _country_suffix(address: str) -> str:
    if _COUNTRY_RE.search(address):
        return ""
    lower = address.lower()
    if _NZ_REGION_RE.search(address) or any(city in lower for city in NZ_CITY_HINTS):
        return "New Zealand"
    return "Australia"


def build_search_address(street: str, city: str, state: str, postcode: str) -> str:
    """
    Compose the address string sent to the API.

    Placeholder parts are dropped and a country is appended unless one is
    already present.
    """
    parts = []
    for part in (street, city, state, postcode):
        if is_invalid(part) or part in (ADDRESS_PLACEHOLDER, CITY_PLACEHOLDER):
            continue
        parts.append(str(part).strip())

    address = ", ".join(parts)
    if not address:
        return ""
    suffix = _country_suffix(address)
    return f"{address}, {suffix}" if suffix else address


def geocode_address(
    address: str,
    api_key: Optional[str] = None,
    limiter: Optional[RateLimiter] = None,
    timeout: float = GEOCODE_TIMEOUT,
) -> Optional[Coord]:
    """
    Geocode one address with the Google Geocoding API.

    Args:
        address: Full address text, country included.
        api_key: Overrides GOOGLE_MAPS_API_KEY.
        limiter: Rate limiter to pace the call through.
        timeout: Per-request connect/read timeout in seconds.

    Returns:
        (lat, lon) of the first result, or None on ZERO_RESULTS.

    Raises:
        GeocodingError: If no API key is set, the API returns another
            non-OK status, or the response is not shaped like a geocode result.
        requests.RequestException: On transport or HTTP errors.
        ValueError: If the response body is not JSON.
    """
    key = api_key or GOOGLE_MAPS_API_KEY
    if not key:
        raise GeocodingError("GOOGLE_MAPS_API_KEY not set. Add it to .env file.")

    limiter = limiter or geocode_limiter
    limiter.wait()

    params = {"address": address, "key": key}
    response = requests.get(GEOCODE_URL, params=params, timeout=timeout)
    response.raise_for_status()

    data = response.json()
    if not isinstance(data, dict):
        raise GeocodingError(f"Unexpected geocoding response type: {type(data).__name__}")
    status = data.get("status")

    if status == "ZERO_RESULTS":
        logger.debug(f"No geocode results for {address!r}")
        return None
    elif status != "OK":
        if status == "OVER_QUERY_LIMIT":
            limiter.hold(OVER_QUERY_LIMIT_HOLD_S)
        raise GeocodingError(
            f"Geocoding API status {status}: {data.get('error_message', 'no message')}"
        )

    results = data.get("results") or []
    if not results:
        return None

    first = results[0] if isinstance(results, list) else None
    geometry = first.get("geometry") if isinstance(first, dict) else None
    location = geometry.get("location") if isinstance(geometry, dict) else None
    if not isinstance(location, dict) or "lat" not in location or "lng" not in location:
        raise GeocodingError(f"Geocoding result without a location for {address!r}")
    return (float(location["lat"]), float(location["lng"]))


class GeocodeCacheService:
    """
    Cache-first address resolution with batching and fallback.

    ``geocode_fn`` replaces the HTTP client (tests pass a fake); it takes the
    composed address and returns (lat, lon), None for no result, or raises.
    """

    def __init__(
        self,
        cache: Optional[GeocodeCache] = None,
        geocode_fn: Optional[GeocodeFn] = None,
        api_key: Optional[str] = None,
        limiter: Optional[RateLimiter] = None,
        batch_size: int = GEOCODE_BATCH_SIZE,
        batch_delay_s: float = GEOCODE_BATCH_DELAY_S,
        timeout: float = GEOCODE_TIMEOUT,
    ):
        self.cache = cache if cache is not None else GeocodeCache()
        self.api_key = api_key
        self.limiter = limiter or geocode_limiter
        self.batch_size = max(1, batch_size)
        self.batch_delay_s = batch_delay_s
        self.timeout = timeout
        self._geocode_fn = geocode_fn

        self._counter_lock = threading.Lock()
        self.api_calls = 0
        self.fallbacks = 0

        if geocode_fn is None and not (api_key or GOOGLE_MAPS_API_KEY):
            logger.warning("GOOGLE_MAPS_API_KEY not set; uncached addresses will use fallback coordinates")

    def _geocode(self, address: str) -> Optional[Coord]:
        """Run one lookup. ``api_calls`` only counts lookups actually attempted."""
        if self._geocode_fn is None and not (self.api_key or GOOGLE_MAPS_API_KEY):
            raise GeocodingError("GOOGLE_MAPS_API_KEY not set. Add it to .env file.")
        with self._counter_lock:
            self.api_calls += 1
        if self._geocode_fn is not None:
            return self._geocode_fn(address)
        return geocode_address(address, api_key=self.api_key, limiter=self.limiter, timeout=self.timeout)

    def _resolve_query(self, query: AddressQuery, force_refresh: bool) -> Tuple[ResolvedCoordinates, bool]:
        """Resolve one address. Returns (coordinates, whether the cache was missed)."""
        key = query.key

        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                return ResolvedCoordinates(
                    latitude=cached["latitude"],
                    longitude=cached["longitude"],
                    is_geocoded=cached.get("is_geocoded", True),
                    from_cache=True,
                ), False

        address = build_search_address(query.street, query.city, query.state, query.postcode)
        coord = None
        if address:
            try:
                coord = self._geocode(address)
            except GeocodingError as e:
                logger.warning(f"Geocoding failed for {address!r}: {e}")
            except requests.RequestException as e:
                logger.warning(f"Geocoding request failed for {address!r}: {e}")
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Invalid geocoding response for {address!r}: {e}")

        if coord is None:
            with self._counter_lock:
                self.fallbacks += 1
            lat, lon = get_fallback_coordinates(query.state)
            logger.debug(f"Using {query.state} fallback for {address!r}")
            self.cache.set(key, lat, lon, is_geocoded=False, address=address)
            return ResolvedCoordinates(latitude=lat, longitude=lon, is_geocoded=False), True

        lat, lon = coord
        self.cache.set(key, lat, lon, is_geocoded=True, address=address)
        return ResolvedCoordinates(latitude=lat, longitude=lon, is_geocoded=True), True

    def resolve(
        self,
        street: str,
        city: str,
        state: str,
        postcode: str,
        force_refresh: bool = False,
    ) -> ResolvedCoordinates:
        """Resolve a single address, cache first."""
        result, missed = self._resolve_query(AddressQuery(street, city, state, postcode), force_refresh)
        if missed:
            self.cache.save()
        return result

    def resolve_batch(
        self,
        addresses: Sequence[AddressQuery],
        force_refresh: bool = False,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[ResolvedCoordinates]:
        """
        Resolve many addresses in groups of ``batch_size``.

        All addresses in a group are in flight together; the next group starts
        once the whole group has finished plus ``batch_delay_s``. Results are
        returned in input order.
        """
        total = len(addresses)
        results: List[ResolvedCoordinates] = []
        misses = 0

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, total, self.batch_size):
                group = addresses[start:start + self.batch_size]
                group_results = list(executor.map(
                    lambda q: self._resolve_query(q, force_refresh), group
                ))
                results.extend(coords for coords, _ in group_results)
                group_misses = sum(1 for _, missed in group_results if missed)
                misses += group_misses

                if group_misses:
                    self.cache.save()
                if on_progress is not None:
                    on_progress(len(results), total)

                if start + self.batch_size < total and self.batch_delay_s > 0:
                    time.sleep(self.batch_delay_s)

        logger.info(
            f"Resolved {total} addresses: {total - misses} from cache, "
            f"{misses} looked up ({self.fallbacks} fallbacks so far)"
        )
        return results

    def export_cache(self) -> str:
        return self.cache.export_cache()

    def import_cache(self, blob: str) -> bool:
        imported = self.cache.import_cache(blob)
        if imported:
            self.cache.save()
        return imported

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_stats(self) -> dict:
        return self.cache.stats()

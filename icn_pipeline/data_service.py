"""
Load, aggregate, sample and geocode the ICN export, and serve the result.

IcnDataService ties the pipeline stages together:

  raw JSON -> RawItem -> aggregate_companies() -> stratified_sample()
           -> GeocodeCacheService.resolve_batch() -> published companies

A load is guarded by a lock: a second caller blocks until the first load
finishes and then sees its result instead of loading again.
"""

from __future__ import annotations

import json
import logging
import random
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config import ICN_DATA_PATH, SAMPLE_TARGET_SIZE
from icn_pipeline.company_aggregator import Company, RawItem, aggregate_companies, parse_raw_items
from icn_pipeline.geocoder import AddressQuery, GeocodeCacheService
from icn_pipeline.queries import CompanyFilter, apply_filter, search_companies
from icn_pipeline.sampler import stratified_sample
from icn_pipeline.statistics import (
    FilterOptions,
    Statistics,
    build_filter_options,
    build_statistics,
    territory_statistics,
)

logger = logging.getLogger(__name__)

ProgressFn = Callable[[int, int], None]


class IcnDataService:
    """Owns the published company set for one ICN export."""

    def __init__(
        self,
        data_path: Path = ICN_DATA_PATH,
        geocoder: Optional[GeocodeCacheService] = None,
        use_sampling: bool = True,
        sample_size: int = SAMPLE_TARGET_SIZE,
        rng: Optional[random.Random] = None,
    ):
        self.data_path = Path(data_path)
        self.geocoder = geocoder if geocoder is not None else GeocodeCacheService()
        self.use_sampling = use_sampling
        self.sample_size = sample_size
        self.rng = rng

        self._load_lock = threading.Lock()
        self._companies: List[Company] = []
        self._items: List[RawItem] = []
        self._is_loaded = False
        self._last_load_time: Optional[datetime] = None
        self.skipped = 0

    # --- Loading ---

    def _read_export(self) -> Any:
        logger.info(f"Reading ICN export from {self.data_path}")
        with open(self.data_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def load(
        self,
        raw: Any = None,
        on_progress: Optional[ProgressFn] = None,
        force_refresh: bool = False,
    ) -> List[Company]:
        """
        Load and publish companies. Returns immediately if already loaded.

        Args:
            raw: Decoded export (list of item dicts). Read from data_path if None.
            on_progress: Called with (processed, total) after each geocoding group.
            force_refresh: Geocode every company, ignoring cached coordinates.

        Raises:
            DataFormatError: If the export root is not a list. Nothing is published.
        """
        with self._load_lock:
            if self._is_loaded:
                return self._companies

            if raw is None:
                raw = self._read_export()

            items = [item for item in parse_raw_items(raw) if item.organizations]
            logger.info(f"Loaded {len(raw)} ICN items, {len(items)} with organisations")

            aggregation = aggregate_companies(items)
            companies = aggregation.company_list

            if self.use_sampling:
                companies = stratified_sample(companies, self.sample_size, rng=self.rng)

            self._geocode(companies, force_refresh=force_refresh, on_progress=on_progress)

            self._companies = companies
            self._items = items
            self.skipped = aggregation.skipped
            self._is_loaded = True
            self._last_load_time = datetime.now()

        logger.info(f"Published {len(companies)} companies with geocoded locations")
        return companies

    def _geocode(
        self,
        companies: List[Company],
        force_refresh: bool,
        on_progress: Optional[ProgressFn] = None,
    ) -> None:
        queries = [AddressQuery.from_company(c) for c in companies]
        coords = self.geocoder.resolve_batch(queries, force_refresh=force_refresh, on_progress=on_progress)
        for company, coord in zip(companies, coords):
            company.latitude = coord.latitude
            company.longitude = coord.longitude

    # --- Accessors ---

    @property
    def companies(self) -> List[Company]:
        return self._companies

    @property
    def items(self) -> List[RawItem]:
        return self._items

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def last_load_time(self) -> Optional[datetime]:
        return self._last_load_time

    def get_company(self, company_id: str) -> Optional[Company]:
        for company in self._companies:
            if company.id == company_id:
                return company
        return None

    def get_companies(self, company_ids: List[str]) -> List[Company]:
        wanted = set(company_ids)
        return [c for c in self._companies if c.id in wanted]

    def search(self, text: str) -> List[Company]:
        return search_companies(self._companies, text)

    def query(self, criteria: CompanyFilter) -> List[Company]:
        return apply_filter(self._companies, criteria)

    def statistics(self) -> Statistics:
        return build_statistics(self._companies, total_items=len(self._items))

    def filter_options(self) -> FilterOptions:
        return build_filter_options(self._companies)

    def territory_statistics(self) -> dict:
        return territory_statistics(self._companies)

    # --- Geocode cache management ---

    def force_refresh_geocoding(self, on_progress: Optional[ProgressFn] = None) -> None:
        """Re-geocode every published company, bypassing the cache."""
        if not self._is_loaded:
            logger.info("Data not loaded, cannot refresh geocoding")
            return
        logger.info(f"Force refreshing coordinates for {len(self._companies)} companies")
        with self._load_lock:
            self._geocode(self._companies, force_refresh=True, on_progress=on_progress)
        logger.info("Geocoding refresh complete")

    def geocode_cache_stats(self) -> dict:
        return self.geocoder.cache_stats()

    def clear_geocode_cache(self) -> int:
        return self.geocoder.clear_cache()

    def import_geocode_cache(self, blob: str) -> bool:
        return self.geocoder.import_cache(blob)

    def export_all(self) -> Dict[str, Any]:
        """Companies, the geocode cache blob, and the export timestamp."""
        return {
            "companies": self._companies,
            "geocode_cache": self.geocoder.export_cache(),
            "export_date": datetime.now().isoformat(),
        }

    # --- Lifecycle ---

    def set_sampling(self, enabled: bool) -> None:
        """Change the sampling mode. Loaded data is discarded."""
        if enabled != self.use_sampling:
            self.use_sampling = enabled
            self.clear()

    def clear(self) -> None:
        with self._load_lock:
            self._companies = []
            self._items = []
            self.skipped = 0
            self._is_loaded = False
            self._last_load_time = None

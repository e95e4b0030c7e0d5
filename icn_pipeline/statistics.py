"""
Aggregate statistics and filter facets over a set of companies.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from config import AUSTRALIAN_STATES, NEW_ZEALAND_TERRITORIES, STATE_CODES
from icn_pipeline.capability_types import capability_classes
from icn_pipeline.company_aggregator import Company
from icn_pipeline.utils.geo_utils import bbox_for_companies
from icn_pipeline.validation import (
    ADDRESS_PLACEHOLDER,
    CITY_PLACEHOLDER,
    ITEM_PLACEHOLDER,
    SECTOR_PLACEHOLDER,
    is_invalid,
)

TOP_CITIES = 10
MAX_CAPABILITY_OPTIONS = 100


@dataclass
class DataQuality:
    with_email: int = 0
    with_phone: int = 0
    with_website: int = 0
    with_full_address: int = 0


@dataclass
class Statistics:
    total_companies: int = 0
    total_items: int = 0
    verified: int = 0
    unverified: int = 0
    suppliers: int = 0  # supplier but not manufacturer
    manufacturers: int = 0  # manufacturer but not supplier
    both: int = 0
    services: int = 0
    retail: int = 0
    by_state: Dict[str, int] = field(default_factory=dict)
    by_sector: Dict[str, int] = field(default_factory=dict)
    by_capability_type: Dict[str, int] = field(default_factory=dict)
    top_cities: List[Dict[str, object]] = field(default_factory=list)
    avg_capabilities_per_company: float = 0.0
    data_quality: DataQuality = field(default_factory=DataQuality)
    bbox: Optional[Tuple[float, float, float, float]] = None  # (south, west, north, east)


@dataclass
class FilterOptions:
    sectors: List[str] = field(default_factory=list)
    states: List[str] = field(default_factory=list)
    cities: List[str] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)
    capability_types: List[str] = field(default_factory=list)


def build_statistics(companies: Sequence[Company], total_items: int = 0) -> Statistics:
    """
    Compute summary statistics for a company set.

    Args:
        companies: Published companies.
        total_items: Number of source items the companies were built from.
    """
    stats = Statistics(total_companies=len(companies), total_items=total_items)
    city_counts: Counter = Counter()
    total_capabilities = 0

    for company in companies:
        if company.is_verified:
            stats.verified += 1
        else:
            stats.unverified += 1

        cap_types = company.capability_types
        classes = capability_classes(cap_types)
        if "supplier" in classes and "manufacturer" in classes:
            stats.both += 1
        elif "supplier" in classes:
            stats.suppliers += 1
        elif "manufacturer" in classes:
            stats.manufacturers += 1
        if "service" in classes:
            stats.services += 1
        if "retail" in classes:
            stats.retail += 1

        for cap_type in cap_types:
            stats.by_capability_type[cap_type] = stats.by_capability_type.get(cap_type, 0) + 1

        state = company.billing_address.state
        if state in STATE_CODES:
            stats.by_state[state] = stats.by_state.get(state, 0) + 1

        city = company.billing_address.city
        if city and city != CITY_PLACEHOLDER:
            city_counts[city] += 1

        for sector in company.key_sectors:
            if sector != SECTOR_PLACEHOLDER:
                stats.by_sector[sector] = stats.by_sector.get(sector, 0) + 1

        total_capabilities += len(company.icn_capabilities)

        if company.email:
            stats.data_quality.with_email += 1
        if company.phone_number:
            stats.data_quality.with_phone += 1
        if company.website:
            stats.data_quality.with_website += 1
        if company.billing_address.street != ADDRESS_PLACEHOLDER:
            stats.data_quality.with_full_address += 1

    if companies:
        stats.avg_capabilities_per_company = round(total_capabilities / len(companies), 2)
    stats.bbox = bbox_for_companies(companies)

    # Counter.most_common keeps first-seen order among equal counts
    stats.top_cities = [
        {"city": city, "count": count} for city, count in city_counts.most_common(TOP_CITIES)
    ]
    return stats


def build_filter_options(companies: Sequence[Company]) -> FilterOptions:
    """Unique facet values for search filters."""
    sectors, states, cities, capabilities, cap_types = set(), set(), set(), set(), set()

    for company in companies:
        sectors.update(s for s in company.key_sectors if s != SECTOR_PLACEHOLDER)

        if company.billing_address.state in STATE_CODES:
            states.add(company.billing_address.state)

        city = company.billing_address.city
        if city and city != CITY_PLACEHOLDER and not is_invalid(city):
            cities.add(city)

        capabilities.update(
            cap for cap in company.capabilities
            if cap != ITEM_PLACEHOLDER and not is_invalid(cap)
        )
        cap_types.update(t for t in company.capability_types if t)

    return FilterOptions(
        sectors=sorted(sectors),
        states=[code for code in STATE_CODES if code in states],
        cities=sorted(cities),
        capabilities=sorted(capabilities)[:MAX_CAPABILITY_OPTIONS],
        capability_types=sorted(cap_types),
    )


def territory_statistics(companies: Sequence[Company]) -> dict:
    """Per-code company counts split into Australia and New Zealand."""
    counts = Counter(
        c.billing_address.state for c in companies if c.billing_address.state in STATE_CODES
    )

    australian = {code: counts.get(code, 0) for code in AUSTRALIAN_STATES}
    australian["total"] = sum(counts.get(code, 0) for code in AUSTRALIAN_STATES)

    new_zealand = {code: counts.get(code, 0) for code in NEW_ZEALAND_TERRITORIES}
    new_zealand["total"] = sum(counts.get(code, 0) for code in NEW_ZEALAND_TERRITORIES)

    return {
        "australian": australian,
        "new_zealand": new_zealand,
        "total": sum(counts.values()),
        "by_territory": dict(counts),
    }

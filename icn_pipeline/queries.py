"""
Search, filter and sort operations over published companies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from icn_pipeline.capability_types import capability_class, capability_classes
from icn_pipeline.company_aggregator import Company
from icn_pipeline.utils.geo_utils import haversine_distance

BOTH = "Both"
SORT_KEYS = ("name", "distance", "verified")
COMPANY_TYPE_FILTERS = ("supplier", "manufacturer", "both")


@dataclass
class CompanyFilter:
    """Criteria for apply_filter(). Empty fields do not filter."""
    search_text: str = ""
    states: List[str] = field(default_factory=list)
    sectors: List[str] = field(default_factory=list)
    cities: List[str] = field(default_factory=list)
    capability_types: List[str] = field(default_factory=list)
    company_types: List[str] = field(default_factory=list)
    verified_only: bool = False
    origin: Optional[Tuple[float, float]] = None  # (lat, lon)
    radius_km: Optional[float] = None
    sort_by: Optional[str] = None  # one of SORT_KEYS
    descending: bool = False
    limit: Optional[int] = None


def _matches_text(company: Company, needle: str) -> bool:
    addr = company.billing_address
    fields = [company.name, company.address, addr.city, addr.state, addr.postcode]
    fields.extend(company.key_sectors)
    fields.extend(company.capabilities)
    return any(needle in (value or "").lower() for value in fields)


def search_companies(companies: Sequence[Company], text: str) -> List[Company]:
    """Case-insensitive substring search over names, addresses, sectors and capabilities."""
    needle = (text or "").strip().lower()
    if not needle:
        return list(companies)
    return [c for c in companies if _matches_text(c, needle)]


def filter_by_state(companies: Iterable[Company], state: str) -> List[Company]:
    return [c for c in companies if c.billing_address.state == state]


def filter_by_sector(companies: Iterable[Company], sector: str) -> List[Company]:
    wanted = sector.lower()
    return [c for c in companies if any(s.lower() == wanted for s in c.key_sectors)]


def filter_by_company_type(companies: Iterable[Company], company_type: str) -> List[Company]:
    """
    Filter by capability class: 'supplier', 'manufacturer', or 'both'.

    'supplier' and 'manufacturer' include companies that are also the other.
    """
    if company_type not in COMPANY_TYPE_FILTERS:
        raise ValueError(f"Unknown company type filter: {company_type!r}")

    result = []
    for company in companies:
        classes = capability_classes(company.capability_types)
        if company_type == "both":
            if {"supplier", "manufacturer"} <= classes:
                result.append(company)
        elif company_type in classes:
            result.append(company)
    return result


def filter_by_capability_types(companies: Sequence[Company], types: Sequence[str]) -> List[Company]:
    """
    Keep companies offering any of ``types``.

    Naming one member of a class selects the whole class, and "Both" selects
    companies that are both supplier and manufacturer.
    """
    if not types:
        return list(companies)

    wanted_classes = {capability_class(t) for t in types} - {None}
    wanted = set(types)

    result = []
    for company in companies:
        cap_types = company.capability_types
        classes = capability_classes(cap_types)
        if BOTH in wanted and {"supplier", "manufacturer"} <= classes:
            result.append(company)
        elif classes & wanted_classes or wanted.intersection(cap_types):
            result.append(company)
    return result


def distance_km(company: Company, origin: Tuple[float, float]) -> float:
    return haversine_distance(origin, (company.latitude, company.longitude)) / 1000


def sort_companies(
    companies: Iterable[Company],
    sort_by: str = "name",
    descending: bool = False,
    origin: Optional[Tuple[float, float]] = None,
) -> List[Company]:
    """Sort by 'name', 'distance' (requires ``origin``) or 'verified'."""
    if sort_by == "name":
        key = lambda c: c.name.lower()
    elif sort_by == "distance":
        if origin is None:
            raise ValueError("Sorting by distance requires an origin")
        key = lambda c: distance_km(c, origin)
    elif sort_by == "verified":
        # Verified first, then by name
        key = lambda c: (not c.is_verified, c.name.lower())
    else:
        raise ValueError(f"Unknown sort key: {sort_by!r}")
    return sorted(companies, key=key, reverse=descending)


def apply_filter(companies: Sequence[Company], criteria: CompanyFilter) -> List[Company]:
    """Apply every non-empty criterion in ``criteria``, then sort and limit."""
    result = search_companies(companies, criteria.search_text)

    if criteria.states:
        states = set(criteria.states)
        result = [c for c in result if c.billing_address.state in states]
    if criteria.sectors:
        sectors = {s.lower() for s in criteria.sectors}
        result = [c for c in result if any(s.lower() in sectors for s in c.key_sectors)]
    if criteria.cities:
        cities = {city.lower() for city in criteria.cities}
        result = [c for c in result if c.billing_address.city.lower() in cities]
    if criteria.capability_types:
        result = filter_by_capability_types(result, criteria.capability_types)
    if criteria.company_types:
        matched = set()
        for company_type in criteria.company_types:
            matched.update(c.id for c in filter_by_company_type(result, company_type))
        result = [c for c in result if c.id in matched]
    if criteria.verified_only:
        result = [c for c in result if c.is_verified]
    if criteria.origin is not None and criteria.radius_km is not None:
        result = [c for c in result if distance_km(c, criteria.origin) <= criteria.radius_km]

    if criteria.sort_by:
        result = sort_companies(result, criteria.sort_by, criteria.descending, criteria.origin)
    if criteria.limit is not None:
        result = result[:criteria.limit]
    return result

"""
Capability-type normalisation and company-type derivation.

Every organisation claim in the ICN export names the organisation's role
for the item ("Supplier", "Manufacturer (Parts)", ...). The raw strings are
mapped onto a closed set of eleven types, which are grouped into four
classes used for company typing and filtering.
"""

from __future__ import annotations

from typing import Iterable, Optional, Set

from icn_pipeline.validation import is_invalid

SUPPLIER = "Supplier"
ITEM_SUPPLIER = "Item Supplier"
PARTS_SUPPLIER = "Parts Supplier"
MANUFACTURER = "Manufacturer"
MANUFACTURER_PARTS = "Manufacturer (Parts)"
SERVICE_PROVIDER = "Service Provider"
PROJECT_MANAGEMENT = "Project Management"
DESIGNER = "Designer"
ASSEMBLER = "Assembler"
RETAILER = "Retailer"
WHOLESALER = "Wholesaler"

CAPABILITY_TYPES = (
    SUPPLIER, ITEM_SUPPLIER, PARTS_SUPPLIER,
    MANUFACTURER, MANUFACTURER_PARTS,
    SERVICE_PROVIDER, PROJECT_MANAGEMENT, DESIGNER,
    ASSEMBLER, RETAILER, WHOLESALER,
)

DEFAULT_CAPABILITY_TYPE = SERVICE_PROVIDER

CAPABILITY_CLASSES = {
    "supplier": (SUPPLIER, ITEM_SUPPLIER, PARTS_SUPPLIER),
    "manufacturer": (MANUFACTURER, MANUFACTURER_PARTS, ASSEMBLER),
    "service": (SERVICE_PROVIDER, PROJECT_MANAGEMENT, DESIGNER),
    "retail": (RETAILER, WHOLESALER),
}

_CLASS_BY_TYPE = {
    cap_type: cls for cls, members in CAPABILITY_CLASSES.items() for cap_type in members
}

_EXACT_LOOKUP = {cap_type.lower(): cap_type for cap_type in CAPABILITY_TYPES}

CAPABILITY_SYNONYMS = {
    "supply": SUPPLIER,
    "suppliers": SUPPLIER,
    "supplier of items": ITEM_SUPPLIER,
    "items supplier": ITEM_SUPPLIER,
    "part supplier": PARTS_SUPPLIER,
    "parts": PARTS_SUPPLIER,
    "manufacture": MANUFACTURER,
    "manufacturing": MANUFACTURER,
    "fabricator": MANUFACTURER,
    "fabrication": MANUFACTURER,
    "manufacturer parts": MANUFACTURER_PARTS,
    "parts manufacturer": MANUFACTURER_PARTS,
    "service": SERVICE_PROVIDER,
    "services": SERVICE_PROVIDER,
    "consultant": SERVICE_PROVIDER,
    "consulting": SERVICE_PROVIDER,
    "project manager": PROJECT_MANAGEMENT,
    "project management services": PROJECT_MANAGEMENT,
    "design": DESIGNER,
    "design services": DESIGNER,
    "assembly": ASSEMBLER,
    "retail": RETAILER,
    "wholesale": WHOLESALER,
    "distributor": WHOLESALER,
    "distribution": WHOLESALER,
}

# Company types, in derivation precedence order
COMPANY_TYPES = ("both", "manufacturer", "supplier", "service", "retail")
DEFAULT_COMPANY_TYPE = "supplier"


def normalize_capability_type(value) -> str:
    """Map a raw capability-type string onto CAPABILITY_TYPES."""
    if is_invalid(value):
        return DEFAULT_CAPABILITY_TYPE

    key = " ".join(str(value).strip().lower().split())
    if key in _EXACT_LOOKUP:
        return _EXACT_LOOKUP[key]
    return CAPABILITY_SYNONYMS.get(key, DEFAULT_CAPABILITY_TYPE)


def capability_class(cap_type: str) -> Optional[str]:
    """Return 'supplier', 'manufacturer', 'service', 'retail', or None."""
    return _CLASS_BY_TYPE.get(cap_type)


def capability_classes(cap_types: Iterable[str]) -> Set[str]:
    return {cls for cls in map(capability_class, cap_types) if cls}


def determine_company_type(cap_types: Iterable[str]) -> str:
    """
    Derive a company type from all of a company's capability types.

    Precedence: both > manufacturer > supplier > service > retail.
    """
    classes = capability_classes(cap_types)

    if "supplier" in classes and "manufacturer" in classes:
        return "both"
    for cls in ("manufacturer", "supplier", "service", "retail"):
        if cls in classes:
            return cls
    return DEFAULT_COMPANY_TYPE

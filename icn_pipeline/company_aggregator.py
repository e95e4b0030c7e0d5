"""
Aggregate raw ICN item records into deduplicated companies.

The export is item-centric: each item lists every organisation offering
it, so one organisation appears once per item. Records are keyed by
organisation ID; the first record creates the Company and later records
merge sectors, capability names and capability details into it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from icn_pipeline.capability_types import determine_company_type, normalize_capability_type
from icn_pipeline.errors import DataFormatError
from icn_pipeline.state_normalizer import normalize_state
from icn_pipeline.validation import (
    ADDRESS_PLACEHOLDER,
    CITY_PLACEHOLDER,
    ITEM_PLACEHOLDER,
    SECTOR_PLACEHOLDER,
    auto_correct_city,
    clean,
    is_invalid,
    parse_validation_date,
)

logger = logging.getLogger(__name__)

# Raw export field names
ITEM_ID = "Item ID"
ITEM_NAME = "Item Name"
DETAILED_ITEM_NAME = "Detailed Item Name"
SECTOR_NAME = "Sector Name"
SECTOR_MAPPING_ID = "Sector Mapping ID"
ORGANIZATIONS = "Organizations"

ORG_CAPABILITY = "Organisation Capability"
ORG_ID = "Organisation: Organisation ID"
ORG_NAME = "Organisation: Organisation Name"
CAPABILITY_TYPE = "Capability Type"
VALIDATION_DATE = "Validation Date"
BILLING_STREET = "Organisation: Billing Street"
BILLING_CITY = "Organisation: Billing City"
BILLING_STATE = "Organisation: Billing State/Province"
BILLING_POSTCODE = "Organisation: Billing Zip/Postal Code"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class RawOrganizationRecord:
    """One organisation's claim to offer an item."""
    capability_id: str
    org_id: str
    org_name: str
    capability_type: str
    validation_date: str
    street: str
    city: str
    state: str
    postcode: str

    @classmethod
    def from_dict(cls, data: dict) -> "RawOrganizationRecord":
        return cls(
            capability_id=_text(data.get(ORG_CAPABILITY)),
            org_id=_text(data.get(ORG_ID)),
            org_name=_text(data.get(ORG_NAME)),
            capability_type=_text(data.get(CAPABILITY_TYPE)),
            validation_date=_text(data.get(VALIDATION_DATE)),
            street=_text(data.get(BILLING_STREET)),
            city=_text(data.get(BILLING_CITY)),
            state=_text(data.get(BILLING_STATE)),
            postcode=_text(data.get(BILLING_POSTCODE)),
        )


@dataclass
class RawItem:
    """An item/capability and the organisations that offer it."""
    item_id: str
    item_name: str
    detailed_item_name: str
    sector_name: str
    sector_mapping_id: str
    organizations: List[RawOrganizationRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RawItem":
        orgs = data.get(ORGANIZATIONS) or []
        if not isinstance(orgs, list):
            orgs = []
        return cls(
            item_id=_text(data.get(ITEM_ID)),
            item_name=_text(data.get(ITEM_NAME)),
            detailed_item_name=_text(data.get(DETAILED_ITEM_NAME)),
            sector_name=_text(data.get(SECTOR_NAME)),
            sector_mapping_id=_text(data.get(SECTOR_MAPPING_ID)),
            organizations=[
                RawOrganizationRecord.from_dict(org) for org in orgs if isinstance(org, dict)
            ],
        )

    @property
    def is_valid(self) -> bool:
        return not (is_invalid(self.sector_name) and is_invalid(self.item_name))


@dataclass
class BillingAddress:
    """Cleaned, normalised postal address."""
    street: str
    city: str
    state: str
    postcode: str


@dataclass
class Capability:
    """One item a company offers, with the company's role for it."""
    capability_id: str
    item_id: str
    item_name: str
    detailed_item_name: str
    capability_type: str
    sector_name: str
    sector_mapping_id: str


@dataclass
class Company:
    """A deduplicated organisation with merged capabilities."""
    id: str
    name: str
    address: str
    billing_address: BillingAddress
    latitude: float = 0.0
    longitude: float = 0.0
    verification_status: str = "unverified"  # "verified" or "unverified"
    verification_date: Optional[str] = None
    key_sectors: List[str] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)
    company_type: str = "supplier"
    icn_capabilities: List[Capability] = field(default_factory=list)
    data_source: str = "ICN"
    icn_validation_date: str = ""
    last_updated: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    # Not present in ICN data
    phone_number: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None

    @property
    def capability_types(self) -> List[str]:
        return [cap.capability_type for cap in self.icn_capabilities]

    @property
    def is_verified(self) -> bool:
        return self.verification_status == "verified"


@dataclass
class AggregationResult:
    companies: Dict[str, Company]
    skipped: int = 0

    @property
    def company_list(self) -> List[Company]:
        return list(self.companies.values())


def parse_raw_items(data: Any) -> List[RawItem]:
    """
    Parse the decoded ICN export into RawItem records.

    Raises:
        DataFormatError: If the export root is not a list.
    """
    if not isinstance(data, list):
        raise DataFormatError(
            f"Invalid ICN data format: expected a list of items, got {type(data).__name__}"
        )
    return [RawItem.from_dict(entry) for entry in data if isinstance(entry, dict)]


def _make_capability(item: RawItem, org: RawOrganizationRecord, cap_type: str) -> Capability:
    item_name = clean(item.item_name, ITEM_PLACEHOLDER)
    return Capability(
        capability_id=org.capability_id,
        item_id=item.item_id,
        item_name=item_name,
        detailed_item_name=clean(item.detailed_item_name, item_name),
        capability_type=cap_type,
        sector_name=clean(item.sector_name, SECTOR_PLACEHOLDER),
        sector_mapping_id=item.sector_mapping_id,
    )


def create_company(item: RawItem, org: RawOrganizationRecord) -> Company:
    """Build a new Company from its first-seen record."""
    org_id = org.org_id.strip()
    state = normalize_state(org.state)
    street = clean(org.street, ADDRESS_PLACEHOLDER)
    city = auto_correct_city(clean(org.city, CITY_PLACEHOLDER))
    postcode = clean(org.postcode, "")

    full_address = ", ".join(part for part in (street, city, state, postcode) if part)
    capability = _make_capability(item, org, normalize_capability_type(org.capability_type))
    verification_date = parse_validation_date(org.validation_date)

    return Company(
        id=org_id,
        name=clean(org.org_name, f"Company {org_id[-4:]}"),
        address=full_address or ADDRESS_PLACEHOLDER,
        billing_address=BillingAddress(street=street, city=city, state=state, postcode=postcode),
        verification_status="verified" if verification_date else "unverified",
        verification_date=verification_date,
        key_sectors=[capability.sector_name],
        capabilities=[capability.detailed_item_name],
        company_type=determine_company_type([capability.capability_type]),
        icn_capabilities=[capability],
        icn_validation_date=org.validation_date,
    )


def merge_into_company(company: Company, item: RawItem, org: RawOrganizationRecord) -> None:
    """Fold another record for the same organisation into ``company``."""
    capability = _make_capability(item, org, normalize_capability_type(org.capability_type))

    if capability.sector_name not in company.key_sectors:
        company.key_sectors.append(capability.sector_name)
    if capability.detailed_item_name not in company.capabilities:
        company.capabilities.append(capability.detailed_item_name)

    company.icn_capabilities.append(capability)
    company.company_type = determine_company_type(company.capability_types)


def aggregate_companies(items: Iterable[RawItem]) -> AggregationResult:
    """
    Deduplicate organisation records into one Company per organisation ID.

    Invalid items (no sector and no item name) and records without a valid
    organisation ID are skipped and counted, never fatal.

    Returns:
        AggregationResult with companies in first-seen order.
    """
    companies: Dict[str, Company] = {}
    skipped = 0
    records = 0

    for item in items:
        if not item.is_valid:
            skipped += 1
            logger.debug(f"Skipping item {item.item_id!r}: no sector or item name")
            continue

        for org in item.organizations:
            if is_invalid(org.org_id):
                skipped += 1
                continue

            records += 1
            org_id = org.org_id.strip()
            existing = companies.get(org_id)
            if existing is None:
                companies[org_id] = create_company(item, org)
            else:
                merge_into_company(existing, item, org)

    logger.info(
        f"Aggregated {records} organisation records into {len(companies)} companies "
        f"({skipped} skipped)"
    )
    return AggregationResult(companies=companies, skipped=skipped)

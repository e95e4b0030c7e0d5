"""Tests for statistics and filter options."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from icn_pipeline.company_aggregator import BillingAddress, Capability, Company
from icn_pipeline.statistics import build_filter_options, build_statistics, territory_statistics


def make_capability(cap_type: str, name: str = "Widgets", sector: str = "Energy") -> Capability:
    return Capability(
        capability_id="C", item_id="I", item_name=name, detailed_item_name=name,
        capability_type=cap_type, sector_name=sector, sector_mapping_id="S",
    )


def make_company(cid: str, cap_types=("Supplier",), state="VIC", city="Melbourne",
                 sectors=("Energy",), capabilities=("Widgets",), **kwargs) -> Company:
    defaults = {
        "id": cid,
        "name": f"Company {cid}",
        "address": "",
        "billing_address": BillingAddress(street="1 Main St", city=city, state=state, postcode="3000"),
        "key_sectors": list(sectors),
        "capabilities": list(capabilities),
        "icn_capabilities": [make_capability(t) for t in cap_types],
    }
    defaults.update(kwargs)
    return Company(**defaults)


class TestBuildStatistics:
    def test_company_type_counts(self):
        companies = [
            make_company("1", ["Supplier"]),
            make_company("2", ["Manufacturer"]),
            make_company("3", ["Supplier", "Assembler"]),
            make_company("4", ["Service Provider", "Retailer"]),
        ]
        stats = build_statistics(companies, total_items=9)
        assert stats.total_companies == 4
        assert stats.total_items == 9
        assert stats.suppliers == 1
        assert stats.manufacturers == 1
        assert stats.both == 1
        assert stats.services == 1
        assert stats.retail == 1

    def test_verification_counts(self):
        companies = [make_company("1", verification_status="verified"), make_company("2")]
        stats = build_statistics(companies)
        assert stats.verified == 1
        assert stats.unverified == 1

    def test_general_sector_excluded(self):
        stats = build_statistics([make_company("1", sectors=["General", "Mining"])])
        assert stats.by_sector == {"Mining": 1}

    def test_capability_type_counts(self):
        stats = build_statistics([make_company("1", ["Supplier", "Supplier", "Designer"])])
        assert stats.by_capability_type == {"Supplier": 2, "Designer": 1}

    def test_top_cities_excludes_placeholder_and_keeps_first_seen_ties(self):
        companies = [
            make_company("1", city="Geelong"),
            make_company("2", city="Ballarat"),
            make_company("3", city="City Not Available"),
            make_company("4", city="City Not Available"),
            make_company("5", city="Melbourne"),
            make_company("6", city="Melbourne"),
        ]
        stats = build_statistics(companies)
        assert stats.top_cities == [
            {"city": "Melbourne", "count": 2},
            {"city": "Geelong", "count": 1},
            {"city": "Ballarat", "count": 1},
        ]

    def test_average_capabilities_rounded(self):
        companies = [make_company("1", ["Supplier"]), make_company("2", ["Supplier"] * 2),
                     make_company("3", ["Supplier"] * 2)]
        assert build_statistics(companies).avg_capabilities_per_company == 1.67

    def test_empty(self):
        stats = build_statistics([])
        assert stats.total_companies == 0
        assert stats.avg_capabilities_per_company == 0.0
        assert stats.bbox is None

    def test_bbox_covers_located_companies(self):
        companies = [
            make_company("1", latitude=-37.8136, longitude=144.9631),
            make_company("2", latitude=-27.4698, longitude=153.0251),
            make_company("3"),
        ]
        assert build_statistics(companies).bbox == (-37.8136, 144.9631, -27.4698, 153.0251)

    def test_data_quality(self):
        companies = [
            make_company("1", email="a@b.com", website="https://x.com"),
            make_company("2", billing_address=BillingAddress(
                street="Address Not Available", city="Perth", state="WA", postcode="")),
        ]
        dq = build_statistics(companies).data_quality
        assert dq.with_email == 1
        assert dq.with_website == 1
        assert dq.with_phone == 0
        assert dq.with_full_address == 1


class TestFilterOptions:
    def test_facets(self):
        companies = [
            make_company("1", state="NI", city="Auckland", sectors=["Water", "General"],
                         capabilities=["Valves", "Service"]),
            make_company("2", state="WA", city="City Not Available", sectors=["Defence"],
                         capabilities=["Armour", "#N/A"], cap_types=["Designer"]),
            make_company("3", state="VIC", city="Ballarat", sectors=["Water"]),
        ]
        options = build_filter_options(companies)
        assert options.sectors == ["Defence", "Water"]
        assert options.states == ["VIC", "WA", "NI"]
        assert options.cities == ["Auckland", "Ballarat"]
        assert options.capabilities == ["Armour", "Valves", "Widgets"]
        assert options.capability_types == ["Designer", "Supplier"]

    def test_capabilities_truncated_to_100(self):
        companies = [make_company(str(i), capabilities=[f"Cap {i:03d}"]) for i in range(150)]
        options = build_filter_options(companies)
        assert len(options.capabilities) == 100
        assert options.capabilities[0] == "Cap 000"


class TestTerritoryStatistics:
    def test_split_by_country(self):
        companies = [
            make_company("1", state="VIC"),
            make_company("2", state="VIC"),
            make_company("3", state="SI"),
        ]
        result = territory_statistics(companies)
        assert result["australian"]["VIC"] == 2
        assert result["australian"]["total"] == 2
        assert result["new_zealand"]["SI"] == 1
        assert result["new_zealand"]["total"] == 1
        assert result["total"] == 3

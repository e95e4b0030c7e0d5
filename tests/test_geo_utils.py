"""Tests for geographic utilities."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from icn_pipeline.company_aggregator import BillingAddress, Company
from icn_pipeline.utils.geo_utils import bbox_for_companies, haversine_distance, normalise_lat_lng


class TestHaversine:
    def test_zero_distance(self):
        assert haversine_distance((-37.8, 144.9), (-37.8, 144.9)) == 0.0

    def test_melbourne_to_sydney(self):
        d = haversine_distance((-37.8136, 144.9631), (-33.8688, 151.2093))
        assert 700_000 < d < 730_000


class TestNormaliseLatLng:
    def test_latitude_longitude_keys(self):
        assert normalise_lat_lng({"latitude": -37.8, "longitude": 144.9}) == (-37.8, 144.9)

    def test_short_keys(self):
        assert normalise_lat_lng({"lat": "-37.8", "lng": "144.9"}) == (-37.8, 144.9)
        assert normalise_lat_lng({"lat": -37.8, "lon": 144.9}) == (-37.8, 144.9)

    def test_coordinates_pair_is_lng_lat(self):
        assert normalise_lat_lng({"coordinates": [144.9, -37.8]}) == (-37.8, 144.9)

    def test_comma_decimals(self):
        assert normalise_lat_lng({"lat": "-37,8", "lng": "144,9"}) == (-37.8, 144.9)

    def test_swapped_pair_corrected(self):
        assert normalise_lat_lng({"latitude": 144.9, "longitude": -37.8}) == (-37.8, 144.9)

    @pytest.mark.parametrize("record", [
        {},
        {"lat": "abc", "lng": "144.9"},
        {"lat": 95.0, "lng": 200.0},
        {"coordinates": [144.9]},
    ])
    def test_unusable_is_none(self, record):
        assert normalise_lat_lng(record) is None


class TestBbox:
    def make_company(self, lat, lon):
        return Company(
            id="x", name="x", address="",
            billing_address=BillingAddress(street="", city="", state="VIC", postcode=""),
            latitude=lat, longitude=lon,
        )

    def test_ignores_unlocated(self):
        companies = [self.make_company(-37.8, 144.9), self.make_company(-33.9, 151.2),
                     self.make_company(0.0, 0.0)]
        assert bbox_for_companies(companies) == (-37.8, 144.9, -33.9, 151.2)

    def test_none_located(self):
        assert bbox_for_companies([self.make_company(0.0, 0.0)]) is None

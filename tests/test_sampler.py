"""Tests for stratified sampling."""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from icn_pipeline.company_aggregator import BillingAddress, Company
from icn_pipeline.sampler import stratified_sample


def make_company(cid: str, state: str = "VIC", sectors=None) -> Company:
    return Company(
        id=cid,
        name=f"Company {cid}",
        address="",
        billing_address=BillingAddress(street="1 Main St", city="Somewhere", state=state, postcode=""),
        key_sectors=sectors or ["General"],
    )


class TestStratifiedSample:
    def test_small_input_unchanged(self):
        companies = [make_company(str(i)) for i in range(5)]
        assert stratified_sample(companies, target_size=5) is companies

    def test_bounded_and_unique(self):
        companies = [make_company(str(i), sectors=[f"S{i % 7}"]) for i in range(100)]
        sample = stratified_sample(companies, target_size=20, rng=random.Random(1))
        assert len(sample) == 20
        assert len({c.id for c in sample}) == 20

    def test_every_state_represented(self):
        states = ["VIC", "NSW", "QLD", "SA", "WA"]
        companies = [make_company(f"{s}-{i}", state=s) for i in range(20) for s in states]
        sample = stratified_sample(companies, target_size=5, rng=random.Random(7))
        assert {c.billing_address.state for c in sample} == set(states)

    def test_every_sector_represented_when_room(self):
        sectors = ["Mining", "Energy", "Defence", "Water"]
        companies = [make_company(f"{s}-{i}", sectors=[s]) for i in range(10) for s in sectors]
        sample = stratified_sample(companies, target_size=6, rng=random.Random(3))
        covered = {sector for c in sample for sector in c.key_sectors}
        assert set(sectors) <= covered

    def test_cap_respected_with_many_strata(self):
        companies = [make_company(str(i), sectors=[f"Sector {i}"]) for i in range(50)]
        sample = stratified_sample(companies, target_size=10, rng=random.Random(0))
        assert len(sample) == 10

    def test_general_sector_not_a_stratum(self):
        companies = [make_company(str(i)) for i in range(30)]
        sample = stratified_sample(companies, target_size=3, rng=random.Random(0))
        assert len(sample) == 3

    def test_seeded_rng_is_deterministic(self):
        companies = [make_company(str(i), sectors=[f"S{i % 5}"]) for i in range(60)]
        first = stratified_sample(companies, 15, rng=random.Random(42))
        second = stratified_sample(companies, 15, rng=random.Random(42))
        assert [c.id for c in first] == [c.id for c in second]

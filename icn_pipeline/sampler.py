"""
Coverage-preserving sampling of companies.

Bounds the number of companies sent to geocoding while keeping at least
one company from every state and every sector where the bound allows.
"""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Set

from config import SAMPLE_TARGET_SIZE, STATE_CODES
from icn_pipeline.company_aggregator import Company
from icn_pipeline.validation import SECTOR_PLACEHOLDER

logger = logging.getLogger(__name__)


def _group_by_state(companies: List[Company]) -> Dict[str, List[Company]]:
    groups: Dict[str, List[Company]] = {}
    for company in companies:
        state = company.billing_address.state
        if state in STATE_CODES:
            groups.setdefault(state, []).append(company)
    return groups


def _group_by_sector(companies: List[Company]) -> Dict[str, List[Company]]:
    groups: Dict[str, List[Company]] = {}
    for company in companies:
        for sector in company.key_sectors:
            if sector != SECTOR_PLACEHOLDER:
                groups.setdefault(sector, []).append(company)
    return groups


def stratified_sample(
    companies: List[Company],
    target_size: int = SAMPLE_TARGET_SIZE,
    rng: Optional[random.Random] = None,
) -> List[Company]:
    """
    Reduce ``companies`` to at most ``target_size``.

    1. One random company per state (first-seen state order).
    2. One random not-yet-selected company per sector, "General" excluded.
    3. Shuffle the rest and fill up to ``target_size``.

    Inputs no larger than ``target_size`` are returned unchanged. Pass a
    seeded ``rng`` for reproducible samples.
    """
    if len(companies) <= target_size:
        return companies

    rng = rng or random.Random()
    selected: Set[str] = set()
    result: List[Company] = []

    for state, group in _group_by_state(companies).items():
        if len(result) >= target_size:
            break
        company = rng.choice(group)
        if company.id not in selected:
            selected.add(company.id)
            result.append(company)

    states_covered = len(result)

    for sector, group in _group_by_sector(companies).items():
        if len(result) >= target_size:
            break
        unselected = [c for c in group if c.id not in selected]
        if unselected:
            company = rng.choice(unselected)
            selected.add(company.id)
            result.append(company)

    sectors_covered = len(result) - states_covered

    remaining = target_size - len(result)
    if remaining > 0:
        pool = [c for c in companies if c.id not in selected]
        rng.shuffle(pool)
        result.extend(pool[:remaining])

    logger.info(
        f"Sampled {len(result)} of {len(companies)} companies "
        f"({states_covered} by state, {sectors_covered} by sector)"
    )
    return result

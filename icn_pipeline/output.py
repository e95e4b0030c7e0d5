"""
Tabular export and console reporting of pipeline results.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from config import OUTPUT_DIR
from icn_pipeline.company_aggregator import Company
from icn_pipeline.statistics import Statistics

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "


def companies_to_dataframe(companies: List[Company]) -> pd.DataFrame:
    """Convert a list of Company to a pandas DataFrame, one row per company."""
    records = []
    for c in companies:
        addr = c.billing_address
        records.append({
            "id": c.id,
            "name": c.name,
            "address": c.address,
            "street": addr.street,
            "city": addr.city,
            "state": addr.state,
            "postcode": addr.postcode,
            "latitude": c.latitude,
            "longitude": c.longitude,
            "company_type": c.company_type,
            "verification_status": c.verification_status,
            "verification_date": c.verification_date,
            "key_sectors": LIST_SEPARATOR.join(c.key_sectors),
            "capabilities": LIST_SEPARATOR.join(c.capabilities),
            "capability_types": LIST_SEPARATOR.join(sorted(set(c.capability_types))),
            "capability_count": len(c.icn_capabilities),
            "data_source": c.data_source,
            "last_updated": c.last_updated,
        })
    return pd.DataFrame(records)


def save_results(
    companies: List[Company],
    stem: str = "icn_companies",
    output_dir: Optional[Path] = None,
) -> Tuple[Path, Path]:
    """
    Save companies to CSV and JSON.

    Returns:
        Tuple of (csv_path, json_path).
    """
    output_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    df = companies_to_dataframe(companies)

    csv_path = output_dir / f"{stem}.csv"
    json_path = output_dir / f"{stem}.json"

    df.to_csv(csv_path, index=False)
    df.to_json(json_path, orient="records", indent=2)

    logger.info(f"Saved {len(df)} companies to {csv_path}")
    return csv_path, json_path


def print_summary(stats: Statistics, skipped: int = 0) -> None:
    """Print a summary of the loaded company set."""
    if stats.total_companies == 0:
        logger.info("No companies loaded.")
        return

    print(f"\n{'=' * 60}")
    print("ICN CAPABILITY PIPELINE RESULTS")
    print(f"{'=' * 60}")
    print(f"Total companies:             {stats.total_companies}")
    print(f"Total items:                 {stats.total_items}")
    print(f"Records skipped:             {skipped}")
    print(f"  Verified:                  {stats.verified}")
    print(f"  Unverified:                {stats.unverified}")
    print(f"\nSuppliers only:              {stats.suppliers}")
    print(f"Manufacturers only:          {stats.manufacturers}")
    print(f"Supplier & manufacturer:     {stats.both}")
    print(f"Service providers:           {stats.services}")
    print(f"Retail/wholesale:            {stats.retail}")
    print(f"Avg capabilities:            {stats.avg_capabilities_per_company}")

    print(f"\nState breakdown:")
    for state, count in stats.by_state.items():
        print(f"  {state:<25} {count}")

    print(f"\nTop sectors:")
    for sector, count in sorted(stats.by_sector.items(), key=lambda x: -x[1])[:10]:
        print(f"  {sector:<25} {count}")

    print(f"\nTop cities:")
    for entry in stats.top_cities[:5]:
        print(f"  {entry['city']:<25} {entry['count']}")

    dq = stats.data_quality
    print(f"\nWith full street address:    {dq.with_full_address}")
    if stats.bbox:
        south, west, north, east = stats.bbox
        print(f"Bounding box (S,W,N,E):      {south:.4f}, {west:.4f}, {north:.4f}, {east:.4f}")
    print(f"{'=' * 60}\n")

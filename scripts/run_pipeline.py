#!/usr/bin/env python3
"""
Run the ICN capability pipeline: load, aggregate, sample, geocode, save.

Usage:
    python scripts/run_pipeline.py
    python scripts/run_pipeline.py --input data/ICN_Navigator.Company.json --no-sampling
    python scripts/run_pipeline.py --import-cache backup.json --export-cache backup.json
"""

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ICN_DATA_PATH, LOG_DATE_FORMAT, LOG_FORMAT, SAMPLE_TARGET_SIZE
from icn_pipeline.data_service import IcnDataService
from icn_pipeline.errors import IcnPipelineError
from icn_pipeline.geocoder import GeocodeCacheService
from icn_pipeline.output import print_summary, save_results

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger("run_pipeline")


def log_progress(processed: int, total: int) -> None:
    logger.info(f"Geocoded {processed}/{total} addresses")


def main() -> None:
    parser = argparse.ArgumentParser(description="ICN capability pipeline")
    parser.add_argument("--input", type=Path, default=ICN_DATA_PATH, help="ICN export JSON file")
    parser.add_argument("--no-sampling", action="store_true", help="Process every company")
    parser.add_argument("--sample-size", type=int, default=SAMPLE_TARGET_SIZE,
                        help=f"Companies to keep when sampling (default {SAMPLE_TARGET_SIZE})")
    parser.add_argument("--force-refresh", action="store_true",
                        help="Re-geocode every company, ignoring cached coordinates")
    parser.add_argument("--import-cache", type=Path, help="Geocode cache blob to import before loading")
    parser.add_argument("--export-cache", type=Path, help="Write the geocode cache blob here afterwards")
    parser.add_argument("--output-stem", default="icn_companies", help="Output file name stem")

    args = parser.parse_args()

    if not args.input.exists():
        print(f"Input file not found: {args.input}")
        sys.exit(1)

    start = time.time()
    geocoder = GeocodeCacheService()
    service = IcnDataService(
        data_path=args.input,
        geocoder=geocoder,
        use_sampling=not args.no_sampling,
        sample_size=args.sample_size,
    )

    if args.import_cache:
        if service.import_geocode_cache(args.import_cache.read_text()):
            logger.info(f"Imported geocode cache from {args.import_cache}")
        else:
            logger.warning(f"Could not import geocode cache from {args.import_cache}")

    try:
        service.load(on_progress=log_progress, force_refresh=args.force_refresh)
    except IcnPipelineError as e:
        logger.error(f"[{e.error_code}] {e}")
        sys.exit(1)

    save_results(service.companies, args.output_stem)
    print_summary(service.statistics(), skipped=service.skipped)

    cache_stats = service.geocode_cache_stats()
    logger.info(
        f"Geocode cache: {cache_stats['total']} entries "
        f"({cache_stats['geocoded']} geocoded, {cache_stats['fallback']} fallback)"
    )

    if args.export_cache:
        args.export_cache.write_text(service.export_all()["geocode_cache"])
        logger.info(f"Exported geocode cache to {args.export_cache}")

    elapsed = time.time() - start
    logger.info(f"Pipeline completed in {elapsed:.0f}s")


if __name__ == "__main__":
    main()

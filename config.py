"""
ICN capability pipeline configuration.

Region definitions, geocoding API settings, and constants.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# --- Paths ---
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = Path(os.getenv("ICN_DATA_DIR", str(PROJECT_ROOT / "data")))
OUTPUT_DIR = DATA_DIR / "output"
CACHE_DIR = PROJECT_ROOT / ".cache"

ICN_DATA_PATH = Path(os.getenv("ICN_DATA_PATH", str(DATA_DIR / "ICN_Navigator.Company.json")))
GEOCODE_CACHE_PATH = CACHE_DIR / "geocode_cache.json"

# Ensure directories exist
for d in [DATA_DIR, OUTPUT_DIR, CACHE_DIR]:
    d.mkdir(parents=True, exist_ok=True)

# --- API Keys ---
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")

# --- Google Geocoding API ---
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
GEOCODE_RATE_LIMIT = 40.0  # requests per second (API allows 50)
GEOCODE_TIMEOUT = 15  # seconds per request
GEOCODE_BATCH_SIZE = 10  # concurrent requests per group
GEOCODE_BATCH_DELAY_S = 0.1  # pause between groups

# --- Geocode cache ---
GEOCODE_CACHE_VERSION = "1.0.0"
GEOCODE_CACHE_TTL_DAYS = 30

# --- Sampling ---
SAMPLE_TARGET_SIZE = 300

# --- Region Definitions ---
# Australian states/territories first, then New Zealand islands. Order is
# significant: fuzzy state matching breaks ties by it and facet lists use it.
REGIONS = {
    "VIC": {
        "name": "Victoria",
        "country": "Australia",
        "capital": "Melbourne",
        "fallback": (-37.8136, 144.9631),
    },
    "NSW": {
        "name": "New South Wales",
        "country": "Australia",
        "capital": "Sydney",
        "fallback": (-33.8688, 151.2093),
    },
    "QLD": {
        "name": "Queensland",
        "country": "Australia",
        "capital": "Brisbane",
        "fallback": (-27.4698, 153.0251),
    },
    "SA": {
        "name": "South Australia",
        "country": "Australia",
        "capital": "Adelaide",
        "fallback": (-34.9285, 138.6007),
    },
    "WA": {
        "name": "Western Australia",
        "country": "Australia",
        "capital": "Perth",
        "fallback": (-31.9505, 115.8605),
    },
    "NT": {
        "name": "Northern Territory",
        "country": "Australia",
        "capital": "Darwin",
        "fallback": (-12.4634, 130.8456),
    },
    "TAS": {
        "name": "Tasmania",
        "country": "Australia",
        "capital": "Hobart",
        "fallback": (-42.8821, 147.3272),
    },
    "ACT": {
        "name": "Australian Capital Territory",
        "country": "Australia",
        "capital": "Canberra",
        "fallback": (-35.2809, 149.1300),
    },
    "NI": {
        "name": "North Island",
        "country": "New Zealand",
        "capital": "Auckland",
        "fallback": (-36.8485, 174.7633),
    },
    "SI": {
        "name": "South Island",
        "country": "New Zealand",
        "capital": "Christchurch",
        "fallback": (-43.5321, 172.6362),
    },
}

STATE_CODES = list(REGIONS)
AUSTRALIAN_STATES = [code for code, r in REGIONS.items() if r["country"] == "Australia"]
NEW_ZEALAND_TERRITORIES = [code for code, r in REGIONS.items() if r["country"] == "New Zealand"]
DEFAULT_FALLBACK_STATE = "VIC"

# --- Logging ---
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

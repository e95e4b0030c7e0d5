"""
Resolve free-text region strings to one of ten state/territory codes.

Billing state values in the ICN export are typed by hand: full names,
abbreviations with stray punctuation, city names, misspellings, and
sometimes text that has nothing to do with a region. Resolution runs
four stages in order and the first hit wins:

  1. Alias lookup (full names, abbreviations, major cities, known typos)
  2. Exact code match or typo-correction table
  3. Fuzzy match by Levenshtein distance (<= 3), plus a first-letter rule
     for two-character inputs
  4. Heuristic default (alias containment, domain keywords, first letter)

normalize_state() never raises and always returns a code from STATE_CODES.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from rapidfuzz.distance import Levenshtein

from config import STATE_CODES
from icn_pipeline.validation import is_invalid

logger = logging.getLogger(__name__)

MAX_FUZZY_DISTANCE = 3
DEFAULT_STATE = "NSW"

# Keys are written naturally and compacted (lowercase, alphanumerics only)
# when the lookup table is built.
STATE_ALIASES = {
    # Codes
    "vic": "VIC", "nsw": "NSW", "qld": "QLD", "sa": "SA", "wa": "WA",
    "nt": "NT", "tas": "TAS", "act": "ACT", "ni": "NI", "si": "SI",
    # Full names
    "victoria": "VIC",
    "new south wales": "NSW",
    "queensland": "QLD",
    "south australia": "SA",
    "western australia": "WA",
    "northern territory": "NT",
    "tasmania": "TAS",
    "australian capital territory": "ACT",
    "north island": "NI",
    "south island": "SI",
    # Common abbreviations
    "vict": "VIC", "tassie": "TAS", "queens": "QLD", "w.a.": "WA", "s.a.": "SA",
    "n.s.w.": "NSW", "a.c.t.": "ACT", "n.t.": "NT",
    # Capitals and major cities
    "melbourne": "VIC", "geelong": "VIC", "ballarat": "VIC", "bendigo": "VIC",
    "sydney": "NSW", "newcastle": "NSW", "wollongong": "NSW",
    "brisbane": "QLD", "gold coast": "QLD", "townsville": "QLD", "cairns": "QLD",
    "adelaide": "SA",
    "perth": "WA", "fremantle": "WA",
    "darwin": "NT", "alice springs": "NT",
    "hobart": "TAS", "launceston": "TAS",
    "canberra": "ACT",
    "auckland": "NI", "wellington": "NI", "hamilton": "NI", "tauranga": "NI",
    "christchurch": "SI", "dunedin": "SI", "queenstown": "SI", "nelson": "SI",
    # Known typos
    "qkd": "QLD",
    "victora": "VIC", "vicotria": "VIC",
    "queensand": "QLD", "queenland": "QLD",
    "tasmaina": "TAS",
    "new south whales": "NSW",
}

TYPO_CORRECTIONS = {
    "VUC": "VIC", "VOC": "VIC", "VIS": "VIC",
    "MSW": "NSW", "NWS": "NSW", "NSE": "NSW",
    "QKD": "QLD", "QLS": "QLD", "QLF": "QLD",
    "SAA": "SA", "SAS": "SA", "AS": "SA",
    "WAA": "WA", "WWA": "WA", "QA": "WA",
    "NTT": "NT", "NNT": "NT", "MT": "NT",
    "TAZ": "TAS", "TQS": "TAS", "TSA": "TAS",
    "AXT": "ACT", "SCT": "ACT", "ACY": "ACT",
}

FIRST_LETTER_STATES = {
    "N": "NSW",
    "V": "VIC",
    "Q": "QLD",
    "W": "WA",
    "T": "TAS",
    "A": "ACT",
    "S": "SA",
}

# First matching keyword wins
DOMAIN_KEYWORDS = [
    (("mine", "mining"), "WA"),
    (("tech",), "VIC"),
    (("finance", "bank"), "NSW"),
    (("tourism", "resort"), "QLD"),
    (("wine",), "SA"),
    (("forest",), "TAS"),
    (("government",), "ACT"),
    (("indigenous",), "NT"),
]

_AFFIX_RE = re.compile(r"^(state of |territory of |province of )|( state| territory| province)$")
MIN_CONTAINMENT_LENGTH = 4


def _compact(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


_ALIAS_LOOKUP = {_compact(key): code for key, code in STATE_ALIASES.items()}


def _lookup_alias(value: str) -> Optional[str]:
    cleaned = value.strip().lower()
    for candidate in (cleaned, _AFFIX_RE.sub("", cleaned)):
        code = _ALIAS_LOOKUP.get(_compact(candidate))
        if code:
            return code
    return None


def _first_letter_state(letters: str) -> Optional[str]:
    """Map a two-letter token by its first letter (SI for 'S' + 'I')."""
    if letters[0] == "S" and letters[1] == "I":
        return "SI"
    return FIRST_LETTER_STATES.get(letters[0])


def find_closest_state(value: str) -> Optional[str]:
    """
    Fuzzy-match a region string against the ten codes.

    Returns None when no code is within MAX_FUZZY_DISTANCE edits.
    """
    letters = re.sub(r"[^A-Z0-9]", "", value.upper())
    if not letters:
        return None

    if letters in STATE_CODES:
        return letters
    if letters in TYPO_CORRECTIONS:
        return TYPO_CORRECTIONS[letters]

    if len(letters) == 2:
        by_letter = _first_letter_state(letters)
        if by_letter:
            return by_letter

    best_code = None
    best_distance = MAX_FUZZY_DISTANCE + 1
    for code in STATE_CODES:
        distance = Levenshtein.distance(letters, code)
        if distance < best_distance:
            best_code = code
            best_distance = distance

    return best_code


def default_state_for_unknown(value: str) -> str:
    """Last-resort guess for text that matched nothing else."""
    compact = _compact(value)
    for alias, code in _ALIAS_LOOKUP.items():
        if len(alias) >= MIN_CONTAINMENT_LENGTH and alias in compact:
            return code

    lower = value.lower()
    for keywords, code in DOMAIN_KEYWORDS:
        if any(kw in lower for kw in keywords):
            return code

    letters = re.sub(r"[^A-Z]", "", value.upper())
    if letters:
        return FIRST_LETTER_STATES.get(letters[0], DEFAULT_STATE)
    return DEFAULT_STATE


def normalize_state(value: Any) -> str:
    """Resolve a raw billing state value to a state/territory code."""
    if is_invalid(value):
        return DEFAULT_STATE

    text = str(value)

    code = _lookup_alias(text)
    if code:
        return code

    upper = text.strip().upper()
    if upper in STATE_CODES:
        return upper
    if upper in TYPO_CORRECTIONS:
        return TYPO_CORRECTIONS[upper]

    code = find_closest_state(upper)
    if code:
        return code

    code = default_state_for_unknown(text)
    logger.debug(f"No match for state value {text!r}, defaulted to {code}")
    return code

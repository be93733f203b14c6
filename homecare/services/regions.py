"""
Climate region inference from a free-text US street address.

The state is located first and then mapped to a region:

1. the last comma-separated part of the locality ("..., Denver, CO 80202",
   "..., Seattle, Washington"), with any ZIP code stripped;
2. otherwise a two-letter code directly before a ZIP code;
3. otherwise the right-most full state name in the locality.

Two-letter codes are never read out of the street part, so directionals
("Peachtree St NE") and road prefixes ("Co Rd 5") don't count. States
without a mapped region fall back to Northeast.
"""
import re
from typing import Optional

DEFAULT_REGION = "Northeast"

REGION_STATES = [
    ("West Coast", ["CA"]),
    ("Southeast", ["FL"]),
    ("Southwest", ["TX", "AZ", "NM"]),
    ("Pacific Northwest", ["WA", "OR"]),
    ("Mountain States", ["CO", "UT", "MT", "WY", "ID", "NV"]),
    ("Midwest", ["OH", "MI", "IL", "IN", "WI", "MN", "IA", "MO", "ND", "SD", "NE", "KS"]),
    ("South Central", ["OK", "AR", "LA", "MS"]),
    ("Alaska", ["AK"]),
    ("Hawaii", ["HI"]),
]

REGIONS = [name for name, _ in REGION_STATES] + [DEFAULT_REGION]

STATE_NAMES = {
    "AL": "alabama", "AK": "alaska", "AZ": "arizona", "AR": "arkansas",
    "CA": "california", "CO": "colorado", "CT": "connecticut", "DE": "delaware",
    "DC": "district of columbia", "FL": "florida", "GA": "georgia", "HI": "hawaii",
    "ID": "idaho", "IL": "illinois", "IN": "indiana", "IA": "iowa",
    "KS": "kansas", "KY": "kentucky", "LA": "louisiana", "ME": "maine",
    "MD": "maryland", "MA": "massachusetts", "MI": "michigan", "MN": "minnesota",
    "MS": "mississippi", "MO": "missouri", "MT": "montana", "NE": "nebraska",
    "NV": "nevada", "NH": "new hampshire", "NJ": "new jersey", "NM": "new mexico",
    "NY": "new york", "NC": "north carolina", "ND": "north dakota", "OH": "ohio",
    "OK": "oklahoma", "OR": "oregon", "PA": "pennsylvania", "RI": "rhode island",
    "SC": "south carolina", "SD": "south dakota", "TN": "tennessee", "TX": "texas",
    "UT": "utah", "VT": "vermont", "VA": "virginia", "WA": "washington",
    "WV": "west virginia", "WI": "wisconsin", "WY": "wyoming",
}
# Longest names first so "west virginia" wins over "virginia"
CODE_BY_NAME = {name: code for code, name in sorted(STATE_NAMES.items(), key=lambda item: -len(item[1]))}
REGION_BY_STATE = {code: region for region, codes in REGION_STATES for code in codes}

_ZIP = re.compile(r"\b\d{5}(?:-\d{4})?\b")
_CODE_BEFORE_ZIP = re.compile(r"\b([A-Za-z]{2})\.?[\s,]+\d{5}(?:-\d{4})?\b")
_NAME_PATTERN = re.compile(r"\b(" + "|".join(map(re.escape, CODE_BY_NAME)) + r")\b")


def _words(text: str) -> str:
    return " ".join(re.findall(r"[a-z]+", text.lower()))


def _state_at_end(part: str) -> Optional[str]:
    words = _words(_ZIP.sub(" ", part))
    if not words:
        return None
    last = words.rsplit(" ", 1)[-1].upper()
    if len(last) == 2 and last in STATE_NAMES:
        return last
    for name, code in CODE_BY_NAME.items():
        if words == name or words.endswith(" " + name):
            return code
    return None


def find_state(address: str) -> Optional[str]:
    """Two-letter code of the address's state, or None if it can't be found."""
    parts = [p for p in (address or "").split(",") if p.strip()]
    if not parts:
        return None
    locality = parts[1:] if len(parts) > 1 else parts

    if len(parts) > 1:
        state = _state_at_end(parts[-1])
        if state:
            return state

    for match in reversed(list(_CODE_BEFORE_ZIP.finditer(address))):
        code = match.group(1).upper()
        if code in STATE_NAMES:
            return code

    names = _NAME_PATTERN.findall(_words(" , ".join(locality)))
    if names:
        return CODE_BY_NAME[names[-1]]
    return None


def infer_region(address: str) -> str:
    """Return the climate region for an address, defaulting to Northeast."""
    state = find_state(address)
    return REGION_BY_STATE.get(state, DEFAULT_REGION)

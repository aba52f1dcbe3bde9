"""
FIPS / GEO_ID Conversion Module

County identifiers appear in two forms:
- GEO_ID: "0500000US" + 5-digit FIPS, used by the county reference dataset
- FIPS: 5-digit state (2) + county (3) code, the persisted form

Conversions never raise: anything that does not match returns None and is
dropped by the list helpers.

Author: CountyZones Project
License: AGPL-3.0
"""

import re
from typing import Iterable, List, Optional

GEO_ID_PREFIX = "0500000US"

## @brief Whole-string patterns over ASCII digits; always used with fullmatch()
FIPS_RE = re.compile(r"\d{5}", re.ASCII)
GEO_ID_RE = re.compile(r"0500000US(\d{2})(\d{3})", re.ASCII)


def fips_from_geo_id(geo_id: Optional[str]) -> Optional[str]:
    """Convert "0500000US53033" to "53033"; None if not a county GEO_ID."""
    if not geo_id or not isinstance(geo_id, str):
        return None
    match = GEO_ID_RE.fullmatch(geo_id)
    return f"{match.group(1)}{match.group(2)}" if match else None


def geo_id_from_fips(fips: Optional[str]) -> Optional[str]:
    """Convert "53033" to "0500000US53033"; None unless fips is exactly 5 digits."""
    if not fips or not isinstance(fips, str) or not FIPS_RE.fullmatch(fips):
        return None
    return f"{GEO_ID_PREFIX}{fips}"


def state_fips_from_fips(fips: Optional[str]) -> Optional[str]:
    if not fips or not isinstance(fips, str) or not FIPS_RE.fullmatch(fips):
        return None
    return fips[:2]


def fips_from_state_county(state: Optional[str], county: Optional[str]) -> Optional[str]:
    """
    Build a 5-digit FIPS from the dataset's STATE and COUNTY properties.

    The pair is concatenated and left-padded with zeros, so ("1", "029")
    becomes "01029".
    """
    if not state or not county:
        return None
    fips = f"{state}{county}".zfill(5)
    return fips if FIPS_RE.fullmatch(fips) else None


def normalize_fips_list(values: Optional[Iterable]) -> List[str]:
    """
    Normalise a raw FIPS list for persistence.

    Values are stringified and stripped; anything that is not exactly five
    digits is dropped and duplicates keep their first position.
    """
    if values is None or isinstance(values, (str, bytes)):
        return []
    seen = set()
    out = []
    for value in values:
        code = str(value if value is not None else "").strip()
        if FIPS_RE.fullmatch(code) and code not in seen:
            seen.add(code)
            out.append(code)
    return out


def fips_list_from_geo_ids(geo_ids: Iterable[str]) -> List[str]:
    """Convert GEO_IDs to a normalised FIPS list, dropping unconvertible ids."""
    return normalize_fips_list(
        fips for fips in (fips_from_geo_id(g) for g in geo_ids) if fips is not None
    )

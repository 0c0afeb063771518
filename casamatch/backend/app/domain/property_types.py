# app/domain/property_types.py
from __future__ import annotations

import re

# Exact aliases first; anything else falls through to the lowercase input
PROPERTY_TYPE_ALIASES: dict[str, str] = {
    "single family": "house",
    "single-family": "house",
    "singlefamily": "house",
    "single_family": "house",
    "house": "house",
    "condo": "condo",
    "condominium": "condo",
    "apartment": "apartment",
    "townhouse": "townhouse",
    "townhome": "townhouse",
    "multi-family": "multi_family",
    "multi family": "multi_family",
    "multifamily": "multi_family",
    "multi_family": "multi_family",
    "land": "land",
    "lot": "land",
    "commercial": "commercial",
}

# Display labels for titles synthesized from Spanish-language local data
SPANISH_LABELS: dict[str, str] = {
    "residential": "Residencial",
    "apartment": "Apartamento",
    "house": "Casa",
    "condo": "Condominio",
    "land": "Terreno",
    "commercial": "Comercial",
    "townhouse": "Townhouse",
}

ENGLISH_LABELS: dict[str, str] = {
    "single_family": "Single Family Home",
    "condo": "Condo",
    "condos": "Condo",
    "coop": "Co-op",
    "co_op": "Co-op",
    "townhomes": "Townhouse",
    "townhouse": "Townhouse",
    "apartment": "Apartment",
    "multi_family": "Multi-Family",
    "land": "Land",
    "mobile": "Mobile Home",
    "commercial": "Commercial",
}


def normalize_property_type(raw: object) -> str:
    """
    Map an upstream property type into the shared vocabulary
    (house, condo, apartment, townhouse, multi_family, land, commercial).
    Unknown strings pass through lowercased; None becomes 'unknown'.
    """
    if raw is None:
        return "unknown"

    s = str(raw).strip().lower()
    if not s:
        return "unknown"

    if s in PROPERTY_TYPE_ALIASES:
        return PROPERTY_TYPE_ALIASES[s]

    collapsed = re.sub(r"[\s_/|-]+", " ", s)
    return PROPERTY_TYPE_ALIASES.get(collapsed, s)


def spanish_label(norm_type: str | None) -> str:
    return SPANISH_LABELS.get((norm_type or "").lower(), "Propiedad")


def english_label(raw_type: str) -> str:
    return ENGLISH_LABELS.get(raw_type.lower(), raw_type.replace("_", " "))


def property_type_from_icon(icon: str | None) -> str:
    """Xposure encodes the property type only in its map icon name."""
    if not icon:
        return "residential"
    for kind in ("apartment", "house", "condo", "land", "commercial", "townhouse"):
        if kind in icon:
            return kind
    return "residential"

# app/domain/locations.py
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

STATE_CODES_BY_NAME: dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC", "puerto rico": "PR",
}
STATE_CODES: set[str] = set(STATE_CODES_BY_NAME.values())

_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")

PUERTO_RICO_CITIES: set[str] = {
    "san juan", "aguadilla", "rincon", "rincón", "dorado", "guaynabo", "mayaguez", "mayagüez",
    "ponce", "carolina", "bayamon", "bayamón", "caguas", "arecibo", "fajardo", "humacao",
    "isabela", "cabo rojo", "vega baja", "vega alta", "manati", "manatí", "toa baja", "toa alta",
    "trujillo alto", "guayama", "yauco", "coamo", "hatillo", "aguada", "moca", "añasco", "anasco",
    "isla verde", "condado", "viejo san juan", "santurce", "luquillo", "rio grande", "río grande",
    "culebra", "vieques", "loiza", "loíza", "canóvanas", "canovanas", "gurabo", "juncos", "las piedras",
}

# Accent pairs as they appear in imported city names
_ACCENTED_CITIES: dict[str, str] = {
    "mayaguez": "mayagüez",
    "rincon": "rincón",
    "bayamon": "bayamón",
    "manati": "manatí",
    "anasco": "añasco",
    "rio grande": "río grande",
    "loiza": "loíza",
    "canovanas": "canóvanas",
}


def strip_accents(text: str) -> str:
    """Lowercase, trim and drop combining marks: 'Mayagüez ' -> 'mayaguez'."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).strip()


def is_zip_code(value: str) -> bool:
    return bool(_ZIP_RE.match(value.strip()))


def is_state_name(value: str) -> bool:
    s = value.strip().lower()
    return s in STATE_CODES_BY_NAME or s.upper() in STATE_CODES


def normalize_state_code(value: str) -> str:
    s = value.strip().lower()
    if len(s) == 2 and s.upper() in STATE_CODES:
        return s.upper()
    return STATE_CODES_BY_NAME.get(s, value.strip().upper())


@dataclass(frozen=True)
class ParsedLocation:
    state_code: str | None = None
    city: str | None = None
    postal_code: str | None = None


def parse_location(*, city: str | None, state: str | None) -> ParsedLocation:
    """
    Free-text city/state from a lifestyle analysis is often mislabeled:
    a state name in the city slot, a ZIP in the city slot, a city in the
    state slot. Sort them into the right buckets.
    """
    state_code: str | None = None
    parsed_city: str | None = None
    postal_code: str | None = None

    if state:
        if is_state_name(state):
            state_code = normalize_state_code(state)
        else:
            parsed_city = state

    if city:
        if is_state_name(city):
            state_code = normalize_state_code(city)
        elif is_zip_code(city):
            postal_code = city.strip()
        else:
            parsed_city = city

    return ParsedLocation(state_code=state_code, city=parsed_city, postal_code=postal_code)


def is_puerto_rico_location(*, city: str | None, state: str | None, zip_code: str | None) -> bool:
    """
    True for an explicit PR state, a known PR city (accents optional, also as
    a substring like 'Condado, San Juan'), or no location at all.
    """
    st = (state or "").strip().lower()
    if st in ("pr", "puerto rico"):
        return True

    if city and city.strip():
        raw = city.strip().lower()
        if raw in PUERTO_RICO_CITIES:
            return True
        norm = strip_accents(city)
        for pr_city in PUERTO_RICO_CITIES:
            if strip_accents(pr_city) in norm:
                return True
        return False

    return not st and not zip_code


def city_variations(city: str) -> list[str]:
    """Spellings to try when matching a city against stored rows."""
    out = [city]
    norm = strip_accents(city)
    accented = _ACCENTED_CITIES.get(norm)
    if accented:
        for v in (norm, accented):
            if v not in out:
                out.append(v)
    return out

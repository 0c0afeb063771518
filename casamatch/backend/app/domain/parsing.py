# app/domain/parsing.py
from __future__ import annotations

import html
import math
import re
from typing import Any


def to_int(x: Any) -> int | None:
    f = to_float(x)
    return None if f is None else int(f)


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    try:
        f = float(x)
    except (TypeError, ValueError, OverflowError):
        return None
    # 1e400 and "Infinity" parse fine but are not usable numbers
    return f if math.isfinite(f) else None


def to_number(x: Any) -> float:
    """
    Lenient numeric parse for display strings: "USD $2,300.00" -> 2300.0,
    "1,284" -> 1284.0. Anything unparsable is 0.
    """
    if x is None:
        return 0.0
    if isinstance(x, (int, float)):
        return to_float(x) or 0.0
    cleaned = re.sub(r"[^\d.]", "", str(x))
    return to_float(cleaned) or 0.0


def get_first(payload: dict[str, Any], *keys: str) -> Any:
    """Return first non-empty key from payload."""
    for k in keys:
        v = payload.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return None


def get_nested(payload: dict[str, Any], path: str) -> Any:
    """Tiny dot-path getter: 'location.address.city'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def str_list(x: Any) -> list[str]:
    """Keep only non-empty strings from an upstream list field."""
    if not isinstance(x, list):
        return []
    return [str(v) for v in x if v is not None and str(v).strip()]


def decode_html(x: str | None) -> str:
    if not x:
        return ""
    return html.unescape(x)

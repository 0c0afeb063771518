# app/adapters/providers/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from ...domain.types import (
    CanonicalSearchParams,
    ConnectionTestResult,
    ListingStatus,
    ProviderKey,
    ProviderSearchResponse,
)

# What an adapter converts into a failure response instead of raising:
# transport/status errors and malformed payloads (including numeric overflow).
ADAPTER_ERRORS: tuple[type[Exception], ...] = (
    httpx.HTTPError,
    ValueError,
    KeyError,
    TypeError,
    AttributeError,
    ArithmeticError,
)


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials as persisted for one provider, before typed validation."""

    api_key: str | None = None
    api_secret: str | None = None
    additional_config: dict[str, Any] = field(default_factory=dict)

    def extra(self, key: str) -> str | None:
        v = self.additional_config.get(key)
        if v is None:
            return None
        s = str(v).strip()
        return s or None


class PropertyProvider(Protocol):
    key: ProviderKey

    async def search_normalized(self, params: CanonicalSearchParams) -> ProviderSearchResponse:
        raise NotImplementedError

    async def test_connection(self) -> ConnectionTestResult:
        raise NotImplementedError


def map_status(raw: object, mapping: dict[str, ListingStatus], default: ListingStatus = ListingStatus.active) -> ListingStatus:
    if raw is None:
        return default
    return mapping.get(str(raw), mapping.get(str(raw).strip().lower(), default))


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

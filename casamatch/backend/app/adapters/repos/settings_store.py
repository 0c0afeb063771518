# app/adapters/repos/settings_store.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.types import SearchSettings
from ...models import PropertyProviderSetting, SearchSettingsRow
from ..providers.base import ProviderCredentials

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSettingsRecord:
    """Detached snapshot of a property_provider_settings row."""

    provider_key: str
    name: str = ""
    enabled: bool = False
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)
    priority: int = 0
    last_sync_at: datetime | None = None
    last_sync_status: str | None = None


class SettingsStore(Protocol):
    async def get_enabled_provider_settings(self) -> list[ProviderSettingsRecord]: ...
    async def get_all_provider_settings(self) -> list[ProviderSettingsRecord]: ...
    async def get_search_settings(self) -> SearchSettings | None: ...


def _load_config(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        v = json.loads(raw)
    except ValueError:
        log.warning("ignoring malformed additional_config_json")
        return {}
    return v if isinstance(v, dict) else {}


def _to_record(row: PropertyProviderSetting) -> ProviderSettingsRecord:
    return ProviderSettingsRecord(
        provider_key=row.provider_key,
        name=row.name or "",
        enabled=bool(row.enabled),
        credentials=ProviderCredentials(
            api_key=row.api_key or None,
            api_secret=row.api_secret or None,
            additional_config=_load_config(row.additional_config_json),
        ),
        priority=int(row.priority or 0),
        last_sync_at=row.last_sync_at,
        last_sync_status=row.last_sync_status,
    )


class SqlAlchemySettingsStore:
    """
    Reads never raise: a missing table or unreachable database reads as
    "nothing configured". Writes raise and do their own commit.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def _provider_rows(self, *, enabled_only: bool) -> list[ProviderSettingsRecord]:
        stmt = select(PropertyProviderSetting)
        if enabled_only:
            stmt = stmt.where(PropertyProviderSetting.enabled == True)  # noqa: E712
        stmt = stmt.order_by(PropertyProviderSetting.priority.asc(), PropertyProviderSetting.id.asc())
        try:
            async with self._session_maker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            log.warning("provider settings unavailable: %s", e)
            return []
        return [_to_record(r) for r in rows]

    async def get_enabled_provider_settings(self) -> list[ProviderSettingsRecord]:
        return await self._provider_rows(enabled_only=True)

    async def get_all_provider_settings(self) -> list[ProviderSettingsRecord]:
        return await self._provider_rows(enabled_only=False)

    async def get_search_settings(self) -> SearchSettings | None:
        try:
            async with self._session_maker() as session:
                row = (
                    (await session.execute(select(SearchSettingsRow).order_by(SearchSettingsRow.id.asc()).limit(1)))
                    .scalars()
                    .first()
                )
        except SQLAlchemyError as e:
            log.warning("search settings unavailable: %s", e)
            return None

        if row is None:
            return None
        return SearchSettings(
            max_properties_total=row.max_properties_total,
            max_properties_per_provider=row.max_properties_per_provider,
            max_properties_for_ai=row.max_properties_for_ai,
            min_properties_per_provider=row.min_properties_per_provider,
        )

    # ---- admin writes ----

    async def upsert_provider_setting(
        self,
        provider_key: str,
        *,
        name: str | None = None,
        enabled: bool | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        additional_config: dict[str, Any] | None = None,
        priority: int | None = None,
    ) -> ProviderSettingsRecord:
        async with self._session_maker() as session:
            row = (
                (await session.execute(select(PropertyProviderSetting).where(PropertyProviderSetting.provider_key == provider_key)))
                .scalars()
                .first()
            )
            if row is None:
                row = PropertyProviderSetting(provider_key=provider_key, name=name or provider_key)
                session.add(row)

            if name is not None:
                row.name = name
            if enabled is not None:
                row.enabled = bool(enabled)
            if api_key is not None:
                row.api_key = api_key or None
            if api_secret is not None:
                row.api_secret = api_secret or None
            if additional_config is not None:
                row.additional_config_json = json.dumps(additional_config)
            if priority is not None:
                row.priority = int(priority)
            row.updated_at = datetime.utcnow()

            await session.commit()
            return _to_record(row)

    async def set_provider_enabled(self, provider_key: str, enabled: bool) -> bool:
        """Returns False if no row exists for the key."""
        async with self._session_maker() as session:
            row = (
                (await session.execute(select(PropertyProviderSetting).where(PropertyProviderSetting.provider_key == provider_key)))
                .scalars()
                .first()
            )
            if row is None:
                return False
            row.enabled = bool(enabled)
            row.updated_at = datetime.utcnow()
            await session.commit()
            return True

    async def record_sync(self, provider_key: str, *, status: str, message: str | None, at: datetime) -> None:
        async with self._session_maker() as session:
            row = (
                (await session.execute(select(PropertyProviderSetting).where(PropertyProviderSetting.provider_key == provider_key)))
                .scalars()
                .first()
            )
            if row is None:
                return
            row.last_sync_at = at
            row.last_sync_status = status
            row.last_sync_message = message
            await session.commit()

    async def write_search_settings(self, values: SearchSettings, *, updated_by: str | None = None) -> SearchSettings:
        async with self._session_maker() as session:
            row = (
                (await session.execute(select(SearchSettingsRow).order_by(SearchSettingsRow.id.asc()).limit(1)))
                .scalars()
                .first()
            )
            if row is None:
                row = SearchSettingsRow()
                session.add(row)

            row.max_properties_total = values.max_properties_total
            row.max_properties_per_provider = values.max_properties_per_provider
            row.max_properties_for_ai = values.max_properties_for_ai
            row.min_properties_per_provider = values.min_properties_per_provider
            row.updated_by = updated_by
            row.updated_at = datetime.utcnow()

            await session.commit()
            return values

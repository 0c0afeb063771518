# scripts/init_db.py
from __future__ import annotations

import argparse
import asyncio

from app.adapters.repos.settings_store import SqlAlchemySettingsStore
from app.db import async_session_maker, engine
from app.domain.types import ProviderKey
from app.models import Base
from app.service_layer.provider_registry import PROVIDER_SPECS


async def _seed_providers() -> None:
    """
    One settings row per known provider. Existing rows keep their
    credentials and enabled flag; only missing rows are created.
    """
    store = SqlAlchemySettingsStore(async_session_maker)
    existing = {r.provider_key for r in await store.get_all_provider_settings()}
    for priority, (key, spec) in enumerate(PROVIDER_SPECS.items()):
        if key.value in existing:
            continue
        # local data needs no credentials, so it is usable out of the box
        await store.upsert_provider_setting(
            key.value,
            name=spec.name,
            enabled=key == ProviderKey.xposure,
            priority=priority,
        )
        print(f"  + {key.value} ({spec.name})")


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--seed-providers", action="store_true", help="Create a settings row for every known provider")
    args = parser.parse_args()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("OK: created all tables (idempotent).")

    if args.seed_providers:
        await _seed_providers()
        print("OK: provider settings seeded.")


if __name__ == "__main__":
    asyncio.run(main())

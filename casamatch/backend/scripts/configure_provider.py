# scripts/configure_provider.py
from __future__ import annotations

import argparse
import asyncio
import json

from app.adapters.repos.settings_store import SqlAlchemySettingsStore
from app.db import async_session_maker, engine
from app.models import Base
from app.service_layer.provider_registry import PROVIDER_SPECS, mask_api_key
from app.service_layer.search_settings import save_search_settings

PROVIDER_NAMES = {k.value: spec.name for k, spec in PROVIDER_SPECS.items()}


async def main() -> None:
    parser = argparse.ArgumentParser(description="Write provider credentials and search quotas")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("provider")
    p.add_argument("provider", choices=[k.value for k in PROVIDER_SPECS])
    p.add_argument("--api-key", default=None)
    p.add_argument("--api-secret", default=None)
    p.add_argument("--config", default=None, help="additional_config as JSON")
    p.add_argument("--priority", type=int, default=None)
    state = p.add_mutually_exclusive_group()
    state.add_argument("--enable", dest="enabled", action="store_true", default=None)
    state.add_argument("--disable", dest="enabled", action="store_false")

    s = sub.add_parser("search-settings")
    s.add_argument("--total", type=int, dest="max_properties_total")
    s.add_argument("--per-provider", type=int, dest="max_properties_per_provider")
    s.add_argument("--auto-distribute", action="store_true", help="clear the fixed per-provider limit")
    s.add_argument("--for-ai", type=int, dest="max_properties_for_ai")
    s.add_argument("--min-per-provider", type=int, dest="min_properties_per_provider")
    s.add_argument("--updated-by", default="cli")

    args = parser.parse_args()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = SqlAlchemySettingsStore(async_session_maker)

    if args.cmd == "provider":
        rec = await store.upsert_provider_setting(
            args.provider,
            name=PROVIDER_NAMES.get(args.provider),
            enabled=args.enabled,
            api_key=args.api_key,
            api_secret=args.api_secret,
            additional_config=json.loads(args.config) if args.config else None,
            priority=args.priority,
        )
        key = mask_api_key(rec.credentials.api_key) if rec.credentials.api_key else "-"
        print(f"OK: {rec.provider_key} enabled={rec.enabled} priority={rec.priority} api_key={key}")
        return

    changes = {
        name: getattr(args, name)
        for name in (
            "max_properties_total",
            "max_properties_per_provider",
            "max_properties_for_ai",
            "min_properties_per_provider",
        )
        if getattr(args, name) is not None
    }
    if args.auto_distribute:
        changes["max_properties_per_provider"] = None

    try:
        saved = await save_search_settings(store, updated_by=args.updated_by, **changes)
    except ValueError as e:
        parser.error(str(e))
    print(f"OK: {saved}")


if __name__ == "__main__":
    asyncio.run(main())

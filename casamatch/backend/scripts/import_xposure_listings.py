# scripts/import_xposure_listings.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from app.adapters.providers.xposure import transform_xposure_payload
from app.adapters.repos.local_listings import LocalListingRepository
from app.db import async_session_maker, engine
from app.models import Base

log = logging.getLogger("import_xposure_listings")


def _quiet_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _load_items(path: Path) -> list[dict]:
    data = json.loads(path.read_text(encoding="utf-8"))
    # exports come either as a bare list or wrapped in {"properties": [...]}
    if isinstance(data, dict):
        data = data.get("properties") or data.get("listings") or []
    return [x for x in data if isinstance(x, dict)]


async def import_file(path: Path, *, limit: int | None = None) -> dict[str, int]:
    items = _load_items(path)
    if limit:
        items = items[:limit]

    created = updated = skipped = 0
    async with async_session_maker() as session:
        repo = LocalListingRepository(session)
        for i, item in enumerate(items):
            if not item.get("id"):
                skipped += 1
                continue
            _, was_created = await repo.upsert_from_payload(transform_xposure_payload(item, i))
            if was_created:
                created += 1
            else:
                updated += 1
        await session.commit()

    return {"read": len(items), "created": created, "updated": updated, "skipped": skipped}


async def main() -> None:
    _quiet_logging()

    parser = argparse.ArgumentParser()
    parser.add_argument("path", help="Xposure JSON export")
    parser.add_argument("--limit", type=int, default=None)
    args = parser.parse_args()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    counts = await import_file(Path(args.path), limit=args.limit)
    log.info(
        "imported %s: read=%d created=%d updated=%d skipped=%d",
        args.path,
        counts["read"],
        counts["created"],
        counts["updated"],
        counts["skipped"],
    )


if __name__ == "__main__":
    asyncio.run(main())

from __future__ import annotations

import argparse
import asyncio
import logging

from app.jobs.scheduler import build_scheduler, run_provider_health_now

log = logging.getLogger("run_scheduler")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    for noisy in ("httpx", "apscheduler", "uvicorn", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Periodic provider health checks")
    parser.add_argument("--once", action="store_true", help="Run the provider health check once and exit")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    _configure_logging(args.verbose)

    if args.once:
        out = await run_provider_health_now()
        log.info("health check: %s", out or "no active providers")
        return

    scheduler = build_scheduler()
    scheduler.start()
    log.info("provider health scheduler running (jobs=%d)", len(scheduler.get_jobs()))

    stop = asyncio.Event()
    try:
        await stop.wait()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        scheduler.shutdown(wait=False)
        log.info("provider health scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())

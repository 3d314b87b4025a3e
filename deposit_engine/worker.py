"""Polling worker that runs a reconciliation cycle every ``poll_interval`` seconds."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional

from deposit_engine.core.config import get_settings
from deposit_engine.core.container import get_container
from deposit_engine.core.logging import configure_logging
from deposit_engine.infrastructure.database.session import dispose_engine, init_db
from deposit_engine.modules.reconciler import CycleReport, DepositReconciler

logger = logging.getLogger(__name__)


async def run_cycle(reconciler: DepositReconciler) -> Optional[CycleReport]:
    try:
        report = await reconciler.process_cycle()
    except Exception:
        logger.exception("Reconciliation cycle crashed")
        return None
    for error in report.all_errors:
        logger.warning(
            "Cycle error [%s] %s %s: %s",
            error.stage,
            error.network or "-",
            error.reference or "-",
            error.message,
        )
    return report


async def run_forever(reconciler: DepositReconciler, interval: float, stop: asyncio.Event) -> None:
    """Run cycles back to back with ``interval`` seconds between starts until ``stop`` is set."""
    logger.info("Deposit worker started, polling every %ss", interval)
    loop = asyncio.get_running_loop()
    while not stop.is_set():
        started = loop.time()
        await run_cycle(reconciler)
        delay = max(0.0, interval - (loop.time() - started))
        try:
            await asyncio.wait_for(stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            continue
    logger.info("Deposit worker stopped")


async def _main(once: bool, interval: Optional[float]) -> int:
    settings = get_settings()
    await init_db()
    container = get_container()
    try:
        if once:
            report = await run_cycle(container.reconciler)
            return 0 if report is not None and report.ok else 1

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        await run_forever(container.reconciler, interval or settings.poll_interval, stop)
        return 0
    finally:
        await container.aclose()
        await dispose_engine()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Blockchain deposit reconciliation worker")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    parser.add_argument("--interval", type=float, default=None, help="seconds between cycles")
    args = parser.parse_args(argv)

    configure_logging(get_settings())
    return asyncio.run(_main(args.once, args.interval))


if __name__ == "__main__":
    raise SystemExit(main())

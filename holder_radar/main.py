"""Entry point for the holder snapshot service (scheduler + API)."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from holder_radar.api.registry import registry
from holder_radar.db.database import async_session_factory, create_tables
from holder_radar.db.redis import close_redis, get_redis
from holder_radar.parsers.chain_reader import ChainReader
from holder_radar.parsers.exclusion_cache import OwnerProgramCache
from holder_radar.parsers.exclusions import (
    ExclusionClassifier,
    ExclusionPolicy,
    parse_address_list,
)
from holder_radar.parsers.jupiter.client import JupiterClient
from holder_radar.parsers.metrics import metrics
from holder_radar.parsers.persistence import SnapshotStore
from holder_radar.parsers.rate_limiter import RateLimiter
from holder_radar.parsers.scheduler import Scheduler
from holder_radar.parsers.snapshot import SnapshotService
from holder_radar.parsers.solana_rpc.client import SolanaRpcClient
from holder_radar.utils.logger import setup_logger


async def run_service() -> None:
    # One limiter and one RPC client for cadences and API requests alike
    rate_limiter = RateLimiter(settings.rpc_max_rps)
    rpc = SolanaRpcClient(settings.rpc_url, rate_limiter, timeout=settings.rpc_timeout_sec)
    jupiter = JupiterClient(
        api_key=settings.jupiter_api_key,
        max_rps=settings.jupiter_max_rps,
        quote_ttl_sec=settings.jupiter_quote_ttl_sec,
    )

    reader = ChainReader(
        rpc,
        min_raw_balance=settings.min_raw_balance,
        batch_size=settings.owner_batch_size,
        batch_concurrency=settings.owner_batch_concurrency,
    )
    policy = ExclusionPolicy().with_extra(
        owners=parse_address_list(settings.extra_excluded_owners),
        program_ids=parse_address_list(settings.extra_amm_program_ids),
    )
    cache = OwnerProgramCache(get_redis(), ttl_sec=settings.exclusion_cache_ttl_sec)
    classifier = ExclusionClassifier(reader, policy, cache=cache)
    service = SnapshotService(
        reader,
        classifier,
        jupiter,
        offload_min_holders=settings.distribution_offload_min_holders,
    )
    store = SnapshotStore(
        async_session_factory,
        stats_interval_sec=settings.stats_interval_sec,
        metrics_interval_sec=settings.metrics_interval_sec,
    )
    scheduler = Scheduler(
        service,
        store,
        stats_interval_sec=settings.stats_interval_sec,
        metrics_interval_sec=settings.metrics_interval_sec,
        stats_concurrency=settings.stats_concurrency,
        metrics_concurrency=settings.metrics_concurrency,
        mint_timeout_sec=settings.mint_timeout_sec,
        stats_report_interval_sec=settings.stats_report_interval_sec,
        run_metrics=metrics,
    )

    registry.snapshot_service = service
    registry.store = store
    registry.scheduler = scheduler
    registry.snapshot_metrics = metrics

    await create_tables()

    tasks: list[asyncio.Task] = []
    if settings.enable_scheduler:
        tasks.append(asyncio.create_task(scheduler.run(), name="scheduler"))
    if settings.enable_api:
        from holder_radar.api.server import run_api_server

        tasks.append(asyncio.create_task(run_api_server(), name="api_server"))

    logger.info(
        f"Holder radar running: rpc_max_rps={settings.rpc_max_rps}, "
        f"scheduler={'on' if settings.enable_scheduler else 'off'}, "
        f"api={'on' if settings.enable_api else 'off'}"
    )
    try:
        if tasks:
            await asyncio.gather(*tasks)
    finally:
        await scheduler.stop()
        await rpc.close()
        await jupiter.close()


async def main() -> None:
    setup_logger(json_logs=settings.log_json, log_dir=settings.log_dir)
    logger.info("Starting holder radar...")

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_event_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    service_task = asyncio.create_task(run_service())

    # Wait for either the service to finish or shutdown signal
    done, pending = await asyncio.wait(
        [service_task, asyncio.create_task(shutdown_event.wait())],
        return_when=asyncio.FIRST_COMPLETED,
    )

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    for task in done:
        if task is service_task and task.exception() is not None:
            logger.error(f"Service stopped with error: {task.exception()}")

    await close_redis()
    logger.info("Shutdown complete")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()

import logging
import os
import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)

# httpx logs every RPC POST at INFO; at 5 RPS that drowns the cycle summaries
NOISY_LOGGERS = ("httpx", "httpcore")


def _is_exclusion_record(record: dict) -> bool:
    return record["message"].startswith("[EXCLUDE]")


def setup_logger(
    *,
    json_logs: bool = False,
    level: str = "INFO",
    log_dir: str | Path = "logs",
) -> None:
    """Configure loguru for the snapshot service.

    Console level comes from LOG_LEVEL (default: INFO). The main file sink
    keeps DEBUG so per-batch RPC failures can be traced after a bad cycle.
    Exclusion decisions also go to their own long-retention file: they
    explain every holder that disappeared from a token's statistics.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    log_path = Path(log_dir)
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    logger.add(
        log_path / "holder_radar_{time:YYYY-MM-DD}.log",
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
    logger.add(
        log_path / "exclusions_{time:YYYY-MM}.log",
        rotation="30 days",
        retention="180 days",
        level="INFO",
        filter=_is_exclusion_record,
        serialize=json_logs,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

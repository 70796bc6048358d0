import logging
import os
import sys
from dataclasses import dataclass

DEFAULT_NETWORK = "testnet"
DEFAULT_BLOCKS_PER_SECOND = 3
DEFAULT_MAX_SCAN_BLOCKS = 400
DEFAULT_PROGRESS_INTERVAL = 10

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Config:
    rpc_url: str
    network: str = DEFAULT_NETWORK
    request_timeout: int = 10
    max_retries: int = 3
    backoff_seconds: float = 0.5
    blocks_per_second: int = DEFAULT_BLOCKS_PER_SECOND
    max_scan_blocks: int = DEFAULT_MAX_SCAN_BLOCKS
    scan_workers: int = 1
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    log_level: str = "INFO"


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc
    if value < 1:
        raise ValueError(f"{name} must be a positive integer.")
    return value


def load_config() -> Config:
    """Load configuration from environment variables."""
    rpc_url = (os.getenv("RPC_URL") or "").strip()
    if not rpc_url:
        raise ValueError("RPC_URL is required but not set.")

    network = os.getenv("NETWORK", DEFAULT_NETWORK).strip().lower() or DEFAULT_NETWORK
    timeout = int(os.getenv("REQUEST_TIMEOUT", "10"))
    max_retries = int(os.getenv("REQUEST_RETRIES", "3"))
    backoff = float(os.getenv("REQUEST_BACKOFF_SECONDS", "0.5"))
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

    return Config(
        rpc_url=rpc_url,
        network=network,
        request_timeout=timeout,
        max_retries=max_retries,
        backoff_seconds=backoff,
        blocks_per_second=_positive_int_env("BLOCKS_PER_SECOND", DEFAULT_BLOCKS_PER_SECOND),
        max_scan_blocks=_positive_int_env("MAX_SCAN_BLOCKS", DEFAULT_MAX_SCAN_BLOCKS),
        scan_workers=_positive_int_env("SCAN_WORKERS", 1),
        progress_interval=_positive_int_env("PROGRESS_INTERVAL", DEFAULT_PROGRESS_INTERVAL),
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr so stdout carries only command output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

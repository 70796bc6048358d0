"""
MCP server exposing block-by-timestamp resolution and related-transaction scans.
"""

import argparse
import os
from collections.abc import Mapping
from typing import Any, Optional, Union

from mcp.server.fastmcp import FastMCP

from .config import configure_logging, load_config
from .service import BlockScanService

server = FastMCP(
    name="block-scan",
    instructions="Find the block closest to a timestamp and scan block ranges for transactions touching known contracts.",
)

_service: Optional[BlockScanService] = None


def _get_service() -> BlockScanService:
    global _service
    if _service is None:
        cfg = load_config()
        configure_logging(cfg.log_level)
        _service = BlockScanService(cfg)
    return _service


def _normalize_registry_param(value: Optional[Any]) -> Optional[dict]:
    """
    Contracts must be an object mapping NAME -> 0x address; empty means
    "use the built-in markets".
    """
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValueError("contracts must be an object mapping names to 0x addresses.")
    return dict(value) or None


@server.tool(
    name="resolve_block_by_timestamp",
    title="Resolve Block By Timestamp",
    description="Find the block whose timestamp is closest to a Unix timestamp or ISO-8601 datetime (earliest block on exact ties).",
)
def resolve_block_by_timestamp(timestamp: Union[int, str]) -> dict:
    svc = _get_service()
    return svc.resolve_block_by_timestamp(timestamp)


@server.tool(
    name="scan_related_transactions",
    title="Scan Related Transactions",
    description="Scan up to max_blocks blocks from start_block for transactions sent to or from the given contracts (defaults to built-in markets).",
)
def scan_related_transactions(
    start_block: Union[int, str],
    contracts: Optional[dict] = None,
    max_blocks: Optional[int] = None,
    network: Optional[str] = None,
) -> dict:
    svc = _get_service()
    return svc.scan_related_transactions(
        start_block,
        _normalize_registry_param(contracts),
        max_blocks=max_blocks,
        network=network,
    )


@server.tool(
    name="scan_report",
    title="Scan Report",
    description="Same scan as scan_related_transactions, rendered as a human-readable summary.",
)
def scan_report(
    start_block: Union[int, str],
    contracts: Optional[dict] = None,
    max_blocks: Optional[int] = None,
    network: Optional[str] = None,
) -> str:
    svc = _get_service()
    return svc.scan_report(
        start_block,
        _normalize_registry_param(contracts),
        max_blocks=max_blocks,
        network=network,
    )


@server.tool(
    name="scan_since",
    title="Scan Since Timestamp",
    description="Resolve the block closest to a timestamp and scan forward from it.",
)
def scan_since(
    timestamp: Union[int, str],
    contracts: Optional[dict] = None,
    max_blocks: Optional[int] = None,
    network: Optional[str] = None,
) -> dict:
    svc = _get_service()
    return svc.scan_since(
        timestamp,
        _normalize_registry_param(contracts),
        max_blocks=max_blocks,
        network=network,
    )


@server.tool(
    name="get_block_time",
    title="Get Block Time",
    description="Fetch a block's timestamp by number or latest.",
)
def get_block_time(block: Union[int, str]) -> dict:
    svc = _get_service()
    return svc.get_block_time(block)


@server.tool(
    name="get_network",
    title="Get Network",
    description="Confirm RPC connectivity and return the chain id.",
)
def get_network() -> dict:
    svc = _get_service()
    return svc.get_network()


@server.tool(
    name="get_fee_data",
    title="Get Fee Data",
    description="Current gas price and max priority fee (wei).",
)
def get_fee_data() -> dict:
    svc = _get_service()
    return svc.get_fee_data()


@server.tool(
    name="list_markets",
    title="List Markets",
    description="Built-in market name -> contract address registry.",
)
def list_markets(network: Optional[str] = None) -> dict:
    svc = _get_service()
    return svc.list_markets(network)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the block-scan MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host for SSE/HTTP transports.")
    parser.add_argument("--port", type=int, default=8000, help="Port for SSE/HTTP transports.")
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    parser.add_argument(
        "--log-level",
        required=False,
        help="Overrides LOG_LEVEL env for the server process.",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    # Tool calls load the RPC config lazily; logging is set up before the first one.
    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    server.settings.host = args.host
    server.settings.port = args.port
    run_kwargs: dict = {"transport": args.transport}
    if args.transport == "sse":
        run_kwargs["mount_path"] = args.mount_path
    server.run(**run_kwargs)


if __name__ == "__main__":
    main()

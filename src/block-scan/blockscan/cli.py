import argparse
import json
import sys
from typing import Optional

from .config import configure_logging, load_config
from .markets import parse_registry_pairs
from .service import BlockScanService


def _add_scan_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-blocks",
        required=False,
        type=int,
        help="Max number of blocks past the start block to scan (MAX_SCAN_BLOCKS env, default 400).",
    )
    parser.add_argument(
        "--workers",
        required=False,
        type=int,
        help="Number of blocks fetched concurrently (SCAN_WORKERS env, default 1).",
    )
    parser.add_argument(
        "--contract",
        action="append",
        default=[],
        metavar="NAME=0xADDRESS",
        help="Contract to track; repeatable. Defaults to the built-in markets for --network.",
    )
    parser.add_argument(
        "--network",
        required=False,
        help="Built-in market registry to use. Defaults to NETWORK env or testnet.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the scan result as JSON instead of the text report.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Correlate wall-clock time with blocks and find transactions touching known contracts.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve-block", help="Find the block closest to a timestamp")
    resolve_parser.add_argument(
        "--timestamp",
        required=True,
        help="Unix seconds or ISO-8601 datetime (UTC if no offset is given).",
    )

    scan_parser = subparsers.add_parser("scan", help="Scan a block range for related transactions")
    start_group = scan_parser.add_mutually_exclusive_group(required=True)
    start_group.add_argument(
        "--start-block",
        help="Block to start from: decimal number or 0x-prefixed hex.",
    )
    start_group.add_argument(
        "--since",
        help="Start from the block closest to this Unix timestamp or ISO-8601 datetime.",
    )
    _add_scan_options(scan_parser)

    block_time_parser = subparsers.add_parser("get-block-time", help="Fetch block time by number or latest")
    block_time_parser.add_argument(
        "--block",
        required=True,
        help="Block identifier: latest, decimal number, or 0x-prefixed hex.",
    )

    subparsers.add_parser("get-network", help="Confirm connectivity and print the chain id")
    subparsers.add_parser("get-fee-data", help="Print current gas price data")

    markets_parser = subparsers.add_parser("list-markets", help="Print the built-in market registry")
    markets_parser.add_argument(
        "--network",
        required=False,
        help="Registry network. Defaults to NETWORK env or testnet.",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        configure_logging(config.log_level)
        service = BlockScanService(config)

        if args.command == "resolve-block":
            result = service.resolve_block_by_timestamp(args.timestamp)
            print(json.dumps(result, indent=2))
        elif args.command == "scan":
            registry = parse_registry_pairs(args.contract) if args.contract else None
            start_block = args.start_block
            resolved = None
            if args.since is not None:
                resolved = service.resolve_block_by_timestamp(args.since)
                start_block = resolved["block_number"]
            if args.json:
                result = service.scan_related_transactions(
                    start_block,
                    registry,
                    max_blocks=args.max_blocks,
                    workers=args.workers,
                    network=args.network,
                )
                if resolved is not None:
                    result["resolved"] = resolved
                print(json.dumps(result, indent=2))
            else:
                print(
                    service.scan_report(
                        start_block,
                        registry,
                        max_blocks=args.max_blocks,
                        workers=args.workers,
                        network=args.network,
                    )
                )
        elif args.command == "get-block-time":
            result = service.get_block_time(args.block)
            print(json.dumps(result, indent=2))
        elif args.command == "get-network":
            print(json.dumps(service.get_network(), indent=2))
        elif args.command == "get-fee-data":
            print(json.dumps(service.get_fee_data(), indent=2))
        elif args.command == "list-markets":
            print(json.dumps(service.list_markets(args.network), indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from .cache import BlockCache
from .config import Config
from .markets import get_market_registry, normalize_registry
from .models import ScanResult
from .report import format_scan_report
from .resolver import resolve_block_by_timestamp
from .rpc_client import RpcClient, block_tag
from .scanner import scan_related_transactions


class BlockScanService:
    """Combine configuration, RPC client, resolver and scanner into JSON-ready calls."""

    def __init__(self, config: Config, client: Optional[RpcClient] = None) -> None:
        self.config = config
        self.client = client or RpcClient(
            rpc_url=config.rpc_url,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_seconds=config.backoff_seconds,
        )

    def resolve_block_by_timestamp(self, timestamp: Union[int, str]) -> Dict[str, Any]:
        target = parse_timestamp(timestamp)
        cache = BlockCache(self.client)
        number = resolve_block_by_timestamp(
            self.client,
            target,
            blocks_per_second=self.config.blocks_per_second,
            cache=cache,
        )
        block = cache.get(number)
        return {
            "target_timestamp": target,
            "target_iso": _iso(target),
            "block_number": number,
            "block_timestamp": block.timestamp,
            "block_iso": _iso(block.timestamp),
            "difference_seconds": abs(block.timestamp - target),
            "fetch_count": cache.fetch_count,
        }

    def scan_related_transactions(
        self,
        start_block: Union[int, str],
        registry: Optional[Mapping[str, str]] = None,
        max_blocks: Optional[int] = None,
        workers: Optional[int] = None,
        network: Optional[str] = None,
    ) -> Dict[str, Any]:
        start = self._parse_block_number(start_block, "start_block")
        contracts = self._resolve_registry(registry, network)
        result = self._scan(start, contracts, max_blocks, workers)
        data = result.to_dict()
        data.update({"start_block": start, "registry": contracts})
        return data

    def scan_report(
        self,
        start_block: Union[int, str],
        registry: Optional[Mapping[str, str]] = None,
        max_blocks: Optional[int] = None,
        workers: Optional[int] = None,
        network: Optional[str] = None,
    ) -> str:
        start = self._parse_block_number(start_block, "start_block")
        contracts = self._resolve_registry(registry, network)
        result = self._scan(start, contracts, max_blocks, workers)
        return format_scan_report(result, contracts)

    def scan_since(
        self,
        timestamp: Union[int, str],
        registry: Optional[Mapping[str, str]] = None,
        max_blocks: Optional[int] = None,
        workers: Optional[int] = None,
        network: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Resolve the block closest to `timestamp`, then scan forward from it."""
        resolved = self.resolve_block_by_timestamp(timestamp)
        data = self.scan_related_transactions(
            resolved["block_number"], registry, max_blocks, workers, network
        )
        data["resolved"] = resolved
        return data

    def get_block_time(self, block: Union[int, str]) -> Dict[str, Any]:
        tag = block_tag(block)
        fetched = self.client.get_block(tag)
        return {
            "block_number": fetched.number,
            "timestamp": fetched.timestamp,
            "iso": _iso(fetched.timestamp),
        }

    def get_network(self) -> Dict[str, Any]:
        return {"chain_id": self.client.get_network(), "rpc_url": self.client.rpc_url}

    def get_fee_data(self) -> Dict[str, Any]:
        return self.client.get_fee_data()

    def list_markets(self, network: Optional[str] = None) -> Dict[str, Any]:
        label = network or self.config.network
        return {"network": label, "markets": get_market_registry(label)}

    def _scan(
        self,
        start: int,
        registry: Dict[str, str],
        max_blocks: Optional[int],
        workers: Optional[int],
    ) -> ScanResult:
        return scan_related_transactions(
            self.client,
            start,
            registry,
            max_blocks=self._normalize_positive_int(max_blocks, self.config.max_scan_blocks, "max_blocks"),
            workers=self._normalize_positive_int(workers, self.config.scan_workers, "workers"),
            progress_interval=self.config.progress_interval,
        )

    def _resolve_registry(
        self, registry: Optional[Mapping[str, str]], network: Optional[str]
    ) -> Dict[str, str]:
        if registry:
            return normalize_registry(registry)
        return get_market_registry(network or self.config.network)

    def _parse_block_number(self, value: Union[int, str], field: str) -> int:
        message = f"{field} must be a non-negative block number in decimal or 0x-prefixed hexadecimal."
        if isinstance(value, bool):
            raise ValueError(message)
        if isinstance(value, int):
            ivalue = value
        elif isinstance(value, str):
            candidate = value.strip().lower()
            try:
                ivalue = int(candidate, 16) if candidate.startswith("0x") else int(candidate)
            except ValueError as exc:
                raise ValueError(message) from exc
        else:
            raise ValueError(message)
        if ivalue < 0:
            raise ValueError(message)
        return ivalue

    def _normalize_positive_int(self, value: Optional[int], default: int, field: str) -> int:
        if value is None:
            return default
        if isinstance(value, bool):
            raise ValueError(f"{field} must be a non-negative integer.")
        if isinstance(value, int):
            ivalue = value
        elif isinstance(value, str) and value.strip().isdigit():
            ivalue = int(value.strip())
        else:
            raise ValueError(f"{field} must be a non-negative integer.")
        if ivalue < 0:
            raise ValueError(f"{field} must be a non-negative integer.")
        return ivalue


def parse_timestamp(value: Union[int, str]) -> int:
    """Accept Unix seconds (int or digit string) or an ISO-8601 datetime."""
    if isinstance(value, bool):
        raise ValueError("timestamp must be Unix seconds or an ISO-8601 datetime.")
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("timestamp must be Unix seconds or an ISO-8601 datetime.")
    candidate = value.strip()
    if candidate.lstrip("-").isdigit():
        return int(candidate)
    try:
        parsed = datetime.fromisoformat(candidate.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError("timestamp must be Unix seconds or an ISO-8601 datetime.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")

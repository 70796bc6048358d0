import itertools
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Union

import requests

from .models import Block, BlockWithTransactions, hex_to_int

logger = logging.getLogger(__name__)

BLOCK_TAGS = {"latest", "earliest", "pending"}

BlockId = Union[int, str]


class RpcClient:
    """Minimal JSON-RPC 2.0 client for EVM nodes (HTTP POST)."""

    def __init__(
        self,
        rpc_url: str,
        timeout: int = 10,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        self.max_retries = max(1, int(max_retries))
        self.backoff_seconds = float(backoff_seconds)
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ValueError("params must be a list.")

        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id(),
            "method": method,
            "params": params,
        }

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.post(
                    self.rpc_url,
                    json=payload,
                    timeout=self.timeout,
                )
                if response.status_code in {429} or response.status_code >= 500:
                    if attempt < self.max_retries:
                        logger.warning(
                            "%s returned HTTP %s, retrying (%d/%d)",
                            method,
                            response.status_code,
                            attempt,
                            self.max_retries,
                        )
                        time.sleep(self.backoff_seconds * attempt)
                        continue

                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise ValueError("Unexpected JSON-RPC response (non-object).")

                error_obj = data.get("error")
                if isinstance(error_obj, dict):
                    code = error_obj.get("code")
                    message = error_obj.get("message")
                    err_data = error_obj.get("data")
                    parts: list[str] = []
                    if code is not None:
                        parts.append(f"code {code}")
                    if message:
                        parts.append(str(message))
                    if err_data:
                        parts.append(str(err_data))
                    detail = ": ".join(parts) if parts else "unknown error"
                    raise ValueError(f"RPC error: {detail}.")

                if "result" not in data:
                    raise ValueError("Unexpected JSON-RPC response (missing result).")
                return data.get("result")
            except (requests.RequestException, ValueError) as exc:
                last_error = exc
                if attempt < self.max_retries:
                    logger.warning("%s failed (%s), retrying (%d/%d)", method, exc, attempt, self.max_retries)
                    time.sleep(self.backoff_seconds * attempt)
                    continue
                raise

        if last_error:
            raise last_error
        raise RuntimeError("RPC request failed without raising an exception.")

    def _request_id(self) -> int:
        # Worker threads share one client.
        with self._id_lock:
            return next(self._ids)

    def get_block(self, block: BlockId) -> Block:
        raw = self._get_block_raw(block, full_transactions=False)
        return Block.from_rpc(raw)

    def get_block_with_transactions(self, block: BlockId) -> BlockWithTransactions:
        raw = self._get_block_raw(block, full_transactions=True)
        return BlockWithTransactions.from_rpc(raw)

    def get_network(self) -> int:
        chain_id = hex_to_int(self.call("eth_chainId", []), "eth_chainId")
        if chain_id is None:
            raise ValueError("RPC error: eth_chainId returned no result.")
        return chain_id

    def get_fee_data(self) -> Dict[str, Optional[int]]:
        gas_price = hex_to_int(self.call("eth_gasPrice", []), "eth_gasPrice")
        try:
            priority = hex_to_int(
                self.call("eth_maxPriorityFeePerGas", []), "eth_maxPriorityFeePerGas"
            )
        except (ValueError, requests.RequestException):
            # Pre-London nodes reject the method.
            priority = None
        return {"gas_price": gas_price, "max_priority_fee_per_gas": priority}

    def _get_block_raw(self, block: BlockId, full_transactions: bool) -> Dict[str, Any]:
        tag = block_tag(block)
        result = self.call("eth_getBlockByNumber", [tag, full_transactions])
        if result is None:
            raise ValueError(f"Block {block} not found.")
        if not isinstance(result, dict):
            raise ValueError("RPC error: eth_getBlockByNumber returned unexpected result.")
        return result


def block_tag(block: BlockId) -> str:
    """Render a block number or symbolic tag as an eth_getBlockByNumber parameter."""
    if isinstance(block, bool):
        raise ValueError("block must be a block number or tag.")
    if isinstance(block, int):
        if block < 0:
            raise ValueError("block must be non-negative.")
        return hex(block)
    if not isinstance(block, str):
        raise ValueError("block must be a block number or tag.")

    candidate = block.strip().lower()
    if candidate in BLOCK_TAGS:
        return candidate
    if candidate.isdigit():
        return hex(int(candidate))
    if candidate.startswith("0x"):
        try:
            return hex(int(candidate, 16))
        except ValueError as exc:
            raise ValueError("block must be latest|earliest|pending|block number.") from exc
    raise ValueError("block must be latest|earliest|pending|block number.")

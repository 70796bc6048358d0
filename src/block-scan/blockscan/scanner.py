"""
Walk a bounded block range and collect transactions sent to or from a set of
named contract addresses.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Protocol, Union

from .config import DEFAULT_MAX_SCAN_BLOCKS, DEFAULT_PROGRESS_INTERVAL
from .models import Block, BlockWithTransactions, ScanResult, Transaction

logger = logging.getLogger(__name__)


class TransactionSource(Protocol):
    def get_block(self, block: Union[int, str]) -> Block: ...

    def get_block_with_transactions(self, block: int) -> BlockWithTransactions: ...


def get_related_contracts(tx: Transaction, registry: Mapping[str, str]) -> List[str]:
    """Names of every registry entry whose address is the sender or recipient of `tx`."""
    sender = (tx.from_address or "").lower()
    recipient = (tx.to or "").lower()
    related: List[str] = []
    for name, address in registry.items():
        if not isinstance(address, str):
            continue
        normalized = address.lower()
        if (recipient and recipient == normalized) or (sender and sender == normalized):
            related.append(name)
    return related


def scan_related_transactions(
    gateway: TransactionSource,
    start_block: int,
    registry: Mapping[str, str],
    max_blocks: int = DEFAULT_MAX_SCAN_BLOCKS,
    workers: int = 1,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> ScanResult:
    """
    Scan blocks [start_block, min(start_block + max_blocks, latest)] inclusive.

    Any fetch failure aborts the scan; a start block past the chain head
    yields an empty result.
    """
    if isinstance(start_block, bool) or not isinstance(start_block, int) or start_block < 0:
        raise ValueError("start_block must be a non-negative integer.")
    if isinstance(max_blocks, bool) or not isinstance(max_blocks, int) or max_blocks < 0:
        raise ValueError("max_blocks must be a non-negative integer.")
    if workers < 1:
        raise ValueError("workers must be a positive integer.")

    latest_number = gateway.get_block("latest").number
    logger.info("Latest block number %d", latest_number)

    end_block = min(start_block + max_blocks, latest_number)
    if start_block > end_block:
        logger.info("Start block %d is beyond the chain head, nothing to scan", start_block)
        return ScanResult.empty(registry)

    logger.info(
        "Scanning transactions from block %d to %d [total blocks: %d]...",
        start_block,
        end_block,
        end_block - start_block,
    )

    by_contract: Dict[str, List[Transaction]] = {name: [] for name in registry}
    combined: List[Transaction] = []

    for block in _iter_blocks(gateway, start_block, end_block, workers):
        for tx in block.transactions:
            related = get_related_contracts(tx, registry)
            if not related:
                continue
            combined.append(tx)
            for name in related:
                by_contract[name].append(tx)

        if progress_interval and block.number % progress_interval == 0:
            logger.info("Scanned block %d, found %d transactions so far", block.number, len(combined))

    combined.sort(key=lambda tx: tx.sort_key)

    return ScanResult(
        by_contract=MappingProxyType({name: tuple(txs) for name, txs in by_contract.items()}),
        all=tuple(combined),
    )


def _iter_blocks(
    gateway: TransactionSource, start_block: int, end_block: int, workers: int
) -> Iterator[BlockWithTransactions]:
    numbers = range(start_block, end_block + 1)
    if workers == 1:
        for number in numbers:
            yield gateway.get_block_with_transactions(number)
        return

    # map() yields in submission order, so blocks still arrive ascending.
    with ThreadPoolExecutor(max_workers=workers) as executor:
        yield from executor.map(gateway.get_block_with_transactions, numbers)

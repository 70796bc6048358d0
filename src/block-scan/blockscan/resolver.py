"""
Locate the block whose timestamp is closest to a wall-clock time.

Block timestamps are non-decreasing in block number, so a binary search over
[low, latest] needs O(log N) block fetches. Several consecutive blocks may
share one timestamp; on an exact hit the earliest of them is returned.
"""

import logging
from typing import Optional

from .cache import BlockCache, BlockSource
from .config import DEFAULT_BLOCKS_PER_SECOND

logger = logging.getLogger(__name__)


def resolve_block_by_timestamp(
    gateway: BlockSource,
    target_timestamp: int,
    blocks_per_second: int = DEFAULT_BLOCKS_PER_SECOND,
    cache: Optional[BlockCache] = None,
) -> int:
    """
    Return the number of the block closest in time to `target_timestamp`.

    Ties in distance go to the lower block number. Gateway errors propagate.
    """
    if isinstance(target_timestamp, bool) or not isinstance(target_timestamp, int):
        raise ValueError("target_timestamp must be an integer number of seconds.")
    if blocks_per_second < 1:
        raise ValueError("blocks_per_second must be a positive integer.")

    blocks = cache if cache is not None else BlockCache(gateway)

    latest = blocks.get("latest")
    latest_number = latest.number
    now = latest.timestamp

    high = latest_number
    low = _seed_lower_bound(blocks, target_timestamp, latest_number, now, blocks_per_second)

    while low <= high:
        mid = (low + high) // 2
        mid_block = blocks.get(mid)

        if mid_block.timestamp < target_timestamp:
            low = mid + 1
        elif mid_block.timestamp > target_timestamp:
            high = mid - 1
        else:
            first = mid
            current = mid - 1
            while current >= 0:
                if blocks.get(current).timestamp != target_timestamp:
                    break
                first = current
                current -= 1
            logger.debug("Resolved %s to block %d (exact, %d fetches)", target_timestamp, first, blocks.fetch_count)
            return first

    # high: last block before target, low: first block after it.
    before = blocks.get(high) if high >= 0 else None
    after = blocks.get(low) if low <= latest_number else None
    logger.debug("Resolved %s between blocks %d and %d (%d fetches)", target_timestamp, high, low, blocks.fetch_count)

    if before is None and after is None:
        return 0
    if before is None:
        return low
    if after is None:
        return high

    before_diff = abs(before.timestamp - target_timestamp)
    after_diff = abs(after.timestamp - target_timestamp)
    return high if before_diff <= after_diff else low


def _seed_lower_bound(
    blocks: BlockCache,
    target_timestamp: int,
    latest_number: int,
    now: int,
    blocks_per_second: int,
) -> int:
    elapsed = max(0, now - target_timestamp)
    low = max(0, latest_number - elapsed * blocks_per_second)

    # The estimate is only a guess; widen it until it really lies at or
    # before the target.
    step = max(1, latest_number - low)
    while low > 0 and blocks.get(low).timestamp > target_timestamp:
        step *= 2
        low = max(0, latest_number - step)
    return low

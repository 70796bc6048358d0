from typing import Dict, Protocol, Union

from .models import Block

BlockKey = Union[int, str]


class BlockSource(Protocol):
    def get_block(self, block: BlockKey) -> Block: ...


class BlockCache:
    """In-memory block lookups for the lifetime of one resolve call.

    The "latest" tag is cached like any other key, so a single search sees
    one fixed chain head even if the node advances meanwhile.
    """

    def __init__(self, gateway: BlockSource) -> None:
        self._gateway = gateway
        self._memory: Dict[BlockKey, Block] = {}
        self.fetch_count = 0

    def get(self, key: BlockKey) -> Block:
        cached = self._memory.get(key)
        if cached is not None:
            return cached
        self.fetch_count += 1
        block = self._gateway.get_block(key)
        self._memory[key] = block
        return block

    def __contains__(self, key: BlockKey) -> bool:
        return key in self._memory

    def __len__(self) -> int:
        return len(self._memory)

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


def hex_to_int(value: Any, field_name: str) -> Optional[int]:
    """Decode a JSON-RPC quantity; ints pass through, None stays None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field_name} is not a valid quantity.")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{field_name} is not a valid quantity.")
    candidate = value.strip().lower()
    try:
        if candidate.startswith("0x"):
            return int(candidate, 16)
        return int(candidate)
    except ValueError as exc:
        raise ValueError(f"{field_name} is not a valid hex value.") from exc


@dataclass(frozen=True)
class Block:
    number: int
    timestamp: int

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> Block:
        number = hex_to_int(raw.get("number"), "number")
        timestamp = hex_to_int(raw.get("timestamp"), "timestamp")
        if number is None or timestamp is None:
            raise ValueError("Block is missing number or timestamp.")
        return cls(number=number, timestamp=timestamp)


@dataclass(frozen=True)
class Transaction:
    hash: str
    from_address: str
    to: Optional[str]
    block_number: Optional[int]
    transaction_index: Optional[int]
    value: int
    gas_price: Optional[int]
    nonce: int

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> Transaction:
        def hx(name: str) -> Optional[int]:
            return hex_to_int(raw.get(name), name)

        return cls(
            hash=raw.get("hash") or "",
            from_address=raw.get("from") or "",
            to=raw.get("to"),
            block_number=hx("blockNumber"),
            transaction_index=hx("transactionIndex"),
            value=hx("value") or 0,
            gas_price=hx("gasPrice"),
            nonce=hx("nonce") or 0,
        )

    @property
    def sort_key(self) -> Tuple[int, int]:
        # Pending transactions (no block or index) order as position 0.
        return (self.block_number or 0, self.transaction_index or 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "from": self.from_address,
            "to": self.to,
            "block_number": self.block_number,
            "transaction_index": self.transaction_index,
            "value": self.value,
            "gas_price": self.gas_price,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class BlockWithTransactions:
    number: int
    timestamp: int
    transactions: Tuple[Transaction, ...] = ()

    @classmethod
    def from_rpc(cls, raw: Dict[str, Any]) -> BlockWithTransactions:
        block = Block.from_rpc(raw)
        txs = []
        for entry in raw.get("transactions") or []:
            if not isinstance(entry, dict):
                raise ValueError("Block transactions must be full objects, not hashes.")
            txs.append(Transaction.from_rpc(entry))
        return cls(number=block.number, timestamp=block.timestamp, transactions=tuple(txs))


@dataclass(frozen=True)
class ScanResult:
    """Related transactions per registry name plus the combined chronological list."""

    by_contract: Mapping[str, Tuple[Transaction, ...]] = field(default_factory=lambda: MappingProxyType({}))
    all: Tuple[Transaction, ...] = ()

    @classmethod
    def empty(cls, registry: Mapping[str, str]) -> ScanResult:
        return cls(by_contract=MappingProxyType({name: () for name in registry}), all=())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counts": {name: len(txs) for name, txs in self.by_contract.items()},
            "total": len(self.all),
            "transactions": [tx.to_dict() for tx in self.all],
        }

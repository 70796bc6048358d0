from typing import List, Mapping, Optional

from .models import ScanResult
from .scanner import get_related_contracts

ETHER_DECIMALS = 18
GWEI_DECIMALS = 9

NO_RESULTS_MESSAGE = (
    "No related transactions found across any contracts. You may want to scan more blocks "
    "or check if the contract addresses are correct."
)


def format_units(value: Optional[int], decimals: int) -> str:
    """Scale an integer amount down by 10**decimals, keeping at least one fractional digit."""
    value = value or 0
    if decimals <= 0:
        return f"{value}.0"
    negative = value < 0
    digits = str(abs(value)).rjust(decimals + 1, "0")
    whole, frac = digits[:-decimals], digits[-decimals:].rstrip("0") or "0"
    text = f"{whole}.{frac}"
    return f"-{text}" if negative else text


def format_scan_report(result: ScanResult, registry: Mapping[str, str]) -> str:
    lines: List[str] = [
        "",
        "======== TRANSACTION SUMMARY ========",
        f"Total transactions found across all contracts: {len(result.all)}",
    ]
    for name, txs in result.by_contract.items():
        lines.append(f"{name}: {len(txs)} transactions")

    if not result.all:
        lines.append(NO_RESULTS_MESSAGE)
        return "\n".join(lines)

    lines.append("")
    lines.append("======== TRANSACTION DETAILS ========")
    for index, tx in enumerate(result.all, start=1):
        related = get_related_contracts(tx, registry)
        lines.extend(
            [
                "",
                f"Transaction {index}:",
                f"- Related to contracts: {', '.join(related)}",
                f"- Hash: {tx.hash}",
                f"- Block: {tx.block_number if tx.block_number is not None else 'pending'}",
                f"- From: {tx.from_address}",
                f"- To: {tx.to or 'Contract Creation'}",
                f"- Value: {format_units(tx.value, ETHER_DECIMALS)} ETH",
                f"- Gas Price: {format_units(tx.gas_price, GWEI_DECIMALS)} Gwei",
                f"- Nonce: {tx.nonce}",
            ]
        )
    return "\n".join(lines)

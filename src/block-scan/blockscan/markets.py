import re
from typing import Dict, Iterable, Mapping, Optional

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

TESTNET_MARKET_ADDRESSES: Dict[str, str] = {
    "MON_USDC": "0xd3af145f1aa1a471b5f0f62c52cf8fcdc9ab55d3",
    "DAK_MON": "0x94b72620e65577de5fb2b8a8b93328caf6ca161b",
    "CHOG_MON": "0x277bf4a0aac16f19d7bf592feffc8d2d9a890508",
    "TEST_CHOG_MON": "0x05e6f736b5dedd60693fa806ce353156a1b73cf3",
    "YAKI_MON": "0xd5c1dc181c359f0199c83045a85cd2556b325de0",
    "KB_MON": "0x37676650654c9c2c36fcecfaea6172ee1849f9a4",
}

# TODO: add mainnet market addresses once the venue launches on mainnet.
MARKETS_BY_NETWORK: Dict[str, Dict[str, str]] = {
    "testnet": TESTNET_MARKET_ADDRESSES,
}

NETWORK_ALIASES = {
    "monad-testnet": "testnet",
    "monad_testnet": "testnet",
}


def get_market_registry(network: Optional[str] = None) -> Dict[str, str]:
    """Return a copy of the built-in name -> address registry for `network`."""
    normalized = (network or "testnet").strip().lower()
    normalized = NETWORK_ALIASES.get(normalized, normalized)
    if normalized not in MARKETS_BY_NETWORK:
        allowed = ", ".join(sorted(set(MARKETS_BY_NETWORK) | set(NETWORK_ALIASES)))
        raise ValueError(f"Unknown network '{network}'. Supported: {allowed}.")
    return dict(MARKETS_BY_NETWORK[normalized])


def normalize_registry(registry: Mapping[str, str]) -> Dict[str, str]:
    """Validate names and addresses and lowercase the addresses."""
    normalized: Dict[str, str] = {}
    for name, address in registry.items():
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Registry names must be non-empty strings.")
        if not isinstance(address, str) or not ADDRESS_PATTERN.match(address.strip()):
            raise ValueError(f"Invalid address for '{name}': expected 0x-prefixed 40 hex chars.")
        normalized[name.strip()] = address.strip().lower()
    return normalized


def parse_registry_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """Parse NAME=0xaddress strings into a normalized registry."""
    parsed: Dict[str, str] = {}
    for pair in pairs:
        name, sep, address = (pair or "").partition("=")
        if not sep:
            raise ValueError(f"Contract '{pair}' must be given as NAME=0xaddress.")
        if name.strip() in parsed:
            raise ValueError(f"Duplicate contract name '{name.strip()}'.")
        parsed[name.strip()] = address.strip()
    return normalize_registry(parsed)

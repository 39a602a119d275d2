"""Protocol and chain constants for drips-estimator."""

from ._exceptions import ChainNotSupportedError

# Extra decimals carried by `amountPerSec` to keep sub-unit precision.
AMT_PER_SEC_EXTRA_DECIMALS = 9
AMT_PER_SEC_MULTIPLIER = 10**AMT_PER_SEC_EXTRA_DECIMALS

# `maxEnd` is a uint32 timestamp; the maximum means no forced end.
MAX_TIMESTAMP = 2**32 - 1

# Page size used when paginating the event source.
EVENTS_PAGE_SIZE = 500

# Cycle length in seconds per chain.
CYCLE_SECS_BY_CHAIN: dict[int, int] = {
    1: 604_800,  # Ethereum mainnet, 1 week
    5: 604_800,  # Goerli
    10: 604_800,  # Optimism
    137: 604_800,  # Polygon
    11155111: 604_800,  # Sepolia
}

# Supported chain IDs
SUPPORTED_CHAIN_IDS: list[int] = list(CYCLE_SECS_BY_CHAIN)


def get_cycle_secs(chain_id: int) -> int:
    """Get the cycle length (in seconds) for a given chain ID."""
    cycle_secs = CYCLE_SECS_BY_CHAIN.get(chain_id)
    if not cycle_secs:
        raise ChainNotSupportedError(chain_id)
    return cycle_secs


def is_supported_chain(chain_id: int) -> bool:
    """Check if a chain is supported."""
    return chain_id in CYCLE_SECS_BY_CHAIN

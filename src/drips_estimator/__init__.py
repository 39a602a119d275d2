# web3.py imports its legacy websocket provider even when only its address
# utilities are used, which emits a deprecation warning on import.
import warnings

warnings.filterwarnings(
    "ignore",
    message="websockets.legacy is deprecated",
    category=DeprecationWarning,
    module=r"websockets\.legacy",
)

"""
Drips Estimator

Reconstructs a user's streaming history from on-chain "streams set" events
and projects how much each stream has paid out, how much balance is left and
when it runs out.

Usage (async - recommended):
    import asyncio
    from drips_estimator import AsyncStreamEstimator

    async def main():
        estimator = await AsyncStreamEstimator.create(
            event_source=subgraph,  # anything with `async get_events(user_id, skip, first)`
            user_id="8729346...",
            chain_id=1,
        )

        estimates = await estimator.estimate()
        for token, estimate in estimates.items():
            print(token, estimate.current_cycle.totals.total_streamed)

    asyncio.run(main())

Usage (sync):
    from drips_estimator import StreamEstimator

    estimator = StreamEstimator(event_source=subgraph, user_id="8729346...", chain_id=1)
    estimates = estimator.estimate()

Pure functions:
    from drips_estimator import build_account, estimate_account, get_cycle_window

    account = build_account(user_id, events)
    estimates = estimate_account(account, now, get_cycle_window(1, now))
"""

from . import async_events
from ._exceptions import (
    ChainNotSupportedError,
    ConfigurationError,
    DripsEstimatorError,
    EventFetchError,
    MalformedEventError,
    MalformedLedgerError,
    NoLedgerError,
)
from ._version import __version__

# Async client (recommended)
from .async_client import AsyncStreamEstimator
from .async_events import AsyncEventSource, AsyncSqueezeSource

# Sync client (for simple scripts)
from .client import StreamEstimator

# Constants
from .constants import (
    AMT_PER_SEC_EXTRA_DECIMALS,
    AMT_PER_SEC_MULTIPLIER,
    CYCLE_SECS_BY_CHAIN,
    EVENTS_PAGE_SIZE,
    MAX_TIMESTAMP,
    SUPPORTED_CHAIN_IDS,
    get_cycle_secs,
    is_supported_chain,
)

# Projection engine
from .estimator import estimate_account, estimate_ledger

# Event reconciliation
from .events import (
    EventSource,
    SqueezeSource,
    fetch_all_events,
    fetch_squeezes,
    merge_receiver,
    reconcile_receivers,
    separate_events_by_token,
    sort_events,
)
from .fixed_point import from_fixed_point, to_fixed_point
from .helpers import (
    get_address_from_asset_id,
    get_asset_id_from_address,
    get_cycle_window,
    make_stream_id,
    parse_stream_id,
    to_unix_seconds,
)

# Ledger building
from .ledger import build_account, build_checkpoint, build_ledger, find_ledger, interpret_max_end
from .stream_config import decode_stream_config, encode_stream_config

# Types
from .types import (
    Account,
    AccountEstimate,
    AssetEstimate,
    ConfigurationChangedEvent,
    CycleWindow,
    Depletion,
    EndsAt,
    Estimate,
    EstimateTotals,
    Ledger,
    LedgerCheckpoint,
    NoStreams,
    ReceiverObservation,
    ReconciledEvent,
    SqueezeRecord,
    Stream,
    StreamConfig,
    StreamEstimate,
    Unbounded,
)

__all__ = [
    # Version
    "__version__",
    # Clients
    "AsyncStreamEstimator",
    "StreamEstimator",
    # Sources
    "EventSource",
    "SqueezeSource",
    "AsyncEventSource",
    "AsyncSqueezeSource",
    # Event reconciliation
    "fetch_all_events",
    "fetch_squeezes",
    "sort_events",
    "separate_events_by_token",
    "merge_receiver",
    "reconcile_receivers",
    # Ledger building
    "interpret_max_end",
    "build_checkpoint",
    "build_ledger",
    "build_account",
    "find_ledger",
    # Projection engine
    "estimate_ledger",
    "estimate_account",
    # Helpers
    "to_fixed_point",
    "from_fixed_point",
    "decode_stream_config",
    "encode_stream_config",
    "get_address_from_asset_id",
    "get_asset_id_from_address",
    "make_stream_id",
    "parse_stream_id",
    "get_cycle_window",
    "to_unix_seconds",
    # Types
    "ReceiverObservation",
    "ConfigurationChangedEvent",
    "ReconciledEvent",
    "StreamConfig",
    "Stream",
    "NoStreams",
    "Unbounded",
    "EndsAt",
    "Depletion",
    "LedgerCheckpoint",
    "Ledger",
    "Account",
    "SqueezeRecord",
    "CycleWindow",
    "StreamEstimate",
    "EstimateTotals",
    "AssetEstimate",
    "Estimate",
    "AccountEstimate",
    # Constants
    "AMT_PER_SEC_MULTIPLIER",
    "AMT_PER_SEC_EXTRA_DECIMALS",
    "MAX_TIMESTAMP",
    "EVENTS_PAGE_SIZE",
    "CYCLE_SECS_BY_CHAIN",
    "SUPPORTED_CHAIN_IDS",
    "get_cycle_secs",
    "is_supported_chain",
    # Async events module
    "async_events",
    # Exceptions
    "DripsEstimatorError",
    "ConfigurationError",
    "ChainNotSupportedError",
    "EventFetchError",
    "MalformedEventError",
    "MalformedLedgerError",
    "NoLedgerError",
]

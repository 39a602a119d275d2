"""Pytest configuration and shared builders for drips-estimator tests."""

from datetime import datetime, timezone

import pytest

from drips_estimator import (
    AMT_PER_SEC_MULTIPLIER,
    MAX_TIMESTAMP,
    ConfigurationChangedEvent,
    CycleWindow,
    ReceiverObservation,
    StreamConfig,
    encode_stream_config,
    get_address_from_asset_id,
)

M = AMT_PER_SEC_MULTIPLIER

# A cycle boundary on every supported chain (multiple of one week).
T0 = 604_800 * 2810

# DAI on Ethereum mainnet
ASSET_ID = int("6B175474E89094C44Da98b954EedeAC495271d0F", 16)
TOKEN = get_address_from_asset_id(ASSET_ID)

# USDC on Ethereum mainnet
OTHER_ASSET_ID = int("A0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 16)
OTHER_TOKEN = get_address_from_asset_id(OTHER_ASSET_ID)

USER_ID = "1001"
ALICE = "2001"
BOB = "2002"


def at(secs: int) -> datetime:
    """UTC datetime for a UNIX timestamp."""
    return datetime.fromtimestamp(secs, tz=timezone.utc)


def packed(amount_per_sec: int, start: int = 0, duration: int = 0, drip_id: int = 0) -> int:
    """Packed stream config."""
    return encode_stream_config(
        StreamConfig(drip_id=drip_id, amount_per_sec=amount_per_sec, start=start, duration=duration)
    )


def make_event(
    block_timestamp: int,
    balance: int,
    receivers: list[tuple[str, int]] | None = None,
    receivers_hash: str = "0xh1",
    max_end: int = MAX_TIMESTAMP,
    asset_id: int = ASSET_ID,
    owner_id: str = USER_ID,
    history_hash: str | None = None,
) -> ConfigurationChangedEvent:
    """Configuration-changed event with (receiver_id, packed config) observations."""
    return ConfigurationChangedEvent(
        owner_id=owner_id,
        asset_id=asset_id,
        block_timestamp=block_timestamp,
        balance=balance,
        max_end=max_end,
        receivers_hash=receivers_hash,
        history_hash=history_hash or f"0xhist{block_timestamp}",
        receiver_observations=[
            ReceiverObservation(receiver_id=receiver_id, config=config) for receiver_id, config in receivers or []
        ],
    )


def cycle_starting(start: int, duration: int = 604_800) -> CycleWindow:
    """Cycle window starting at `start`."""
    return CycleWindow(
        cycle_duration_secs=duration,
        current_cycle_start_date=at(start),
        next_cycle_start_date=at(start + duration),
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove estimator env vars so tests don't depend on the caller's shell."""
    monkeypatch.delenv("DRIPS_USER_ID", raising=False)
    monkeypatch.delenv("DRIPS_CHAIN_ID", raising=False)
    return monkeypatch

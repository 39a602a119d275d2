"""Helper functions for drips-estimator."""

import os
from datetime import datetime, timedelta, timezone

from web3 import Web3

from ._exceptions import ChainNotSupportedError, ConfigurationError
from .constants import get_cycle_secs, is_supported_chain
from .types import CycleWindow


def get_address_from_asset_id(asset_id: int | str) -> str:
    """
    Get the ERC20 token address for an asset ID.

    The asset ID is the token address read as an integer.

    Raises:
        ValueError: If the asset ID does not fit in 20 bytes
    """
    value = int(asset_id)
    if value < 0 or value >= 1 << 160:
        raise ValueError(f"Asset ID {asset_id} is not a token address")
    return Web3.to_checksum_address("0x" + format(value, "040x"))


def get_asset_id_from_address(token_address: str) -> int:
    """
    Get the asset ID for an ERC20 token address.

    Raises:
        ValueError: If the address is not valid
    """
    if not Web3.is_address(token_address):
        raise ValueError(f"Invalid token address: {token_address}")
    return int(token_address, 16)


def make_stream_id(sender_id: str, token_address: str, drip_id: int | str) -> str:
    """
    Build the deterministic ID of a stream.

    Raises:
        ValueError: If the sender or drip ID is not numeric, or the token address is invalid
    """
    sender = str(sender_id)
    drip = str(drip_id)
    if not (sender.isdigit() and drip.isdigit() and Web3.is_address(token_address)):
        raise ValueError(f"Invalid stream ID parts: {sender!r}, {token_address!r}, {drip!r}")
    return f"{sender}-{token_address.lower()}-{drip}"


def parse_stream_id(stream_id: str) -> tuple[str, str, int]:
    """
    Split a stream ID into (sender_id, token_address, drip_id).

    Raises:
        ValueError: If the stream ID is malformed
    """
    parts = stream_id.split("-")
    if len(parts) != 3:
        raise ValueError(f"Invalid stream ID format: {stream_id}")

    sender, token, drip = parts
    if not (sender.isdigit() and drip.isdigit() and Web3.is_address(token)):
        raise ValueError(f"Invalid stream ID: {stream_id}")
    return sender, Web3.to_checksum_address(token), int(drip)


def to_unix_seconds(moment: datetime) -> int:
    """
    Get the UNIX timestamp of a datetime, in whole seconds.

    Naive datetimes are read as UTC rather than local time.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def get_cycle_window(chain_id: int, now: datetime | None = None) -> CycleWindow:
    """
    Get the accounting cycle containing `now` on a chain.

    Cycles are aligned to the UNIX epoch, so the current one starts at
    `now - now % cycle_secs`.

    Raises:
        ChainNotSupportedError: If chain_id is not supported
    """
    cycle_secs = get_cycle_secs(chain_id)
    now = now or datetime.now(timezone.utc)

    now_secs = to_unix_seconds(now)
    start = datetime.fromtimestamp(now_secs - now_secs % cycle_secs, tz=timezone.utc)

    return CycleWindow(
        cycle_duration_secs=cycle_secs,
        current_cycle_start_date=start,
        next_cycle_start_date=start + timedelta(seconds=cycle_secs),
    )


def resolve_identity(user_id: str | None, chain_id: int | None) -> tuple[str, int]:
    """
    Resolve the user and chain an estimator works for.

    Falls back to the DRIPS_USER_ID and DRIPS_CHAIN_ID env vars.

    Raises:
        ConfigurationError: If user_id or chain_id is missing or invalid
        ChainNotSupportedError: If chain_id is not supported
    """
    resolved_user = user_id or os.environ.get("DRIPS_USER_ID")
    if not resolved_user:
        raise ConfigurationError("user_id required (or set DRIPS_USER_ID)")

    raw_chain = chain_id or os.environ.get("DRIPS_CHAIN_ID")
    if not raw_chain:
        raise ConfigurationError("chain_id required (or set DRIPS_CHAIN_ID)")
    try:
        resolved_chain = int(raw_chain)
    except ValueError as e:
        raise ConfigurationError(f"chain_id must be an integer, got {raw_chain!r}") from e

    if not is_supported_chain(resolved_chain):
        raise ChainNotSupportedError(resolved_chain)

    return str(resolved_user), resolved_chain

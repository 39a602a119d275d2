"""Packing and unpacking of stream configurations."""

from .constants import MAX_TIMESTAMP
from .types import MAX_AMT_PER_SEC, MAX_DRIP_ID, StreamConfig

# Bit widths, high to low: dripId | amountPerSec | start | duration
DRIP_ID_BITS = 32
AMT_PER_SEC_BITS = 160
START_BITS = 32
DURATION_BITS = 32

_MASK_32 = (1 << 32) - 1
_MASK_160 = (1 << 160) - 1
_MAX_PACKED = (1 << (DRIP_ID_BITS + AMT_PER_SEC_BITS + START_BITS + DURATION_BITS)) - 1


def _validate(drip_id: int, amount_per_sec: int, start: int, duration: int) -> None:
    if not 0 <= drip_id <= MAX_DRIP_ID:
        raise ValueError(f"drip_id must be in [0, {MAX_DRIP_ID}], got {drip_id}")
    if not 0 < amount_per_sec <= MAX_AMT_PER_SEC:
        raise ValueError(f"amount_per_sec must be in (0, {MAX_AMT_PER_SEC}], got {amount_per_sec}")
    if not 0 <= start <= MAX_TIMESTAMP:
        raise ValueError(f"start must be in [0, {MAX_TIMESTAMP}], got {start}")
    if not 0 <= duration <= MAX_TIMESTAMP:
        raise ValueError(f"duration must be in [0, {MAX_TIMESTAMP}], got {duration}")


def encode_stream_config(config: StreamConfig) -> int:
    """
    Pack a StreamConfig into its uint256 form.

    Raises:
        ValueError: If any field is out of range
    """
    _validate(config.drip_id, config.amount_per_sec, config.start, config.duration)

    packed = config.drip_id
    packed = (packed << AMT_PER_SEC_BITS) | config.amount_per_sec
    packed = (packed << START_BITS) | config.start
    packed = (packed << DURATION_BITS) | config.duration
    return packed


def decode_stream_config(packed: int) -> StreamConfig:
    """
    Unpack a uint256 stream configuration.

    Example:
        >>> decode_stream_config((10**9 << 64) | 3600)
        StreamConfig(drip_id=0, amount_per_sec=1000000000, start=0, duration=3600)

    Raises:
        ValueError: If the value is negative, too wide, or has a zero rate
    """
    if packed < 0 or packed > _MAX_PACKED:
        raise ValueError(f"Packed stream config out of range: {packed}")

    duration = packed & _MASK_32
    start = (packed >> START_BITS) & _MASK_32
    amount_per_sec = (packed >> (START_BITS + DURATION_BITS)) & _MASK_160
    drip_id = packed >> (AMT_PER_SEC_BITS + START_BITS + DURATION_BITS)

    _validate(drip_id, amount_per_sec, start, duration)

    return StreamConfig(
        drip_id=drip_id,
        amount_per_sec=amount_per_sec,
        start=start,
        duration=duration,
    )

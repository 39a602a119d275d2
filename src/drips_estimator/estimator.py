"""
Projection of streamed amounts from a ledger.

Each checkpoint funds a pot that is drained, in whole seconds, at the sum
of the rates of the streams active at that moment. The pot is shared: when
it can no longer fund a full second, every stream of the checkpoint stops
until a later checkpoint tops it up. All arithmetic is on integers scaled by
AMT_PER_SEC_MULTIPLIER; amounts are scaled down only when reported.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ._exceptions import MalformedLedgerError, NoLedgerError
from .fixed_point import from_fixed_point
from .helpers import to_unix_seconds
from .types import (
    Account,
    AccountEstimate,
    AssetEstimate,
    CycleWindow,
    Estimate,
    EstimateTotals,
    Ledger,
    LedgerCheckpoint,
    SqueezeRecord,
    Stream,
    StreamEstimate,
)

logger = logging.getLogger(__name__)

# (start, end) in UNIX seconds; end is None for streams without a duration.
Window = tuple[int, int | None]

# (stream id, receiver id). Receivers of one sender may share a drip id.
StreamKey = tuple[str, str]


@dataclass
class _IntervalResult:
    delivered: list[int]
    delivered_in_cycle: list[int]
    remaining: int
    depleted_at: int | None = None


@dataclass
class _StreamTally:
    stream: Stream
    total: int = 0
    in_cycle: int = 0


@dataclass
class _Projection:
    tallies: dict[StreamKey, _StreamTally] = field(default_factory=dict)
    last: LedgerCheckpoint | None = None
    remaining: int = 0
    current_rates: dict[StreamKey, int] = field(default_factory=dict)


def _key(stream: Stream) -> StreamKey:
    return stream.id, stream.receiver_id


def _is_uint(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_checkpoint(token_address: str, index: int, checkpoint: LedgerCheckpoint, previous: int | None) -> None:
    """
    Check that a checkpoint can be projected.

    Raises:
        MalformedLedgerError: If the checkpoint is out of order or holds invalid values
    """

    def fail(message: str) -> MalformedLedgerError:
        return MalformedLedgerError(token_address, index, checkpoint.timestamp, message)

    if not _is_uint(checkpoint.timestamp):
        raise fail(f"invalid timestamp {checkpoint.timestamp!r}")
    if previous is not None and checkpoint.timestamp < previous:
        raise fail(f"timestamp precedes previous checkpoint ({previous})")
    if not _is_uint(checkpoint.balance):
        raise fail(f"invalid balance {checkpoint.balance!r}")

    for stream in checkpoint.streams:
        config = stream.config
        if not _is_uint(config.amount_per_sec) or config.amount_per_sec == 0:
            raise fail(f"stream {stream.id} has invalid amount_per_sec {config.amount_per_sec!r}")
        if not (_is_uint(config.start) and _is_uint(config.duration) and _is_uint(config.drip_id)):
            raise fail(f"stream {stream.id} has an invalid start, duration or drip_id")


def stream_window(stream: Stream, configured_at: int) -> Window:
    """Get the scheduled streaming window of a stream configured at `configured_at`."""
    start = stream.config.start or configured_at
    end = start + stream.config.duration if stream.config.duration else None
    return start, end


def _is_active(window: Window, at: int) -> bool:
    start, end = window
    return start <= at and (end is None or at < end)


def _simulate_interval(checkpoint: LedgerCheckpoint, end: int, cycle_start: int) -> _IntervalResult:
    start = checkpoint.timestamp
    windows = [stream_window(stream, start) for stream in checkpoint.streams]
    rates = [stream.config.amount_per_sec for stream in checkpoint.streams]

    # Activity and cycle membership are constant between consecutive breakpoints.
    breakpoints = {start, end}
    for moment in [cycle_start, *(t for window in windows for t in window if t is not None)]:
        if start < moment < end:
            breakpoints.add(moment)
    points = sorted(breakpoints)

    result = _IntervalResult(
        delivered=[0] * len(windows),
        delivered_in_cycle=[0] * len(windows),
        remaining=checkpoint.balance,
    )

    for segment_start, segment_end in zip(points, points[1:]):
        active = [i for i, (s, e) in enumerate(windows) if s <= segment_start and (e is None or segment_end <= e)]
        rate = sum(rates[i] for i in active)
        if not rate:
            continue

        seconds = min(segment_end - segment_start, result.remaining // rate)
        for i in active:
            amount = rates[i] * seconds
            result.delivered[i] += amount
            if segment_start >= cycle_start:
                result.delivered_in_cycle[i] += amount
        result.remaining -= rate * seconds

        if seconds < segment_end - segment_start:
            result.depleted_at = segment_start + seconds
            break

    return result


def _project(ledger: Ledger, now: int, cycle_start: int) -> _Projection:
    previous: int | None = None
    for index, checkpoint in enumerate(ledger.history):
        validate_checkpoint(ledger.token_address, index, checkpoint, previous)
        previous = checkpoint.timestamp

    history = [checkpoint for checkpoint in ledger.history if checkpoint.timestamp <= now]
    projection = _Projection()

    result: _IntervalResult | None = None
    for index, checkpoint in enumerate(history):
        end = history[index + 1].timestamp if index + 1 < len(history) else now
        result = _simulate_interval(checkpoint, end, cycle_start)

        for stream, delivered, delivered_in_cycle in zip(
            checkpoint.streams, result.delivered, result.delivered_in_cycle
        ):
            tally = projection.tallies.setdefault(_key(stream), _StreamTally(stream))
            tally.stream = stream
            tally.total += delivered
            tally.in_cycle += delivered_in_cycle

    if result is None:
        return projection

    last = history[-1]
    projection.last = last
    projection.remaining = result.remaining

    active: dict[StreamKey, int] = {}
    for stream in last.streams:
        if _is_active(stream_window(stream, last.timestamp), now):
            key = _key(stream)
            active[key] = active.get(key, 0) + stream.config.amount_per_sec
    depleted = result.depleted_at is not None or result.remaining < sum(active.values())
    if not depleted:
        projection.current_rates = active

    return projection


def _squeezed_amounts(
    squeezes: Sequence[SqueezeRecord],
    token_address: str,
    cycle_start: int,
) -> dict[tuple[str, str], int]:
    amounts: dict[tuple[str, str], int] = {}
    for squeeze in squeezes:
        if squeeze.token_address.lower() != token_address.lower() or squeeze.cycle_timestamp < cycle_start:
            continue
        key = (squeeze.sender_id, squeeze.receiver_id)
        amounts[key] = amounts.get(key, 0) + squeeze.amount
    return amounts


def _asset_estimate(streams: list[StreamEstimate], remaining: int, depletion_date: datetime | None) -> AssetEstimate:
    return AssetEstimate(
        streams=streams,
        totals=EstimateTotals(
            total_streamed=sum(s.total_streamed for s in streams),
            remaining_balance=remaining,
            total_amount_per_second=sum(s.current_amount_per_second for s in streams),
        ),
        depletion_date=depletion_date,
    )


def estimate_ledger(
    ledger: Ledger,
    now: datetime,
    cycle_window: CycleWindow,
    excluding_squeezes: Sequence[SqueezeRecord] = (),
) -> Estimate:
    """
    Project a token ledger up to `now`.

    Naive datetimes are read as UTC.

    Args:
        ledger: Ledger of one token
        now: Wall-clock time to project to
        cycle_window: Cycle containing `now`
        excluding_squeezes: Funds already squeezed this cycle, deducted from the
            current-cycle amounts of the matching (sender, receiver, token)

    Returns:
        Estimate with lifetime (`total`) and `current_cycle` projections

    Raises:
        MalformedLedgerError: If a checkpoint cannot be projected
        NoLedgerError: If every checkpoint is later than `now`
    """
    now_secs = to_unix_seconds(now)
    cycle_start = to_unix_seconds(cycle_window.current_cycle_start_date)

    projection = _project(ledger, now_secs, cycle_start)
    last = projection.last
    if last is None:
        raise NoLedgerError(None, ledger.token_address, as_of=now_secs)

    last_keys = {_key(stream) for stream in last.streams}
    depletion_date = last.depletion_date
    remaining = from_fixed_point(projection.remaining)

    squeezed = _squeezed_amounts(excluding_squeezes, ledger.token_address, cycle_start)

    total_streams: list[StreamEstimate] = []
    cycle_streams: list[StreamEstimate] = []
    for key, tally in projection.tallies.items():
        stream = tally.stream
        total = StreamEstimate(
            id=stream.id,
            sender_id=stream.sender_id,
            receiver_id=stream.receiver_id,
            token_address=ledger.token_address,
            total_streamed=from_fixed_point(tally.total),
            current_amount_per_second=projection.current_rates.get(key, 0),
            depletion_date=depletion_date if key in last_keys else None,
        )
        total_streams.append(total)

        in_cycle = from_fixed_point(tally.in_cycle)
        pair = (stream.sender_id, stream.receiver_id)
        deducted = min(squeezed.get(pair, 0), in_cycle)
        if deducted:
            squeezed[pair] -= deducted
        cycle_streams.append(total.model_copy(update={"total_streamed": in_cycle - deducted}))

    return Estimate(
        total=_asset_estimate(total_streams, remaining, depletion_date),
        current_cycle=_asset_estimate(cycle_streams, remaining, depletion_date),
    )


def estimate_account(
    account: Account,
    now: datetime,
    cycle_window: CycleWindow,
    excluding_squeezes: Sequence[SqueezeRecord] = (),
) -> AccountEstimate:
    """
    Project every ledger of an account, keyed by token address.

    Tokens whose first event is later than `now` are left out, like tokens
    the user never streamed.
    """
    estimates: AccountEstimate = {}
    for token_address, ledger in account.ledgers.items():
        try:
            estimates[token_address] = estimate_ledger(ledger, now, cycle_window, excluding_squeezes)
        except NoLedgerError:
            logger.debug("Skipping %s: no checkpoint at or before %s", token_address, now)
    return estimates

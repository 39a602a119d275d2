"""Building per-token ledgers from reconciled events."""

import logging
from collections.abc import Iterable, Sequence

from ._exceptions import MalformedEventError, NoLedgerError
from .constants import MAX_TIMESTAMP
from .events import reconcile_receivers, separate_events_by_token, sort_events
from .fixed_point import to_fixed_point
from .helpers import make_stream_id
from .stream_config import decode_stream_config
from .types import (
    Account,
    ConfigurationChangedEvent,
    Depletion,
    EndsAt,
    Ledger,
    LedgerCheckpoint,
    NoStreams,
    ReconciledEvent,
    Stream,
    Unbounded,
)

logger = logging.getLogger(__name__)


def interpret_max_end(max_end: int) -> Depletion:
    """
    Turn the raw `maxEnd` of an event into a Depletion.

    0 means no active streams, MAX_TIMESTAMP means every stream ends before
    the balance runs out, anything else is the depletion timestamp.

    Raises:
        ValueError: If max_end is not a uint32
    """
    if max_end < 0 or max_end > MAX_TIMESTAMP:
        raise ValueError(f"max_end must be in [0, {MAX_TIMESTAMP}], got {max_end}")
    if max_end == 0:
        return NoStreams()
    if max_end == MAX_TIMESTAMP:
        return Unbounded()
    return EndsAt(timestamp=max_end)


def build_checkpoint(token_address: str, event: ReconciledEvent) -> LedgerCheckpoint:
    """
    Build the checkpoint for one reconciled event.

    Raises:
        MalformedEventError: If a receiver config or `maxEnd` cannot be decoded
    """
    try:
        depletion = interpret_max_end(event.max_end)

        streams: list[Stream] = []
        if not isinstance(depletion, NoStreams):
            for receiver in event.receivers:
                config = decode_stream_config(receiver.config)
                streams.append(
                    Stream(
                        id=make_stream_id(event.owner_id, token_address, config.drip_id),
                        sender_id=event.owner_id,
                        receiver_id=receiver.receiver_id,
                        config=config,
                    )
                )
    except ValueError as e:
        raise MalformedEventError(token_address, event.block_timestamp, event.receivers_hash, str(e)) from e

    # A finite maxEnd with nobody to pay is still "nothing streams".
    if not streams and isinstance(depletion, EndsAt):
        depletion = NoStreams()

    return LedgerCheckpoint(
        timestamp=event.block_timestamp,
        balance=to_fixed_point(event.balance),
        streams=streams,
        history_hash=event.history_hash,
        receivers_hash=event.receivers_hash,
        depletion=depletion,
    )


def build_ledger(user_id: str, token_address: str, events: Sequence[ReconciledEvent]) -> Ledger:
    """
    Build the ledger of one token.

    Args:
        user_id: Owner of the events, used for error context
        token_address: Token the events belong to
        events: Reconciled events of that token

    Returns:
        Ledger with one checkpoint per event, oldest first

    Raises:
        NoLedgerError: If there are no events
        MalformedEventError: If an event cannot be decoded
    """
    if not events:
        raise NoLedgerError(user_id, token_address)

    history = [build_checkpoint(token_address, event) for event in sort_events(events)]

    logger.debug("Built ledger for %s with %d checkpoints", token_address, len(history))

    return Ledger(
        token_address=token_address,
        current_streams=history[-1].streams,
        history=history,
    )


def build_account(user_id: str, events: Iterable[ConfigurationChangedEvent]) -> Account:
    """Reconcile a user's raw events and build a ledger per token."""
    reconciled = reconcile_receivers(events)
    events_by_token = separate_events_by_token(reconciled)

    return Account(
        user_id=user_id,
        ledgers={
            token_address: build_ledger(user_id, token_address, token_events)
            for token_address, token_events in events_by_token.items()
        },
    )


def find_ledger(account: Account, token_address: str) -> Ledger:
    """
    Get the ledger of a token from an account.

    Raises:
        NoLedgerError: If the user never configured streams for the token
    """
    for address, ledger in account.ledgers.items():
        if address.lower() == token_address.lower():
            return ledger
    raise NoLedgerError(account.user_id, token_address)

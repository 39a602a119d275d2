"""Fetching and reconciling configuration-changed events."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from ._exceptions import EventFetchError
from .constants import EVENTS_PAGE_SIZE
from .helpers import get_address_from_asset_id
from .types import ConfigurationChangedEvent, CycleWindow, ReceiverObservation, ReconciledEvent, SqueezeRecord

logger = logging.getLogger(__name__)

RawEvent = ConfigurationChangedEvent | Mapping[str, Any]
RawSqueeze = SqueezeRecord | Mapping[str, Any]
_E = TypeVar("_E", bound=ConfigurationChangedEvent)


class EventSource(Protocol):
    """Paged access to a user's configuration-changed events."""

    def get_events(self, user_id: str, skip: int, first: int) -> Sequence[RawEvent]: ...


class SqueezeSource(Protocol):
    """Squeezes of the current cycle involving a user."""

    def get_squeezes(self, user_id: str, cycle_window: CycleWindow) -> Sequence[RawSqueeze]: ...


def to_event(raw: RawEvent) -> ConfigurationChangedEvent:
    """Validate a raw record from the event source."""
    if isinstance(raw, ConfigurationChangedEvent):
        return raw
    return ConfigurationChangedEvent.model_validate(raw)


def to_events(user_id: str, skip: int, page: Sequence[RawEvent]) -> list[ConfigurationChangedEvent]:
    """
    Validate a page of raw records.

    Raises:
        EventFetchError: If a record is missing fields or holds invalid values
    """
    try:
        return [to_event(raw) for raw in page]
    except ValidationError as e:
        raise EventFetchError(user_id, skip, f"invalid event record: {e}") from e


def fetch_all_events(
    source: EventSource,
    user_id: str,
    page_size: int = EVENTS_PAGE_SIZE,
) -> list[ConfigurationChangedEvent]:
    """
    Fetch every event of a user, page by page.

    Stops on an empty page or one shorter than `page_size`. A failure on any
    page aborts the whole fetch.

    Raises:
        EventFetchError: If the source fails or returns invalid records
    """
    events: list[ConfigurationChangedEvent] = []
    skip = 0

    while True:
        try:
            page = source.get_events(user_id, skip, page_size)
        except Exception as e:
            raise EventFetchError(user_id, skip, str(e)) from e

        events.extend(to_events(user_id, skip, page or []))
        logger.debug("Fetched %d events for user %s (skip=%d)", len(page or []), user_id, skip)

        if not page or len(page) < page_size:
            break

        skip += page_size

    return events


def sort_events(events: Iterable[_E]) -> list[_E]:
    """Sort events by block timestamp, keeping the original order on ties."""
    return sorted(events, key=lambda event: event.block_timestamp)


def separate_events_by_token(events: Iterable[_E]) -> dict[str, list[_E]]:
    """Group events by token address, each group in timestamp order."""
    result: dict[str, list[_E]] = {}
    for event in sort_events(events):
        token_address = get_address_from_asset_id(event.asset_id)
        result.setdefault(token_address, []).append(event)
    return result


def merge_receiver(
    receivers: dict[int, ReceiverObservation],
    observation: ReceiverObservation,
) -> dict[int, ReceiverObservation]:
    """
    Add an observation to a receiver set keyed by packed config.

    Observations are deduplicated on `config` alone: two receivers with the
    same packed config collapse into one. The first sighting keeps its
    position and the latest sighting's receiver wins.
    """
    receivers[observation.config] = observation
    return receivers


def reconcile_receivers(events: Iterable[ConfigurationChangedEvent]) -> list[ReconciledEvent]:
    """
    Annotate every event with the full receiver set for its hash.

    The set for a `receivers_hash` is the union of the observations of every
    event carrying that hash, wherever it sits in the history.
    """
    sorted_events = sort_events(events)

    receivers_by_hash: dict[str, dict[int, ReceiverObservation]] = {}
    for event in sorted_events:
        receivers = receivers_by_hash.setdefault(event.receivers_hash, {})
        for observation in event.receiver_observations:
            merge_receiver(receivers, observation)

    logger.debug(
        "Reconciled %d events into %d receiver sets",
        len(sorted_events),
        len(receivers_by_hash),
    )

    return [
        ReconciledEvent(
            **{**dict(event), "receivers": list(receivers_by_hash[event.receivers_hash].values())}
        )
        for event in sorted_events
    ]


def to_squeezes(user_id: str, records: Sequence[RawSqueeze]) -> list[SqueezeRecord]:
    """
    Validate squeeze records from a squeeze source.

    Raises:
        EventFetchError: If a record is missing fields or holds invalid values
    """
    try:
        return [
            record if isinstance(record, SqueezeRecord) else SqueezeRecord.model_validate(record) for record in records
        ]
    except ValidationError as e:
        raise EventFetchError(user_id, 0, f"invalid squeeze record: {e}") from e


def fetch_squeezes(source: SqueezeSource, user_id: str, cycle_window: CycleWindow) -> list[SqueezeRecord]:
    """
    Fetch the current-cycle squeezes involving a user.

    Raises:
        EventFetchError: If the source fails or returns invalid records
    """
    try:
        records = source.get_squeezes(user_id, cycle_window)
    except Exception as e:
        raise EventFetchError(user_id, 0, f"squeeze source failed: {e}") from e

    squeezes = to_squeezes(user_id, records or [])
    logger.debug("Fetched %d squeezes for user %s", len(squeezes), user_id)
    return squeezes

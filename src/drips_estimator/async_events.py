"""Async event fetching for drips-estimator."""

import logging
from collections.abc import Sequence
from typing import Protocol

from ._exceptions import EventFetchError
from .constants import EVENTS_PAGE_SIZE
from .events import RawEvent, RawSqueeze, to_events, to_squeezes
from .types import ConfigurationChangedEvent, CycleWindow, SqueezeRecord

logger = logging.getLogger(__name__)


class AsyncEventSource(Protocol):
    """Async paged access to a user's configuration-changed events."""

    async def get_events(self, user_id: str, skip: int, first: int) -> Sequence[RawEvent]: ...


class AsyncSqueezeSource(Protocol):
    """Async access to squeezes of the current cycle involving a user."""

    async def get_squeezes(self, user_id: str, cycle_window: CycleWindow) -> Sequence[RawSqueeze]: ...


async def fetch_all_events(
    source: AsyncEventSource,
    user_id: str,
    page_size: int = EVENTS_PAGE_SIZE,
) -> list[ConfigurationChangedEvent]:
    """
    Fetch every event of a user, page by page.

    Stops on an empty page or one shorter than `page_size`. A failure on any
    page aborts the whole fetch.

    Args:
        source: Async event source (e.g. a subgraph client)
        user_id: The user whose events to fetch
        page_size: Records requested per page

    Returns:
        All events in the order the source returned them

    Raises:
        EventFetchError: If the source fails or returns invalid records
    """
    events: list[ConfigurationChangedEvent] = []
    skip = 0

    while True:
        try:
            page = await source.get_events(user_id, skip, page_size)
        except Exception as e:
            raise EventFetchError(user_id, skip, str(e)) from e

        events.extend(to_events(user_id, skip, page or []))
        logger.debug("Fetched %d events for user %s (skip=%d)", len(page or []), user_id, skip)

        if not page or len(page) < page_size:
            break

        skip += page_size

    return events


async def fetch_squeezes(source: AsyncSqueezeSource, user_id: str, cycle_window: CycleWindow) -> list[SqueezeRecord]:
    """
    Fetch the current-cycle squeezes involving a user.

    Raises:
        EventFetchError: If the source fails or returns invalid records
    """
    try:
        records = await source.get_squeezes(user_id, cycle_window)
    except Exception as e:
        raise EventFetchError(user_id, 0, f"squeeze source failed: {e}") from e

    squeezes = to_squeezes(user_id, records or [])
    logger.debug("Fetched %d squeezes for user %s", len(squeezes), user_id)
    return squeezes

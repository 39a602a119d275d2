"""High-level client for drips-estimator."""

import logging
from datetime import datetime, timezone

from ._exceptions import NoLedgerError
from .estimator import estimate_account, estimate_ledger
from .events import EventSource, SqueezeSource, fetch_all_events, fetch_squeezes
from .helpers import get_cycle_window, resolve_identity
from .ledger import build_account, find_ledger
from .types import Account, AccountEstimate, CycleWindow, Estimate, SqueezeRecord

logger = logging.getLogger(__name__)


class StreamEstimator:
    """
    Estimator of a user's outgoing streams.

    Example:
        >>> from drips_estimator import StreamEstimator
        >>>
        >>> estimator = StreamEstimator(event_source=subgraph, user_id="8729346...", chain_id=1)
        >>> estimates = estimator.estimate()
        >>> estimates["0x6B175474E89094C44Da98b954EedeAC495271d0F"].total.totals.total_streamed
    """

    def __init__(
        self,
        event_source: EventSource,
        user_id: str | None = None,
        chain_id: int | None = None,
        squeeze_source: SqueezeSource | None = None,
    ) -> None:
        """
        Initialize the estimator.

        Args:
            event_source: Paged source of configuration-changed events
            user_id: User to estimate. Falls back to DRIPS_USER_ID env var.
            chain_id: Chain ID. Falls back to DRIPS_CHAIN_ID env var.
            squeeze_source: Optional source of current-cycle squeezes

        Raises:
            ConfigurationError: If user_id or chain_id not provided
            ChainNotSupportedError: If chain_id is not supported
        """
        self.user_id, self.chain_id = resolve_identity(user_id, chain_id)
        self.event_source = event_source
        self.squeeze_source = squeeze_source
        self._account: Account | None = None

    @property
    def account(self) -> Account | None:
        """The ledgers built by the last refresh, or None before the first one."""
        return self._account

    def refresh(self) -> Account:
        """Re-fetch the event log and rebuild every ledger."""
        events = fetch_all_events(self.event_source, self.user_id)
        self._account = build_account(self.user_id, events)
        logger.info(
            "Loaded %d events across %d tokens for user %s",
            len(events),
            len(self._account.ledgers),
            self.user_id,
        )
        return self._account

    def _prepare(
        self,
        excluding_squeezes: list[SqueezeRecord] | None,
        now: datetime | None,
    ) -> tuple[Account, datetime, CycleWindow, list[SqueezeRecord]]:
        account = self._account or self.refresh()
        now = now or datetime.now(timezone.utc)
        cycle_window = get_cycle_window(self.chain_id, now)

        if excluding_squeezes is None:
            excluding_squeezes = []
            if self.squeeze_source is not None:
                excluding_squeezes = fetch_squeezes(self.squeeze_source, self.user_id, cycle_window)

        return account, now, cycle_window, excluding_squeezes

    def estimate(
        self,
        excluding_squeezes: list[SqueezeRecord] | None = None,
        now: datetime | None = None,
    ) -> AccountEstimate:
        """Estimate every token the user streams, keyed by token address."""
        account, now, cycle_window, squeezes = self._prepare(excluding_squeezes, now)
        return estimate_account(account, now, cycle_window, squeezes)

    def estimate_token(
        self,
        token_address: str,
        excluding_squeezes: list[SqueezeRecord] | None = None,
        now: datetime | None = None,
    ) -> Estimate:
        """
        Estimate a single token.

        Raises:
            NoLedgerError: If the user never streamed this token, or not before `now`
        """
        account, now, cycle_window, squeezes = self._prepare(excluding_squeezes, now)
        ledger = find_ledger(account, token_address)
        try:
            return estimate_ledger(ledger, now, cycle_window, squeezes)
        except NoLedgerError as e:
            raise NoLedgerError(self.user_id, ledger.token_address, as_of=e.as_of) from e

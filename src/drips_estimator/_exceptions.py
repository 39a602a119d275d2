"""Custom exceptions for drips-estimator."""


class DripsEstimatorError(Exception):
    """Base exception for drips-estimator."""


class ConfigurationError(DripsEstimatorError):
    """Invalid caller input (missing user ID, chain ID, etc.)."""


class ChainNotSupportedError(DripsEstimatorError):
    """Unsupported chain ID."""

    def __init__(self, chain_id: int) -> None:
        super().__init__(f"Chain {chain_id} is not supported")
        self.chain_id = chain_id


class EventFetchError(DripsEstimatorError):
    """The event source failed while paginating a user's event log."""

    def __init__(self, user_id: str, skip: int, message: str) -> None:
        super().__init__(f"Could not fetch events for user {user_id} (skip={skip}): {message}")
        self.user_id = user_id
        self.skip = skip


class MalformedEventError(DripsEstimatorError):
    """An event could not be turned into a ledger checkpoint."""

    def __init__(self, token_address: str, block_timestamp: int, receivers_hash: str, message: str) -> None:
        super().__init__(
            f"Malformed event for token {token_address} at {block_timestamp} "
            f"(receivers hash {receivers_hash}): {message}"
        )
        self.token_address = token_address
        self.block_timestamp = block_timestamp
        self.receivers_hash = receivers_hash


class MalformedLedgerError(DripsEstimatorError):
    """A ledger checkpoint holds values the projection cannot use."""

    def __init__(self, token_address: str, index: int, timestamp: int, message: str) -> None:
        super().__init__(f"Malformed checkpoint #{index} for token {token_address} at {timestamp}: {message}")
        self.token_address = token_address
        self.index = index
        self.timestamp = timestamp


class NoLedgerError(DripsEstimatorError):
    """
    The user never configured streams for the token.

    With `as_of` set, the token has events but none at or before that UNIX time.
    """

    def __init__(self, user_id: str | None, token_address: str, as_of: int | None = None) -> None:
        subject = f"user {user_id} and token {token_address}" if user_id is not None else f"token {token_address}"
        when = f" at or before {as_of}" if as_of is not None else ""
        super().__init__(f"No events found for {subject}{when}")
        self.user_id = user_id
        self.token_address = token_address
        self.as_of = as_of

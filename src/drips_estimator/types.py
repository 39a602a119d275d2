"""Type definitions for drips-estimator."""

from datetime import datetime, timezone
from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, Field

from .constants import MAX_TIMESTAMP

MAX_DRIP_ID = 2**32 - 1
MAX_AMT_PER_SEC = 2**160 - 1


class ReceiverObservation(BaseModel):
    """
    A receiver seen in a single configuration-changed event.

    The full receiver set behind a `receivers_hash` may be spread over
    several events, so one observation is only a fragment of it.
    """

    receiver_id: str = Field(validation_alias=AliasChoices("receiver_id", "receiverId", "receiverUserId"))
    config: int

    model_config = {"frozen": True}


class ConfigurationChangedEvent(BaseModel):
    """
    One on-chain "set streams" call, as reported by the event source.

    Accepts both snake_case and the indexer's camelCase field names, so
    raw subgraph records can be validated directly.
    """

    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "ownerId", "userId"))
    asset_id: int = Field(ge=0, validation_alias=AliasChoices("asset_id", "assetId"))
    block_timestamp: int = Field(ge=0, validation_alias=AliasChoices("block_timestamp", "blockTimestamp"))
    balance: int = Field(ge=0)
    max_end: int = Field(ge=0, le=MAX_TIMESTAMP, validation_alias=AliasChoices("max_end", "maxEnd"))
    receivers_hash: str = Field(validation_alias=AliasChoices("receivers_hash", "receiversHash"))
    history_hash: str = Field(validation_alias=AliasChoices("history_hash", "historyHash", "dripsHistoryHash"))
    receiver_observations: list[ReceiverObservation] = Field(
        default_factory=list,
        validation_alias=AliasChoices("receiver_observations", "receiverObservations", "dripsReceiverSeenEvents"),
    )

    model_config = {"frozen": True}


class ReconciledEvent(ConfigurationChangedEvent):
    """
    An event annotated with the complete receiver set for its hash.

    Two reconciled events sharing a `receivers_hash` always carry the same
    `receivers`.
    """

    receivers: list[ReceiverObservation] = Field(default_factory=list)


class StreamConfig(BaseModel):
    """
    Decoded stream configuration.

    `amount_per_sec` is scaled by AMT_PER_SEC_MULTIPLIER. A zero `start`
    means the stream starts when it is configured; a zero `duration` means
    it runs until the balance is exhausted.
    """

    drip_id: int = Field(ge=0, le=MAX_DRIP_ID)
    amount_per_sec: int = Field(gt=0, le=MAX_AMT_PER_SEC)
    start: int = Field(ge=0, le=MAX_TIMESTAMP)
    duration: int = Field(ge=0, le=MAX_TIMESTAMP)

    model_config = {"frozen": True}


class Stream(BaseModel):
    """A single (sender, receiver, token) funding relation at a point in time."""

    id: str
    sender_id: str
    receiver_id: str
    config: StreamConfig

    model_config = {"frozen": True}


class NoStreams(BaseModel):
    """`maxEnd` is zero: nothing is streaming."""

    kind: Literal["no_streams"] = "no_streams"

    model_config = {"frozen": True}


class Unbounded(BaseModel):
    """`maxEnd` is the maximum timestamp: every stream ends before the balance does."""

    kind: Literal["unbounded"] = "unbounded"

    model_config = {"frozen": True}


class EndsAt(BaseModel):
    """The balance runs out at `timestamp`."""

    kind: Literal["ends_at"] = "ends_at"
    timestamp: int = Field(gt=0, lt=MAX_TIMESTAMP)

    model_config = {"frozen": True}

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


Depletion = Annotated[NoStreams | Unbounded | EndsAt, Field(discriminator="kind")]


class LedgerCheckpoint(BaseModel):
    """
    Snapshot of a token's streaming configuration after one event.

    `balance` is scaled by AMT_PER_SEC_MULTIPLIER, the same base as
    `StreamConfig.amount_per_sec`.
    """

    timestamp: int = Field(ge=0)
    balance: int = Field(ge=0)
    streams: list[Stream]
    history_hash: str
    receivers_hash: str
    depletion: Depletion

    model_config = {"frozen": True}

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    @property
    def depletion_date(self) -> datetime | None:
        """When the balance runs out, or None if it never does or nothing streams."""
        if isinstance(self.depletion, EndsAt):
            return self.depletion.date
        return None


class Ledger(BaseModel):
    """Per-token history of checkpoints, oldest first."""

    token_address: str
    current_streams: list[Stream]
    history: list[LedgerCheckpoint] = Field(min_length=1)

    model_config = {"frozen": True}


class Account(BaseModel):
    """All ledgers of a user, keyed by token address."""

    user_id: str
    ledgers: dict[str, Ledger]

    model_config = {"frozen": True}


class SqueezeRecord(BaseModel):
    """
    Funds withdrawn early from the current cycle.

    `amount` is in token units.
    """

    sender_id: str = Field(validation_alias=AliasChoices("sender_id", "senderId"))
    receiver_id: str = Field(validation_alias=AliasChoices("receiver_id", "receiverId", "accountId"))
    token_address: str = Field(validation_alias=AliasChoices("token_address", "tokenAddress"))
    amount: int = Field(ge=0)
    cycle_timestamp: int = Field(
        ge=0, validation_alias=AliasChoices("cycle_timestamp", "cycleTimestamp", "blockTimestamp")
    )

    model_config = {"frozen": True}


class CycleWindow(BaseModel):
    """The protocol's accounting cycle containing "now"."""

    cycle_duration_secs: int = Field(gt=0)
    current_cycle_start_date: datetime
    next_cycle_start_date: datetime

    model_config = {"frozen": True}


class StreamEstimate(BaseModel):
    """
    Projection for one stream.

    `total_streamed` is in token units; `current_amount_per_second` keeps
    the AMT_PER_SEC_MULTIPLIER scale of the stream config.
    """

    id: str
    sender_id: str
    receiver_id: str
    token_address: str
    total_streamed: int
    current_amount_per_second: int
    depletion_date: datetime | None = None

    model_config = {"frozen": True}


class EstimateTotals(BaseModel):
    """Aggregates over all streams of a token."""

    total_streamed: int
    remaining_balance: int
    total_amount_per_second: int

    model_config = {"frozen": True}


class AssetEstimate(BaseModel):
    """Per-stream estimates plus their totals."""

    streams: list[StreamEstimate]
    totals: EstimateTotals
    depletion_date: datetime | None = None

    model_config = {"frozen": True}


class Estimate(BaseModel):
    """
    Lifetime and current-cycle projections for a token.

    total: everything streamed since the first event
    current_cycle: only what streamed since the current cycle started, net of squeezes
    """

    total: AssetEstimate
    current_cycle: AssetEstimate

    model_config = {"frozen": True}


AccountEstimate = dict[str, Estimate]

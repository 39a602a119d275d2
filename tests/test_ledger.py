"""Tests for building per-token ledgers."""

import pytest

from drips_estimator import (
    MAX_TIMESTAMP,
    EndsAt,
    MalformedEventError,
    NoLedgerError,
    NoStreams,
    ReceiverObservation,
    Unbounded,
    build_account,
    build_checkpoint,
    build_ledger,
    find_ledger,
    interpret_max_end,
    make_stream_id,
    reconcile_receivers,
)

from .conftest import ALICE, BOB, M, OTHER_ASSET_ID, OTHER_TOKEN, T0, TOKEN, USER_ID, at, make_event, packed


def _ledger(*events):
    return build_ledger(USER_ID, TOKEN, reconcile_receivers(events))


class TestInterpretMaxEnd:
    """Tests for the maxEnd sentinel interpretation."""

    def test_zero_is_no_streams(self) -> None:
        assert interpret_max_end(0) == NoStreams()

    def test_max_timestamp_is_unbounded(self) -> None:
        assert interpret_max_end(MAX_TIMESTAMP) == Unbounded()

    def test_other_values_end_at(self) -> None:
        depletion = interpret_max_end(T0 + 100)

        assert depletion == EndsAt(timestamp=T0 + 100)
        assert depletion.date == at(T0 + 100)

    def test_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            interpret_max_end(MAX_TIMESTAMP + 1)


class TestCheckpointDepletion:
    """Tests for depletion dates derived from maxEnd."""

    def test_unbounded_has_no_depletion_date(self) -> None:
        ledger = _ledger(make_event(T0, 100, [(ALICE, packed(M))], max_end=MAX_TIMESTAMP))

        assert ledger.history[0].depletion == Unbounded()
        assert ledger.history[0].depletion_date is None

    def test_zero_max_end_clears_receivers(self) -> None:
        """maxEnd = 0 means nothing streams, whatever was observed."""
        ledger = _ledger(make_event(T0, 100, [(ALICE, packed(M))], max_end=0))

        assert ledger.history[0].depletion_date is None
        assert ledger.history[0].streams == []
        assert ledger.current_streams == []

    def test_finite_max_end(self) -> None:
        ledger = _ledger(make_event(T0, 100, [(ALICE, packed(M))], max_end=T0 + 100))
        assert ledger.history[0].depletion_date == at(T0 + 100)

    def test_finite_max_end_without_receivers(self) -> None:
        ledger = _ledger(make_event(T0, 100, [], max_end=T0 + 100))

        assert ledger.history[0].depletion == NoStreams()
        assert ledger.history[0].depletion_date is None


class TestBuildLedger:
    """Tests for ledger construction."""

    def test_balance_is_scaled(self) -> None:
        ledger = _ledger(make_event(T0, 1000, [(ALICE, packed(10 * M))]))
        assert ledger.history[0].balance == 1000 * M

    def test_streams_decoded(self) -> None:
        ledger = _ledger(make_event(T0, 1000, [(ALICE, packed(10 * M, start=T0 + 5, duration=60, drip_id=4))]))

        stream = ledger.current_streams[0]
        assert stream.id == make_stream_id(USER_ID, TOKEN, 4)
        assert stream.sender_id == USER_ID
        assert stream.receiver_id == ALICE
        assert stream.config.amount_per_sec == 10 * M
        assert stream.config.start == T0 + 5
        assert stream.config.duration == 60

    def test_history_is_monotonic(self) -> None:
        ledger = _ledger(
            make_event(T0 + 30, 10, [(ALICE, packed(M))]),
            make_event(T0, 30, [(ALICE, packed(M))]),
            make_event(T0 + 10, 20, [(ALICE, packed(M))]),
        )

        timestamps = [checkpoint.timestamp for checkpoint in ledger.history]
        assert all(a <= b for a, b in zip(timestamps, timestamps[1:]))
        assert ledger.history[-1].balance == 10 * M

    def test_current_streams_are_latest(self) -> None:
        ledger = _ledger(
            make_event(T0, 100, [(ALICE, packed(M, drip_id=1))], receivers_hash="0xh1"),
            make_event(T0 + 10, 100, [(BOB, packed(M, drip_id=2))], receivers_hash="0xh2"),
        )

        assert [stream.receiver_id for stream in ledger.current_streams] == [BOB]
        assert ledger.current_streams == ledger.history[-1].streams

    def test_hashes_carried(self) -> None:
        ledger = _ledger(make_event(T0, 100, [(ALICE, packed(M))], receivers_hash="0xabc", history_hash="0xdef"))

        assert ledger.history[0].receivers_hash == "0xabc"
        assert ledger.history[0].history_hash == "0xdef"

    def test_no_events(self) -> None:
        """A token without events has no ledger."""
        with pytest.raises(NoLedgerError) as exc_info:
            build_ledger(USER_ID, TOKEN, [])

        assert exc_info.value.user_id == USER_ID
        assert exc_info.value.token_address == TOKEN

    def test_malformed_config(self) -> None:
        """An undecodable receiver aborts the ledger instead of being skipped."""
        event = make_event(T0 + 7, 100, [(ALICE, packed(M)), (BOB, 3600)], receivers_hash="0xbad")

        with pytest.raises(MalformedEventError) as exc_info:
            _ledger(event)

        assert exc_info.value.token_address == TOKEN
        assert exc_info.value.block_timestamp == T0 + 7
        assert exc_info.value.receivers_hash == "0xbad"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_non_numeric_owner(self) -> None:
        event = make_event(T0, 100, [(ALICE, packed(M))], owner_id="alice")

        with pytest.raises(MalformedEventError):
            _ledger(event)

    def test_checkpoint_from_single_event(self) -> None:
        [event] = reconcile_receivers([make_event(T0, 5, [(ALICE, packed(M))])])

        checkpoint = build_checkpoint(TOKEN, event)

        assert checkpoint.timestamp == T0
        assert checkpoint.date == at(T0)
        assert event.receivers == [ReceiverObservation(receiver_id=ALICE, config=packed(M))]


class TestBuildAccount:
    """Tests for building every ledger of a user."""

    def test_one_ledger_per_token(self) -> None:
        account = build_account(
            USER_ID,
            [
                make_event(T0, 100, [(ALICE, packed(M))]),
                make_event(T0 + 5, 50, [(BOB, packed(M))], asset_id=OTHER_ASSET_ID, receivers_hash="0xh2"),
                make_event(T0 + 10, 80, [(ALICE, packed(M))]),
            ],
        )

        assert account.user_id == USER_ID
        assert set(account.ledgers) == {TOKEN, OTHER_TOKEN}
        assert len(account.ledgers[TOKEN].history) == 2
        assert len(account.ledgers[OTHER_TOKEN].history) == 1

    def test_receivers_reconciled_before_building(self) -> None:
        """A later event repeating the hash without observations still gets the streams."""
        account = build_account(
            USER_ID,
            [
                make_event(T0, 100, [(ALICE, packed(M))]),
                make_event(T0 + 10, 200, []),
            ],
        )

        assert [stream.receiver_id for stream in account.ledgers[TOKEN].current_streams] == [ALICE]

    def test_no_events_no_ledgers(self) -> None:
        assert build_account(USER_ID, []).ledgers == {}

    def test_find_ledger_ignores_case(self) -> None:
        account = build_account(USER_ID, [make_event(T0, 100, [(ALICE, packed(M))])])
        assert find_ledger(account, TOKEN.lower()).token_address == TOKEN

    def test_find_ledger_missing(self) -> None:
        account = build_account(USER_ID, [make_event(T0, 100, [(ALICE, packed(M))])])

        with pytest.raises(NoLedgerError):
            find_ledger(account, OTHER_TOKEN)

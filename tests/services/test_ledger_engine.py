"""
Tests for LedgerEngine.

Covers:
- Applying movements and the non-negative balance floor
- Revising movements (tail correction, stale later snapshots)
- Removing movements
- Atomicity of the movement + account write
- Movement reads by id and by owner over a date range
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import delete, update

from ledger_kernel.clients.owner_directory import OwnerDirectory
from ledger_kernel.domain.dtos import MovementInfo, OwnerMovementView
from ledger_kernel.exceptions import ErrorKind, LedgerError
from ledger_kernel.models.account import Account
from ledger_kernel.models.movement import Movement
from ledger_kernel.services import LedgerEngine
from ledger_kernel.stores import MovementStore


def _balance(account_service, account_id) -> Decimal:
    return account_service.obtain_account(account_id).current_balance


class TestApplyMovement:
    """apply_movement."""

    def test_deposit_updates_balance_and_snapshot(self, ledger_engine, create_account):
        acct = create_account("478758", opening_balance="100")

        movement = ledger_engine.apply_movement("478758", date(2024, 1, 5), "deposit", "50")

        assert isinstance(movement, MovementInfo)
        assert movement.id is not None
        assert movement.date == date(2024, 1, 5)
        assert movement.type == "deposit"
        assert movement.value == Decimal("50")
        assert movement.balance == Decimal("150")
        assert movement.account.id == acct.id
        assert movement.account.current_balance == Decimal("150")

    def test_insufficient_funds_rejected_without_mutation(
        self, session, ledger_engine, account_service, create_account
    ):
        acct = create_account("478758", opening_balance="100")
        ledger_engine.apply_movement("478758", date(2024, 1, 5), "deposit", "50")

        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.apply_movement("478758", date(2024, 1, 6), "withdrawal", "-300")

        assert exc_info.value.kind is ErrorKind.INSUFFICIENT_FUNDS
        session.expire_all()
        assert _balance(account_service, acct.id) == Decimal("150")
        assert MovementStore(session).count_for_account(acct.id) == 1

    def test_withdraw_to_exactly_zero(self, ledger_engine, create_account):
        create_account("ACC-1", opening_balance="80")

        movement = ledger_engine.apply_movement("ACC-1", "2024-03-01", "withdrawal", "-80")

        assert movement.balance == Decimal("0")

    def test_unknown_account(self, ledger_engine):
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.apply_movement("NOPE", date(2024, 1, 1), "deposit", "1")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.parametrize(
        "movement_date, movement_type, value",
        [
            ("not-a-date", "deposit", "1"),
            (date(2024, 1, 1), "", "1"),
            (date(2024, 1, 1), "deposit", "one"),
            (None, "deposit", "1"),
        ],
    )
    def test_invalid_input(self, ledger_engine, create_account, movement_date, movement_type, value):
        create_account("ACC-1")

        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.apply_movement("ACC-1", movement_date, movement_type, value)
        assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    def test_zero_value_allowed(self, ledger_engine, create_account):
        create_account("ACC-1", opening_balance="5")
        movement = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "note", "0")
        assert movement.balance == Decimal("5")

    def test_logs_applied_with_context(self, ledger_engine, create_account, captured_logs):
        create_account("ACC-1", opening_balance="10")

        ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "5")

        records = [r for r in captured_logs() if r["message"] == "movement_applied"]
        assert len(records) == 1
        assert records[0]["account_number"] == "ACC-1"
        assert Decimal(records[0]["previous_balance"]) == Decimal("10")
        assert Decimal(records[0]["new_balance"]) == Decimal("15")

    def test_logs_rejection(self, ledger_engine, create_account, captured_logs):
        create_account("ACC-1", opening_balance="10")

        with pytest.raises(LedgerError):
            ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "withdrawal", "-11")

        records = [r for r in captured_logs() if r["message"] == "movement_rejected"]
        assert records[0]["reason"] == "INSUFFICIENT_FUNDS"
        assert records[0]["operation"] == "apply"


class TestAtomicity:
    """A failure after the movement is flushed leaves nothing behind."""

    def test_account_write_failure_rolls_back_movement(
        self, session, ledger_engine, account_service, create_account, monkeypatch
    ):
        acct = create_account("ACC-1", opening_balance="100")

        def _boom(account):
            raise RuntimeError("account store down")

        monkeypatch.setattr(ledger_engine._accounts, "save", _boom)

        with pytest.raises(RuntimeError):
            ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "25")

        monkeypatch.undo()
        session.expire_all()
        assert _balance(account_service, acct.id) == Decimal("100")
        assert MovementStore(session).count_for_account(acct.id) == 0


class TestReviseMovement:
    """revise_movement."""

    def test_revise_corrects_tail_and_keeps_later_snapshots(
        self, session, ledger_engine, account_service, create_account
    ):
        acct = create_account("ACC-1", opening_balance="1000")
        a = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "100")
        b = ledger_engine.apply_movement("ACC-1", date(2024, 1, 2), "deposit", "50")
        assert b.balance == Decimal("1150")

        revised = ledger_engine.revise_movement(a.id, date(2024, 1, 1), "deposit", "200")

        assert revised.value == Decimal("200")
        assert revised.balance == Decimal("1250")
        assert _balance(account_service, acct.id) == Decimal("1250")
        session.expire_all()
        # Later movement keeps the snapshot it was created with.
        assert ledger_engine.obtain_movement(b.id).balance == Decimal("1150")

    def test_revise_changes_date_and_type(self, ledger_engine, create_account):
        create_account("ACC-1", opening_balance="10")
        m = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "5")

        revised = ledger_engine.revise_movement(m.id, "2024-02-01", "correction", "5")

        assert revised.date == date(2024, 2, 1)
        assert revised.type == "correction"
        assert revised.balance == Decimal("15")

    def test_revise_below_zero_rejected(
        self, session, ledger_engine, account_service, create_account
    ):
        acct = create_account("ACC-1", opening_balance="100")
        m = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "withdrawal", "-50")

        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.revise_movement(m.id, date(2024, 1, 1), "withdrawal", "-150")

        assert exc_info.value.kind is ErrorKind.INSUFFICIENT_FUNDS
        session.expire_all()
        assert _balance(account_service, acct.id) == Decimal("50")
        assert ledger_engine.obtain_movement(m.id).value == Decimal("-50")

    def test_revise_missing(self, ledger_engine):
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.revise_movement(987_654, date(2024, 1, 1), "deposit", "1")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestRemoveMovement:
    """remove_movement."""

    def test_remove_restores_balance(self, session, ledger_engine, account_service, create_account):
        acct = create_account("ACC-1", opening_balance="100")
        m = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "40")

        ledger_engine.remove_movement(m.id)

        assert _balance(account_service, acct.id) == Decimal("100")
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.obtain_movement(m.id)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_remove_has_no_floor(self, ledger_engine, account_service, create_account):
        acct = create_account("ACC-1", opening_balance="0")
        deposit = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "100")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 2), "withdrawal", "-100")

        ledger_engine.remove_movement(deposit.id)

        assert _balance(account_service, acct.id) == Decimal("-100")

    def test_remove_missing(self, ledger_engine):
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.remove_movement(555_555)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestStaleMovementCopies:
    """
    Another unit committed a change this session has not seen.

    The rows are updated behind the ORM's back, leaving stale copies in the
    identity map, the way a concurrent committed revise would.
    """

    def _commit_elsewhere(self, session, movement_id, account_id, value):
        session.execute(
            update(Movement)
            .where(Movement.id == movement_id)
            .values(value=Decimal(value), balance=Decimal(value))
            .execution_options(synchronize_session=False)
        )
        session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(current_balance=Decimal(value), version=Account.version + 1)
            .execution_options(synchronize_session=False)
        )

    def _stale_movement(self, session, ledger_engine, create_account):
        acct = create_account("ACC-1", opening_balance="0")
        info = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "100")
        cached = session.get(Movement, info.id)
        self._commit_elsewhere(session, info.id, acct.id, "200")
        assert cached.value == Decimal("100")
        return acct, info, cached

    def test_revise_takes_out_committed_value(
        self, session, ledger_engine, account_service, create_account
    ):
        acct, info, _cached = self._stale_movement(session, ledger_engine, create_account)

        revised = ledger_engine.revise_movement(info.id, date(2024, 1, 1), "deposit", "300")

        assert revised.balance == Decimal("300")
        assert _balance(account_service, acct.id) == Decimal("300")

    def test_remove_takes_out_committed_value(
        self, session, ledger_engine, account_service, create_account
    ):
        acct, info, _cached = self._stale_movement(session, ledger_engine, create_account)

        ledger_engine.remove_movement(info.id)

        assert _balance(account_service, acct.id) == Decimal("0")

    def test_revise_of_movement_deleted_elsewhere(self, session, ledger_engine, create_account):
        create_account("ACC-1", opening_balance="0")
        info = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "100")
        session.execute(
            delete(Movement)
            .where(Movement.id == info.id)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.revise_movement(info.id, date(2024, 1, 1), "deposit", "5")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestObtainMovement:
    """Reads by id."""

    def test_repeated_reads_equal(self, ledger_engine, create_account):
        create_account("ACC-1", opening_balance="1")
        m = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "2")

        assert ledger_engine.obtain_movement(m.id) == ledger_engine.obtain_movement(m.id)

    def test_invalid_id(self, ledger_engine):
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.obtain_movement(-3)
        assert exc_info.value.kind is ErrorKind.INVALID_INPUT


class TestListForOwner:
    """list_by_date_range_for_owner."""

    def test_range_inclusive_and_decorated(self, ledger_engine, create_account, owner_directory):
        create_account("ACC-1", opening_balance="0", owner_id="owner-1")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "10")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 15), "deposit", "20")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 31), "deposit", "30")
        ledger_engine.apply_movement("ACC-1", date(2024, 2, 1), "deposit", "40")
        owner_directory.lookups.clear()

        views = ledger_engine.list_by_date_range_for_owner("2024-01-01", "2024-01-31", "owner-1")

        assert [v.value for v in views] == [Decimal("10"), Decimal("20"), Decimal("30")]
        assert all(isinstance(v, OwnerMovementView) for v in views)
        assert {v.owner_name for v in views} == {"Ada Lovelace"}
        assert owner_directory.lookups == ["owner-1"]

    def test_reversed_range_is_empty(self, ledger_engine, create_account):
        create_account("ACC-1", owner_id="owner-1")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 15), "deposit", "10")

        views = ledger_engine.list_by_date_range_for_owner("2024-01-31", "2024-01-01", "owner-1")

        assert views == []

    def test_owner_without_account(self, ledger_engine):
        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.list_by_date_range_for_owner("2024-01-01", "2024-01-31", "ghost")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_owner_unknown_to_directory(self, ledger_engine, create_account):
        create_account("ACC-1", owner_id="owner-x")

        with pytest.raises(LedgerError) as exc_info:
            ledger_engine.list_by_date_range_for_owner("2024-01-01", "2024-01-31", "owner-x")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_directory_outage_surfaces(self, session, create_account):
        class _Down(OwnerDirectory):
            def get_owner_name(self, owner_id):
                raise LedgerError.unavailable("owner directory", "connection refused")

        create_account("ACC-1", owner_id="owner-1")
        engine = LedgerEngine(session, _Down())

        with pytest.raises(LedgerError) as exc_info:
            engine.list_by_date_range_for_owner("2024-01-01", "2024-01-31", "owner-1")
        assert exc_info.value.kind is ErrorKind.UNAVAILABLE

    def test_lowest_id_account_wins(self, ledger_engine, create_account):
        create_account("ACC-1", owner_id="owner-2")
        create_account("ACC-2", owner_id="owner-2")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "1")
        ledger_engine.apply_movement("ACC-2", date(2024, 1, 1), "deposit", "2")

        views = ledger_engine.list_by_date_range_for_owner("2024-01-01", "2024-01-01", "owner-2")

        assert [v.account.account_number for v in views] == ["ACC-1"]
        assert views[0].owner_name == "Alan Turing"


class TestBalanceInvariant:
    """current == opening + sum(values) after a mixed sequence."""

    def test_after_mixed_operations(self, session, ledger_engine, account_service, create_account):
        acct = create_account("ACC-1", opening_balance="500")
        a = ledger_engine.apply_movement("ACC-1", date(2024, 1, 1), "deposit", "120.50")
        b = ledger_engine.apply_movement("ACC-1", date(2024, 1, 2), "withdrawal", "-70.25")
        ledger_engine.apply_movement("ACC-1", date(2024, 1, 3), "fee", "-1.75")
        ledger_engine.revise_movement(b.id, date(2024, 1, 2), "withdrawal", "-20")
        ledger_engine.remove_movement(a.id)

        session.expire_all()
        values = [m.value for m in session.query(Movement).filter_by(account_id=acct.id)]
        assert _balance(account_service, acct.id) == Decimal("500") + sum(values)

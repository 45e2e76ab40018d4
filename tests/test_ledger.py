from decimal import Decimal

import pandas as pd
import pytest

from bukukas.config import settings
from bukukas.errors import LedgerWriteError, PartialTransferFailure, ValidationError
from bukukas.ledger import record_transfer, set_debt_status, transfer_legs
from bukukas.models import DebtStatus, FundingSource

from conftest import FakeStore, day, debt


def test_transfer_writes_two_legs():
    store = FakeStore()

    result = record_transfer(store, "user-1", "cash", "gopay", 50000, fee=2500, date=day(5))

    assert result.outgoing.amount == Decimal("-52500")
    assert result.outgoing.admin_fee == Decimal("2500")
    assert result.outgoing.source is FundingSource.CASH
    assert result.incoming.amount == Decimal("50000")
    assert result.incoming.admin_fee == 0
    assert result.incoming.source is FundingSource.E_WALLET
    assert [d.id for d in store.deposits] == [result.outgoing.id, result.incoming.id]


def test_transfer_second_leg_failure_is_reported_with_details():
    store = FakeStore()
    store.fail_deposit_inserts = {2}

    with pytest.raises(PartialTransferFailure) as excinfo:
        record_transfer(store, "user-1", "seabank", "aplikasi_isipulsa", 100000, fee=1000, date=day(5))

    failure = excinfo.value
    assert failure.completed_leg.id == store.deposits[0].id
    assert failure.completed_leg.amount == Decimal("-101000")
    assert failure.failed_leg.amount == Decimal("100000")
    assert failure.origin is FundingSource.BANK_WALLET
    assert failure.destination is FundingSource.PULSA_APP_BALANCE
    details = failure.to_dict()
    assert details["failed_leg"] == "destination"
    assert details["completed_leg_id"] == store.deposits[0].id
    assert details["pending_leg"]["sumber_dana"] == "aplikasi_isipulsa"
    # tidak ada rollback otomatis
    assert len(store.deposits) == 1


def test_transfer_first_leg_failure_writes_nothing():
    store = FakeStore()
    store.fail_deposit_inserts = {1}

    with pytest.raises(LedgerWriteError) as excinfo:
        record_transfer(store, "user-1", "cash", "gopay", 10000)

    assert not isinstance(excinfo.value, PartialTransferFailure)
    assert store.deposits == []


@pytest.mark.parametrize(
    "origin, destination, amount, fee",
    [
        ("cash", "cash", 10000, 0),
        ("cash", "gopay", 0, 0),
        ("cash", "gopay", -5000, 0),
        ("cash", "gopay", 10000, -1),
        ("cash", "ovo", 10000, 0),
    ],
)
def test_transfer_is_validated_before_any_write(origin, destination, amount, fee):
    store = FakeStore()

    with pytest.raises(ValidationError):
        record_transfer(store, "user-1", origin, destination, amount, fee=fee)

    assert store.deposits == []


def test_set_debt_status_round_trip():
    store = FakeStore()
    saved = store.insert_debt("user-1", debt(50000))

    paid = set_debt_status(store, "user-1", saved.id, "lunas", now=day(20))
    assert paid.status is DebtStatus.PAID
    assert paid.paid_date == day(20)

    reopened = set_debt_status(store, "user-1", saved.id, DebtStatus.UNPAID)
    assert reopened.status is DebtStatus.UNPAID
    assert reopened.paid_date is None
    assert reopened.principal == saved.principal


def test_overdue_status_cannot_be_stored():
    store = FakeStore()
    saved = store.insert_debt("user-1", debt(50000))

    with pytest.raises(ValidationError):
        set_debt_status(store, "user-1", saved.id, "terlambat")


def local_clock():
    return pd.Timestamp.now(tz=settings.TIMEZONE).tz_localize(None).to_pydatetime()


def test_transfer_without_date_is_stamped_in_configured_timezone():
    outgoing, incoming = transfer_legs("cash", "gopay", 1000)

    assert abs((outgoing.date - local_clock()).total_seconds()) < 60
    assert incoming.date == outgoing.date
    assert outgoing.to_row()["tanggal"].endswith("+07:00")


def test_paid_date_defaults_to_configured_timezone():
    store = FakeStore()
    saved = store.insert_debt("user-1", debt(50000))

    paid = set_debt_status(store, "user-1", saved.id, "lunas")

    assert abs((paid.paid_date - local_clock()).total_seconds()) < 60

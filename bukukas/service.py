"""Titik masuk dashboard dan laporan: ambil data periode, agregasi, susun laporan."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

from bukukas.aggregation import LedgerSnapshot, aggregate, classify_debt, filter_debts, outstanding_by_debtor
from bukukas.breakdown import summarize
from bukukas.config import settings
from bukukas.errors import DataUnavailable
from bukukas.models import DebtRecord, DebtStatus
from bukukas.periods import resolve_period
from bukukas.statements import build_cash_flow, build_profit_and_loss

logger = logging.getLogger(__name__)


def load_snapshot(store, user_id, period, max_workers=None):
    """Jalankan semua query periode bersamaan dan tunggu semuanya.

    Kalau satu saja gagal, seluruh snapshot dibuang dan ``DataUnavailable``
    dilempar berisi nama semua query yang gagal.
    """
    reads = {
        "deposits": lambda: store.fetch_deposits(user_id, period),
        "expenses": lambda: store.fetch_expenses(user_id, period),
        "debts": lambda: store.fetch_debts(user_id, period),
        "transactions": lambda: store.fetch_successful_transactions(user_id, period),
        "open_debts": lambda: store.fetch_debts(user_id, status=DebtStatus.UNPAID),
        "repaid_debts": lambda: store.fetch_debts(
            user_id, period, status=DebtStatus.PAID, date_field=DebtRecord.PAID_DATE_COLUMN
        ),
    }

    results = {}
    failed = []
    first_error = None
    with ThreadPoolExecutor(max_workers=max_workers or settings.FETCH_WORKERS) as pool:
        futures = {pool.submit(read): name for name, read in reads.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as exc:
                logger.error("Query %s gagal: %s", name, exc)
                failed.append(name)
                first_error = first_error or exc

    if failed:
        raise DataUnavailable(sorted(failed)) from first_error
    return LedgerSnapshot(period=period, **results)


def dashboard(store, user_id, timeframe, now=None):
    period = resolve_period(timeframe, now)
    snapshot = load_snapshot(store, user_id, period)
    return aggregate(snapshot)


def statements(store, user_id, timeframe, now=None):
    """Laba rugi dan arus kas dari satu snapshot yang sama."""
    period = resolve_period(timeframe, now)
    snapshot = load_snapshot(store, user_id, period)
    aggregation = aggregate(snapshot)
    return build_profit_and_loss(aggregation, snapshot), build_cash_flow(aggregation, snapshot)


def profit_and_loss(store, user_id, timeframe, now=None):
    return statements(store, user_id, timeframe, now)[0]


def cash_flow(store, user_id, timeframe, now=None):
    return statements(store, user_id, timeframe, now)[1]


def periodic_summary(store, user_id, timeframe, frequency="harian", now=None):
    period = resolve_period(timeframe, now)
    snapshot = load_snapshot(store, user_id, period)
    return summarize(snapshot, frequency)


def debts_overview(store, user_id, tab="semua", now=None):
    """Daftar hutang sesuai tab beserta status tampilan dan sisa per pelanggan."""
    debts = store.fetch_debts(user_id)
    shown = filter_debts(debts, tab, now)
    return {
        "debts": [
            {**debt.to_row(), "status_tampilan": classify_debt(debt, now).value}
            for debt in shown
        ],
        "outstanding_by_debtor": outstanding_by_debtor(debts),
    }

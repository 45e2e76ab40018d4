"""Aggregation Engine: hitung metrik keuangan satu periode dari baris buku kas.

Semua fungsi di sini murni: masukan berupa daftar entitas yang sudah diambil
dari Ledger Store, keluaran berupa angka ``Decimal``. Tidak ada state global,
jadi menghitung ulang dengan masukan yang sama selalu memberi hasil yang sama.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

import pandas as pd

from bukukas.errors import ValidationError
from bukukas.models import ZERO, Category, DebtStatus, FundingSource, TransactionStatus, local_now
from bukukas.periods import Period

logger = logging.getLogger(__name__)


@dataclass
class LedgerSnapshot:
    """Baris-baris yang dipakai satu kali agregasi.

    ``deposits``, ``expenses``, ``debts`` dan ``transactions`` sudah difilter
    ke periode (hutang berdasarkan tanggal_hutang). ``open_debts`` adalah semua
    hutang yang belum lunas tanpa filter periode, ``repaid_debts`` adalah
    hutang yang tanggal_lunas-nya jatuh di periode.
    """

    period: Period
    deposits: list = field(default_factory=list)
    expenses: list = field(default_factory=list)
    debts: list = field(default_factory=list)
    transactions: list = field(default_factory=list)
    open_debts: list = field(default_factory=list)
    repaid_debts: list = field(default_factory=list)


@dataclass
class Aggregation:
    period: Period
    total_revenue: Decimal = ZERO
    total_cogs: Decimal = ZERO
    gross_profit: Decimal = ZERO
    business_expense_total: Decimal = ZERO
    non_business_expense_total: Decimal = ZERO
    # definisi dashboard: laba kotor - beban usaha
    net_profit: Decimal = ZERO
    total_capital_in: Decimal = ZERO
    total_admin_fee: Decimal = ZERO
    capital_in: dict = field(default_factory=dict)
    capital_used_in_transactions: dict = field(default_factory=dict)
    general_expense: dict = field(default_factory=dict)
    admin_fee: dict = field(default_factory=dict)
    balance: dict = field(default_factory=dict)
    outstanding_debt: dict = field(default_factory=dict)
    total_outstanding_debt: Decimal = ZERO
    new_debt: dict = field(default_factory=dict)
    debt_repaid: Decimal = ZERO
    complete: bool = False

    def to_dict(self):
        def _keyed(values):
            return {key.value: amount for key, amount in values.items()}

        return {
            "period": self.period.to_dict(),
            "total_revenue": self.total_revenue,
            "total_cogs": self.total_cogs,
            "gross_profit": self.gross_profit,
            "business_expense_total": self.business_expense_total,
            "non_business_expense_total": self.non_business_expense_total,
            "net_profit": self.net_profit,
            "total_capital_in": self.total_capital_in,
            "total_admin_fee": self.total_admin_fee,
            "capital_in": _keyed(self.capital_in),
            "capital_used_in_transactions": _keyed(self.capital_used_in_transactions),
            "general_expense": _keyed(self.general_expense),
            "admin_fee": _keyed(self.admin_fee),
            "balance": _keyed(self.balance),
            "outstanding_debt": _keyed(self.outstanding_debt),
            "total_outstanding_debt": self.total_outstanding_debt,
            "new_debt": _keyed(self.new_debt),
            "debt_repaid": self.debt_repaid,
            "complete": self.complete,
        }


# ---------------- Frame helpers ----------------
DEPOSIT_COLUMNS = ["id", "date", "source", "amount", "admin_fee"]
EXPENSE_COLUMNS = ["id", "date", "source", "category", "amount"]
DEBT_COLUMNS = ["id", "debt_date", "paid_date", "due_date", "source", "category", "status", "debtor_id", "principal"]
SALE_COLUMNS = ["id", "timestamp", "source", "status", "sale_price", "cost_price"]


def _cell(value):
    # enum disimpan sebagai nilai mentahnya supaya filter tidak tergantung dtype pandas
    return value.value if isinstance(value, Enum) else value


def _frame(rows, columns):
    return pd.DataFrame(
        [{column: _cell(getattr(row, column)) for column in columns} for row in rows],
        columns=columns,
    )


def deposits_frame(deposits):
    return _frame(deposits, DEPOSIT_COLUMNS)


def expenses_frame(expenses):
    return _frame(expenses, EXPENSE_COLUMNS)


def debts_frame(debts):
    return _frame(debts, DEBT_COLUMNS)


def sales_frame(transactions):
    frame = _frame(transactions, SALE_COLUMNS)
    return frame[frame["status"] == TransactionStatus.SUCCESS.value]


def total(values):
    """Jumlahkan kolom Decimal tanpa lewat float."""
    return sum(values, ZERO)


def _grouped(frame, key, column, members):
    totals = {member: ZERO for member in members}
    if not frame.empty:
        for group, values in frame.groupby(key, sort=False)[column]:
            totals[type(members[0])(group)] = total(values)
    return totals


def per_source(frame, column):
    return _grouped(frame, "source", column, list(FundingSource))


def per_category(frame, column):
    return _grouped(frame, "category", column, list(Category))


def _balances(capital_in, general_expense, capital_used):
    return {
        source: capital_in[source] - general_expense[source] - capital_used[source]
        for source in FundingSource
    }


# ---------------- Agregasi ----------------
def aggregate(snapshot):
    """Hitung semua metrik periode dari satu ``LedgerSnapshot``."""
    deposits = deposits_frame(snapshot.deposits)
    expenses = expenses_frame(snapshot.expenses)
    sales = sales_frame(snapshot.transactions)
    debts = debts_frame(snapshot.debts)

    open_debts = debts_frame(snapshot.open_debts)
    open_debts = open_debts[open_debts["status"] == DebtStatus.UNPAID.value]

    repaid = debts_frame(snapshot.repaid_debts)
    repaid = repaid[
        (repaid["status"] == DebtStatus.PAID.value)
        & repaid["paid_date"].map(snapshot.period.contains).astype(bool)
    ]

    total_revenue = total(sales["sale_price"])
    total_cogs = total(sales["cost_price"])
    gross_profit = total_revenue - total_cogs

    by_category = per_category(expenses, "amount")
    business_expense_total = by_category[Category.BUSINESS]

    capital_in = per_source(deposits, "amount")
    capital_used = per_source(sales, "cost_price")
    general_expense = per_source(expenses, "amount")
    admin_fee = per_source(deposits, "admin_fee")

    outstanding = per_category(open_debts, "principal")

    result = Aggregation(
        period=snapshot.period,
        total_revenue=total_revenue,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        business_expense_total=business_expense_total,
        non_business_expense_total=by_category[Category.PERSONAL],
        net_profit=gross_profit - business_expense_total,
        total_capital_in=total(deposits["amount"]),
        total_admin_fee=total(deposits["admin_fee"]),
        capital_in=capital_in,
        capital_used_in_transactions=capital_used,
        general_expense=general_expense,
        admin_fee=admin_fee,
        balance=source_balances(snapshot.deposits, snapshot.expenses, snapshot.transactions),
        outstanding_debt=outstanding,
        total_outstanding_debt=total(outstanding.values()),
        new_debt=per_category(debts, "principal"),
        debt_repaid=total(repaid["principal"]),
        complete=True,
    )
    logger.debug(
        "Agregasi %s s/d %s: pendapatan=%s hpp=%s laba_bersih=%s",
        snapshot.period.start, snapshot.period.end,
        result.total_revenue, result.total_cogs, result.net_profit,
    )
    return result


def source_balances(deposits, expenses, transactions):
    """Saldo tiap sumber dana: modal - pengeluaran - HPP transaksi sukses."""
    deposits = deposits_frame(deposits)
    expenses = expenses_frame(expenses)
    sales = sales_frame(transactions)
    return _balances(
        per_source(deposits, "amount"),
        per_source(expenses, "amount"),
        per_source(sales, "cost_price"),
    )


# ---------------- Hutang ----------------
def classify_debt(debt, now=None):
    """Status tampilan: belum lunas + lewat jatuh tempo = terlambat."""
    now = now or local_now()
    if debt.status is DebtStatus.UNPAID and debt.due_date is not None and debt.due_date < now:
        return DebtStatus.OVERDUE
    return debt.status


# tab 'belum_lunas' memakai status tersimpan, jadi hutang terlambat juga ikut;
# 'terlambat' adalah bagian dari 'belum_lunas'
DEBT_TABS = {
    "belum_lunas": DebtStatus.UNPAID,
    "lunas": DebtStatus.PAID,
    "terlambat": DebtStatus.OVERDUE,
}


def filter_debts(debts, tab="semua", now=None):
    """Filter sesuai tab halaman hutang; urutan masukan dipertahankan."""
    if tab in (None, "", "semua"):
        return list(debts)
    if tab not in DEBT_TABS:
        raise ValidationError("tab", f"tab hutang tidak dikenal: {tab!r}")
    wanted = DEBT_TABS[tab]
    if wanted is DebtStatus.OVERDUE:
        return [debt for debt in debts if classify_debt(debt, now) is DebtStatus.OVERDUE]
    return [debt for debt in debts if debt.status is wanted]


def outstanding_by_debtor(debts) -> dict:
    """Buku pembantu piutang: sisa hutang belum lunas per pelanggan."""
    frame = debts_frame(debts)
    frame = frame[(frame["status"] == DebtStatus.UNPAID.value) & frame["debtor_id"].notna()]
    if frame.empty:
        return {}
    frame = frame[frame["debtor_id"] != ""]
    return {
        debtor: total(values)
        for debtor, values in frame.groupby("debtor_id", sort=True)["principal"]
    }

import dataclasses
import itertools
from datetime import datetime
from types import SimpleNamespace

import pytest

from bukukas.errors import DataUnavailable, LedgerWriteError
from bukukas.models import CapitalDeposit, DebtRecord, DebtStatus, Expense, SaleTransaction, TransactionStatus
from bukukas.periods import CustomRange, resolve_period


def day(d, hour=10):
    return datetime(2024, 5, d, hour, 0)


def period_of(first, last):
    return resolve_period(CustomRange(first, last))


# ---------------- Ledger Store di memori ----------------
class FakeStore:
    """Pengganti LedgerStore untuk test: filter dan urutan sama dengan query Supabase."""

    def __init__(self, deposits=(), expenses=(), debts=(), transactions=()):
        self.deposits = list(deposits)
        self.expenses = list(expenses)
        self.debts = list(debts)
        self.transactions = list(transactions)
        self.fail_reads = set()
        self.fail_deposit_inserts = set()
        self._deposit_inserts = 0
        self._ids = itertools.count(1)

    def _read(self, table, rows, attr, period):
        if table in self.fail_reads:
            raise DataUnavailable([table])
        if period is not None:
            rows = [row for row in rows if period.contains(getattr(row, attr))]
        return sorted(rows, key=lambda row: getattr(row, attr), reverse=True)

    def fetch_deposits(self, user_id, period=None, source=None):
        rows = [d for d in self.deposits if source is None or d.source is source]
        return self._read("modals", rows, "date", period)

    def fetch_expenses(self, user_id, period=None, category=None, source=None):
        rows = [
            e for e in self.expenses
            if (category is None or e.category is category) and (source is None or e.source is source)
        ]
        return self._read("pengeluaran", rows, "date", period)

    def fetch_debts(self, user_id, period=None, category=None, status=None, date_field="tanggal_hutang"):
        attr = "debt_date" if date_field == "tanggal_hutang" else "paid_date"
        rows = [
            d for d in self.debts
            if (category is None or d.category is category)
            and (status is None or d.status is status)
            and (period is None or getattr(d, attr) is not None)
        ]
        return self._read("hutang", rows, attr, period)

    def fetch_successful_transactions(self, user_id, period=None, source=None):
        rows = [
            t for t in self.transactions
            if t.status is TransactionStatus.SUCCESS and (source is None or t.source is source)
        ]
        return self._read("transaksi", rows, "timestamp", period)

    def _save(self, rows, entity, prefix):
        entity.validate()
        saved = dataclasses.replace(entity, id=f"{prefix}-{next(self._ids)}")
        rows.append(saved)
        return saved

    def insert_deposit(self, user_id, deposit):
        self._deposit_inserts += 1
        if self._deposit_inserts in self.fail_deposit_inserts:
            raise LedgerWriteError("koneksi terputus")
        return self._save(self.deposits, deposit, "modal")

    def insert_expense(self, user_id, expense):
        return self._save(self.expenses, expense, "pengeluaran")

    def insert_debt(self, user_id, debt):
        return self._save(self.debts, debt, "hutang")

    def insert_transaction(self, user_id, transaction):
        return self._save(self.transactions, transaction, "transaksi")

    def set_debt_status(self, user_id, debt_id, status, paid_at=None):
        for index, debt in enumerate(self.debts):
            if debt.id == debt_id:
                updated = debt.mark(status, paid_at)
                self.debts[index] = updated
                return updated
        raise DataUnavailable(["hutang"])

    def delete(self, table, user_id, row_id):
        for name in ("deposits", "expenses", "debts", "transactions"):
            setattr(self, name, [row for row in getattr(self, name) if row.id != row_id])


# ---------------- Klien Supabase palsu ----------------
class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []
        self.payload = None
        self.operation = "select"
        self.is_single = False

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def eq(self, *args, **kwargs):
        return self._record("eq", *args, **kwargs)

    def gte(self, *args, **kwargs):
        return self._record("gte", *args, **kwargs)

    def lte(self, *args, **kwargs):
        return self._record("lte", *args, **kwargs)

    def order(self, *args, **kwargs):
        return self._record("order", *args, **kwargs)

    def single(self):
        self.is_single = True
        return self._record("single")

    def insert(self, payload):
        self.operation, self.payload = "insert", payload
        return self._record("insert", payload)

    def update(self, payload):
        self.operation, self.payload = "update", payload
        return self._record("update", payload)

    def delete(self):
        self.operation = "delete"
        return self._record("delete")

    def execute(self):
        if self.client.error is not None:
            raise self.client.error
        rows = self.client.data.get(self.table, [])
        if self.operation in ("insert", "update"):
            base = rows[0] if (self.operation == "update" and rows) else {}
            return SimpleNamespace(data=[{**base, "id": "baru-1", **self.payload}])
        if self.is_single:
            return SimpleNamespace(data=rows[0] if rows else None)
        return SimpleNamespace(data=rows)


class FakeSupabase:
    def __init__(self, data=None, error=None):
        self.data = data or {}
        self.error = error
        self.queries = []

    def from_(self, table):
        query = FakeQuery(self, table)
        self.queries.append(query)
        return query


@pytest.fixture
def store():
    return FakeStore()


def cash_deposit(amount, d=1, fee=0, source="cash"):
    return CapitalDeposit(amount=amount, date=day(d), source=source, admin_fee=fee)


def expense(amount, d=2, category="usaha", source="cash", note="Beban listrik"):
    return Expense(amount=amount, category=category, source=source, date=day(d), note=note)


def sale(price, cost, d=3, source="cash", status="sukses", kind="Pulsa 10k"):
    return SaleTransaction(
        sale_price=price, cost_price=cost, source=source, timestamp=day(d), status=status, kind=kind
    )


def debt(principal, d=4, category="usaha", status=DebtStatus.UNPAID, debtor="pelanggan-1",
         due=None, paid=None, note="", debt_id=None):
    return DebtRecord(
        principal=principal,
        category=category,
        source="cash",
        debt_date=day(d),
        status=status,
        debtor_id=debtor,
        note=note,
        due_date=due,
        paid_date=paid,
        id=debt_id,
    )

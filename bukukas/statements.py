"""Statement Builder: susun Laporan Laba Rugi dan Laporan Arus Kas.

Laporan dibangun dari hasil ``aggregate`` ditambah ``LedgerSnapshot`` yang
sama (untuk rincian per baris). Keluaran ``to_document()`` adalah dokumen
terstruktur biasa untuk renderer luar (PDF dsb): bagian berurutan, masing-
masing label + nominal ``Decimal``, kadang dengan sub-tabel. Tidak ada format
mata uang di sini.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from bukukas.aggregation import total
from bukukas.errors import IncompleteAggregation
from bukukas.models import ZERO, Category, FundingSource, TransactionStatus
from bukukas.periods import Period


@dataclass
class Section:
    key: str
    label: str
    amount: Decimal
    columns: list = None
    rows: list = None

    def to_dict(self):
        payload = {"key": self.key, "label": self.label, "amount": self.amount}
        if self.columns is not None:
            payload["columns"] = list(self.columns)
            payload["rows"] = list(self.rows or [])
        return payload


def _document(title, period, sections):
    return {
        "title": title,
        "period": period.to_dict(),
        "sections": [section.to_dict() for section in sections],
    }


def _require(aggregation, snapshot):
    if aggregation is None or not getattr(aggregation, "complete", False):
        raise IncompleteAggregation("Agregasi belum selesai, laporan tidak bisa dibuat")
    if aggregation.period != snapshot.period:
        raise IncompleteAggregation(
            "Periode agregasi tidak sama dengan periode data laporan"
        )


def _iso(value):
    return value.isoformat() if value is not None else None


# ---------------- Laba Rugi ----------------
TRANSACTION_COLUMNS = ["id", "tanggal", "jenis_transaksi", "sumber_dana", "jumlah"]
EXPENSE_COLUMNS = ["id", "tanggal", "keterangan", "sumber_dana", "jumlah"]
ADMIN_FEE_COLUMNS = ["sumber_dana", "jumlah"]


@dataclass
class ProfitAndLoss:
    period: Period
    total_revenue: Decimal
    total_cogs: Decimal
    gross_profit: Decimal
    total_business_expense: Decimal
    total_admin_fee: Decimal
    total_non_business_expense: Decimal
    net_profit: Decimal
    transactions: list = field(default_factory=list)
    business_expenses: list = field(default_factory=list)
    non_business_expenses: list = field(default_factory=list)
    admin_fee_by_source: dict = field(default_factory=dict)

    def revenue_items(self):
        return [self._transaction_row(tx, tx.sale_price) for tx in self.transactions]

    def cogs_items(self):
        return [self._transaction_row(tx, tx.cost_price) for tx in self.transactions]

    @staticmethod
    def _transaction_row(tx, amount):
        return {
            "id": tx.id,
            "tanggal": _iso(tx.timestamp),
            "jenis_transaksi": tx.kind,
            "sumber_dana": tx.source.value,
            "jumlah": amount,
        }

    @staticmethod
    def _expense_rows(expenses):
        return [
            {
                "id": expense.id,
                "tanggal": _iso(expense.date),
                "keterangan": expense.note,
                "sumber_dana": expense.source.value,
                "jumlah": expense.amount,
            }
            for expense in expenses
        ]

    def to_document(self):
        admin_rows = [
            {"sumber_dana": source.value, "jumlah": amount}
            for source, amount in self.admin_fee_by_source.items()
        ]
        sections = [
            Section("total_revenue", "Total Pendapatan", self.total_revenue,
                    TRANSACTION_COLUMNS, self.revenue_items()),
            Section("total_cogs", "Harga Pokok Penjualan (HPP)", self.total_cogs,
                    TRANSACTION_COLUMNS, self.cogs_items()),
            Section("gross_profit", "Laba Kotor", self.gross_profit),
            Section("total_business_expense", "Beban Usaha", self.total_business_expense,
                    EXPENSE_COLUMNS, self._expense_rows(self.business_expenses)),
            Section("total_admin_fee", "Biaya Admin", self.total_admin_fee,
                    ADMIN_FEE_COLUMNS, admin_rows),
            Section("total_non_business_expense", "Biaya Non Usaha", self.total_non_business_expense,
                    EXPENSE_COLUMNS, self._expense_rows(self.non_business_expenses)),
            Section("net_profit", "Laba Bersih", self.net_profit),
        ]
        return _document("Laporan Laba Rugi", self.period, sections)


def build_profit_and_loss(aggregation, snapshot):
    """Laba bersih = laba kotor - beban usaha - biaya admin - biaya non usaha."""
    _require(aggregation, snapshot)

    transactions = [tx for tx in snapshot.transactions if tx.status is TransactionStatus.SUCCESS]
    business = [e for e in snapshot.expenses if e.category is Category.BUSINESS]
    personal = [e for e in snapshot.expenses if e.category is Category.PERSONAL]

    total_revenue = aggregation.total_revenue
    total_cogs = aggregation.total_cogs
    gross_profit = total_revenue - total_cogs
    total_business_expense = aggregation.business_expense_total
    admin_fee_by_source = {source: aggregation.admin_fee.get(source, ZERO) for source in FundingSource}
    total_admin_fee = total(admin_fee_by_source.values())
    total_non_business_expense = aggregation.non_business_expense_total
    net_profit = gross_profit - total_business_expense - total_admin_fee - total_non_business_expense

    return ProfitAndLoss(
        period=snapshot.period,
        total_revenue=total_revenue,
        total_cogs=total_cogs,
        gross_profit=gross_profit,
        total_business_expense=total_business_expense,
        total_admin_fee=total_admin_fee,
        total_non_business_expense=total_non_business_expense,
        net_profit=net_profit,
        transactions=transactions,
        business_expenses=business,
        non_business_expenses=personal,
        admin_fee_by_source=admin_fee_by_source,
    )


# ---------------- Arus Kas ----------------
@dataclass
class CashFlow:
    """Semua field adalah besaran positif; tanda diterapkan saat menjumlah."""

    period: Period
    customer_receipts: Decimal
    cogs_paid: Decimal
    operating_expense_paid: Decimal
    admin_fee_paid: Decimal
    net_operating_cash_flow: Decimal
    capital_contributions: Decimal
    personal_withdrawals: Decimal
    loans_given: Decimal
    loan_repayments_received: Decimal
    net_financing_cash_flow: Decimal
    net_investing_cash_flow: Decimal = ZERO
    net_change_in_cash: Decimal = ZERO

    def operating_lines(self):
        return [
            Section("customer_receipts", "Penerimaan dari pelanggan", self.customer_receipts),
            Section("cogs_paid", "Pembayaran HPP", ZERO - self.cogs_paid),
            Section("operating_expense_paid", "Pembayaran beban usaha", ZERO - self.operating_expense_paid),
            Section("admin_fee_paid", "Pembayaran biaya admin", ZERO - self.admin_fee_paid),
        ]

    def financing_lines(self):
        return [
            Section("capital_contributions", "Setoran modal (bersih)", self.capital_contributions),
            Section("personal_withdrawals", "Pengambilan pribadi", ZERO - self.personal_withdrawals),
            Section("loans_given", "Piutang diberikan", ZERO - self.loans_given),
            Section("loan_repayments_received", "Pelunasan piutang diterima", self.loan_repayments_received),
        ]

    def to_document(self):
        # nominal tiap baris di dokumen sudah bertanda (+ masuk, - keluar)
        line_columns = ["key", "label", "amount"]
        sections = [
            Section("net_operating_cash_flow", "Arus Kas dari Aktivitas Operasi",
                    self.net_operating_cash_flow, line_columns,
                    [line.to_dict() for line in self.operating_lines()]),
            Section("net_investing_cash_flow", "Arus Kas dari Aktivitas Investasi",
                    self.net_investing_cash_flow),
            Section("net_financing_cash_flow", "Arus Kas dari Aktivitas Pendanaan",
                    self.net_financing_cash_flow, line_columns,
                    [line.to_dict() for line in self.financing_lines()]),
            Section("net_change_in_cash", "Kenaikan (Penurunan) Kas Bersih", self.net_change_in_cash),
        ]
        return _document("Laporan Arus Kas", self.period, sections)


def build_cash_flow(aggregation, snapshot):
    _require(aggregation, snapshot)

    customer_receipts = aggregation.total_revenue
    cogs_paid = aggregation.total_cogs
    operating_expense_paid = aggregation.business_expense_total
    admin_fee_paid = aggregation.total_admin_fee
    net_operating = customer_receipts - cogs_paid - operating_expense_paid - admin_fee_paid

    capital_contributions = aggregation.total_capital_in
    personal_withdrawals = aggregation.non_business_expense_total
    # piutang usaha baru dihitung dari tanggal_hutang, pelunasan dari tanggal_lunas
    loans_given = aggregation.new_debt.get(Category.BUSINESS, ZERO)
    loan_repayments_received = aggregation.debt_repaid
    net_financing = (
        capital_contributions - personal_withdrawals - loans_given + loan_repayments_received
    )

    return CashFlow(
        period=snapshot.period,
        customer_receipts=customer_receipts,
        cogs_paid=cogs_paid,
        operating_expense_paid=operating_expense_paid,
        admin_fee_paid=admin_fee_paid,
        net_operating_cash_flow=net_operating,
        capital_contributions=capital_contributions,
        personal_withdrawals=personal_withdrawals,
        loans_given=loans_given,
        loan_repayments_received=loan_repayments_received,
        net_financing_cash_flow=net_financing,
        net_investing_cash_flow=ZERO,
        net_change_in_cash=net_operating + net_financing,
    )

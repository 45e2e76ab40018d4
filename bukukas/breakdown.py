"""Ringkasan laba rugi harian, mingguan dan bulanan dalam satu periode."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pandas as pd

from bukukas.aggregation import total
from bukukas.errors import InvalidRange
from bukukas.models import Category, TransactionStatus
from bukukas.periods import END_OF_DAY, START_OF_DAY

FREQUENCIES = {
    "harian": "D",
    "daily": "D",
    # minggu ISO: Senin s/d Minggu
    "mingguan": "W-SUN",
    "weekly": "W-SUN",
    "bulanan": "M",
    "monthly": "M",
}

METRICS = [
    "total_revenue",
    "total_cogs",
    "total_business_expense",
    "total_admin_fee",
    "total_non_business_expense",
]


@dataclass
class SummaryRow:
    start: datetime
    end: datetime
    total_revenue: Decimal
    total_cogs: Decimal
    gross_profit: Decimal
    total_business_expense: Decimal
    total_admin_fee: Decimal
    total_non_business_expense: Decimal
    net_profit: Decimal

    def to_dict(self):
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_revenue": self.total_revenue,
            "total_cogs": self.total_cogs,
            "gross_profit": self.gross_profit,
            "total_business_expense": self.total_business_expense,
            "total_admin_fee": self.total_admin_fee,
            "total_non_business_expense": self.total_non_business_expense,
            "net_profit": self.net_profit,
        }


def _events(snapshot):
    rows = []
    for tx in snapshot.transactions:
        if tx.status is not TransactionStatus.SUCCESS:
            continue
        rows.append({"date": tx.timestamp, "metric": "total_revenue", "amount": tx.sale_price})
        rows.append({"date": tx.timestamp, "metric": "total_cogs", "amount": tx.cost_price})
    for expense in snapshot.expenses:
        metric = (
            "total_business_expense"
            if expense.category is Category.BUSINESS
            else "total_non_business_expense"
        )
        rows.append({"date": expense.date, "metric": metric, "amount": expense.amount})
    for deposit in snapshot.deposits:
        if deposit.admin_fee:
            rows.append({"date": deposit.date, "metric": "total_admin_fee", "amount": deposit.admin_fee})
    return pd.DataFrame(rows, columns=["date", "metric", "amount"])


def summarize(snapshot, frequency="harian"):
    """Satu baris per hari/minggu/bulan yang punya aktivitas, urut naik.

    Awal dan akhir tiap baris dipotong ke periode snapshot, jadi minggu atau
    bulan pertama bisa lebih pendek dari biasanya.
    """
    freq = FREQUENCIES.get((frequency or "").strip().lower())
    if freq is None:
        raise InvalidRange(f"jenis ringkasan tidak dikenal: {frequency!r}")

    events = _events(snapshot)
    if events.empty:
        return []
    events["bucket"] = pd.to_datetime(events["date"]).dt.to_period(freq)

    period = snapshot.period
    summary = []
    for bucket, group in events.groupby("bucket", sort=True):
        totals = {
            metric: total(group.loc[group["metric"] == metric, "amount"])
            for metric in METRICS
        }
        gross_profit = totals["total_revenue"] - totals["total_cogs"]
        start = datetime.combine(bucket.start_time.date(), START_OF_DAY)
        end = datetime.combine(bucket.end_time.date(), END_OF_DAY)
        summary.append(
            SummaryRow(
                start=max(start, period.start),
                end=min(end, period.end),
                gross_profit=gross_profit,
                net_profit=(
                    gross_profit
                    - totals["total_business_expense"]
                    - totals["total_admin_fee"]
                    - totals["total_non_business_expense"]
                ),
                **totals,
            )
        )
    return summary

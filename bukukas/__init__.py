"""Mesin agregasi dan laporan keuangan untuk buku kas usaha pulsa/PPOB."""

__version__ = "0.1.0"

from bukukas.aggregation import (
    Aggregation,
    LedgerSnapshot,
    aggregate,
    classify_debt,
    filter_debts,
    outstanding_by_debtor,
    source_balances,
)
from bukukas.breakdown import summarize
from bukukas.periods import CustomRange, Period, SpecificMonth, ThisMonth, ThisWeek, Today, resolve_period
from bukukas.statements import build_cash_flow, build_profit_and_loss

__all__ = [
    "Aggregation",
    "CustomRange",
    "LedgerSnapshot",
    "Period",
    "SpecificMonth",
    "ThisMonth",
    "ThisWeek",
    "Today",
    "aggregate",
    "build_cash_flow",
    "build_profit_and_loss",
    "classify_debt",
    "filter_debts",
    "outstanding_by_debtor",
    "resolve_period",
    "source_balances",
    "summarize",
]

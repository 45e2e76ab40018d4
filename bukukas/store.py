"""Ledger Store: baca/tulis baris buku kas di Supabase.

Mesin agregasi tidak memiliki penyimpanan sendiri; semua baris diambil dan
ditulis lewat kelas ini. Kegagalan baca menjadi ``DataUnavailable``,
kegagalan tulis menjadi ``LedgerWriteError``.
"""

import logging

import pandas as pd

from bukukas.config import get_client, settings
from bukukas.errors import DataUnavailable, LedgerWriteError, ValidationError
from bukukas.models import (
    CapitalDeposit,
    Category,
    DebtRecord,
    DebtStatus,
    Expense,
    FundingSource,
    SaleTransaction,
    TransactionStatus,
)

logger = logging.getLogger(__name__)

MODELS = {
    model.TABLE: model
    for model in (CapitalDeposit, Expense, DebtRecord, SaleTransaction)
}


def _bound(value):
    # batas periode dikirim lengkap dengan offset zona waktu lokal
    return pd.Timestamp(value).tz_localize(settings.TIMEZONE).isoformat()


def _value(member):
    return member.value if member is not None else None


class LedgerStore:
    def __init__(self, client=None):
        self.client = client if client is not None else get_client()

    # ---------------- Baca ----------------
    def _select(self, model, user_id, period=None, date_column=None, filters=None):
        date_column = date_column or model.DATE_COLUMN
        try:
            query = self.client.from_(model.TABLE).select("*").eq("user_id", user_id)
            for column, value in (filters or {}).items():
                if value is not None:
                    query = query.eq(column, value)
            if period is not None:
                query = query.gte(date_column, _bound(period.start)).lte(date_column, _bound(period.end))
            response = query.order(date_column, desc=True).execute()
        except Exception as exc:
            logger.error("Gagal mengambil data dari %s: %s", model.TABLE, exc)
            raise DataUnavailable([model.TABLE]) from exc

        try:
            return [model.from_row(row) for row in response.data or []]
        except ValidationError as exc:
            logger.error("Baris %s tidak valid: %s", model.TABLE, exc)
            raise DataUnavailable([model.TABLE], f"Baris {model.TABLE} tidak valid: {exc}") from exc

    def fetch_deposits(self, user_id, period=None, source=None):
        source = FundingSource.parse(source) if source is not None else None
        return self._select(CapitalDeposit, user_id, period, filters={"sumber_dana": _value(source)})

    def fetch_expenses(self, user_id, period=None, category=None, source=None):
        category = Category.parse(category) if category is not None else None
        source = FundingSource.parse(source) if source is not None else None
        return self._select(
            Expense, user_id, period,
            filters={"kategori": _value(category), "sumber_dana": _value(source)},
        )

    def fetch_debts(self, user_id, period=None, category=None, status=None, date_field=DebtRecord.DATE_COLUMN):
        """``date_field='tanggal_lunas'`` memfilter periode berdasarkan tanggal pelunasan."""
        if date_field not in (DebtRecord.DATE_COLUMN, DebtRecord.PAID_DATE_COLUMN):
            raise ValidationError("date_field", f"kolom tanggal tidak dikenal: {date_field!r}")
        category = Category.parse(category) if category is not None else None
        status = DebtStatus.parse(status) if status is not None else None
        return self._select(
            DebtRecord, user_id, period, date_column=date_field,
            filters={"jenis": _value(category), "status": _value(status)},
        )

    def fetch_successful_transactions(self, user_id, period=None, source=None):
        source = FundingSource.parse(source) if source is not None else None
        return self._select(
            SaleTransaction, user_id, period,
            filters={"status": TransactionStatus.SUCCESS.value, "sumber_dana": _value(source)},
        )

    # ---------------- Tulis ----------------
    def _insert(self, entity, user_id):
        entity.validate()
        row = entity.to_row()
        row["user_id"] = user_id
        try:
            response = self.client.from_(entity.TABLE).insert(row).execute()
        except Exception as exc:
            logger.error("Gagal menyimpan data ke %s: %s", entity.TABLE, exc)
            raise LedgerWriteError(f"Gagal menyimpan data ke {entity.TABLE}: {exc}") from exc
        data = response.data or []
        return type(entity).from_row(data[0]) if data else entity

    def _update(self, model, user_id, row_id, patch):
        try:
            current = (
                self.client.from_(model.TABLE).select("*")
                .eq("id", row_id).eq("user_id", user_id)
                .single().execute()
            ).data
        except Exception as exc:
            logger.error("Gagal mengambil %s id=%s: %s", model.TABLE, row_id, exc)
            raise DataUnavailable([model.TABLE]) from exc

        updated = model.from_row({**current, **patch}).validate()
        row = updated.to_row()
        row.pop("id", None)
        try:
            response = (
                self.client.from_(model.TABLE).update(row)
                .eq("id", row_id).eq("user_id", user_id).execute()
            )
        except Exception as exc:
            logger.error("Gagal memperbarui %s id=%s: %s", model.TABLE, row_id, exc)
            raise LedgerWriteError(f"Gagal memperbarui {model.TABLE}: {exc}") from exc
        data = response.data or []
        return model.from_row(data[0]) if data else updated

    def delete(self, table, user_id, row_id):
        if table not in MODELS:
            raise ValidationError("tabel", f"tabel tidak dikenal: {table!r}")
        try:
            self.client.from_(table).delete().eq("id", row_id).eq("user_id", user_id).execute()
        except Exception as exc:
            logger.error("Gagal menghapus %s id=%s: %s", table, row_id, exc)
            raise LedgerWriteError(f"Gagal menghapus data {table}: {exc}") from exc
        logger.info("Data %s id=%s dihapus", table, row_id)

    def insert_deposit(self, user_id, deposit):
        return self._insert(deposit, user_id)

    def update_deposit(self, user_id, deposit_id, patch):
        return self._update(CapitalDeposit, user_id, deposit_id, patch)

    def delete_deposit(self, user_id, deposit_id):
        self.delete(CapitalDeposit.TABLE, user_id, deposit_id)

    def insert_expense(self, user_id, expense):
        return self._insert(expense, user_id)

    def update_expense(self, user_id, expense_id, patch):
        return self._update(Expense, user_id, expense_id, patch)

    def delete_expense(self, user_id, expense_id):
        self.delete(Expense.TABLE, user_id, expense_id)

    def insert_debt(self, user_id, debt):
        return self._insert(debt, user_id)

    def update_debt(self, user_id, debt_id, patch):
        return self._update(DebtRecord, user_id, debt_id, patch)

    def delete_debt(self, user_id, debt_id):
        self.delete(DebtRecord.TABLE, user_id, debt_id)

    def set_debt_status(self, user_id, debt_id, status, paid_at=None):
        status = DebtStatus.parse(status, "status")
        paid = status is DebtStatus.PAID
        return self._update(DebtRecord, user_id, debt_id, {
            "status": status.value,
            "tanggal_lunas": paid_at if paid else None,
        })

    def insert_transaction(self, user_id, transaction):
        return self._insert(transaction, user_id)

    def update_transaction(self, user_id, transaction_id, patch):
        return self._update(SaleTransaction, user_id, transaction_id, patch)

    def delete_transaction(self, user_id, transaction_id):
        self.delete(SaleTransaction.TABLE, user_id, transaction_id)

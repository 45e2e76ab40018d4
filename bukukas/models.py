"""Tipe data buku kas: sumber dana, modal, pengeluaran, hutang dan transaksi.

Setiap entitas memetakan satu baris tabel Supabase (``modals``,
``pengeluaran``, ``hutang``, ``transaksi``) lewat ``from_row`` / ``to_row``.
Nominal selalu ``Decimal``; tanggal selalu ``datetime`` naif di zona waktu
lokal (lihat ``BUKUKAS_TIMEZONE``).
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import ClassVar, Optional

import pandas as pd

from bukukas.config import settings
from bukukas.errors import ValidationError

ZERO = Decimal("0")


def _token(value):
    # 'Aplikasi IsiPulsa' -> 'aplikasi_isipulsa', 'Non Usaha' -> 'non_usaha'
    return str(value).strip().lower().replace(" ", "_")


class _TokenEnum(str, Enum):
    @classmethod
    def parse(cls, value, field=None):
        if isinstance(value, cls):
            return value
        token = _token(value) if value is not None else ""
        for member in cls:
            if member.value == token or member.name.lower() == token:
                return member
        raise ValidationError(field or cls.__name__, f"nilai tidak dikenal: {value!r}")


class FundingSource(_TokenEnum):
    CASH = "cash"
    BANK_WALLET = "seabank"
    E_WALLET = "gopay"
    PULSA_APP_BALANCE = "aplikasi_isipulsa"


class Category(_TokenEnum):
    BUSINESS = "usaha"
    PERSONAL = "non_usaha"


class DebtStatus(_TokenEnum):
    UNPAID = "belum_lunas"
    PAID = "lunas"
    # Hanya untuk tampilan, tidak pernah disimpan
    OVERDUE = "terlambat"


class TransactionStatus(_TokenEnum):
    SUCCESS = "sukses"
    PENDING = "pending"
    FAILED = "gagal"


# ---------------- Helper konversi ----------------
def to_decimal(value, field, default=None):
    """Ubah angka dari form/DB menjadi Decimal."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return default
        raise ValidationError(field, "wajib diisi")
    try:
        # float lewat str supaya 0.1 tidak jadi 0.1000000000000000055...
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(field, f"bukan angka: {value!r}")
    if not number.is_finite():
        raise ValidationError(field, f"bukan angka: {value!r}")
    return number


def local_now():
    """Waktu sekarang di BUKUKAS_TIMEZONE sebagai datetime naif."""
    return pd.Timestamp.now(tz=settings.TIMEZONE).tz_localize(None).to_pydatetime()


def parse_timestamp(value, field="tanggal"):
    """Ubah string/date/datetime menjadi datetime naif di zona waktu lokal."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"tanggal tidak valid: {value!r}")
    if ts is pd.NaT:
        raise ValidationError(field, f"tanggal tidak valid: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert(settings.TIMEZONE).tz_localize(None)
    return ts.to_pydatetime()


def json_amount(value):
    """Decimal -> nilai yang aman dikirim sebagai JSON ke Supabase."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return str(value)


def _iso(value):
    # tanggal disimpan ke DB lengkap dengan offset zona waktu lokal
    if value is None:
        return None
    return pd.Timestamp(value).tz_localize(settings.TIMEZONE).isoformat()


def _required_text(value, field):
    if value is None or not str(value).strip():
        raise ValidationError(field, "wajib diisi")


# ---------------- Entitas ----------------
@dataclass
class CapitalDeposit:
    """Setoran modal. Nominal negatif = kaki keluar sebuah transfer."""

    TABLE: ClassVar[str] = "modals"
    DATE_COLUMN: ClassVar[str] = "tanggal"

    amount: Decimal
    date: datetime
    source: FundingSource
    admin_fee: Decimal = ZERO
    note: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self):
        self.amount = to_decimal(self.amount, "jumlah")
        self.admin_fee = to_decimal(self.admin_fee, "biaya_admin", default=ZERO)
        self.source = FundingSource.parse(self.source, "sumber_dana")
        self.date = parse_timestamp(self.date, "tanggal")

    def validate(self):
        if self.amount == 0:
            raise ValidationError("jumlah", "jumlah modal tidak boleh 0")
        if self.admin_fee < 0:
            raise ValidationError("biaya_admin", "biaya admin tidak boleh negatif")
        if self.date is None:
            raise ValidationError("tanggal", "wajib diisi")
        return self

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.get("id"),
            amount=row.get("jumlah"),
            date=row.get("tanggal"),
            source=row.get("sumber_dana"),
            admin_fee=row.get("biaya_admin"),
            note=row.get("keterangan"),
        )

    def to_row(self):
        row = {
            "jumlah": json_amount(self.amount),
            "tanggal": _iso(self.date),
            "sumber_dana": self.source.value,
            "biaya_admin": json_amount(self.admin_fee),
            "keterangan": self.note,
        }
        if self.id is not None:
            row["id"] = self.id
        return row


@dataclass
class Expense:
    TABLE: ClassVar[str] = "pengeluaran"
    DATE_COLUMN: ClassVar[str] = "tanggal"

    amount: Decimal
    category: Category
    source: FundingSource
    date: datetime
    note: str
    id: Optional[str] = None

    def __post_init__(self):
        self.amount = to_decimal(self.amount, "jumlah")
        self.category = Category.parse(self.category, "kategori")
        self.source = FundingSource.parse(self.source, "sumber_dana")
        self.date = parse_timestamp(self.date, "tanggal")

    def validate(self):
        if self.amount <= 0:
            raise ValidationError("jumlah", "jumlah pengeluaran harus lebih dari 0")
        _required_text(self.note, "keterangan")
        if self.date is None:
            raise ValidationError("tanggal", "wajib diisi")
        return self

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.get("id"),
            amount=row.get("jumlah"),
            category=row.get("kategori"),
            source=row.get("sumber_dana"),
            date=row.get("tanggal"),
            note=row.get("keterangan") or "",
        )

    def to_row(self):
        row = {
            "jumlah": json_amount(self.amount),
            "kategori": self.category.value,
            "sumber_dana": self.source.value,
            "tanggal": _iso(self.date),
            "keterangan": self.note,
        }
        if self.id is not None:
            row["id"] = self.id
        return row


@dataclass
class DebtRecord:
    """Hutang pelanggan (piutang usaha dari sisi pemilik toko)."""

    TABLE: ClassVar[str] = "hutang"
    DATE_COLUMN: ClassVar[str] = "tanggal_hutang"
    PAID_DATE_COLUMN: ClassVar[str] = "tanggal_lunas"

    principal: Decimal
    category: Category
    source: FundingSource
    debt_date: datetime
    status: DebtStatus = DebtStatus.UNPAID
    debtor_id: Optional[str] = None
    note: str = ""
    due_date: Optional[datetime] = None
    paid_date: Optional[datetime] = None
    id: Optional[str] = None

    def __post_init__(self):
        self.principal = to_decimal(self.principal, "jumlah")
        self.category = Category.parse(self.category, "jenis")
        self.source = FundingSource.parse(self.source, "sumber_dana")
        self.status = DebtStatus.parse(self.status, "status")
        self.debt_date = parse_timestamp(self.debt_date, "tanggal_hutang")
        self.due_date = parse_timestamp(self.due_date, "tanggal_jatuh_tempo")
        self.paid_date = parse_timestamp(self.paid_date, "tanggal_lunas")

    def validate(self):
        if self.principal <= 0:
            raise ValidationError("jumlah", "jumlah hutang harus lebih dari 0")
        if self.status is DebtStatus.OVERDUE:
            raise ValidationError("status", "status 'terlambat' tidak disimpan")
        if self.category is Category.BUSINESS and not self.debtor_id:
            raise ValidationError("pelanggan_id", "pelanggan wajib dipilih untuk hutang usaha")
        if self.category is Category.PERSONAL:
            _required_text(self.note, "keterangan")
        if self.debt_date is None:
            raise ValidationError("tanggal_hutang", "wajib diisi")
        return self

    def mark(self, status, now=None):
        """Salinan hutang dengan status baru; lunas mengisi tanggal_lunas."""
        status = DebtStatus.parse(status, "status")
        if status is DebtStatus.PAID:
            return dataclasses.replace(self, status=status, paid_date=now or local_now())
        return dataclasses.replace(self, status=status, paid_date=None)

    @classmethod
    def from_row(cls, row):
        status = DebtStatus.parse(row.get("status") or DebtStatus.UNPAID, "status")
        if status is DebtStatus.OVERDUE:
            # baris lama bisa menyimpan 'terlambat'; secara saldo tetap belum lunas
            status = DebtStatus.UNPAID
        return cls(
            id=row.get("id"),
            principal=row.get("jumlah"),
            category=row.get("jenis"),
            source=row.get("sumber_dana") or FundingSource.CASH,
            status=status,
            debtor_id=row.get("pelanggan_id"),
            note=row.get("keterangan") or "",
            debt_date=row.get("tanggal_hutang"),
            due_date=row.get("tanggal_jatuh_tempo"),
            paid_date=row.get("tanggal_lunas"),
        )

    def to_row(self):
        row = {
            "jumlah": json_amount(self.principal),
            "jenis": self.category.value,
            "sumber_dana": self.source.value,
            "status": self.status.value,
            "pelanggan_id": self.debtor_id if self.category is Category.BUSINESS else None,
            "keterangan": self.note,
            "tanggal_hutang": _iso(self.debt_date),
            "tanggal_jatuh_tempo": _iso(self.due_date),
            "tanggal_lunas": _iso(self.paid_date),
        }
        if self.id is not None:
            row["id"] = self.id
        return row


@dataclass
class SaleTransaction:
    """Transaksi penjualan pulsa/PPOB."""

    TABLE: ClassVar[str] = "transaksi"
    DATE_COLUMN: ClassVar[str] = "tanggal_transaksi"

    sale_price: Decimal
    cost_price: Decimal
    source: FundingSource
    timestamp: datetime
    status: TransactionStatus = TransactionStatus.SUCCESS
    nominal: Decimal = ZERO
    kind: str = ""
    debtor_id: Optional[str] = None
    destination_number: Optional[str] = None
    note: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self):
        self.sale_price = to_decimal(self.sale_price, "harga_jual")
        self.cost_price = to_decimal(self.cost_price, "harga_beli")
        self.nominal = to_decimal(self.nominal, "nominal", default=ZERO)
        self.source = FundingSource.parse(self.source, "sumber_dana")
        self.status = TransactionStatus.parse(self.status, "status")
        self.timestamp = parse_timestamp(self.timestamp, "tanggal_transaksi")

    @property
    def profit(self):
        return self.sale_price - self.cost_price

    def validate(self):
        if self.sale_price < 0:
            raise ValidationError("harga_jual", "harga jual tidak boleh negatif")
        if self.cost_price < 0:
            raise ValidationError("harga_beli", "harga beli tidak boleh negatif")
        if self.timestamp is None:
            raise ValidationError("tanggal_transaksi", "wajib diisi")
        return self

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.get("id"),
            sale_price=row.get("harga_jual"),
            cost_price=row.get("harga_beli"),
            nominal=row.get("nominal"),
            source=row.get("sumber_dana"),
            status=row.get("status") or TransactionStatus.SUCCESS,
            kind=row.get("jenis_transaksi") or "",
            debtor_id=row.get("pelanggan_id"),
            destination_number=row.get("nomor_tujuan"),
            note=row.get("keterangan"),
            timestamp=row.get("tanggal_transaksi"),
        )

    def to_row(self):
        row = {
            "harga_jual": json_amount(self.sale_price),
            "harga_beli": json_amount(self.cost_price),
            "keuntungan": json_amount(self.profit),
            "nominal": json_amount(self.nominal),
            "sumber_dana": self.source.value,
            "status": self.status.value,
            "jenis_transaksi": self.kind,
            "pelanggan_id": self.debtor_id,
            "nomor_tujuan": self.destination_number,
            "keterangan": self.note,
            "tanggal_transaksi": _iso(self.timestamp),
        }
        if self.id is not None:
            row["id"] = self.id
        return row

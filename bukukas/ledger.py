"""Operasi tulis yang melibatkan aturan domain: transfer antar sumber dana dan status hutang."""

import logging
from dataclasses import dataclass

from bukukas.errors import LedgerWriteError, PartialTransferFailure, ValidationError
from bukukas.models import ZERO, CapitalDeposit, DebtStatus, FundingSource, local_now, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    outgoing: CapitalDeposit
    incoming: CapitalDeposit


def transfer_legs(origin, destination, amount, fee=ZERO, date=None, note=None):
    """Bangun dua baris modal untuk satu transfer (belum disimpan).

    Kaki asal bernilai -(jumlah + biaya admin) dan mencatat biaya admin;
    kaki tujuan bernilai +jumlah.
    """
    origin = FundingSource.parse(origin, "sumber_asal")
    destination = FundingSource.parse(destination, "sumber_tujuan")
    amount = to_decimal(amount, "jumlah")
    fee = to_decimal(fee, "biaya_admin", default=ZERO)

    if amount <= 0:
        raise ValidationError("jumlah", "jumlah transfer harus lebih dari 0")
    if fee < 0:
        raise ValidationError("biaya_admin", "biaya admin tidak boleh negatif")
    if origin is destination:
        raise ValidationError("sumber_tujuan", "sumber asal dan tujuan tidak boleh sama")

    date = date or local_now()
    outgoing = CapitalDeposit(
        amount=-(amount + fee),
        date=date,
        source=origin,
        admin_fee=fee,
        note=note or f"Transfer ke {destination.value}",
    ).validate()
    incoming = CapitalDeposit(
        amount=amount,
        date=date,
        source=destination,
        note=note or f"Transfer dari {origin.value}",
    ).validate()
    return outgoing, incoming


def record_transfer(store, user_id, origin, destination, amount, fee=ZERO, date=None, note=None):
    """Simpan transfer sebagai dua baris modal yang ditulis berurutan.

    Kalau kaki pertama gagal, tidak ada yang tersimpan dan ``LedgerWriteError``
    diteruskan. Kalau kaki kedua gagal, ``PartialTransferFailure`` dilempar
    berisi kaki yang sudah tersimpan; tidak ada rollback otomatis.
    """
    outgoing, incoming = transfer_legs(origin, destination, amount, fee, date, note)

    saved_outgoing = store.insert_deposit(user_id, outgoing)
    try:
        saved_incoming = store.insert_deposit(user_id, incoming)
    except LedgerWriteError as exc:
        logger.error(
            "Transfer %s -> %s sebesar %s tersimpan sebagian (id kaki asal: %s): %s",
            outgoing.source.value, incoming.source.value, incoming.amount,
            saved_outgoing.id, exc,
        )
        raise PartialTransferFailure(
            completed_leg=saved_outgoing,
            failed_leg=incoming,
            origin=outgoing.source,
            destination=incoming.source,
            amount=incoming.amount,
            fee=outgoing.admin_fee,
            cause=exc,
        ) from exc

    logger.info(
        "Transfer %s -> %s sebesar %s (biaya admin %s) tersimpan",
        outgoing.source.value, incoming.source.value, incoming.amount, outgoing.admin_fee,
    )
    return TransferResult(outgoing=saved_outgoing, incoming=saved_incoming)


def set_debt_status(store, user_id, debt_id, status, now=None):
    """Lunas mengisi tanggal_lunas dengan ``now``; belum lunas mengosongkannya."""
    status = DebtStatus.parse(status, "status")
    if status is DebtStatus.OVERDUE:
        raise ValidationError("status", "status 'terlambat' hanya untuk tampilan")
    paid_at = (now or local_now()) if status is DebtStatus.PAID else None
    debt = store.set_debt_status(user_id, debt_id, status, paid_at=paid_at)
    logger.info("Status hutang %s diubah menjadi %s", debt_id, status.value)
    return debt

"""Jenis-jenis error pada mesin pembukuan."""


class BukuKasError(Exception):
    """Induk semua error domain bukukas."""


class DataUnavailable(BukuKasError):
    """Satu atau lebih query ke Ledger Store gagal."""

    def __init__(self, failed, message=None):
        self.failed = list(failed)
        super().__init__(message or f"Gagal mengambil data: {', '.join(self.failed)}")


class InvalidRange(BukuKasError):
    """Periode tidak valid (akhir sebelum awal, token tidak dikenal, dll)."""


class IncompleteAggregation(BukuKasError):
    """Laporan diminta tanpa hasil agregasi yang lengkap."""


class ValidationError(BukuKasError):
    def __init__(self, field, message):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class LedgerWriteError(BukuKasError):
    """Satu penulisan baris ke Ledger Store gagal."""


class PartialTransferFailure(LedgerWriteError):
    """Kaki pertama transfer sudah tersimpan, kaki kedua gagal.

    Tidak ada rollback otomatis; pemanggil yang menawarkan kompensasi
    (hapus kaki yang sudah tersimpan atau ulangi kaki yang gagal).
    """

    def __init__(self, completed_leg, failed_leg, origin, destination, amount, fee, cause=None):
        self.completed_leg = completed_leg
        self.failed_leg = failed_leg
        self.origin = origin
        self.destination = destination
        self.amount = amount
        self.fee = fee
        self.cause = cause
        super().__init__(
            f"Transfer {origin.value} -> {destination.value} sebesar {amount} "
            f"hanya tersimpan sebagian: kaki tujuan gagal ({cause})"
        )

    def to_dict(self):
        return {
            "failed_leg": "destination",
            "completed_leg": self.completed_leg.to_row() if self.completed_leg else None,
            "completed_leg_id": getattr(self.completed_leg, "id", None),
            "pending_leg": self.failed_leg.to_row() if self.failed_leg else None,
            "origin": self.origin.value,
            "destination": self.destination.value,
            "amount": self.amount,
            "fee": self.fee,
            "error": str(self.cause) if self.cause else None,
        }

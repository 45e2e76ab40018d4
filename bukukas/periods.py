"""Period Resolver: ubah pilihan periode menjadi rentang [awal, akhir] inklusif."""

import calendar
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timedelta

from bukukas.errors import InvalidRange, ValidationError
from bukukas.models import local_now, parse_timestamp

START_OF_DAY = time(0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime

    def contains(self, instant):
        return instant is not None and self.start <= instant <= self.end

    @property
    def days(self):
        return (self.end.date() - self.start.date()).days + 1

    def to_dict(self):
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


# ---------------- Token periode ----------------
@dataclass(frozen=True)
class Today:
    pass


@dataclass(frozen=True)
class ThisWeek:
    pass


@dataclass(frozen=True)
class ThisMonth:
    pass


@dataclass(frozen=True)
class SpecificMonth:
    year: int
    month: int


@dataclass(frozen=True)
class CustomRange:
    start: object
    end: object


def _day_range(first_day, last_day):
    return Period(
        datetime.combine(first_day, START_OF_DAY),
        datetime.combine(last_day, END_OF_DAY),
    )


def _as_day(value, field):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_timestamp(value, field)
    except ValidationError as exc:
        raise InvalidRange(str(exc)) from exc
    if parsed is None:
        raise InvalidRange(f"{field}: wajib diisi")
    return parsed.date()


def resolve_period(timeframe, reference=None):
    """Hitung rentang hari untuk sebuah token periode.

    ``reference`` adalah "sekarang" (default: waktu lokal saat ini); minggu
    dimulai hari Senin.
    """
    today = _as_day(reference, "reference") if reference is not None else local_now().date()

    if isinstance(timeframe, Today):
        return _day_range(today, today)
    if isinstance(timeframe, ThisWeek):
        return _day_range(today - timedelta(days=today.weekday()), today)
    if isinstance(timeframe, ThisMonth):
        return _day_range(today.replace(day=1), today)
    if isinstance(timeframe, SpecificMonth):
        if not 1 <= int(timeframe.month) <= 12:
            raise InvalidRange(f"bulan tidak valid: {timeframe.month}")
        year, month = int(timeframe.year), int(timeframe.month)
        try:
            last = calendar.monthrange(year, month)[1]
            return _day_range(date(year, month, 1), date(year, month, last))
        except (ValueError, OverflowError) as exc:
            raise InvalidRange(f"tahun tidak valid: {timeframe.year}") from exc
    if isinstance(timeframe, CustomRange):
        first = _as_day(timeframe.start, "mulai")
        last = _as_day(timeframe.end, "akhir")
        if last < first:
            raise InvalidRange(f"tanggal akhir {last} sebelum tanggal mulai {first}")
        return _day_range(first, last)
    raise InvalidRange(f"periode tidak dikenal: {timeframe!r}")


TOKENS = {
    "hari-ini": Today,
    "minggu-ini": ThisWeek,
    "bulan-ini": ThisMonth,
}


def parse_timeframe(token, year=None, month=None, start=None, end=None):
    """Token tab dashboard ('hari-ini', 'pilih-bulan', ...) -> objek periode."""
    token = (token or "hari-ini").strip().lower()
    if token in TOKENS:
        return TOKENS[token]()
    if token == "pilih-bulan":
        if year is None or month is None:
            raise InvalidRange("pilih-bulan butuh tahun dan bulan")
        try:
            chosen = SpecificMonth(int(year), int(month))
        except (TypeError, ValueError):
            raise InvalidRange(f"tahun/bulan tidak valid: {year!r}/{month!r}")
        if not MINYEAR <= chosen.year <= MAXYEAR:
            raise InvalidRange(f"tahun tidak valid: {year!r}")
        return chosen
    if token == "rentang":
        if not start or not end:
            raise InvalidRange("rentang butuh tanggal mulai dan akhir")
        return CustomRange(start, end)
    raise InvalidRange(f"token periode tidak dikenal: {token!r}")

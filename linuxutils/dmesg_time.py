"""Timestamp formatting for kernel log records."""

from __future__ import annotations

import enum
import functools
import math
import re
import time
from datetime import datetime, timedelta, timezone

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_MICROS = 1_000_000


def _tdivmod(value: int, divisor: int) -> tuple[int, int]:
    """Division truncating towards zero, with the remainder taking the dividend's sign."""
    quotient = abs(value) // divisor
    if value < 0:
        quotient = -quotient
    return quotient, value - quotient * divisor


def raw(timestamp_us: int) -> str:
    """Format microseconds since boot as seconds with six decimals."""
    seconds, sub_seconds = _tdivmod(timestamp_us, _MICROS)
    return f"{seconds:>5}.{str(sub_seconds).rjust(6, '0')}"


def _offset_text(moment: datetime) -> str:
    offset = moment.utcoffset() or timedelta(0)
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, rest = divmod(abs(total), 3600)
    return f"{sign}{hours:02d}:{rest // 60:02d}"


def datetime_from_microseconds_since_boot(
    microseconds: int, boot: datetime | None = None
) -> datetime:
    """Return the wall-clock time of a moment given in microseconds since boot."""
    if boot is None:
        boot = boot_time()
    return boot + timedelta(microseconds=microseconds)


def ctime(timestamp_us: int, boot: datetime | None = None) -> str:
    moment = datetime_from_microseconds_since_boot(timestamp_us, boot)
    return moment.strftime("%a %b %d %H:%M:%S %Y")


def iso(timestamp_us: int, boot: datetime | None = None) -> str:
    moment = datetime_from_microseconds_since_boot(timestamp_us, boot)
    return moment.strftime("%Y-%m-%dT%H:%M:%S,%f") + _offset_text(moment)


class _State(enum.Enum):
    INITIAL = enum.auto()
    AFTER_BOOT = enum.auto()
    DELTA = enum.auto()


def _next_state(state: _State, timestamp_us: int) -> _State:
    if state is _State.INITIAL and timestamp_us == 0:
        return _State.AFTER_BOOT
    return _State.DELTA


class ReltimeFormatter:
    """Shows the date when the minute changes and the delta from the previous record otherwise."""

    def __init__(self, boot: datetime | None = None) -> None:
        self.boot = boot
        self._state = _State.INITIAL
        self._prev_timestamp_us = 0
        self._prev_unix_timestamp = 0

    def format(self, timestamp_us: int) -> str:
        moment = datetime_from_microseconds_since_boot(timestamp_us, self.boot)
        unix_timestamp = math.floor(moment.timestamp())
        minute_changes = _tdivmod(unix_timestamp, 60)[0] != _tdivmod(self._prev_unix_timestamp, 60)[0]
        if self._state is _State.INITIAL or minute_changes:
            result = moment.strftime("%b%d %H:%M")
        elif self._state is _State.AFTER_BOOT:
            result = self._delta(0)
        else:
            result = self._delta(timestamp_us - self._prev_timestamp_us)
        self._prev_timestamp_us = timestamp_us
        self._prev_unix_timestamp = unix_timestamp
        self._state = _next_state(self._state, timestamp_us)
        return result

    @staticmethod
    def _delta(delta_us: int) -> str:
        seconds, sub_seconds = _tdivmod(delta_us, _MICROS)
        sign = "+" if delta_us >= 0 else "-"
        return f"{sign}{abs(seconds)}.{abs(sub_seconds):06d}".rjust(11)


class DeltaFormatter:
    """Shows the time elapsed since the previous record."""

    def __init__(self) -> None:
        self._state = _State.INITIAL
        self._prev_timestamp_us = 0

    def format(self, timestamp_us: int) -> str:
        if self._state is _State.DELTA:
            result = self._delta(timestamp_us - self._prev_timestamp_us)
        else:
            result = self._delta(0)
        self._prev_timestamp_us = timestamp_us
        self._state = _next_state(self._state, timestamp_us)
        return result

    @staticmethod
    def _delta(delta_us: int) -> str:
        seconds, sub_seconds = _tdivmod(delta_us, _MICROS)
        text = f"{abs(seconds)}.{abs(sub_seconds):06d}"
        if delta_us < 0:
            text = "-" + text
        return f"<{text:>12}>"


_ITEM = re.compile(
    r"([+-]?\d+)\s*(seconds?|secs?|minutes?|mins?|hours?|days?|weeks?|fortnights?|months?|years?)",
    re.IGNORECASE,
)
_RELATIVE = re.compile(
    r"\s*(?:[+-]?\d+\s*(?:seconds?|secs?|minutes?|mins?|hours?|days?|weeks?|fortnights?"
    r"|months?|years?)\s*)+(ago)?\s*",
    re.IGNORECASE,
)


def _relative_delta(amount: int, unit: str) -> relativedelta:
    unit = unit.lower()
    if unit.startswith("sec"):
        return relativedelta(seconds=amount)
    if unit.startswith("min"):
        return relativedelta(minutes=amount)
    if unit.startswith("hour"):
        return relativedelta(hours=amount)
    if unit.startswith("day"):
        return relativedelta(days=amount)
    if unit.startswith("fortnight"):
        return relativedelta(weeks=2 * amount)
    if unit.startswith("week"):
        return relativedelta(weeks=amount)
    if unit.startswith("month"):
        return relativedelta(months=amount)
    return relativedelta(years=amount)


def parse_datetime(text: str) -> datetime:
    """Parse an absolute or relative time; raises ValueError if it is not one."""
    error = ValueError(f'invalid time value "{text}"')
    stripped = text.strip()
    lowered = stripped.lower()
    now = datetime.now().astimezone()
    named = {
        "now": timedelta(0),
        "today": timedelta(0),
        "yesterday": timedelta(days=-1),
        "tomorrow": timedelta(days=1),
    }
    if lowered in named:
        return now + named[lowered]
    if stripped.startswith("@"):
        try:
            seconds = float(stripped[1:])
            return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
        except (ValueError, OverflowError, OSError) as exc:
            raise error from exc
    match = _RELATIVE.fullmatch(stripped)
    if match:
        total = relativedelta()
        for amount, unit in _ITEM.findall(stripped):
            total += _relative_delta(int(amount), unit)
        try:
            return now - total if match.group(1) else now + total
        except (ValueError, OverflowError) as exc:
            raise error from exc
    if not stripped:
        raise error
    default = now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
    try:
        parsed = date_parser.parse(stripped, default=default)
    except (ValueError, OverflowError) as exc:
        raise error from exc
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _boot_epoch() -> float:
    clock = getattr(time, "CLOCK_BOOTTIME", None)
    if clock is not None:
        try:
            return time.time() - time.clock_gettime(clock)
        except OSError:
            pass
    try:
        with open("/proc/stat", encoding="ascii") as handle:
            for line in handle:
                if line.startswith("btime "):
                    return float(line.split()[1])
    except (OSError, ValueError, IndexError):
        pass
    return 0.0


@functools.lru_cache(maxsize=None)
def boot_time() -> datetime:
    """Return the time the system booted, in the local time zone."""
    epoch = round(_boot_epoch(), 6)
    return datetime.fromtimestamp(epoch, tz=timezone.utc).astimezone()
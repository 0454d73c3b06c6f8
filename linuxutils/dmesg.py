"""Print the kernel message buffer, with filtering and time formatting."""

from __future__ import annotations

import argparse
import enum
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator

from . import dmesg_time
from .dmesg_json import serialize_records

PROG = "dmesg"
DEFAULT_KMSG_FILE = "/dev/kmsg"

_RECORD_REGEX = re.compile(
    r"^(0|[1-9][0-9]*),(0|[1-9][0-9]*),(0|[1-9][0-9]*),.(?:,^[,;]*)*;(.*)$",
    re.MULTILINE,
)
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1
_I64_MAX = 2**63 - 1
_READ_SIZE = 8192


class DmesgError(Exception):
    """A failure reported by dmesg."""


class Facility(enum.Enum):
    KERN = 0
    USER = 1
    MAIL = 2
    DAEMON = 3
    AUTH = 4
    SYSLOG = 5
    LPR = 6
    NEWS = 7
    UUCP = 8
    CRON = 9
    AUTHPRIV = 10
    FTP = 11
    RES0 = 12
    RES1 = 13
    RES2 = 14
    RES3 = 15
    LOCAL0 = 16
    LOCAL1 = 17
    LOCAL2 = 18
    LOCAL3 = 19
    LOCAL4 = 20
    LOCAL5 = 21
    LOCAL6 = 22
    LOCAL7 = 23
    UNKNOWN = -1

    @classmethod
    def from_priority(cls, value: int) -> "Facility":
        """Return the facility encoded in the upper bits of a priority value."""
        code = (value >> 3) & 0xFF
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


class Level(enum.Enum):
    EMERG = 0
    ALERT = 1
    CRIT = 2
    ERR = 3
    WARN = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7
    UNKNOWN = -1

    @classmethod
    def from_priority(cls, value: int) -> "Level":
        """Return the level encoded in the lowest three bits of a priority value."""
        try:
            return cls(value & 0b111)
        except ValueError:
            return cls.UNKNOWN


class TimeFormat(enum.Enum):
    DELTA = "delta"
    RELTIME = "reltime"
    CTIME = "ctime"
    NOTIME = "notime"
    ISO = "iso"
    RAW = "raw"


@dataclass(frozen=True)
class Record:
    """One kernel log record."""

    priority_facility: int
    sequence: int
    timestamp_us: int
    message: str


def parse_record(line: str) -> Record | None:
    """Parse a kmsg-format record; returns None when the line holds none."""
    for match in _RECORD_REGEX.finditer(line):
        pri_fac, seq, time, msg = match.groups()
        pri_fac_value, seq_value, time_value = int(pri_fac), int(seq), int(time)
        if pri_fac_value > _U32_MAX or seq_value > _U64_MAX or time_value > _I64_MAX:
            continue
        return Record(pri_fac_value, seq_value, time_value, msg)
    return None


def _describe(exc: OSError) -> str:
    return exc.strerror or str(exc)


def _read_chunks(fd: int, separator: bytes) -> Iterator[bytes]:
    buffer = bytearray()
    while True:
        try:
            chunk = os.read(fd, _READ_SIZE)
        except BlockingIOError:
            return
        except OSError as exc:
            raise DmesgError(_describe(exc)) from exc
        if not chunk:
            if buffer:
                yield bytes(buffer)
            return
        buffer += chunk
        while (index := buffer.find(separator)) >= 0:
            yield bytes(buffer[: index + 1])
            del buffer[: index + 1]


def iter_records(
    path: str | os.PathLike = DEFAULT_KMSG_FILE, separator: bytes = b"\n"
) -> Iterator[Record]:
    """Yield the records of a kmsg file, skipping entries that do not parse."""
    flags = os.O_RDONLY | getattr(os, "O_NONBLOCK", 0)
    try:
        fd = os.open(path, flags)
    except OSError as exc:
        raise DmesgError(f"cannot open {os.fspath(path)}: {_describe(exc)}") from exc
    try:
        seek_data = getattr(os, "SEEK_DATA", None)
        if seek_data is not None:
            try:
                os.lseek(fd, 0, seek_data)
            except OSError:
                pass
        for chunk in _read_chunks(fd, separator):
            record = parse_record(chunk.decode("utf-8", "replace"))
            if record is not None:
                yield record
    finally:
        os.close(fd)


@dataclass
class Dmesg:
    """A configured dmesg run."""

    kmsg_file: str | os.PathLike = DEFAULT_KMSG_FILE
    separator: bytes = b"\n"
    json: bool = False
    time_format: TimeFormat = TimeFormat.RAW
    facility_filters: frozenset[Facility] | None = None
    level_filters: frozenset[Level] | None = None
    since: datetime | None = None
    until: datetime | None = None
    boot: datetime | None = None

    def _keep(self, record: Record) -> bool:
        if self.facility_filters is not None:
            if Facility.from_priority(record.priority_facility) not in self.facility_filters:
                return False
        if self.level_filters is not None:
            if Level.from_priority(record.priority_facility) not in self.level_filters:
                return False
        if self.since is not None or self.until is not None:
            moment = dmesg_time.datetime_from_microseconds_since_boot(
                record.timestamp_us, self.boot
            )
            if self.since is not None and moment < self.since:
                return False
            if self.until is not None and moment > self.until:
                return False
        return True

    def filtered_records(self) -> Iterator[Record]:
        """Yield the records that pass every configured filter."""
        return (record for record in iter_records(self.kmsg_file, self.separator) if self._keep(record))

    def render(self) -> Iterator[str]:
        """Yield the output lines (a single document in JSON mode)."""
        if self.json:
            yield serialize_records(list(self.filtered_records()))
            return
        reltime = dmesg_time.ReltimeFormatter(self.boot)
        delta = dmesg_time.DeltaFormatter()
        for record in self.filtered_records():
            ts = record.timestamp_us
            if self.time_format is TimeFormat.DELTA:
                prefix = f"[{delta.format(ts)}] "
            elif self.time_format is TimeFormat.RELTIME:
                prefix = f"[{reltime.format(ts)}] "
            elif self.time_format is TimeFormat.CTIME:
                prefix = f"[{dmesg_time.ctime(ts, self.boot)}] "
            elif self.time_format is TimeFormat.ISO:
                prefix = f"{dmesg_time.iso(ts, self.boot)} "
            elif self.time_format is TimeFormat.RAW:
                prefix = f"[{dmesg_time.raw(ts)}] "
            else:
                prefix = ""
            yield prefix + record.message


def _split_lists(values: Iterable[str]) -> Iterator[str]:
    for value in values:
        yield from value.split(",")


def _parse_facilities(values: Iterable[str]) -> frozenset[Facility]:
    result = set()
    for name in _split_lists(values):
        member = Facility.__members__.get(name.upper())
        if member is None or member is Facility.UNKNOWN or name != name.lower():
            raise DmesgError(f"unknown facility '{name}'")
        result.add(member)
    return frozenset(result)


def _parse_levels(values: Iterable[str]) -> frozenset[Level]:
    result = set()
    for name in _split_lists(values):
        member = Level.__members__.get(name.upper())
        if member is None or member is Level.UNKNOWN or name != name.lower():
            raise DmesgError(f"unknown level '{name}'")
        result.add(member)
    return frozenset(result)


def _parse_time(text: str) -> datetime:
    try:
        return dmesg_time.parse_datetime(text)
    except ValueError as exc:
        raise DmesgError(f'invalid time value "{text}"') from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="Display or control the kernel ring buffer.")
    parser.add_argument("-K", "--kmsg-file", help="use the file in kmsg format")
    parser.add_argument("-J", "--json", action="store_true", help="use JSON output format")
    parser.add_argument(
        "--time-format",
        help="show timestamp using the given format: [delta|reltime|ctime|notime|iso|raw]",
    )
    parser.add_argument(
        "-f", "--facility", action="append", help="restrict output to defined facilities"
    )
    parser.add_argument("-l", "--level", action="append", help="restrict output to defined levels")
    parser.add_argument("--since", help="display the lines since the specified time")
    parser.add_argument("--until", help="display the lines until the specified time")
    return parser


def _configure(args: argparse.Namespace) -> Dmesg:
    dmesg = Dmesg(json=args.json)
    if args.time_format is not None:
        try:
            dmesg.time_format = TimeFormat(args.time_format)
        except ValueError as exc:
            raise DmesgError(f"unknown time format: {args.time_format}") from exc
    if args.facility is not None:
        dmesg.facility_filters = _parse_facilities(args.facility)
    if args.level is not None:
        dmesg.level_filters = _parse_levels(args.level)
    if args.since is not None:
        dmesg.since = _parse_time(args.since)
    if args.until is not None:
        dmesg.until = _parse_time(args.until)
    if args.kmsg_file is not None:
        dmesg.kmsg_file = args.kmsg_file
        dmesg.separator = b"\0"
    elif sys.platform.startswith("win"):
        raise DmesgError("Windows requires the use of '-K'")
    return dmesg


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        dmesg = _configure(args)
        for line in dmesg.render():
            print(line)
    except DmesgError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
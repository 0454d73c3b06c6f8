"""Show a listing of last logged-in users from a wtmp file."""

from __future__ import annotations

import argparse
import ipaddress
import os
import socket
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Callable, Iterator

from .utmp import UtmpRecord, read_records

PROG = "last"
WTMP_PATH = "/var/log/wtmp"
TIME_FORMATS = ("notime", "short", "full", "iso")

RUN_LEVEL_STR = "runlevel"
REBOOT_STR = "reboot"
SHUTDOWN_STR = "shutdown"

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_TIME_SIZE = 10


class LastError(Exception):
    """A failure reported by last."""


def _names(moment: datetime) -> str:
    return f"{_WEEKDAYS[moment.weekday()]} {_MONTHS[moment.month - 1]} {moment.day:>2}"


def _full(moment: datetime) -> str:
    return f"{_names(moment)} {moment:%H:%M:%S} {moment.year:04d}"


def _start_short(moment: datetime) -> str:
    return f"{_names(moment)} {moment:%H:%M}"


def _end_short(moment: datetime) -> str:
    return f"{moment:%H:%M}"


def _iso(moment: datetime) -> str:
    offset = moment.utcoffset() or timedelta(0)
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else ""
    hours, rest = divmod(abs(total), 3600)
    return (
        f"{moment.year:04d}-{moment:%m-%dT%H:%M:%S}"
        f"+{sign}{hours:02d}:{rest // 60:02d}"
    )


_Formatter = Callable[[datetime], str]
_START_FORMATS: dict[str, _Formatter] = {"short": _start_short, "full": _full, "iso": _iso}
_END_FORMATS: dict[str, _Formatter] = {"short": _end_short, "full": _full, "iso": _iso}
_FILE_FORMATS: dict[str, _Formatter] = {"short": _full, "full": _full, "iso": _iso}


def is_numeric(text: str) -> bool:
    """True when every character is numeric (also for the empty string)."""
    return all(char.isnumeric() for char in text)


def _trunc_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return -quotient if value < 0 else quotient


def duration_string(seconds: int) -> str:
    """Format a session length as ``(HH:MM)`` or ``(D+HH:MM)``."""
    seconds = int(seconds)
    days = _trunc_div(seconds, 86400)
    seconds -= days * 86400
    hours = _trunc_div(seconds, 3600)
    seconds -= hours * 3600
    minutes = _trunc_div(seconds, 60)
    hh = str(hours).rjust(2, "0")
    mm = str(minutes).rjust(2, "0")
    if days > 0:
        return f"({days}+{hh}:{mm})"
    return f"({hh}:{mm})"


def find_dns_name(host: str) -> str:
    """Resolve an IPv4 address to a host name; non-addresses become 0.0.0.0."""
    try:
        address = str(ipaddress.IPv4Address(host))
    except ValueError:
        address = "0.0.0.0"
    if address == "0.0.0.0":
        return address
    try:
        return socket.getnameinfo((address, 0), 0)[0]
    except OSError:
        return ""


def _swap_remove(items: list, index: int):
    item = items[index]
    items[index] = items[-1]
    items.pop()
    return item


@dataclass
class Last:
    """A configured listing of a wtmp file."""

    file: str | os.PathLike = WTMP_PATH
    system: bool = False
    dns: bool = False
    host_last: bool = False
    no_host: bool = False
    limit: int = 0
    users: list[str] | None = None
    time_format: str = "short"
    tz: tzinfo | None = None
    _last_reboot: UtmpRecord | None = field(default=None, init=False, repr=False)
    _last_shutdown: UtmpRecord | None = field(default=None, init=False, repr=False)
    _last_dead: list[UtmpRecord] = field(default_factory=list, init=False, repr=False)

    def _local(self, record: UtmpRecord) -> datetime:
        return record.time.astimezone(self.tz)

    def _host(self, record: UtmpRecord) -> str:
        return find_dns_name(record.host) if self.dns else record.host

    def _wanted(self, *names: str) -> bool:
        if self.users is None:
            return True
        return any(user.strip() in names for user in self.users)

    def run(self) -> Iterator[str]:
        """Yield the output lines, newest entry first, ending with the file's start time."""
        try:
            records = list(read_records(self.file))
        except OSError:
            records = []
        self._last_reboot = None
        self._last_shutdown = None
        self._last_dead = []

        counter = 0
        first_time: str | None = None
        for index, ut in reversed(list(enumerate(records))):
            if index == 0:
                first_time = self.utmp_file_time(ut.time)
            if self.limit > 0 and counter >= self.limit:
                break
            line: str | None = None
            if ut.is_user_process():
                dead = None
                for position, candidate in enumerate(self._last_dead):
                    if candidate.tty_device == ut.tty_device:
                        dead = _swap_remove(self._last_dead, position)
                        break
                line = self._user_line(ut, dead)
            elif ut.user == RUN_LEVEL_STR:
                line = self._runlevel_line(ut)
            elif ut.user == SHUTDOWN_STR:
                line = self._shutdown_line(ut)
                self._last_shutdown = ut
            elif ut.user == REBOOT_STR:
                line = self._reboot_line(ut)
                self._last_reboot = ut
            elif ut.user == "":
                self._last_dead.append(ut)
            if line is not None:
                counter += 1
                yield line

        path = Path(self.file).absolute()
        name = path.name
        if name in ("", ".."):
            raise LastError("Is a directory" if path.is_dir() else "Undefined")
        if first_time is None:
            ctime_ns = os.stat(self.file).st_ctime_ns
            when = datetime.fromtimestamp(ctime_ns // 10**9, tz=timezone.utc) + timedelta(
                microseconds=(ctime_ns % 10**9) // 1000
            )
            first_time = self.utmp_file_time(when)
        yield ""
        yield f"{name} begins {first_time}"

    def utmp_file_time(self, when: datetime) -> str:
        """Format the time the file begins at, in the configured time zone."""
        formatter = _FILE_FORMATS.get(self.time_format)
        return formatter(when.astimezone(self.tz)) if formatter else ""

    def time_string(self, when: datetime) -> str:
        """Format the start time of an entry."""
        formatter = _START_FORMATS.get(self.time_format)
        return formatter(when) if formatter else ""

    def end_time_string(self, status: str | None, end: datetime) -> str:
        """Return ``status`` if given, otherwise the formatted end time."""
        if status is not None:
            return status
        formatter = _END_FORMATS.get(self.time_format)
        return f"- {formatter(end)}" if formatter else ""

    def _end_state(self, ut: UtmpRecord, dead: UtmpRecord | None) -> tuple[str, str]:
        current = self._local(ut)
        if dead is not None:
            dead_time = self._local(dead)
            delta = duration_string(int((dead_time - current).total_seconds()))
            return self.end_time_string(None, dead_time), delta
        if self._last_shutdown is None:
            if ut.is_user_process():
                if self._last_reboot is not None and self._local(self._last_reboot) > current:
                    return "- crash", ""
                return "  still logged in", ""
            return "  still running", ""
        shutdown = self._local(self._last_shutdown)
        delta = duration_string(int((shutdown - current).total_seconds()))
        status = "- down" if ut.is_user_process() else None
        return self.end_time_string(status, shutdown), delta

    def _runlevel_line(self, ut: UtmpRecord) -> str | None:
        if not self._wanted(ut.user.strip()) or not self.system:
            return None
        level = chr(ut.pid % 256)
        end_date, delta = self._end_state(ut, None)
        return self.format_line(
            RUN_LEVEL_STR,
            f"(to lvl {level})",
            self.time_string(self._local(ut)),
            self._host(ut),
            end_date,
            delta,
        )

    def _shutdown_line(self, ut: UtmpRecord) -> str | None:
        if not self._wanted("system down", ut.user.strip()):
            return None
        host = self._host(ut)
        if not self.system:
            return None
        end_date, delta = self._end_state(ut, None)
        return self.format_line(
            SHUTDOWN_STR, "system down", self.time_string(self._local(ut)), host, end_date, delta
        )

    def _reboot_line(self, ut: UtmpRecord) -> str | None:
        if not self._wanted(ut.user.strip(), "system boot"):
            return None
        end_date, delta = self._end_state(ut, None)
        return self.format_line(
            REBOOT_STR,
            "system boot",
            self.time_string(self._local(ut)),
            self._host(ut),
            end_date,
            delta,
        )

    def _user_line(self, ut: UtmpRecord, dead: UtmpRecord | None) -> str | None:
        if not self._wanted(ut.tty_device.strip(), ut.user.strip()):
            return None
        host = self._host(ut)
        end_date, delta = self._end_state(ut, dead)
        return self.format_line(
            ut.user, ut.tty_device, self.time_string(self._local(ut)), host, end_date, delta
        )

    def format_line(
        self, user: str, line: str, time: str, host: str, end_time: str, delta: str
    ) -> str:
        """Lay out one output line in fixed-width columns."""
        host_to_print = host[:16]
        parts = [f"{user:<8}", f" {line:<12}"]
        if not self.host_last and not self.no_host:
            parts.append(f" {host_to_print:<16}")
        show_time = self.time_format != "notime"
        if self.host_last and not self.no_host and show_time:
            parts += [f" {time:<{_TIME_SIZE}}", f" {end_time:<8}", f" {host_to_print}"]
        elif show_time:
            parts += [f" {time:<{_TIME_SIZE}}", f" {end_time:<8}"]
        parts.append(f" {delta:^6}")
        return "".join(parts).rstrip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Show a listing of last logged in users.",
        epilog=f"If FILE is not specified, use {WTMP_PATH}.  /var/log/wtmp as FILE is common.",
    )
    parser.add_argument(
        "-f", "--file", default=WTMP_PATH, help="use a specific file instead of /var/log/wtmp"
    )
    parser.add_argument(
        "-x",
        "--system",
        action="store_true",
        help="display system shutdown entries and run level changes",
    )
    parser.add_argument(
        "-d", "--dns", action="store_true", help="translate the IP number back into a hostname"
    )
    parser.add_argument(
        "-a", "--hostlast", action="store_true", help="display hostnames in the last column"
    )
    parser.add_argument(
        "-R", "--nohostname", action="store_true", help="don't display the hostname field"
    )
    parser.add_argument("-n", "--limit", type=int, help="how many lines to show")
    parser.add_argument(
        "--time-format",
        default="short",
        help="show timestamps in the specified <format>: notime|short|full|iso",
    )
    parser.add_argument("username", nargs="*")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.time_format.strip() not in TIME_FORMATS:
        print(f"{PROG}: unknown time format: {args.time_format}", file=sys.stderr)
        return 0
    users = [f"tty{name}" if is_numeric(name) else name for name in args.username] or None
    last = Last(
        file=args.file,
        system=args.system,
        dns=args.dns,
        host_last=args.hostlast,
        no_host=args.nohostname,
        limit=args.limit if args.limit is not None else 0,
        users=users,
        time_format=args.time_format,
    )
    try:
        for line in last.run():
            print(line)
    except LastError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"{PROG}: {exc.strerror or exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
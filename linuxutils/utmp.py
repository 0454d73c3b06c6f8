"""Reading and writing records of the utmp/wtmp login accounting files."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator

# Layout of ``struct utmp`` as used by glibc on Linux.
_FORMAT = struct.Struct("<hxxi32s4s32s256shhiii4i20x")
RECORD_SIZE = _FORMAT.size


class UtmpType(enum.IntEnum):
    """Values of the ``ut_type`` field."""

    EMPTY = 0
    RUN_LVL = 1
    BOOT_TIME = 2
    NEW_TIME = 3
    OLD_TIME = 4
    INIT_PROCESS = 5
    LOGIN_PROCESS = 6
    USER_PROCESS = 7
    DEAD_PROCESS = 8
    ACCOUNTING = 9


def _decode(field: bytes) -> str:
    return field.split(b"\0", 1)[0].decode("utf-8", "replace")


def _encode(text: str) -> bytes:
    return text.encode("utf-8")


@dataclass
class UtmpRecord:
    """One login accounting record."""

    type: int = UtmpType.EMPTY
    pid: int = 0
    line: str = ""
    id: str = ""
    user: str = ""
    host: str = ""
    exit_termination: int = 0
    exit_status: int = 0
    session: int = 0
    tv_sec: int = 0
    tv_usec: int = 0
    addr_v6: tuple[int, int, int, int] = (0, 0, 0, 0)

    @classmethod
    def unpack(cls, data: bytes) -> "UtmpRecord":
        """Decode one record; raises ValueError if ``data`` has the wrong size."""
        if len(data) != RECORD_SIZE:
            raise ValueError(f"a utmp record is {RECORD_SIZE} bytes, got {len(data)}")
        (
            ut_type,
            pid,
            line,
            ut_id,
            user,
            host,
            exit_termination,
            exit_status,
            session,
            tv_sec,
            tv_usec,
            *addr,
        ) = _FORMAT.unpack(data)
        try:
            record_type: int = UtmpType(ut_type)
        except ValueError:
            record_type = ut_type
        return cls(
            type=record_type,
            pid=pid,
            line=_decode(line),
            id=_decode(ut_id),
            user=_decode(user),
            host=_decode(host),
            exit_termination=exit_termination,
            exit_status=exit_status,
            session=session,
            tv_sec=tv_sec,
            tv_usec=tv_usec,
            addr_v6=tuple(addr),
        )

    def pack(self) -> bytes:
        """Encode the record; over-long strings are truncated to their field."""
        return _FORMAT.pack(
            int(self.type),
            self.pid,
            _encode(self.line),
            _encode(self.id),
            _encode(self.user),
            _encode(self.host),
            self.exit_termination,
            self.exit_status,
            self.session,
            self.tv_sec,
            self.tv_usec,
            *self.addr_v6,
        )

    def is_user_process(self) -> bool:
        return self.type == UtmpType.USER_PROCESS and bool(self.user)

    @property
    def tty_device(self) -> str:
        return self.line

    @property
    def time(self) -> datetime:
        """The time stamp of the record, in UTC."""
        return datetime.fromtimestamp(self.tv_sec, tz=timezone.utc) + timedelta(
            microseconds=self.tv_usec
        )


def read_records(path: str | os.PathLike) -> Iterator[UtmpRecord]:
    """Yield the complete records of a utmp/wtmp file in file order."""
    with open(path, "rb") as handle:
        while chunk := handle.read(RECORD_SIZE):
            if len(chunk) < RECORD_SIZE:
                break
            yield UtmpRecord.unpack(chunk)
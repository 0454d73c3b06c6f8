from datetime import datetime, timedelta, timezone

import pytest

from linuxutils.utmp import RECORD_SIZE, UtmpRecord, UtmpType, read_records


def _sample():
    return UtmpRecord(
        type=UtmpType.USER_PROCESS,
        pid=4242,
        line="pts/1",
        id="ts/1",
        user="alice",
        host="10.0.0.5",
        session=7,
        tv_sec=1700000000,
        tv_usec=123456,
        addr_v6=(1, 2, 3, 4),
    )


def test_record_size_matches_glibc_layout():
    assert RECORD_SIZE == 384
    assert len(UtmpRecord().pack()) == RECORD_SIZE


def test_round_trip():
    record = _sample()
    assert UtmpRecord.unpack(record.pack()) == record


def test_type_is_first_field():
    data = UtmpRecord(type=UtmpType.BOOT_TIME).pack()
    assert data[0] == UtmpType.BOOT_TIME


def test_user_field_position():
    data = _sample().pack()
    assert data[44:76].rstrip(b"\0") == b"alice"


def test_long_strings_are_truncated():
    record = UtmpRecord(user="x" * 40)
    assert UtmpRecord.unpack(record.pack()).user == "x" * 32


def test_unknown_type_is_preserved():
    record = UtmpRecord(type=99)
    assert UtmpRecord.unpack(record.pack()).type == 99


def test_is_user_process():
    assert _sample().is_user_process() is True
    assert UtmpRecord(type=UtmpType.USER_PROCESS, user="").is_user_process() is False
    assert UtmpRecord(type=UtmpType.DEAD_PROCESS, user="alice").is_user_process() is False


def test_unpack_wrong_size():
    with pytest.raises(ValueError):
        UtmpRecord.unpack(b"\0" * (RECORD_SIZE - 1))


def test_time_property():
    record = UtmpRecord(tv_sec=0, tv_usec=5)
    assert record.time == datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(microseconds=5)


def test_read_records_ignores_partial_tail(tmp_path):
    first = _sample()
    second = UtmpRecord(type=UtmpType.DEAD_PROCESS, line="pts/1", tv_sec=1700000600)
    path = tmp_path / "wtmp"
    path.write_bytes(first.pack() + second.pack() + b"\0" * 10)
    assert list(read_records(path)) == [first, second]


def test_read_records_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(read_records(tmp_path / "missing"))
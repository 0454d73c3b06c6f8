import json

from linuxutils.dmesg import Record
from linuxutils.dmesg_json import serialize_records
from linuxutils.dmesg_time import raw


def test_empty_list_layout():
    assert serialize_records([]) == '{\n   "dmesg": [\n\n   ]\n}'


def test_round_trip_through_json_parser():
    records = [
        Record(6, 0, 0, "first"),
        Record(30, 1, 12_345_678, "second"),
    ]
    parsed = json.loads(serialize_records(records))
    assert parsed == {
        "dmesg": [
            {"pri": 6, "time": 0.0, "msg": "first"},
            {"pri": 30, "time": 12.345678, "msg": "second"},
        ]
    }


def test_records_are_joined_without_newline():
    text = serialize_records([Record(1, 0, 0, "a"), Record(2, 1, 1, "b")])
    assert "},{" in text
    assert text.count("},{") == 1


def test_time_uses_raw_format():
    text = serialize_records([Record(6, 0, 1_000_001, "x")])
    assert f'"time": {raw(1_000_001)},' in text


def test_message_escaping_round_trips():
    message = 'quote " backslash \\ tab \t bell \x07 ünïcode'
    parsed = json.loads(serialize_records([Record(6, 0, 5, message)]))
    assert parsed["dmesg"][0]["msg"] == message


def test_non_ascii_kept_literal():
    text = serialize_records([Record(6, 0, 5, "ünïcode")])
    assert "ünïcode" in text


def test_key_order_is_pri_time_msg():
    text = serialize_records([Record(6, 0, 5, "m")])
    assert text.index('"pri"') < text.index('"time"') < text.index('"msg"')
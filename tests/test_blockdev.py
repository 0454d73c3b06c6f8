import os

import pytest

from linuxutils.blockdev import (
    BLOCKDEV_ACTIONS,
    IoctlArgType,
    IoctlKind,
    build_parser,
    do_ioctl_command,
    do_report,
    find_action,
    get_ioctl_attribute,
    get_partition_offset,
    main,
    parse_operations,
)


@pytest.fixture
def regular_fd(tmp_path):
    path = tmp_path / "plain"
    path.write_bytes(b"data")
    fd = os.open(path, os.O_RDONLY)
    yield fd
    os.close(fd)


def test_find_action_returns_named_action():
    action = find_action("getsz")
    assert action.name == "getsz"
    assert action.kind is IoctlKind.GET_ATTRIBUTE
    assert action.arg_type is IoctlArgType.U64_SECTORS


def test_find_action_unknown_raises():
    with pytest.raises(KeyError):
        find_action("nosuchaction")


def test_every_action_is_found_by_its_name():
    for action in BLOCKDEV_ACTIONS:
        assert find_action(action.name) is action


def test_setro_and_setrw_share_code_with_different_params():
    setro = find_action("setro")
    setrw = find_action("setrw")
    assert setro.code == setrw.code
    assert (setro.param, setrw.param) == (1, 0)


def test_getsz_and_getsize64_share_code():
    assert find_action("getsz").code == find_action("getsize64").code


def test_set_actions_are_set_attributes():
    for name in ("setbsz", "setfra", "setra"):
        assert find_action(name).kind is IoctlKind.SET_ATTRIBUTE


def test_parse_operations_keeps_command_line_order():
    ops = parse_operations(["-v", "--getsz", "--setra", "128", "--getro", "dev"])
    assert [action.name for action, _ in ops] == ["verbose", "getsz", "setra", "getro"]
    assert [value for _, value in ops] == [0, 0, 128, 0]


def test_parse_operations_repeated_flag():
    ops = parse_operations(["--getro", "-q", "--getro", "dev"])
    assert [action.name for action, _ in ops] == ["getro", "quiet", "getro"]


def test_parse_operations_accepts_abbreviation():
    ops = parse_operations(["--flush", "dev"])
    assert [action.name for action, _ in ops] == ["flushbufs"]


def test_parse_operations_exact_match_beats_prefix():
    ops = parse_operations(["--getsize", "dev"])
    assert [action.name for action, _ in ops] == ["getsize"]


def test_parse_operations_without_operations_is_empty():
    assert parse_operations(["dev"]) == []


def test_set_attribute_requires_value():
    with pytest.raises(SystemExit):
        parse_operations(["--setra", "dev"])


def test_set_attribute_rejects_negative():
    with pytest.raises(SystemExit):
        parse_operations(["--setra=-1", "dev"])


def test_report_conflicts_with_operations():
    with pytest.raises(SystemExit):
        parse_operations(["--report", "--getsz", "dev"])


def test_devices_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--getsz"])


def test_parser_collects_devices():
    args = build_parser().parse_args(["--report", "a", "b"])
    assert args.report is True
    assert args.devices == ["a", "b"]


def test_partition_offset_of_regular_file_is_zero(regular_fd):
    assert get_partition_offset(regular_fd) == 0


def test_ioctl_attribute_on_regular_file_fails(regular_fd):
    action = find_action("getsize64")
    with pytest.raises(OSError):
        get_ioctl_attribute(regular_fd, action.code, action.arg_type)


def test_do_ioctl_command_get_fails_on_regular_file(regular_fd):
    with pytest.raises(OSError):
        do_ioctl_command(regular_fd, find_action("getro"), True, 0)


def test_do_ioctl_command_verbosity_prints_nothing(regular_fd, capsys):
    assert do_ioctl_command(regular_fd, find_action("verbose"), False, 0) is None
    assert capsys.readouterr().out == ""


def test_do_report_on_regular_file_fails(tmp_path):
    path = tmp_path / "plain"
    path.write_bytes(b"")
    with pytest.raises(OSError):
        do_report(str(path))


def test_do_report_missing_device(tmp_path):
    with pytest.raises(FileNotFoundError):
        do_report(str(tmp_path / "missing"))


def test_main_missing_device_fails(tmp_path, capsys):
    assert main(["--getsz", str(tmp_path / "missing")]) == 1
    assert "blockdev:" in capsys.readouterr().err


def test_main_report_missing_device_fails(tmp_path):
    assert main(["--report", str(tmp_path / "missing")]) == 1


def test_action_is_frozen():
    action = find_action("getro")
    with pytest.raises(AttributeError):
        action.name = "other"
    assert action.name == "getro"
    assert find_action("getro").name == "getro"
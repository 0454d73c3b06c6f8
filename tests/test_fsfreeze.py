import pytest

from linuxutils.fsfreeze import build_parser, freeze_filesystem, main


def test_regular_file_is_rejected(tmp_path):
    path = tmp_path / "file"
    path.write_text("x")
    with pytest.raises(NotADirectoryError, match="not a directory"):
        freeze_filesystem(path, True)


def test_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        freeze_filesystem(tmp_path / "missing", False)


def test_parser_requires_an_action():
    with pytest.raises(SystemExit) as info:
        build_parser().parse_args(["/mnt"])
    assert info.value.code == 2


def test_parser_rejects_both_actions():
    with pytest.raises(SystemExit) as info:
        build_parser().parse_args(["-f", "-u", "/mnt"])
    assert info.value.code == 2


def test_parser_reads_freeze():
    args = build_parser().parse_args(["--freeze", "/mnt"])
    assert args.freeze is True
    assert args.unfreeze is False
    assert args.mountpoint == "/mnt"


def test_main_on_regular_file_fails(tmp_path):
    path = tmp_path / "file"
    path.write_text("x")
    assert main(["-f", str(path)]) == 1


def test_main_on_missing_path_fails(tmp_path):
    assert main(["-u", str(tmp_path / "missing")]) == 1
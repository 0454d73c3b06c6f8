import pytest

from linuxutils.ctrlaltdel import (
    CtrlAltDel,
    CtrlAltDelError,
    get_ctrlaltdel,
    main,
    set_ctrlaltdel,
)


@pytest.mark.parametrize("mode", list(CtrlAltDel))
def test_sysctl_round_trip(mode):
    assert CtrlAltDel.from_sysctl(mode.to_sysctl()) is mode


def test_names():
    assert str(CtrlAltDel.SOFT) == "soft"
    assert str(CtrlAltDel.HARD) == "hard"
    assert CtrlAltDel.HARD.to_sysctl() == 1


def test_from_sysctl_rejects_other_values():
    with pytest.raises(ValueError):
        CtrlAltDel.from_sysctl(2)


def test_get_reads_file(tmp_path):
    path = tmp_path / "ctrl-alt-del"
    path.write_text("1\n")
    assert get_ctrlaltdel(path) is CtrlAltDel.HARD


def test_get_unknown_data(tmp_path):
    path = tmp_path / "ctrl-alt-del"
    path.write_text("garbage")
    with pytest.raises(CtrlAltDelError, match="unknown data"):
        get_ctrlaltdel(path)


def test_get_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_ctrlaltdel(tmp_path / "missing")


def test_set_then_get_round_trip(tmp_path):
    path = tmp_path / "ctrl-alt-del"
    set_ctrlaltdel(CtrlAltDel.SOFT, path)
    assert path.read_text() == "0\n"
    assert get_ctrlaltdel(path) is CtrlAltDel.SOFT


def test_set_failure_reports_root(tmp_path):
    with pytest.raises(CtrlAltDelError, match="You must be root"):
        set_ctrlaltdel(CtrlAltDel.HARD, tmp_path)


def test_main_unknown_argument_fails(capsys):
    assert main(["sideways"]) == 1
    assert "ctrlaltdel:" in capsys.readouterr().err
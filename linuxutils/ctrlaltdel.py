"""Show or set the kernel's Ctrl-Alt-Del behaviour."""

from __future__ import annotations

import argparse
import sys
from enum import Enum
from pathlib import Path

CTRL_ALT_DEL_PATH = "/proc/sys/kernel/ctrl-alt-del"
PROG = "ctrlaltdel"


class CtrlAltDelError(Exception):
    """Failure to read or change the Ctrl-Alt-Del setting."""


class CtrlAltDel(Enum):
    SOFT = 0
    HARD = 1

    @classmethod
    def from_sysctl(cls, value: int) -> "CtrlAltDel":
        """Map the sysctl value (0 or 1) to a mode; other values raise ValueError."""
        return cls(value)

    def to_sysctl(self) -> int:
        return self.value

    def __str__(self) -> str:
        return self.name.lower()


def get_ctrlaltdel(path: str | Path = CTRL_ALT_DEL_PATH) -> CtrlAltDel:
    text = Path(path).read_text()
    try:
        value = int(text.strip())
    except ValueError as exc:
        raise CtrlAltDelError("unknown data") from exc
    return CtrlAltDel.from_sysctl(value)


def set_ctrlaltdel(mode: CtrlAltDel, path: str | Path = CTRL_ALT_DEL_PATH) -> None:
    try:
        Path(path).write_text(f"{mode.to_sysctl()}\n")
    except OSError as exc:
        raise CtrlAltDelError("You must be root to set the Ctrl-Alt-Del behavior") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="set the function of the Ctrl-Alt-Del combination",
    )
    parser.add_argument("pattern", nargs="?")
    return parser


def _error(message: object) -> int:
    print(f"{PROG}: {message}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not sys.platform.startswith("linux"):
        return _error("`ctrlaltdel` is unavailable on current platform.")
    try:
        if args.pattern is None:
            print(get_ctrlaltdel())
        elif args.pattern == "hard":
            set_ctrlaltdel(CtrlAltDel.HARD)
        elif args.pattern == "soft":
            set_ctrlaltdel(CtrlAltDel.SOFT)
        else:
            raise CtrlAltDelError(f"unknown argument: {args.pattern}")
    except CtrlAltDelError as exc:
        return _error(exc)
    except OSError as exc:
        return _error(exc.strerror or exc)
    return 0


if __name__ == "__main__":
    sys.exit(main())
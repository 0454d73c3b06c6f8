"""Suspend or resume access to a mounted filesystem."""

from __future__ import annotations

import argparse
import errno
import os
import stat
import sys

PROG = "fsfreeze"
FIFREEZE = 0xC0045877
FITHAW = 0xC0045878


def freeze_filesystem(mountpoint: str | os.PathLike, freeze: bool) -> None:
    """Freeze (or thaw) the filesystem mounted at ``mountpoint``.

    Raises OSError if the path cannot be opened, is not a directory, or the
    kernel refuses the request.
    """
    fd = os.open(mountpoint, os.O_RDONLY)
    try:
        if not stat.S_ISDIR(os.fstat(fd).st_mode):
            raise NotADirectoryError(errno.ENOTDIR, "not a directory", os.fspath(mountpoint))
        import fcntl

        fcntl.ioctl(fd, FIFREEZE if freeze else FITHAW, 0)
    finally:
        os.close(fd)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=PROG, description="suspend access to a filesystem")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("-f", "--freeze", action="store_true", help="freeze the filesystem")
    action.add_argument("-u", "--unfreeze", action="store_true", help="unfreeze the filesystem")
    parser.add_argument("mountpoint", help="mountpoint of the filesystem")
    return parser


def _describe(exc: OSError) -> str:
    return exc.strerror or str(exc)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not sys.platform.startswith("linux"):
        print(f"{PROG}: `fsfreeze` is available only on Linux.", file=sys.stderr)
        return 1
    op_name = "freeze" if args.freeze else "unfreeze"
    try:
        fd = os.open(args.mountpoint, os.O_RDONLY)
    except OSError as exc:
        print(f"{PROG}: {_describe(exc)}", file=sys.stderr)
        return 1
    try:
        if not stat.S_ISDIR(os.fstat(fd).st_mode):
            print(f"{PROG}: not a directory", file=sys.stderr)
            return 1
    finally:
        os.close(fd)
    try:
        freeze_filesystem(args.mountpoint, args.freeze)
    except OSError as exc:
        print(f"{PROG}: failed to {op_name} the filesystem: {_describe(exc)}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
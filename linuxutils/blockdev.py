"""Get or set various block device attributes."""

from __future__ import annotations

import argparse
import enum
import os
import struct
import sys
from dataclasses import dataclass
from pathlib import Path

PROG = "blockdev"
REPORT_HEADER = "RO    RA   SSZ   BSZ        StartSec            Size   Device"

_SIZE_T = struct.calcsize("N")
_BLK = 0x12


def _io(nr: int) -> int:
    return (_BLK << 8) | nr


def _ior(nr: int, size: int) -> int:
    return (2 << 30) | (size << 16) | (_BLK << 8) | nr


def _iow(nr: int, size: int) -> int:
    return (1 << 30) | (size << 16) | (_BLK << 8) | nr


BLKROSET = _io(93)
BLKROGET = _io(94)
BLKRRPART = _io(95)
BLKGETSIZE = _io(96)
BLKFLSBUF = _io(97)
BLKRASET = _io(98)
BLKRAGET = _io(99)
BLKFRASET = _io(100)
BLKFRAGET = _io(101)
BLKSECTGET = _io(103)
BLKSSZGET = _io(104)
BLKBSZGET = _ior(112, _SIZE_T)
BLKBSZSET = _iow(113, _SIZE_T)
BLKGETSIZE64 = _ior(114, _SIZE_T)
BLKIOMIN = _io(120)
BLKIOOPT = _io(121)
BLKALIGNOFF = _io(122)
BLKPBSZGET = _io(123)
BLKDISCARDZEROES = _io(124)


class IoctlArgType(enum.Enum):
    """C type of the value an attribute ioctl fills in."""

    SHORT = "H"
    INT = "I"
    LONG = "L"
    U64_SECTORS = "Q"
    U64 = "q"

    @property
    def struct_format(self) -> str:
        return "Q" if self in (IoctlArgType.U64, IoctlArgType.U64_SECTORS) else self.value


class IoctlKind(enum.Enum):
    VERBOSITY = enum.auto()
    GET_ATTRIBUTE = enum.auto()
    SET_ATTRIBUTE = enum.auto()
    OPERATION = enum.auto()


@dataclass(frozen=True)
class BlockdevAction:
    """One command-line operation of blockdev."""

    name: str
    help: str
    kind: IoctlKind
    code: int = 0
    arg_type: IoctlArgType | None = None
    param: int = 0


_A = BlockdevAction
_K = IoctlKind
_T = IoctlArgType

BLOCKDEV_ACTIONS: tuple[BlockdevAction, ...] = (
    _A("verbose", "verbose mode", _K.VERBOSITY, param=1),
    _A("quiet", "quiet mode", _K.VERBOSITY, param=0),
    _A("flushbufs", "flush buffers", _K.OPERATION, BLKFLSBUF, param=0),
    _A("getalignoff", "get alignment offset in bytes", _K.GET_ATTRIBUTE, BLKALIGNOFF, _T.INT),
    _A("getbsz", "get blocksize", _K.GET_ATTRIBUTE, BLKBSZGET, _T.INT),
    _A(
        "getdiscardzeroes",
        "get discard zeroes support status",
        _K.GET_ATTRIBUTE,
        BLKDISCARDZEROES,
        _T.INT,
    ),
    _A("getfra", "get filesystem readahead", _K.GET_ATTRIBUTE, BLKFRAGET, _T.LONG),
    _A("getiomin", "get minimum I/O size", _K.GET_ATTRIBUTE, BLKIOMIN, _T.INT),
    _A("getioopt", "get optimal I/O size", _K.GET_ATTRIBUTE, BLKIOOPT, _T.INT),
    _A("getmaxsect", "get max sectors per request", _K.GET_ATTRIBUTE, BLKSECTGET, _T.SHORT),
    _A("getpbsz", "get physical block (sector) size", _K.GET_ATTRIBUTE, BLKPBSZGET, _T.INT),
    _A("getra", "get readahead", _K.GET_ATTRIBUTE, BLKRAGET, _T.LONG),
    _A("getro", "get read-only", _K.GET_ATTRIBUTE, BLKROGET, _T.INT),
    _A("getsize64", "get size in bytes", _K.GET_ATTRIBUTE, BLKGETSIZE64, _T.U64),
    _A(
        "getsize",
        "get 32-bit sector count (deprecated, use --getsz)",
        _K.GET_ATTRIBUTE,
        BLKGETSIZE,
        _T.LONG,
    ),
    _A("getss", "get logical block (sector) size", _K.GET_ATTRIBUTE, BLKSSZGET, _T.INT),
    _A("getsz", "get size in 512-byte sectors", _K.GET_ATTRIBUTE, BLKGETSIZE64, _T.U64_SECTORS),
    _A("rereadpt", "reread partition table", _K.OPERATION, BLKRRPART, param=0),
    _A("setbsz", "set blocksize", _K.SET_ATTRIBUTE, BLKBSZSET),
    _A("setfra", "set filesystem readahead", _K.SET_ATTRIBUTE, BLKFRASET),
    _A("setra", "set readahead", _K.SET_ATTRIBUTE, BLKRASET),
    _A("setro", "set read-only", _K.OPERATION, BLKROSET, param=1),
    _A("setrw", "set read-write", _K.OPERATION, BLKROSET, param=0),
)

_REPORT_ACTIONS = ("getro", "getra", "getss", "getbsz", "getsize64")


def find_action(name: str) -> BlockdevAction:
    """Return the action named ``name``; raises KeyError if there is none."""
    for action in BLOCKDEV_ACTIONS:
        if action.name == name:
            return action
    raise KeyError(name)


def get_ioctl_attribute(fd: int, code: int, arg_type: IoctlArgType) -> int:
    """Read an attribute of the device open on ``fd`` with an ioctl."""
    import fcntl

    fmt = arg_type.struct_format
    buffer = bytearray(struct.calcsize(fmt))
    fcntl.ioctl(fd, code, buffer, True)
    (value,) = struct.unpack(fmt, buffer)
    if arg_type is IoctlArgType.U64_SECTORS:
        return value // 512
    return value


def get_partition_offset(fd: int) -> int:
    """Return the start sector of the partition on ``fd``, or 0 for whole disks."""
    rdev = os.fstat(fd).st_rdev
    base = Path(f"/sys/dev/block/{os.major(rdev)}:{os.minor(rdev)}")
    if not (base / "partition").exists():
        return 0
    text = (base / "start").read_text().strip()
    try:
        return int(text)
    except ValueError as exc:
        raise ValueError("Unable to parse partition start offset") from exc


def do_report(device_path: str) -> str:
    """Return the report line of one device."""
    fd = os.open(device_path, os.O_RDONLY)
    try:
        offset = get_partition_offset(fd)
        ro, ra, ss, bsz, size = (
            get_ioctl_attribute(fd, action.code, action.arg_type)
            for action in map(find_action, _REPORT_ACTIONS)
        )
    finally:
        os.close(fd)
    mode = "ro" if ro == 1 else "rw"
    return f"{mode} {ra:5} {ss:5} {bsz:5} {offset:15} {size:15}   {device_path}"


def do_ioctl_command(fd: int, action: BlockdevAction, verbose: bool, arg: int) -> str | None:
    """Run one ioctl action and return the line it prints, if any."""
    import fcntl

    if action.kind is IoctlKind.VERBOSITY:
        return None
    if action.kind is IoctlKind.GET_ATTRIBUTE:
        value = get_ioctl_attribute(fd, action.code, action.arg_type)
        return f"{action.help}: {value}" if verbose else str(value)
    value = arg if action.kind is IoctlKind.SET_ATTRIBUTE else action.param
    fcntl.ioctl(fd, action.code, value)
    return f"{action.help} succeeded." if verbose else None


def _usize(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid value '{text}'") from exc
    if value < 0 or value >= 2 ** (8 * _SIZE_T):
        raise argparse.ArgumentTypeError(f"invalid value '{text}'")
    return value


class _OperationAction(argparse.Action):
    def __init__(self, option_strings, dest, blockdev_action: BlockdevAction, **kwargs) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self.blockdev_action = blockdev_action

    def __call__(self, parser, namespace, values, option_string=None) -> None:
        value = 0 if self.nargs == 0 else values
        operations = list(getattr(namespace, "operations", None) or [])
        operations.append((self.blockdev_action, value))
        namespace.operations = operations


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG, description="Get or set various block device attributes."
    )
    parser.add_argument("--report", action="store_true", help="print report for specified devices")
    parser.add_argument("devices", nargs="+")
    parser.set_defaults(operations=[])
    for action in BLOCKDEV_ACTIONS:
        flags = [f"--{action.name}"]
        if action.kind is IoctlKind.VERBOSITY:
            flags.insert(0, "-v" if action.param else "-q")
        options = dict(
            action=_OperationAction,
            blockdev_action=action,
            dest=f"_op_{action.name}",
            default=argparse.SUPPRESS,
            help=action.help,
        )
        if action.kind is IoctlKind.SET_ATTRIBUTE:
            options.update(type=_usize, metavar="VALUE")
        else:
            options.update(nargs=0)
        parser.add_argument(*flags, **options)
    return parser


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.report and args.operations:
        parser.error("--report cannot be used with other operations")
    return args


def parse_operations(argv: list[str] | None) -> list[tuple[BlockdevAction, int]]:
    """Return the operations of a command line in the order they were given."""
    return _parse_args(argv).operations


def _error(message: object) -> int:
    print(f"{PROG}: {message}", file=sys.stderr)
    return 1


def _describe(exc: BaseException) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if not sys.platform.startswith("linux"):
        return _error("`blockdev` is available only on Linux.")

    if args.report:
        print(REPORT_HEADER)
        status = 0
        for device_path in args.devices:
            try:
                print(do_report(device_path))
            except (OSError, ValueError) as exc:
                status = _error(_describe(exc))
        return status

    for device_path in args.devices:
        verbose = False
        try:
            fd = os.open(device_path, os.O_RDONLY)
        except OSError as exc:
            return _error(_describe(exc))
        try:
            for action, value in args.operations:
                if action.kind is IoctlKind.VERBOSITY:
                    verbose = bool(action.param)
                    continue
                try:
                    line = do_ioctl_command(fd, action, verbose, value)
                except OSError as exc:
                    if verbose:
                        print(f"{action.help} failed.")
                    return _error(_describe(exc))
                if line is not None:
                    print(line)
        finally:
            os.close(fd)
    return 0


if __name__ == "__main__":
    sys.exit(main())
# linuxutils

A set of small Linux system administration tools written in Python.

| Command      | What it does                                                  |
| ------------ | ------------------------------------------------------------- |
| `blockdev`   | Get or set block device attributes through ioctls             |
| `ctrlaltdel` | Show or set what the kernel does on Ctrl-Alt-Del               |
| `dmesg`      | Print and filter kernel ring buffer records                   |
| `fsfreeze`   | Freeze or unfreeze a mounted filesystem                       |
| `last`       | List past logins, reboots and shutdowns from a wtmp file      |

Most of these talk to the kernel, so they work on Linux only, and several
need root to change anything.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Usage

Every tool prints its options with `--help`.

```
blockdev --report /dev/sda
blockdev -v --getsz --getss /dev/sda

ctrlaltdel
ctrlaltdel soft

dmesg --time-format iso --level err,warn
dmesg -K saved.kmsg --json
dmesg --since "2024-11-18 19:00" --facility kern

fsfreeze --freeze /mnt/data
fsfreeze --unfreeze /mnt/data

last -n 10
last -x --time-format full -f /var/log/wtmp
```

`blockdev` runs its operations in the order they appear on the command line;
`-v` and `-q` switch verbose output on and off for the operations after them.

`dmesg` reads `/dev/kmsg` by default. With `-K FILE` it reads a saved file
whose records are separated by NUL bytes. `--time-format` takes one of
`delta`, `reltime`, `ctime`, `notime`, `iso` or `raw` (the default).
`--since` and `--until` accept dates such as `2024-11-18 19:00`, `@1700000000`,
`yesterday`, or relative times such as `2 hours ago`.

`last` reads `/var/log/wtmp` unless `-f` names another file, and lists the
newest entries first. `--time-format` takes `notime`, `short` (the default),
`full` or `iso`.

## Using the modules

The pieces behind the commands can be used from Python as well:

```python
from linuxutils.dmesg import parse_record
from linuxutils.dmesg_time import raw
from linuxutils.last import duration_string
from linuxutils.utmp import read_records

record = parse_record("6,1,1000000,-;hello")
print(record.message)            # hello
print(raw(record.timestamp_us))  # "    1.000000"

print(duration_string(90061))    # (1+01:01)

for entry in read_records("/var/log/wtmp"):
    print(entry.user, entry.line, entry.time)
```

`linuxutils.dmesg.Dmesg` holds a configured run (file, filters, time format)
and yields its output lines from `render()`; `linuxutils.last.Last` does the
same for a wtmp listing through `run()`.

## What is not included

There is no tool for bringing CPUs online or offline or changing their
configuration, and no single entry point that dispatches to the tools by
name: each tool is installed as its own command.
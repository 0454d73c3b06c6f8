"""Linux system administration tools: blockdev, ctrlaltdel, dmesg, fsfreeze and last."""

__version__ = "0.0.1"
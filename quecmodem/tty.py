"""Serial port opening with UUCP-style lock files."""

from __future__ import annotations

import contextlib
import errno
import os
import re
import sys
import termios
from typing import Optional

DEFAULT_LOCK_DIR = "/var/spool/lock" if sys.platform.startswith("freebsd") else "/var/lock"

_PID_RE = re.compile(rb"\s*([+-]?\d+)")
_MAX_WRITE_RETRIES = 10


def lock_path(devname: str, lock_dir: Optional[str] = None) -> str:
    """Return the lock file path for ``devname``, following symlinks."""
    resolved = os.path.realpath(devname)
    basename = os.path.basename(resolved) or resolved
    return os.path.join(lock_dir or DEFAULT_LOCK_DIR, f"LCK..{basename}")


def _create_lock(path: str) -> None:
    with contextlib.suppress(OSError):
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o444)
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError):
        return False
    return True


def try_lock(devname: str, lock_dir: Optional[str] = None) -> int:
    """Take the lock for ``devname``.

    Returns 0 when the lock was free and is now held by this process,
    or the pid of the live process that holds it.
    """
    path = lock_path(devname, lock_dir)
    pid = 0
    try:
        with open(path, "rb") as lock_file:
            content = lock_file.read(20)
    except OSError:
        content = b""
    if content:
        match = _PID_RE.match(content)
        value = int(match.group(1)) if match else 0
        if _process_alive(value):
            pid = value
    if pid == 0:
        with contextlib.suppress(OSError):
            os.unlink(path)
        _create_lock(path)
    return pid


def open_tty(dev: str, lock_dir: Optional[str] = None) -> int:
    """Open ``dev`` raw at 115200 8N1 with hardware flow control and lock it.

    Returns the file descriptor. Raises OSError if the device cannot be
    opened, is not a terminal, or is locked by another process.
    """
    fd = os.open(dev, os.O_RDWR | os.O_NOCTTY)
    try:
        attrs = termios.tcgetattr(fd)
    except termios.error as exc:
        os.close(fd)
        raise OSError(errno.ENOTTY, f"{dev} is not a terminal") from exc

    attrs[0] = 0
    attrs[1] = 0
    attrs[2] = termios.B115200 | termios.CS8 | termios.CREAD | getattr(termios, "CRTSCTS", 0)
    attrs[3] = 0
    attrs[4] = termios.B115200
    attrs[5] = termios.B115200
    attrs[6][termios.VMIN] = 1
    attrs[6][termios.VTIME] = 0
    with contextlib.suppress(termios.error):
        termios.tcsetattr(fd, termios.TCSAFLUSH, attrs)

    owner = try_lock(dev, lock_dir)
    if owner != 0:
        os.close(fd)
        raise OSError(errno.EBUSY, f"{dev} is locked by process {owner}")
    return fd


def close_tty(dev: str, fd: int, lock_dir: Optional[str] = None) -> None:
    """Close ``fd`` and remove the lock file of ``dev``."""
    with contextlib.suppress(OSError):
        os.close(fd)
    with contextlib.suppress(OSError):
        os.unlink(lock_path(dev, lock_dir))


def write_all(fd: int, data: bytes) -> int:
    """Write ``data`` to ``fd``, retrying transient failures; return bytes written."""
    view = memoryview(bytes(data))
    total = 0
    retries = _MAX_WRITE_RETRIES
    while view:
        try:
            written = os.write(fd, view)
        except (InterruptedError, BlockingIOError):
            retries -= 1
            if retries:
                continue
            break
        except OSError:
            break
        if written <= 0:
            break
        retries = _MAX_WRITE_RETRIES
        view = view[written:]
        total += written
    return total
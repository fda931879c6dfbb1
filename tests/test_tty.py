import errno
import os

import pytest

from quecmodem.tty import close_tty, lock_path, open_tty, try_lock, write_all


def test_lock_path_uses_basename(tmp_path):
    device = tmp_path / "ttyUSB0"
    device.write_text("")
    assert lock_path(str(device), str(tmp_path)) == os.path.join(str(tmp_path), "LCK..ttyUSB0")


def test_lock_path_follows_symlink(tmp_path):
    target = tmp_path / "real0"
    target.write_text("")
    alias = tmp_path / "alias"
    alias.symlink_to(target)
    assert lock_path(str(alias), str(tmp_path)).endswith("LCK..real0")


def test_try_lock_free_creates_lock(tmp_path):
    device = str(tmp_path / "dev0")
    assert try_lock(device, str(tmp_path)) == 0
    with open(lock_path(device, str(tmp_path))) as handle:
        assert handle.read() == str(os.getpid())


def test_try_lock_held_by_live_process(tmp_path):
    device = str(tmp_path / "dev1")
    with open(lock_path(device, str(tmp_path)), "w") as handle:
        handle.write(f"{os.getpid()}\n")
    assert try_lock(device, str(tmp_path)) == os.getpid()


def test_try_lock_stale_pid_is_replaced(tmp_path):
    device = str(tmp_path / "dev2")
    path = lock_path(device, str(tmp_path))
    with open(path, "w") as handle:
        handle.write("99999999")
    assert try_lock(device, str(tmp_path)) == 0
    with open(path) as handle:
        assert handle.read() == str(os.getpid())


def test_try_lock_garbage_is_replaced(tmp_path):
    device = str(tmp_path / "dev3")
    path = lock_path(device, str(tmp_path))
    with open(path, "w") as handle:
        handle.write("garbage")
    assert try_lock(device, str(tmp_path)) == 0
    with open(path) as handle:
        assert handle.read() == str(os.getpid())


def test_write_all_pipe():
    read_fd, write_fd = os.pipe()
    try:
        assert write_all(write_fd, b"hello") == 5
        assert os.read(read_fd, 5) == b"hello"
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_write_all_bad_fd():
    read_fd, write_fd = os.pipe()
    os.close(read_fd)
    os.close(write_fd)
    assert write_all(write_fd, b"data") == 0


def test_open_tty_regular_file_fails(tmp_path):
    regular = tmp_path / "plain"
    regular.write_text("")
    with pytest.raises(OSError) as info:
        open_tty(str(regular), str(tmp_path))
    assert info.value.errno == errno.ENOTTY
    assert not os.path.exists(lock_path(str(regular), str(tmp_path)))


def test_open_and_close_pty(tmp_path):
    master, slave = os.openpty()
    try:
        name = os.ttyname(slave)
        fd = open_tty(name, str(tmp_path))
        lock = lock_path(name, str(tmp_path))
        assert os.path.exists(lock)
        close_tty(name, fd, str(tmp_path))
        assert not os.path.exists(lock)
        with pytest.raises(OSError):
            os.fstat(fd)
    finally:
        os.close(master)
        os.close(slave)


def test_open_tty_locked(tmp_path):
    master, slave = os.openpty()
    try:
        name = os.ttyname(slave)
        with open(lock_path(name, str(tmp_path)), "w") as handle:
            handle.write(str(os.getpid()))
        with pytest.raises(OSError) as info:
            open_tty(name, str(tmp_path))
        assert info.value.errno == errno.EBUSY
    finally:
        os.close(master)
        os.close(slave)
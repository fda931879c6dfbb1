"""Listing of USB serial modem ports and their identity."""

from __future__ import annotations

import argparse
import os
import re
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence, TextIO

from .memsearch import memmem
from .tty import close_tty, open_tty, write_all

SYS_DRIVERS = "/sys/bus/usb/drivers"
PORT_NUMBER = "port_number"

_BUFFER_SIZE = 4096
_OK = b"\r\nOK\r\n"
_ERROR = b"\r\nERROR\r\n"
_ATI = b"ATI\r"
_CIMI = b"AT+CIMI\r"
_ENTRY_RE = re.compile(r"\s*([+-]?\d+)-([^:]{1,39}):\s*([+-]?\d+)\.\s*([+-]?\d+)")


@dataclass
class DevDescr:
    """One USB interface bound to a serial driver."""

    busnum: int
    devpath: str
    configuration: int
    interfaceno: int
    port: str


@dataclass
class ModemInfo:
    """Identity strings reported by a modem."""

    manufacturer: Optional[str] = None
    model: Optional[str] = None
    imei: Optional[str] = None
    imsi: Optional[str] = None


def read_result(fd: int) -> Optional[str]:
    """Read a command response from ``fd`` up to the final OK.

    Returns the text before OK, or None on ERROR, end of file or a full buffer.
    """
    buffer = b""
    while True:
        try:
            chunk = os.read(fd, _BUFFER_SIZE - len(buffer))
        except OSError:
            return None
        if not chunk:
            return None
        buffer += chunk
        found = memmem(buffer, _OK)
        if found is not None:
            return buffer[:found].decode("latin-1")
        if memmem(buffer, _ERROR) is not None:
            return None


def count_lines(text: str) -> int:
    """Number of CRLF-separated lines in ``text``."""
    return text.count("\r\n") + 1


def split_results(text: str) -> List[str]:
    """Split a response into its non-empty CRLF-separated lines."""
    return [line for line in text.split("\r\n") if line]


def get_info_item(lines: Sequence[str], name: str) -> Optional[str]:
    """Value of the first line starting with ``name``, without leading spaces."""
    for line in lines:
        if line.startswith(name):
            return line[len(name):].lstrip(" ")
    return None


def _command(fd: int, command: bytes) -> Optional[List[str]]:
    write_all(fd, command)
    text = read_result(fd)
    return None if text is None else split_results(text)


def get_info(port: str, lock_dir: Optional[str] = None) -> Optional[ModemInfo]:
    """Ask the modem on ``port`` for its identity; None if nothing was learnt."""
    try:
        fd = open_tty(port, lock_dir)
    except OSError:
        return None
    info = ModemInfo()
    try:
        lines = _command(fd, _ATI)
        if lines is not None:
            info.manufacturer = get_info_item(lines, "Manufacturer:")
            info.model = get_info_item(lines, "Model:")
            info.imei = get_info_item(lines, "IMEI:")
        lines = _command(fd, _CIMI)
        if lines:
            echo = _CIMI.decode()
            index = 1 if lines[0].startswith(echo) else 0
            if index < len(lines):
                info.imsi = lines[index]
    finally:
        close_tty(port, fd, lock_dir)
    if info.manufacturer or info.model or info.imei or info.imsi:
        return info
    return None


def find_port(path: str) -> Optional[str]:
    """Return '/dev/<name>' for the first child of ``path`` that is a serial port."""
    try:
        names = sorted(os.listdir(path))
    except OSError:
        return None
    for name in names:
        if os.path.exists(os.path.join(path, name, PORT_NUMBER)):
            return f"/dev/{name}"
    return None


def discover_driver(driver: str, sys_root: str = SYS_DRIVERS) -> List[DevDescr]:
    """List the interfaces bound to ``driver`` that expose a serial port."""
    base = os.path.join(sys_root, driver)
    try:
        names = sorted(os.listdir(base))
    except OSError:
        return []
    devices = []
    for name in names:
        match = _ENTRY_RE.match(name)
        if not match:
            continue
        path = os.path.realpath(os.path.join(base, name))
        port = find_port(path)
        if port is None:
            continue
        devices.append(
            DevDescr(
                busnum=int(match.group(1)),
                devpath=match.group(2),
                configuration=int(match.group(3)),
                interfaceno=int(match.group(4)),
                port=port,
            )
        )
    return devices


def _text(value: Optional[str]) -> str:
    return "(null)" if value is None else value


def _report(devices: Sequence[DevDescr], lock_dir: Optional[str], out: TextIO) -> None:
    for dev in devices:
        if dev.interfaceno == 0:
            print(f"Bus: {dev.busnum} Dev: {dev.devpath} Conf: {dev.configuration}", file=out)
            info = get_info(dev.port, lock_dir)
            if info is not None:
                print(
                    f"Manufacturer: {_text(info.manufacturer)}  Model: {_text(info.model)} "
                    f"IMEI: {_text(info.imei)} IMSI: {_text(info.imsi)}",
                    file=out,
                )
        print(f"\tInterface: {dev.interfaceno} Port: {dev.port}", file=out)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """List modem ports of the 'option' driver and of any drivers named."""
    parser = argparse.ArgumentParser(description="List USB modem serial ports.")
    parser.add_argument("drivers", nargs="*", help="additional USB driver names")
    parser.add_argument("--sys-root", default=SYS_DRIVERS, help="USB drivers directory")
    parser.add_argument("--lock-dir", default=None, help="directory for port lock files")
    args = parser.parse_args(argv)
    for driver in ["option", *args.drivers]:
        _report(discover_driver(driver, args.sys_root), args.lock_dir, sys.stdout)
    return 0
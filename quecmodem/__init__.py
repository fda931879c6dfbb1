"""Ring and mix buffers, serial port locking, SMS storage and USB modem port listing."""

__version__ = "1.1.0"

__all__ = [
    "memsearch",
    "ringbuffer",
    "mixbuffer",
    "tty",
    "smsdb",
    "outgoing",
    "usbscan",
]
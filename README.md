# quecmodem

Pure-Python building blocks for talking to GSM/LTE USB modems over their
serial AT ports.

## What is inside

- `quecmodem.memsearch.memmem(haystack, needle)`: returns the offset of the
  first occurrence of `needle` in `haystack`. It returns `None` if either is
  empty, if the needle is longer than the haystack, or if there is no match.
- `quecmodem.ringbuffer.RingBuffer(size)`: a fixed-size circular byte buffer.
  `write` copies data in, up to the free space. `read_all`, `read_n`,
  `read_until_char` and `read_until` peek at the data without removing it,
  and find terminators that wrap around the end of the buffer. `consume`
  advances the read position. `compare` tells whether the buffered data
  starts with given bytes. `write_regions` and `commit_write` let you fill
  the free space in place.
- `quecmodem.mixbuffer.MixBuffer(size)` and `MixStream`: a ring buffer shared
  by several attached streams. It adds their native-endian 16-bit signed
  samples together, clipping at the int16 limits. Each stream keeps its own
  write position. `consume` moves every stream along with the read position.
- `quecmodem.tty`: opens a serial port raw at 115200 8N1 with hardware flow
  control (`open_tty`) and guards it with a UUCP-style `LCK..<name>` lock
  file (`lock_path`, `try_lock`). `close_tty` closes the port and removes
  the lock. `write_all` retries interrupted writes. The default lock
  directory is `/var/lock`, or `/var/spool/lock` on FreeBSD, and every
  function takes a `lock_dir` to override it.
- `quecmodem.smsdb.SmsDb(path, csms_ttl)`: an SQLite store. `put` collects
  the parts of a concatenated incoming message and returns the whole text
  once every part is present. `get_refid` hands out the next message
  reference (0..255) per device and destination. `transaction()` is a
  context manager around one locked transaction. Errors are raised as
  `SmsDbError`.
- `quecmodem.outgoing.OutgoingStore(db)`: tracks outgoing messages and their
  parts in the same database. It has `add`, `part_put`, `part_status`,
  `clear` and `purge_one`. When a message is finished or dropped, you get an
  `OutgoingPayload` with its destination, its stored payload and, for
  delivery reports, the status of every part.
- `quecmodem.usbscan`: lists the USB interfaces bound to a serial driver
  under `/sys/bus/usb/drivers` (`discover_driver`, `find_port`). It asks
  each modem for its manufacturer, model, IMEI and IMSI (`get_info`), using
  `ATI` and `AT+CIMI`.

## Installing

    pip install .

## Examples

Reassembling a two-part message:

```python
from quecmodem.smsdb import SmsDb

with SmsDb("/tmp/sms.sqlite3", csms_ttl=600) as db:
    db.put("dev0", "12345", 7, 2, 1, "Hello, ")
    count, text = db.put("dev0", "12345", 7, 2, 2, "world")
    # count == 2, text == "Hello, world"
```

Tracking an outgoing message without delivery reports:

```python
from quecmodem.outgoing import OutgoingStore
from quecmodem.smsdb import SmsDb

with SmsDb(":memory:", csms_ttl=600) as db:
    store = OutgoingStore(db)
    uid = store.add("dev0", "12345", 1, 3600, False, b"my-payload")
    done = store.part_put(uid, db.get_refid("dev0", "12345"))
    # done.dst == "12345", done.payload == b"my-payload"
```

Looking for a terminator in a ring buffer:

```python
from quecmodem.ringbuffer import RingBuffer

rb = RingBuffer(64)
rb.write(b"+CSQ: 20,99\r\nOK\r\n")
line = rb.read_until(b"\r\n")      # b"+CSQ: 20,99"
rb.consume(len(line) + 2)
```

## Command line

    quecmodem-discovery [--sys-root DIR] [--lock-dir DIR] [driver ...]

This checks the `option` driver and any other drivers you name. For each
interface it prints the bus, device path, interface number and `/dev` port.
For interface 0 it also queries the modem's identity.

## What it does not do

The package does not encode or decode SMS PDUs. Message text reaches
`SmsDb` and `OutgoingStore` already decoded. The package also cannot pick
out a particular modem's data and voice ports by IMEI or IMSI: the command
line tool only lists ports and the identities the modems report. There is
no AT command queue, call handling or audio path. The buffers and the store
are the parts such a channel would be built from.

## Running the tests

    pip install .[test]
    pytest
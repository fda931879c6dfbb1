from array import array

import pytest

from quecmodem.mixbuffer import MixBuffer, MixStream


def _pcm(*samples):
    return array("h", samples).tobytes()


def _samples(data):
    return list(array("h", data))


def test_attach_detach_counts():
    mb = MixBuffer(32)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    assert mb.stream_count() == 2
    mb.detach(first)
    assert mb.stream_count() == 1
    with pytest.raises(ValueError):
        mb.detach(first)


def test_single_stream_passes_data_through():
    mb = MixBuffer(32)
    stream = MixStream()
    mb.attach(stream)
    data = _pcm(100, -200, 300)
    assert mb.write(stream, data) == len(data)
    assert mb.read_all() == data
    assert mb.used() == len(data)


def test_two_streams_are_summed():
    mb = MixBuffer(32)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    mb.write(first, _pcm(100, 200, 300))
    mb.write(second, _pcm(1, 2))
    assert _samples(mb.read_all()) == [100 + 1, 200 + 2, 300]
    assert mb.used() == len(_pcm(100, 200, 300))


def test_mixing_saturates():
    mb = MixBuffer(16)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    mb.write(first, _pcm(30000, -30000))
    mb.write(second, _pcm(30000, -30000))
    assert _samples(mb.read_all()) == [32767, -32768]


def test_longer_stream_extends_buffer():
    mb = MixBuffer(32)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    mb.write(first, _pcm(5))
    mb.write(second, _pcm(7, 9, 11))
    assert _samples(mb.read_all()) == [5 + 7, 9, 11]
    assert mb.free(second) == 32 - len(_pcm(7, 9, 11))
    assert mb.free(first) == 32 - len(_pcm(5))


def test_write_clamps_to_stream_free():
    mb = MixBuffer(8)
    stream = MixStream()
    mb.attach(stream)
    data = _pcm(1, 2, 3, 4, 5, 6)
    assert mb.write(stream, data) == 8
    assert mb.free(stream) == 0
    assert mb.read_all() == data[:8]


def test_consume_releases_space_for_streams():
    mb = MixBuffer(8)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    mb.write(first, _pcm(1, 2, 3, 4))
    mb.write(second, _pcm(10))
    assert mb.consume(4) == 4
    assert mb.free(first) == 8 - 4
    assert mb.free(second) == 8
    assert mb.read_all() == _pcm(3, 4)


def test_mixing_after_wrap():
    mb = MixBuffer(8)
    first, second = MixStream(), MixStream()
    mb.attach(first)
    mb.attach(second)
    mb.write(first, _pcm(1, 2, 3))
    mb.consume(4)
    mb.write(first, _pcm(4, 5))
    mb.write(second, _pcm(10, 20, 30))
    assert _samples(mb.read_all()) == [3 + 10, 4 + 20, 5 + 30]
    assert mb.read_n(2) == _pcm(13)
    assert mb.read_n(100) is None
# filename: bit_stream.py

from bitarray import bitarray
from bitarray.util import ba2int, int2ba

# Returned by read_bits when the stream cannot supply the requested bits
EOF = -1


class BitInputStream:
    """Sequential MSB-first bit reader over an in-memory copy of the input.

    `source` may be bytes-like or a binary file object; a file object is
    read to the end once, so reset() never has to seek the underlying file.
    """

    def __init__(self, source):
        if hasattr(source, "read"):
            source = source.read()
        self._bits = bitarray(endian="big")
        self._bits.frombytes(bytes(source))
        self._pos = 0
        self.bits_read = 0

    def read_bits(self, n):
        if n <= 0:
            raise ValueError(f"bit count must be positive, got {n}")
        end = self._pos + n
        if end > len(self._bits):
            return EOF
        value = ba2int(self._bits[self._pos:end])
        self._pos = end
        self.bits_read += n
        return value

    def reset(self):
        self._pos = 0

    def remaining(self):
        return len(self._bits) - self._pos


class BitOutputStream:
    """Buffered MSB-first bit writer.

    Nothing reaches `sink` until close(), which pads the last byte with
    zero bits. Without a sink the packed bytes are kept for getvalue().
    """

    def __init__(self, sink=None):
        self._sink = sink
        self._bits = bitarray(endian="big")
        self._data = None
        self.bits_written = 0

    @property
    def closed(self):
        return self._data is not None

    def write_bits(self, n, value):
        if self.closed:
            raise ValueError("write to closed BitOutputStream")
        if n <= 0:
            raise ValueError(f"bit count must be positive, got {n}")
        self._bits.extend(int2ba(value & ((1 << n) - 1), length=n, endian="big"))
        self.bits_written += n

    def write_code(self, code):
        if self.closed:
            raise ValueError("write to closed BitOutputStream")
        self._bits.extend(code)
        self.bits_written += len(code)

    def close(self):
        if self.closed:
            return
        # tobytes() fills the unused bits of the final byte with zeros
        self._data = self._bits.tobytes()
        if self._sink is not None:
            self._sink.write(self._data)
            if hasattr(self._sink, "flush"):
                self._sink.flush()

    def getvalue(self):
        if not self.closed:
            raise ValueError("BitOutputStream has not been closed")
        return self._data

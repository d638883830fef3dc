import io
import logging

import bitstring

from .exceptions import TruncatedData, UnpackException


logger = logging.getLogger(__name__)

ULEB128_MAX_BYTES = 10


class Stream(object):
    '''This is a simple wrapper around an in-memory buffer to
    uniform its properties: every read is bounds checked and a short
    read is reported as TruncatedData instead of silently returning less.'''
    def __init__(self, obj, name=None):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self.name = name
        self.obj = obj

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, None)
        if init_method is None:
            raise ValueError('\'%s\' can\'t be used as a stream' % self.obj.__class__.__name__)

        init_method()

    def __getattr__(self, name):
        return getattr(self.obj, name)

    def __len__(self):
        return self.size

    def __repr__(self):
        return '<%s(%s, size=%d)>' % (self.__class__.__name__, self.name or '', self.size)

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.size = len(self.obj)
        self.obj = io.BytesIO(self.obj)

    def remaining(self):
        return self.size - self.obj.tell()

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        if offset < 0 or offset > self.size:
            raise TruncatedData(f'offset {offset} is outside of {self.name or "stream"} of size {self.size}')

        self.obj.seek(offset)

        return self

    def read(self, n):
        if n < 0:
            raise UnpackException(f'negative read of {n} bytes')

        offset = self.obj.tell()
        # a corrupted size can be larger than what BytesIO.read() accepts
        data = self.obj.read(n) if n <= self.size - offset else b''

        if len(data) != n:
            raise TruncatedData(
                f'{offset} + {n} bytes are out of bounds for {self.name or "stream"} of size {self.size}')

        return data

    def read_all(self):
        '''Returns everything from the actual position to the end'''
        return self.obj.read()

    def read_uleb128(self):
        value = 0
        for idx in range(ULEB128_MAX_BYTES):
            byte = self.read(1)[0]
            value |= (byte & 0x7f) << (7 * idx)
            if not byte & 0x80:
                return value

        raise UnpackException(f'uleb128 longer than {ULEB128_MAX_BYTES} bytes at offset {self.obj.tell()}')


def pack_uleb128(value):
    if value < 0:
        raise ValueError('uleb128 can only encode non negative integers, got %d' % value)

    result = bytearray()
    while True:
        byte = value & 0x7f
        value >>= 7
        if value:
            result.append(byte | 0x80)
        else:
            result.append(byte)
            return bytes(result)


class BitReader(object):
    '''Read bit-packed records, MSB first, on top of bitstring.

    The position is kept here and the data is only sliced, so that
    anything bitstring exports as Bits is enough.'''

    def __init__(self, data, name=None):
        self.name = name
        self._bits = bitstring.Bits(bytes=data)
        self._pos = 0

    @property
    def remaining(self):
        return len(self._bits) - self._pos

    def _take(self, width):
        if width > self.remaining:
            raise TruncatedData(
                f'reading {width} bits at bit {self._pos} of {self.name or "bitstream"} of {len(self._bits)} bits')

        chunk = self._bits[self._pos:self._pos + width]
        self._pos += width

        return chunk

    def read_uint(self, width):
        # zero width is legit: a table with a single entry needs no bits
        if width == 0:
            return 0

        return self._take(width).uint

    def read_bool(self):
        return bool(self.read_uint(1))

    def read_ue(self):
        '''Unsigned exponential Golomb: n zeros, then the n + 1 bits of value + 1'''
        leading_zeros = 0
        while not self.read_uint(1):
            leading_zeros += 1

        return (1 << leading_zeros) - 1 + self.read_uint(leading_zeros)

    def read_bytes(self, n):
        return self._take(n * 8).tobytes()

    def padding(self):
        '''Consume the bits up to the byte boundary and return them.'''
        return self.read_uint((-self._pos) % 8)


class BitWriter(object):

    def __init__(self):
        self._bits = bitstring.BitArray()

    def __len__(self):
        return len(self._bits)

    def write_uint(self, value, width):
        if width == 0:
            if value != 0:
                raise ValueError(f'value {value} doesn\'t fit in zero bits')
            return

        if value < 0 or value >= (1 << width):
            raise ValueError(f'value {value} doesn\'t fit in {width} bits')

        self._bits.append(bitstring.Bits(uint=value, length=width))

    def write_bool(self, value):
        self.write_uint(1 if value else 0, 1)

    def write_ue(self, value):
        if value < 0:
            raise ValueError(f'exp-Golomb codes are unsigned, got {value}')

        width = (value + 1).bit_length()
        self.write_uint(0, width - 1)
        self.write_uint(value + 1, width)

    def write_bytes(self, data):
        self._bits.append(bitstring.Bits(bytes=data))

    def getvalue(self):
        '''Return the bytes, zero padded up to the byte boundary'''
        pad = (-len(self._bits)) % 8
        bits = self._bits + bitstring.Bits(uint=0, length=pad) if pad else self._bits

        return bits.tobytes()


def unpack_uleb128(data, offset=0):
    '''Decode a uleb128 directly from a buffer, returns the value and the offset after it.'''
    value = 0
    for idx in range(ULEB128_MAX_BYTES):
        if offset + idx >= len(data):
            raise TruncatedData(f'uleb128 at offset {offset} runs past the end of {len(data)} bytes')

        byte = data[offset + idx]
        value |= (byte & 0x7f) << (7 * idx)
        if not byte & 0x80:
            return value, offset + idx + 1

    raise UnpackException(f'uleb128 longer than {ULEB128_MAX_BYTES} bytes at offset {offset}')

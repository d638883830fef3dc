'''
# Typed values

Each field record has a type tag and a 4 bytes cell. Small values live
directly in the cell, the others live in the raw data blob and the cell
contains their offset. Strings and byte arrays are stored in the blob as
a uleb128 length followed by the bytes.

A string cell with the highest bit set doesn't point into the blob but
indexes the name table with the remaining 31 bits.

Everything is little endian.
'''
import logging
import struct

from .enum import ValueType
from .exceptions import (
    BlobRangeError,
    MalformedValue,
    MissingNameTable,
    UnpackException,
    UnsupportedType,
    ValueOutOfRange,
)
from .streams import pack_uleb128, unpack_uleb128


logger = logging.getLogger(__name__)

CELL_SIZE = 4
NAME_FLAG = 1 << 31

PAYLOAD_FORMATS = {
    ValueType.INT:     '<i',
    ValueType.FLOAT:   '<f',
    ValueType.FLOAT2:  '<2f',
    ValueType.FLOAT3:  '<3f',
    ValueType.FLOAT4:  '<4f',
    ValueType.INT2:    '<2i',
    ValueType.INT3:    '<3i',
    ValueType.BOOL:    '<I',
    ValueType.COLOR:   '<4B',
    ValueType.FLOAT12: '<12f',
    ValueType.LONG:    '<q',
    ValueType.UINT:    '<I',
    ValueType.DOUBLE:  '<d',
}

INLINE_TYPES = frozenset({
    ValueType.INT,
    ValueType.FLOAT,
    ValueType.BOOL,
    ValueType.COLOR,
    ValueType.UINT,
})

VARIABLE_TYPES = frozenset({
    ValueType.STR,
    ValueType.BYTES,
})

VECTOR_TYPES = {
    ValueType.FLOAT2:  (2, float),
    ValueType.FLOAT3:  (3, float),
    ValueType.FLOAT4:  (4, float),
    ValueType.FLOAT12: (12, float),
    ValueType.INT2:    (2, int),
    ValueType.INT3:    (3, int),
}

INT_RANGES = {
    ValueType.INT:  (-(1 << 31), (1 << 31) - 1),
    ValueType.UINT: (0, (1 << 32) - 1),
    ValueType.LONG: (-(1 << 63), (1 << 63) - 1),
}
INT32_RANGE = INT_RANGES[ValueType.INT]


def get_type(tag) -> ValueType:
    if isinstance(tag, ValueType):
        return tag

    try:
        return ValueType(tag)
    except ValueError:
        raise UnsupportedType(tag)


def _as_f32(value):
    try:
        return struct.unpack('<f', struct.pack('<f', float(value)))[0]
    except (OverflowError, struct.error, TypeError, ValueError) as e:
        raise ValueOutOfRange(f'{value!r} is not representable as a 32 bit float: {e}')


def _as_int(value, bounds):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueOutOfRange(f'{value!r} is not an integer')

    low, high = bounds
    if not low <= value <= high:
        raise ValueOutOfRange(f'{value} is outside of [{low}, {high}]')

    return value


def _normalize(type, value):
    '''Check the value fits its type and bring it to the precision it's stored with.'''
    if type == ValueType.STR:
        if not isinstance(value, str):
            raise ValueOutOfRange(f'{value!r} is not a string')
        try:
            value.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ValueOutOfRange(f'{value!r} can\'t be encoded as UTF-8: {e}')
        return value

    if type == ValueType.BYTES:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ValueOutOfRange(f'{value!r} is not a bytes-like object')
        return bytes(value)

    if type in INT_RANGES:
        return _as_int(value, INT_RANGES[type])

    if type == ValueType.FLOAT:
        return _as_f32(value)

    if type == ValueType.DOUBLE:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueOutOfRange(f'{value!r} is not a number')
        return float(value)

    if type == ValueType.BOOL:
        if not isinstance(value, bool) and value not in (0, 1):
            raise ValueOutOfRange(f'{value!r} is not a boolean')
        return bool(value)

    if type == ValueType.COLOR:
        components = tuple(value)
        if len(components) != 4:
            raise ValueOutOfRange(f'a color has 4 components, got {len(components)}')
        return tuple(_as_int(_, (0, 0xff)) for _ in components)

    n, kind = VECTOR_TYPES[type]
    components = tuple(value)
    if len(components) != n:
        raise ValueOutOfRange(f'{type.name} has {n} components, got {len(components)}')

    if kind is float:
        return tuple(_as_f32(_) for _ in components)

    return tuple(_as_int(_, INT32_RANGE) for _ in components)


class TypedValue(object):
    '''Immutable couple (type, value).

    The value is checked when the instance is created: something that
    doesn't fit its type can't reach the encoder.'''
    __slots__ = ('_type', '_value')

    def __init__(self, type, value):
        self._type = get_type(type)
        self._value = _normalize(self._type, value)

    @classmethod
    def infer(cls, value):
        '''Pick the type from the python value'''
        if isinstance(value, TypedValue):
            return value
        if isinstance(value, bool):
            return cls(ValueType.BOOL, value)
        if isinstance(value, int):
            low, high = INT32_RANGE
            return cls(ValueType.INT if low <= value <= high else ValueType.LONG, value)
        if isinstance(value, float):
            return cls(ValueType.FLOAT, value)
        if isinstance(value, str):
            return cls(ValueType.STR, value)
        if isinstance(value, (bytes, bytearray)):
            return cls(ValueType.BYTES, value)

        raise UnsupportedType(type(value).__name__)

    @property
    def type(self):
        return self._type

    @property
    def value(self):
        return self._value

    def __eq__(self, other):
        if not isinstance(other, TypedValue):
            return NotImplemented
        # comparing the encoded payload makes NaN and -0.0 behave
        return self._type == other._type and pack_payload(self) == pack_payload(other)

    def __hash__(self):
        return hash((self._type, pack_payload(self)))

    def __repr__(self):
        return '<%s(%s, %r)>' % (self.__class__.__name__, self._type.name, self._value)


def pack_payload(value: TypedValue) -> bytes:
    '''The bytes of the value without any indirection'''
    if value.type == ValueType.STR:
        return value.value.encode('utf-8')

    if value.type == ValueType.BYTES:
        return value.value

    fmt = PAYLOAD_FORMATS[value.type]

    if value.type == ValueType.COLOR:
        r, g, b, a = value.value
        return struct.pack(fmt, b, g, r, a)

    if value.type in VECTOR_TYPES:
        return struct.pack(fmt, *value.value)

    return struct.pack(fmt, value.value)


def unpack_payload(type: ValueType, raw: bytes):
    '''Inverse of pack_payload(), returns the python value'''
    if type == ValueType.STR:
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedValue(f'string is not valid UTF-8: {raw!r}') from e

    if type == ValueType.BYTES:
        return raw

    unpacked = struct.unpack(PAYLOAD_FORMATS[type], raw)

    if type == ValueType.COLOR:
        b, g, r, a = unpacked
        return (r, g, b, a)

    if type == ValueType.BOOL:
        if unpacked[0] not in (0, 1):
            raise MalformedValue(f'boolean cell contains {unpacked[0]:#x}')
        return bool(unpacked[0])

    if type in VECTOR_TYPES:
        return unpacked

    return unpacked[0]


def payload_size(type: ValueType) -> int:
    return struct.calcsize(PAYLOAD_FORMATS[type])


def _slice_blob(blob, offset, size):
    if offset + size > len(blob):
        raise BlobRangeError(f'{offset} + {size} bytes are outside of the blob of {len(blob)} bytes')

    return bytes(blob[offset:offset + size])


def decode_value(tag, cursor, blob: bytes, names=None) -> TypedValue:
    '''Read one cell from the cursor and build the value it represents.

    The cursor is advanced by exactly CELL_SIZE bytes, whatever the type.'''
    type = get_type(tag)
    cell = cursor.read(CELL_SIZE)

    if type in INLINE_TYPES:
        return TypedValue(type, unpack_payload(type, cell))

    offset = struct.unpack('<I', cell)[0]

    if type == ValueType.STR and offset & NAME_FLAG:
        if names is None:
            raise MissingNameTable('string value references the name table but there is none')
        return TypedValue(type, names.lookup(offset & ~NAME_FLAG))

    if type in VARIABLE_TYPES:
        try:
            length, start = unpack_uleb128(blob, offset)
        except UnpackException as e:
            raise BlobRangeError(f'length of {type.name} at blob offset {offset}: {e.message}') from e
        return TypedValue(type, unpack_payload(type, _slice_blob(blob, start, length)))

    return TypedValue(type, unpack_payload(type, _slice_blob(blob, offset, payload_size(type))))


def encode_value(value: TypedValue, blob: bytearray = None, names=None) -> bytes:
    '''Return the cell of the value, appending to the blob what doesn't fit in it.

    When a name table is passed, strings contained in it are encoded as
    references to it instead of being copied in the blob.'''
    if value.type in INLINE_TYPES:
        return pack_payload(value)

    if value.type == ValueType.STR and names is not None and value.value in names:
        return struct.pack('<I', NAME_FLAG | names.index_of(value.value))

    if blob is None:
        raise ValueError(f'a {value.type.name} value needs a blob to be encoded')

    offset = len(blob)
    limit = NAME_FLAG if value.type == ValueType.STR else 1 << 32
    if offset >= limit:
        raise ValueOutOfRange(f'blob offset {offset} doesn\'t fit in a cell')

    payload = pack_payload(value)
    if value.type in VARIABLE_TYPES:
        blob += pack_uleb128(len(payload))
    blob += payload

    return struct.pack('<I', offset)

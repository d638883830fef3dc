'''
# Text form

Human readable rendition of a tree, one entry per line:

    name:t="some string"
    speed:r=1.25
    position:p3=1, 2.5, 3
    enabled:b=yes
    tint:c=255, 128, 0, 255
    tm:m=[[1, 0, 0] [0, 1, 0] [0, 0, 1] [0, 0, 0]]
    child {
    	depth:i=2
    }

The suffix after the colon is the type of the value. Names that are not
plain identifiers and string values are quoted with JSON escapes. A NaN
other than the plain one is written as the hex of its bits (0xffc00000).
'''
import json
import logging
import math
import re
import struct

from .enum import ValueType
from .exceptions import BlkException, TextFormatError
from .tree import Block
from .values import TypedValue, VECTOR_TYPES


logger = logging.getLogger(__name__)

INDENT = '\t'

SUFFIXES = {
    ValueType.STR:     't',
    ValueType.INT:     'i',
    ValueType.FLOAT:   'r',
    ValueType.FLOAT2:  'p2',
    ValueType.FLOAT3:  'p3',
    ValueType.FLOAT4:  'p4',
    ValueType.INT2:    'ip2',
    ValueType.INT3:    'ip3',
    ValueType.BOOL:    'b',
    ValueType.COLOR:   'c',
    ValueType.FLOAT12: 'm',
    ValueType.LONG:    'i64',
    ValueType.UINT:    'u',
    ValueType.DOUBLE:  'd',
    ValueType.BYTES:   'x',
}
TYPES_BY_SUFFIX = {value: key for key, value in SUFFIXES.items()}

IDENTIFIER = re.compile(r'^[A-Za-z_][A-Za-z0-9_.\-]*$')
MATRIX_ROW = re.compile(r'\[([^\[\]]*)\]')

_decoder = json.JSONDecoder()


def format_nan(value: float, format='<f') -> str:
    '''The sign and the payload of a NaN are kept writing its bits in hex,
    the plain NaN is just "nan".'''
    raw = struct.pack(format, value)
    if raw == struct.pack(format, math.nan):
        return 'nan'

    return '0x' + raw[::-1].hex()


def parse_float(text: str, format='<f') -> float:
    if not text.startswith('0x'):
        return float(text)

    raw = bytes.fromhex(text[2:])
    if len(raw) != struct.calcsize(format):
        raise ValueError(f'{text!r} has the wrong number of bits')

    return struct.unpack(format, raw[::-1])[0]


def format_float(value: float) -> str:
    '''Shortest representation of a 32 bit float that reads back to the same value'''
    if math.isnan(value):
        return format_nan(value)

    for precision in range(1, 10):
        text = '%.*g' % (precision, value)
        if TypedValue(ValueType.FLOAT, float(text)).value == value:
            return repr(float(text))

    return repr(value)


def format_name(name: str) -> str:
    return name if IDENTIFIER.match(name) else json.dumps(name, ensure_ascii=False)


def format_value(value: TypedValue) -> str:
    type = value.type
    if type == ValueType.STR:
        return json.dumps(value.value, ensure_ascii=False)
    if type == ValueType.BYTES:
        return '"%s"' % value.value.hex()
    if type == ValueType.BOOL:
        return 'yes' if value.value else 'no'
    if type == ValueType.FLOAT:
        return format_float(value.value)
    if type == ValueType.DOUBLE:
        return format_nan(value.value, '<d') if math.isnan(value.value) else repr(value.value)
    if type == ValueType.FLOAT12:
        rows = [value.value[idx:idx + 3] for idx in range(0, 12, 3)]
        return '[%s]' % ' '.join('[%s]' % ', '.join(format_float(_) for _ in row) for row in rows)
    if type in VECTOR_TYPES and VECTOR_TYPES[type][1] is float:
        return ', '.join(format_float(_) for _ in value.value)
    if type == ValueType.COLOR or type in VECTOR_TYPES:
        return ', '.join(str(_) for _ in value.value)

    return str(value.value)


def dumps(block: Block) -> str:
    lines = []
    # None closes the block opened at that depth
    stack = [(0, block)]
    while stack:
        depth, current = stack.pop()
        if current is None:
            lines.append('%s}' % (INDENT * depth))
            continue

        if depth:
            lines.append('%s%s {' % (INDENT * (depth - 1), format_name(current.name)))

        indent = INDENT * depth
        for param in current.params:
            lines.append('%s%s:%s=%s' % (indent, format_name(param.name), SUFFIXES[param.type], format_value(param.value)))

        for child in reversed(current.blocks):
            stack.append((depth, None))
            stack.append((depth + 1, child))

    return '\n'.join(lines) + '\n' if lines else ''


def _parse_quoted(text):
    '''Return the decoded quoted string at the start of text and what follows it'''
    try:
        value, end = _decoder.raw_decode(text)
    except json.JSONDecodeError as e:
        raise ValueError(f'invalid quoted string: {e.msg}')

    if not isinstance(value, str):
        raise ValueError(f'expected a quoted string, found {text!r}')

    return value, text[end:]


def _parse_name(text):
    if text.startswith('"'):
        return _parse_quoted(text)

    idx = text.find(':')
    if idx < 0:
        raise ValueError(f'missing type in {text!r}')

    return text[:idx], text[idx:]


def _split_numbers(text, n, kind):
    components = [_.strip() for _ in text.split(',')]
    if len(components) != n:
        raise ValueError(f'expected {n} components, found {len(components)}')

    return tuple(kind(_) for _ in components)


def parse_value(type: ValueType, text: str):
    if type in (ValueType.STR, ValueType.BYTES):
        value, rest = _parse_quoted(text)
        if rest.strip():
            raise ValueError(f'unexpected {rest!r} after the string')
        return value if type == ValueType.STR else bytes.fromhex(value)

    if type == ValueType.BOOL:
        if text not in ('yes', 'no', 'true', 'false'):
            raise ValueError(f'{text!r} is not a boolean')
        return text in ('yes', 'true')

    if type in (ValueType.INT, ValueType.LONG, ValueType.UINT):
        return int(text)

    if type == ValueType.FLOAT:
        return parse_float(text)

    if type == ValueType.DOUBLE:
        return parse_float(text, '<d')

    if type == ValueType.COLOR:
        return _split_numbers(text, 4, int)

    if type == ValueType.FLOAT12:
        rows = MATRIX_ROW.findall(text)
        if len(rows) != 4:
            raise ValueError(f'a matrix has 4 rows, found {len(rows)}')
        return sum((_split_numbers(_, 3, parse_float) for _ in rows), ())

    n, kind = VECTOR_TYPES[type]

    return _split_numbers(text, n, parse_float if kind is float else kind)


def _parse_entry(line):
    name, rest = _parse_name(line)
    if not rest.startswith(':'):
        raise ValueError(f'expected \':\' after the name, found {rest!r}')

    suffix, sep, text = rest[1:].partition('=')
    if not sep:
        raise ValueError('missing \'=\'')

    try:
        type = TYPES_BY_SUFFIX[suffix.strip()]
    except KeyError:
        raise ValueError(f'unknown type {suffix!r}')

    return name, TypedValue(type, parse_value(type, text.strip()))


def loads(text: str) -> Block:
    '''Parse the text form back into a tree'''
    root = Block()
    stack = [root]

    # splitlines() would also break on separators allowed inside quoted strings
    for lineno, line in enumerate(text.split('\n'), start=1):
        line = line.strip()
        if not line or line.startswith('//'):
            continue

        try:
            if line == '}':
                if len(stack) == 1:
                    raise ValueError('unbalanced \'}\'')
                stack.pop()
            elif line.endswith('{'):
                name = line[:-1].strip()
                if name.startswith('"'):
                    name, rest = _parse_quoted(name)
                    if rest.strip():
                        raise ValueError(f'unexpected {rest!r} after the block name')
                elif not name:
                    raise ValueError('block without name')
                stack.append(stack[-1].add_block(name))
            else:
                stack[-1].add_param(*_parse_entry(line))
        except (BlkException, ValueError) as e:
            raise TextFormatError(str(e), lineno=lineno) from e

    if len(stack) > 1:
        raise TextFormatError(f'block \'{stack[-1].name}\' is never closed')

    logger.debug('parsed %d lines' % lineno)

    return root

'''
# JSON export

Blocks become objects, params become their values. A block can contain
the same name more than once, by default all the occurrences are merged in
a list placed where the first one was.
'''
import json
import math

from .enum import ValueType
from .text import format_float
from .tree import Block, resolve_overrides
from .values import TypedValue, VECTOR_TYPES


def _number(value: float):
    # JSON has no way to keep the bits of a NaN
    return value if math.isnan(value) else float(format_float(value))


def value_to_json(value: TypedValue):
    type = value.type
    if type == ValueType.BYTES:
        return value.value.hex()
    if type == ValueType.FLOAT:
        return _number(value.value)
    if type == ValueType.FLOAT12:
        return [[_number(_) for _ in value.value[idx:idx + 3]] for idx in range(0, 12, 3)]
    if type in VECTOR_TYPES and VECTOR_TYPES[type][1] is float:
        return [_number(_) for _ in value.value]
    if type == ValueType.COLOR or type in VECTOR_TYPES:
        return list(value.value)

    return value.value


def _entries(block, apply_overrides):
    if apply_overrides:
        return resolve_overrides(block.params) + resolve_overrides(block.blocks)

    return [(_.name, _) for _ in block.params] + [(_.name, _) for _ in block.blocks]


def _to_json(root, merge_duplicates, apply_overrides):
    result = {}
    # the objects of the child blocks are placed first and filled later
    stack = [(root, result)]
    while stack:
        block, obj = stack.pop()
        grouped = {}
        for name, entry in _entries(block, apply_overrides):
            if isinstance(entry, Block):
                value = {}
                stack.append((entry, value))
            else:
                value = value_to_json(entry.value)

            if merge_duplicates:
                grouped.setdefault(name, []).append(value)
            else:
                # the last occurrence wins
                obj[name] = value

        for name, values in grouped.items():
            obj[name] = values[0] if len(values) == 1 else values

    return result


def to_json_obj(block: Block, merge_duplicates=True, apply_overrides=False):
    '''Return the tree as plain python objects ready for json.dumps()'''
    return _to_json(block, merge_duplicates, apply_overrides)


def to_json(block: Block, merge_duplicates=True, apply_overrides=False, indent=None) -> str:
    return json.dumps(
        to_json_obj(block, merge_duplicates=merge_duplicates, apply_overrides=apply_overrides),
        indent=indent,
        ensure_ascii=False,
    )

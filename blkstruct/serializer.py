'''
# Serializer

Inverse of the decoding pipeline: the tree is flattened in breadth first
order (record 0 is the root, the children of a block are contiguous, the
fields follow the order of their blocks), the values are written in the
blob in field order and the layout packs everything.

The name table keeps the order of the table the tree was decoded from, so
that a canonical file re-encodes to the same bytes.
'''
import logging

from .builder import BlockRecord, FieldRecord
from .compression import DEFAULT_COMPRESSION_LEVEL, compress
from .detect import (
    FAT_MARKER,
    TYPE_BYTES,
    CompressedHeader,
    RawHeader,
    RawZstdHeader,
)
from .enum import FormatVariant
from .exceptions import PackException
from .formats import get_layout
from .names import NameTable
from .tree import Block
from .values import encode_value


logger = logging.getLogger(__name__)


def flatten(root: Block, names, value_names=None):
    '''Return the field records, the block records and the blob describing the tree.

    value_names is the table whose strings are written as references
    instead of being copied in the blob.'''
    field_records = []
    block_records = []
    children = []
    blob = bytearray()

    order = [root]
    idx = 0
    while idx < len(order):
        block = order[idx]

        if idx and block.name is None:
            raise PackException(f'only the root block can be unnamed, found one at position {idx}')

        first_field = len(field_records) if block.params else None
        for param in block.params:
            try:
                cell = encode_value(param.value, blob, names=value_names)
            except PackException as e:
                e.chain.append(param.name)
                raise
            field_records.append(FieldRecord(names.index_of(param.name), param.type.value, cell))

        first_child = len(order) if block.blocks else None
        children.append(range(len(order), len(order) + len(block.blocks)))
        order.extend(block.blocks)

        block_records.append(BlockRecord(
            names.index_of(block.name) if idx else None,
            len(block.params),
            first_field,
            len(block.blocks),
            first_child,
        ))
        idx += 1

    # children always come after their father
    descendants = [0] * len(order)
    for idx in reversed(range(len(order))):
        descendants[idx] = sum(1 + descendants[_] for _ in children[idx])

    block_records = [
        record._replace(subtree_blocks=descendants[idx]) for idx, record in enumerate(block_records)
    ]

    logger.debug('flattened %d blocks and %d fields, blob of %d bytes' % (
        len(block_records), len(field_records), len(blob)))

    return field_records, block_records, bytes(blob)


def pack_header(variant: FormatVariant, body: bytes, dictionary=None, level=DEFAULT_COMPRESSION_LEVEL) -> bytes:
    '''Prepend the header to the body, compressing it when the variant requires it.'''
    if variant == FormatVariant.RAW:
        return RawHeader().raw + body

    if not variant.is_compressed:
        return bytes([TYPE_BYTES[variant]]) + body

    if variant == FormatVariant.FAT_ZSTD:
        body = FAT_MARKER + body

    if variant == FormatVariant.RAW_ZSTD:
        header = RawZstdHeader()
    else:
        header = CompressedHeader()
        header.type_id = TYPE_BYTES[variant]
    header.declared_size = len(body)

    payload = compress(body, level=level, dictionary=dictionary if variant.needs_dictionary else None)

    return header.raw + payload


def encode(block: Block, variant=FormatVariant.FAT, shared_names=None, dictionary=None,
           level=DEFAULT_COMPRESSION_LEVEL) -> bytes:
    '''Serialize the tree in the given variant.

    With shared_names (slim variants only) the file doesn't carry its own
    name table: every name must be in the shared one, and the string values
    found in it are written as references.'''
    if isinstance(variant, str):
        variant = FormatVariant[variant]

    if shared_names is not None and not variant.is_slim:
        raise PackException(f'{variant.name} can\'t rely on a shared name table')

    if variant.needs_dictionary and dictionary is None:
        raise PackException(f'{variant.name} needs a dictionary')

    if shared_names is not None:
        names = shared_names
        missing = [_ for _ in NameTable.from_tree(block) if _ not in names]
        if missing:
            raise PackException(f'names {missing[:8]} are not in the shared name table')
    else:
        names = NameTable.from_tree(block, base=block.names)

    field_records, block_records, blob = flatten(block, names, value_names=shared_names)

    layout = get_layout(variant.layout)
    body = layout.encode(names, field_records, block_records, blob, shared=shared_names is not None)

    logger.debug('encoded %s body of %d bytes' % (variant.name, len(body)))

    return pack_header(variant, body, dictionary=dictionary, level=level)

'''
# Block tree builder

The layouts reduce a file to two flat arrays: the field records (name,
type, cell) and the block records. A block record claims a contiguous
range of fields and a contiguous range of child blocks by means of
explicit counts, record 0 is the root.

The tree is assembled with an explicit stack, so adversarial nesting
can't exhaust the interpreter stack, and it's returned only when every
record has been consumed exactly once.
'''
import logging
from collections import namedtuple

from .enum import Compliant
from .exceptions import (
    BlkException,
    IndexOutOfBounds,
    MalformedBlockTree,
    MaxDepthExceeded,
    OverlappingBlockRange,
)
from .streams import Stream
from .tree import Block, Param
from .values import decode_value


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256


FieldRecord = namedtuple('FieldRecord', ['name_index', 'type_id', 'cell'])

# name_index is None for an unnamed block, first_field/first_child are
# meaningless when the corresponding count is zero, subtree_blocks is the
# number of descendants when the layout declares it
BlockRecord = namedtuple(
    'BlockRecord',
    ['name_index', 'field_count', 'first_field', 'child_count', 'first_child', 'subtree_blocks'],
    defaults=(None,),
)


def decode_params(names, field_records, blob, value_names=None):
    '''Decode the values of all the field records, in order'''
    cursor = Stream(b''.join(_.cell for _ in field_records), name='cells')
    params = []
    for idx, record in enumerate(field_records):
        try:
            name = names.lookup(record.name_index)
            value = decode_value(record.type_id, cursor, blob, names=value_names)
        except BlkException as e:
            e.chain.append('fields[%d]' % idx)
            raise
        params.append(Param(name, value))

    return params


def _claim(owners, start, count, owner, what):
    if count == 0:
        return

    if start is None or start < 0 or start + count > len(owners):
        raise IndexOutOfBounds(
            f'block {owner} claims {what} {start}..{(start or 0) + count} but there are {len(owners)}')

    for idx in range(start, start + count):
        if owners[idx] is not None:
            raise OverlappingBlockRange(
                f'block {owner} claims {what} {start}..{start + count} overlapping block {owners[idx]} at {idx}')
        owners[idx] = owner


def _check_subtree_sizes(block_records, order, compliant):
    descendants = [0] * len(block_records)
    for idx in reversed(order):
        record = block_records[idx]
        for child in range(record.first_child or 0, (record.first_child or 0) + record.child_count):
            descendants[idx] += 1 + descendants[child]

        if record.subtree_blocks is None or record.subtree_blocks == descendants[idx]:
            continue

        message = f'block {idx} declares {record.subtree_blocks} descendants but has {descendants[idx]}'
        if compliant & Compliant.SUBTREE_SIZE:
            raise MalformedBlockTree(message)
        logger.warning(message)


def build_tree(names, field_records, block_records, blob, max_depth=DEFAULT_MAX_DEPTH,
               value_names=None, compliant=Compliant.STRICT) -> Block:
    '''Assemble the tree described by the flat record arrays.

    value_names is the table that string values flagged as name references
    point into, usually the same as names.'''
    if not block_records:
        raise MalformedBlockTree('there is no root block record')

    params = decode_params(names, field_records, blob, value_names=value_names)

    field_owners = [None] * len(field_records)
    block_owners = [None] * len(block_records)
    block_owners[0] = 'root'

    for idx, record in enumerate(block_records):
        _claim(field_owners, record.first_field, record.field_count, idx, 'fields')
        _claim(block_owners, record.first_child, record.child_count, idx, 'blocks')

    if block_records[0].name_index is not None:
        raise MalformedBlockTree('the root block record has a name')

    root = Block(names=names)
    nodes = {0: root}
    order = []
    stack = [(0, 0)]
    while stack:
        idx, depth = stack.pop()
        order.append(idx)
        record = block_records[idx]
        block = nodes[idx]

        if record.field_count:
            block.params = params[record.first_field:record.first_field + record.field_count]

        if record.child_count and depth + 1 > max_depth:
            raise MaxDepthExceeded(f'block {idx} has children deeper than {max_depth} levels')

        for child in range(record.first_child or 0, (record.first_child or 0) + record.child_count):
            child_record = block_records[child]
            if child_record.name_index is None:
                raise MalformedBlockTree(f'block {child} is not the root but has no name')
            try:
                nodes[child] = Block(names.lookup(child_record.name_index))
            except BlkException as e:
                e.chain.append('blocks[%d]' % child)
                raise
            block.blocks.append(nodes[child])

        # reversed so that the blocks are visited in record order
        for child in reversed(range(record.first_child or 0, (record.first_child or 0) + record.child_count)):
            stack.append((child, depth + 1))

    if len(order) != len(block_records):
        unreachable = sorted(set(range(len(block_records))) - set(order))
        raise MalformedBlockTree(f'block records {unreachable[:8]} are not reachable from the root')

    unclaimed = [idx for idx, owner in enumerate(field_owners) if owner is None]
    if unclaimed:
        raise MalformedBlockTree(f'field records {unclaimed[:8]} don\'t belong to any block')

    _check_subtree_sizes(block_records, order, compliant)

    logger.debug('built tree of %d blocks and %d params' % (len(block_records), len(params)))

    return root

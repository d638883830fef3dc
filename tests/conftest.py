import logging
import os

import pytest

from blkstruct.enum import ValueType
from blkstruct.tree import Block
from blkstruct.values import TypedValue


if os.environ.get('DEBUG'):
    logging.basicConfig(level=logging.DEBUG)


def make_sample_tree():
    '''A tree using every type, two levels of nesting and a name used
    both by a param and by a block.'''
    root = Block()
    root.add_param('vec4f', TypedValue(ValueType.FLOAT4, (1.25, 2.5, 5.0, 10.0)))
    root.add_param('int', 42)
    root.add_param('long', TypedValue(ValueType.LONG, 64))

    alpha = root.add_block('alpha')
    alpha.add_param('str', 'hello')
    alpha.add_param('bool', True)
    alpha.add_param('color', TypedValue(ValueType.COLOR, (3, 2, 1, 4)))

    gamma = alpha.add_block('gamma')
    gamma.add_param('vec2i', TypedValue(ValueType.INT2, (3, 4)))
    gamma.add_param('vec2f', TypedValue(ValueType.FLOAT2, (1.25, 2.5)))
    gamma.add_param('transform', TypedValue(
        ValueType.FLOAT12, (1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 1.25, 2.5, 5.0)))

    beta = root.add_block('beta')
    beta.add_param('float', 1.25)
    beta.add_param('vec2i', TypedValue(ValueType.INT2, (1, 2)))
    beta.add_param('vec3f', TypedValue(ValueType.FLOAT3, (1.25, 2.5, 5.0)))
    beta.add_param('vec3i', TypedValue(ValueType.INT3, (-1, 0, 1)))
    beta.add_param('uint', TypedValue(ValueType.UINT, 0xffffffff))
    beta.add_param('double', TypedValue(ValueType.DOUBLE, 0.1))
    beta.add_param('bytes', b'\x00\x01\xfe\xff')
    beta.add_param('empty', '')
    beta.add_param('alpha', 'not a block')
    beta.add_block('alpha')

    return root


@pytest.fixture
def sample_tree():
    return make_sample_tree()

'''
# Block tree

The in-memory representation of a block file: a tree of Block, each one
holding an ordered list of named values (Param) and an ordered list of
named child blocks. The root block has no name.

Names are plain references to the strings of the name table the tree was
decoded from, the table itself is kept by the root as Block.names so that
re-encoding can preserve its order.
'''
import logging
from typing import Iterator, List, Optional, Tuple

from .values import TypedValue, pack_payload


logger = logging.getLogger(__name__)

OVERRIDE_PREFIX = 'override:'


class Param(object):
    '''A named leaf holding one typed value.'''
    __slots__ = ('name', '_value')

    def __init__(self, name: str, value):
        self.name = name
        self.value = value

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = TypedValue.infer(value)

    value = property(_get_value, _set_value)

    @property
    def type(self):
        return self._value.type

    def __eq__(self, other):
        if not isinstance(other, Param):
            return NotImplemented
        return self.name == other.name and self._value == other._value

    def __repr__(self):
        return '<%s(%s=%r)>' % (self.__class__.__name__, self.name, self._value.value)


class Block(object):
    '''Container node: ordered params and ordered child blocks.'''

    def __init__(self, name: Optional[str] = None, params=None, blocks=None, names=None):
        self.name = name
        self.params: List[Param] = list(params) if params is not None else []
        self.blocks: List['Block'] = list(blocks) if blocks is not None else []
        # the name table this tree was decoded from, if any
        self.names = names

    def __eq__(self, other):
        if not isinstance(other, Block):
            return NotImplemented

        stack = [(self, other)]
        while stack:
            left, right = stack.pop()
            if left.name != right.name or left.params != right.params or len(left.blocks) != len(right.blocks):
                return False
            stack.extend(zip(left.blocks, right.blocks))

        return True

    def __repr__(self):
        return '<%s(%s, %d params, %d blocks)>' % (
            self.__class__.__name__,
            self.name if self.name is not None else '<root>',
            len(self.params),
            len(self.blocks),
        )

    @property
    def is_root(self):
        return self.name is None

    def add_param(self, name: str, value) -> Param:
        param = Param(name, value)
        self.params.append(param)
        return param

    def add_block(self, name_or_block) -> 'Block':
        block = name_or_block if isinstance(name_or_block, Block) else Block(name_or_block)
        if block.name is None:
            raise ValueError('only the root block can be unnamed')

        self.blocks.append(block)
        return block

    def get(self, name: str, default=None):
        '''Value of the first param with the given name'''
        for param in self.params:
            if param.name == name:
                return param.value

        return default

    def get_all(self, name: str) -> List[TypedValue]:
        return [_.value for _ in self.params if _.name == name]

    def get_block(self, name: str) -> Optional['Block']:
        for block in self.blocks:
            if block.name == name:
                return block

        return None

    def iter_params(self) -> Iterator[Tuple[str, TypedValue]]:
        for param in self.params:
            yield param.name, param.value

    def walk(self) -> Iterator[Tuple[str, 'Block']]:
        '''Depth first iteration over the blocks with their path'''
        stack = [('', self)]
        while stack:
            path, block = stack.pop()
            yield path, block
            for child in reversed(block.blocks):
                stack.append((f'{path}/{child.name}' if path else child.name, child))

    def pointer(self, path: str):
        '''Resolve a path like "alpha/gamma/vec2i", the last component can
        name either a param or a block.'''
        components = [_ for _ in path.split('/') if _]
        if not components:
            return self

        block = self
        for component in components[:-1]:
            child = block.get_block(component)
            if child is None:
                raise KeyError(f'no block named {component!r} while resolving {path!r}')
            block = child

        last = components[-1]
        for param in block.params:
            if param.name == last:
                return param

        child = block.get_block(last)
        if child is None:
            raise KeyError(f'no param or block named {last!r} while resolving {path!r}')

        return child

    def apply_overrides(self):
        '''Entries named "override:<key>" replace the entry named <key> keeping its
        position, an override without target is dropped.'''
        # walk() reads the children after the block is yielded, so it follows
        # the lists replaced here
        for _, block in self.walk():
            block.params = _apply_overrides(block.params)
            block.blocks = _apply_overrides(block.blocks)

    def estimate_size(self) -> int:
        total = 0
        for _, block in self.walk():
            total += len(block.name or '')
            for param in block.params:
                total += len(param.name) + len(pack_payload(param.value))

        return total


def resolve_overrides(entries):
    '''Return the couples (name, entry) left once the overrides are applied,
    the entries themselves are not modified.'''
    result = []
    positions = {}
    overrides = []
    for entry in entries:
        if entry.name.startswith(OVERRIDE_PREFIX):
            overrides.append(entry)
        else:
            positions.setdefault(entry.name, len(result))
            result.append((entry.name, entry))

    for entry in overrides:
        target = entry.name[len(OVERRIDE_PREFIX):]
        if target not in positions:
            logger.debug('dropping override without target \'%s\'' % target)
            continue

        result[positions[target]] = (target, entry)

    return result


def _apply_overrides(entries):
    result = []
    for name, entry in resolve_overrides(entries):
        entry.name = name
        result.append(entry)

    return result

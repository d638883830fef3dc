"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable without need for relayouting.
"""
import logging
import struct

from .enum import Compliant
from .meta import FieldBase
from .properties import Dependency
from .exceptions import BlkException, MagicException, TruncatedData


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, name=None, father=None, default=None, compliant=None, is_magic=False):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = None
        self.compliant = compliant
        self.is_magic = is_magic

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.value)

    def is_compliant(self, level):
        '''The first ancestor with an explicit compliant decides, strict otherwise.'''
        instance = self
        while instance is not None:
            if instance.compliant is not None:
                return bool(instance.compliant & level)

            instance = instance.father

        return bool(Compliant.STRICT & level)

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = value

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
    )

    def pack(self) -> bytes:
        return self.raw

    def unpack(self, stream):
        raise NotImplementedError('you need to implement this in the subclass')

    def check_magic(self):
        if not self.is_magic or self.value == self.default:
            return

        self.logger.warning(f'the magic for field \'{self.name}\' doesn\'t correspond: {self.value!r}')
        if self.is_compliant(Compliant.MAGIC):
            raise MagicException(f'expected {self.default!r}, found {self.value!r}', chain=[])


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.
    """

    def __init__(self, format, default=0, **kw):
        self.format = format
        super().__init__(default=default, **kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

    def get_format(self):
        # every integer of the block files is little endian
        return '<' + self.format

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _get_raw(self) -> bytes:
        try:
            return struct.pack(self.get_format(), self.value)
        except struct.error as e:
            raise ValueError(f'field \'{self.name}\' can\'t hold {self.value!r}: {e}')

    def unpack(self, stream):
        raw = stream.read(self.size)
        self.value = struct.unpack(self.get_format(), raw)[0]
        self.check_magic()


class StringField(Field):
    """Represent a contiguous chunk of bytes.

    The length can be fixed or a Dependency on a sibling field."""

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"StringField must have 'n' or 'default' indicated!")

        self._length = n if n is not None else len(kw['default'])

        super().__init__(**kw)

    def __len__(self):
        return len(self.value)

    @property
    def length(self):
        if isinstance(self._length, Dependency):
            return self._length.resolve(self)

        return self._length

    def value_from_default(self):
        if self.default is not None:
            return self.default

        return b'' if isinstance(self._length, Dependency) else b'\x00' * self._length

    def _set_value(self, value) -> None:
        """A fixed length must be respected, a Dependency length follows the value."""
        if not isinstance(self._length, Dependency) and len(value) != self._length:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self._length} bytes)')

        self._value = bytes(value)

    def _get_size(self):
        return len(self.value)

    def _get_raw(self):
        return self.value

    def unpack(self, stream):
        self._value = stream.read(self.length)
        self.check_magic()


class ArrayField(Field):
    '''Un/Pack an array of Chunks.

    The number of elements is indicated via the parameter named "n", directly
    or as a Dependency.'''

    def __init__(self, field_cls, n=0, **kw):
        self.field_cls = field_cls
        if not isinstance(n, (Dependency, int)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self._n = n

        super().__init__(default=[], **kw)

    def __getitem__(self, item):
        return self.value[item]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def value_from_default(self):
        return []

    @property
    def n(self):
        if isinstance(self._n, Dependency):
            return self._n.resolve(self)

        return self._n

    def _get_raw(self):
        return b''.join(element.raw for element in self.value)

    def _get_size(self):
        return sum(element.size for element in self.value)

    def instance_element(self):
        return self.field_cls.create(father=self)  # pass the father so that we don't lose the hierarchy

    def append(self, element):
        element.father = self
        self.value.append(element)

    def unpack(self, stream):
        n = self.n
        element_size = self.field_cls.size
        # a corrupted count must not make us allocate a huge list
        if n * element_size > stream.remaining():
            raise TruncatedData(
                f'{n} elements of {element_size} bytes don\'t fit in the {stream.remaining()} bytes left')

        self.value = []
        for idx in range(n):
            element = self.instance_element()
            try:
                element.unpack(stream)
            except BlkException as e:
                e.chain.append(str(idx))
                raise
            self.value.append(element)

import pytest

from blkstruct.core import Chunk
from blkstruct.enum import Compliant
from blkstruct.exceptions import MagicException, TruncatedData
from blkstruct.fields import StructField, StringField
from blkstruct.properties import Dependency, ScaledDependency
from blkstruct.streams import Stream


def test_chunk():
    """Check that building a Chunk from fields behaves correctly."""
    class Dummy(Chunk):
        a = StructField('I', default=0xbad)
        b = StringField(0x10)
        c = StructField('I', default=0xdeadbeef)

    dummy = Dummy()

    assert dummy.a.size == 4
    assert dummy.a.raw == b'\xad\x0b\x00\x00'
    assert dummy.a.value == 0xbad
    assert dummy.a.father == dummy

    assert dummy.b.size == 0x10
    assert dummy.b.raw == b'\x00' * 0x10

    assert dummy.c.size == 0x4
    assert dummy.c.raw == b'\xef\xbe\xad\xde'

    assert dummy.size == 0x18
    assert len(dummy.raw) == dummy.size
    assert dummy.raw == (
        b'\xad\x0b\x00\x00' +
        b'\x00' * 0x10 +
        b'\xef\xbe\xad\xde'
    )


def test_chunk_unpack():
    class Dummy(Chunk):
        a = StructField('H')
        b = StringField(3)
        c = StructField('I')

    dummy = Dummy(b'\x01\x02abc\x04\x00\x00\x00')

    assert dummy.a.value == 0x0201
    assert dummy.b.value == b'abc'
    assert dummy.c.value == 4

    assert dummy.a.offset == 0
    assert dummy.b.offset == 2
    assert dummy.c.offset == 5


def test_chunk_instances_are_independent():
    class Dummy(Chunk):
        a = StructField('I')

    first, second = Dummy(), Dummy()
    first.a = 0xcafe

    assert first.a.value == 0xcafe
    assert second.a.value == 0


def test_chunk_w_dependencies():
    class Example(Chunk):
        sz = StructField('I')
        data = StringField(Dependency('.sz'), default=b'kebab')

    example = Example()

    assert example.sz.father == example
    assert example.sz.value == 0
    assert example.data.value == b'kebab'

    # while packing the size is set by whoever builds the chunk
    example.sz = len(example.data.value)
    assert example.raw == b'\x05\x00\x00\x00kebab'

    example = Example(b'\x03\x00\x00\x00abcdef')
    assert example.data.value == b'abc'


def test_chunk_w_scaled_dependency():
    class Example(Chunk):
        count = StructField('B')
        records = StringField(ScaledDependency(4, '.count'))

    stream = Stream(b'\x02' + b'\xaa' * 8 + b'tail')
    example = Example(stream)

    assert example.records.value == b'\xaa' * 8
    assert stream.read_all() == b'tail'


def test_chunk_truncated_keeps_the_chain():
    class Inner(Chunk):
        length = StructField('I')
        data = StringField(Dependency('.length'))

    class Outer(Chunk):
        magic = StringField(2, default=b'OK')
        inner = Inner()

    with pytest.raises(TruncatedData) as excinfo:
        Outer(b'OK\x10\x00\x00\x00short')

    assert excinfo.value.chain == ['data', 'inner']
    assert '(at inner.data)' in str(excinfo.value)


def test_proxy_like_format():
    """Check that a format having sub-components of the same type behaves gently."""

    class Proxy(Chunk):
        off = StructField('I')
        sz = StructField('I')

    class Experiment(Chunk):
        proxy_a = Proxy()
        proxy_b = Proxy()

        contents = StringField(0x100)

    experiment = Experiment()

    assert experiment.proxy_a is not experiment.proxy_b
    assert experiment.size == 0x100 + 2 * (4 + 4)
    assert len(experiment.raw) == experiment.size
    assert experiment.raw == b'\x00' * experiment.size


def test_inheritance():
    class Base(Chunk):
        magic = StringField(4, default=b'BASE')

    class Derived(Base):
        version = StructField('H', default=1)

    derived = Derived()

    assert derived.get_ordered_fields_name() == ['magic', 'version']
    assert derived.raw == b'BASE\x01\x00'


def test_magic():
    class Header(Chunk):
        magic = StringField(4, default=b'MAGC', is_magic=True)
        version = StructField('H', default=3, is_magic=True)

    header = Header(b'MAGC\x03\x00')
    assert header.version.value == 3

    with pytest.raises(MagicException) as excinfo:
        Header(b'XXXX\x03\x00')

    assert excinfo.value.chain == ['magic']

    with pytest.raises(MagicException):
        Header(b'MAGC\x04\x00')

    relaxed = Header(b'MAGC\x04\x00', compliant=Compliant.NONE)
    assert relaxed.version.value == 4


def test_chunk_is_not_assignable():
    class Inner(Chunk):
        a = StructField('I')

    class Outer(Chunk):
        inner = Inner()

    with pytest.raises(AttributeError):
        Outer().inner.value = 1


@pytest.mark.parametrize('name', ['size', 'raw', 'value', 'unpack'])
def test_field_shadowing_chunk_attribute(name):
    with pytest.raises(AttributeError) as excinfo:
        type(Chunk)('Shadowing', (Chunk,), {'__module__': __name__, name: StructField('I')})

    assert name in str(excinfo.value)


def test_dependency_must_be_relative():
    with pytest.raises(ValueError):
        Dependency('size')

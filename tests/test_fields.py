import pytest

from blkstruct.core import Chunk
from blkstruct.exceptions import MagicException, TruncatedData
from blkstruct.fields import ArrayField, StringField, StructField
from blkstruct.streams import Stream


def test_structfield_conversion_raw_value():
    """Check that the attributes "value" and "raw" are the analogous
    of the integers and bytes representation for a field."""
    field = StructField('I')

    assert field.size == 4
    assert field.raw == b'\x00\x00\x00\x00'
    assert field.value == 0

    field.value = 0xcafe

    assert field.value == 0xcafe
    assert field.raw == b'\xfe\xca\x00\x00'


def test_structfield_out_of_range():
    field = StructField('B', default=0x100)

    with pytest.raises(ValueError):
        field.raw


def test_structfield_truncated():
    field = StructField('I')

    with pytest.raises(TruncatedData):
        field.unpack(Stream(b'\x00\x00'))


def test_stringfield():
    field = StringField(0x10)

    assert field.size == 0x10
    assert len(field.raw) == field.size
    assert field.raw == b'\x00' * field.size

    with pytest.raises(ValueError):
        field.value = b'kebab'

    data = b''.join([bytes([_]) for _ in range(0x10)])

    field.value = data

    assert field.value == data
    assert field.raw == data


def test_stringfield_needs_a_length():
    with pytest.raises(ValueError):
        StringField()

    assert StringField(default=b'abc').length == 3


def test_arrayfield():
    array = ArrayField(StructField('I'), n=3)

    assert isinstance(array.value, list)
    assert len(array) == 0

    array.unpack(Stream(b'\x01\x00\x00\x00\x02\x00\x00\x00\xbe\xba\xfe\xca'))

    assert len(array) == 3
    assert [_.value for _ in array] == [1, 2, 0xcafebabe]
    # check that the elements are not duplicated
    assert array[0] is not array[1]
    assert array[0].father is array

    assert array.size == 12
    assert array.raw == b'\x01\x00\x00\x00\x02\x00\x00\x00\xbe\xba\xfe\xca'


def test_arrayfield_of_chunks():
    class Couple(Chunk):
        a = StructField('B')
        b = StructField('B')

    array = ArrayField(Couple(), n=2)
    array.unpack(Stream(b'\x01\x02\x03\x04'))

    assert [(_.a.value, _.b.value) for _ in array] == [(1, 2), (3, 4)]

    couple = Couple()
    couple.a = 5
    couple.b = 6
    array.append(couple)

    assert array.raw == b'\x01\x02\x03\x04\x05\x06'


def test_arrayfield_count_larger_than_data():
    '''A corrupted count is rejected before reading the elements'''
    array = ArrayField(StructField('I'), n=0x10000000)

    with pytest.raises(TruncatedData):
        array.unpack(Stream(b'\x00' * 16))


def test_arrayfield_chain():
    class Record(Chunk):
        magic = StringField(2, default=b'OK', is_magic=True)
        number = StructField('I')

    array = ArrayField(Record(), n=2, name='records')

    with pytest.raises(MagicException) as excinfo:
        array.unpack(Stream(b'OK\x01\x00\x00\x00KO\x02\x00\x00\x00'))

    # the index of the element is part of the chain
    assert excinfo.value.chain == ['magic', '1']


def test_arrayfield_wrong_n():
    with pytest.raises(ValueError):
        ArrayField(StructField('I'), n='10')

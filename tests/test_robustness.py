"""
Every malformed input must end in one of the exceptions of the library,
never in an IndexError, a struct.error or a partial tree.
"""
import pytest

from blkstruct import decode, encode
from blkstruct.enum import Compliant, FormatVariant
from blkstruct.exceptions import BlkException, UnpackException
from blkstruct.names import NameTable, SharedNameTable

from test_layouts import FAT_FIXTURE, make_small_tree


UNCOMPRESSED = [FormatVariant.FAT, FormatVariant.SLIM, FormatVariant.RAW]


def fixtures():
    tree = make_small_tree()
    tree.get_block('a').add_block('b').add_param('bytes', b'\x00\x01')
    yield 'fat-fixture', FAT_FIXTURE
    for variant in UNCOMPRESSED:
        yield variant.name, encode(tree, variant)


FIXTURES = dict(fixtures())


@pytest.mark.parametrize('name', list(FIXTURES))
def test_truncation(name):
    data = FIXTURES[name]

    for size in range(len(data)):
        with pytest.raises(UnpackException):
            decode(data[:size])


@pytest.mark.parametrize('name', list(FIXTURES))
@pytest.mark.parametrize('compliant', [Compliant.STRICT, Compliant.NONE], ids=['strict', 'relaxed'])
def test_corruption(name, compliant):
    data = FIXTURES[name]

    for idx in range(len(data)):
        for mask in (0x01, 0x10, 0x80, 0xff):
            corrupted = bytearray(data)
            corrupted[idx] ^= mask
            try:
                decode(bytes(corrupted), compliant=compliant)
            except BlkException:
                pass


def test_corruption_with_shared_names():
    tree = make_small_tree()
    shared = SharedNameTable(NameTable.from_tree(tree))
    data = encode(tree, FormatVariant.SLIM, shared_names=shared)

    for idx in range(len(data)):
        for mask in (0x01, 0x80, 0xff):
            corrupted = bytearray(data)
            corrupted[idx] ^= mask
            try:
                decode(bytes(corrupted), shared_names=shared)
            except BlkException:
                pass


@pytest.mark.parametrize('name', list(FIXTURES))
def test_corrupted_compressed(name):
    tree = decode(FIXTURES[name])
    data = encode(tree, FormatVariant.SLIM_ZSTD)

    for idx in range(len(data)):
        corrupted = bytearray(data)
        corrupted[idx] ^= 0xff
        try:
            decode(bytes(corrupted))
        except BlkException:
            pass

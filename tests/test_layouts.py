import struct
import unittest

from blkstruct import decode, encode
from blkstruct.enum import Compliant, FormatVariant
from blkstruct.exceptions import (
    IndexOutOfBounds,
    MagicException,
    MalformedBlockTree,
    MalformedName,
    OverlappingBlockRange,
)
from blkstruct.formats.raw import BLOCK_RECORD_SIZE, FIELD_RECORD_SIZE
from blkstruct.formats.slim import SlimLayout
from blkstruct.tree import Block


def make_small_tree():
    root = Block()
    root.add_param('int', 42)
    root.add_param('str', 'hi')
    root.add_block('a').add_param('flag', True)

    return root


def make_fat(root_record=b'\x00\x02\x01\x00\x01', child_record=b'\x03\x01\x00\x02'):
    return b''.join([
        b'\x01',                                   # type
        b'\x04\x0f',                               # names count and size
        b'\x03int\x03str\x01a\x04flag',            # name records
        struct.pack('<4I', 0, 4, 8, 10),           # micro-index
        b'\x02\x03',                               # block and field count
        b'\x03\x02hi',                             # blob
        b'\x00\x00\x00\x02' b'\x2a\x00\x00\x00',   # int:i=42
        b'\x01\x00\x00\x01' b'\x00\x00\x00\x00',   # str:t="hi"
        b'\x03\x00\x00\x09' b'\x01\x00\x00\x00',   # flag:b=yes
        root_record,
        child_record,
    ])


FAT_FIXTURE = make_fat()


class FatTests(unittest.TestCase):

    def test_decode_fixture(self):
        tree = decode(FAT_FIXTURE)

        self.assertEqual(tree, make_small_tree())
        self.assertEqual(list(tree.names), ['int', 'str', 'a', 'flag'])

    def test_encode_fixture(self):
        self.assertEqual(encode(make_small_tree(), FormatVariant.FAT), FAT_FIXTURE)

    def test_reencode_is_byte_exact(self):
        self.assertEqual(encode(decode(FAT_FIXTURE), FormatVariant.FAT), FAT_FIXTURE)

    def test_name_order_is_preserved(self):
        # same tree, names in a different order
        data = b''.join([
            b'\x01',
            b'\x04\x0f',
            b'\x04flag\x01a\x03str\x03int',
            struct.pack('<4I', 0, 5, 7, 11),
            b'\x02\x03',
            b'\x03\x02hi',
            b'\x03\x00\x00\x02' b'\x2a\x00\x00\x00',
            b'\x02\x00\x00\x01' b'\x00\x00\x00\x00',
            b'\x00\x00\x00\x09' b'\x01\x00\x00\x00',
            b'\x00\x02\x01\x00\x01',
            b'\x02\x01\x00\x02',
        ])

        tree = decode(data)

        self.assertEqual(tree, make_small_tree())
        self.assertEqual(encode(tree, FormatVariant.FAT), data)

    def test_empty_root(self):
        data = encode(Block(), FormatVariant.FAT)

        self.assertEqual(data, b'\x01\x00\x00\x01\x00\x00\x00\x00\x00')
        self.assertEqual(decode(data), Block())

    def test_overlapping_fields(self):
        # the root claims the field of its child too
        with self.assertRaises(OverlappingBlockRange):
            decode(make_fat(root_record=b'\x00\x03\x01\x00\x01'))

    def test_overlapping_children(self):
        # the child claims itself
        with self.assertRaises(OverlappingBlockRange):
            decode(make_fat(child_record=b'\x03\x01\x01\x02\x01'))

    def test_field_out_of_bounds(self):
        with self.assertRaises(IndexOutOfBounds):
            decode(make_fat(child_record=b'\x03\x01\x00\x05'))

    def test_child_out_of_bounds(self):
        with self.assertRaises(IndexOutOfBounds):
            decode(make_fat(root_record=b'\x00\x02\x02\x00\x01'))

    def test_name_out_of_bounds(self):
        with self.assertRaises(IndexOutOfBounds):
            decode(make_fat(child_record=b'\x09\x01\x00\x02'))

    def test_unclaimed_field(self):
        with self.assertRaises(MalformedBlockTree):
            decode(make_fat(root_record=b'\x00\x01\x01\x00\x01'))

    def test_unreachable_block(self):
        with self.assertRaises(MalformedBlockTree):
            decode(make_fat(root_record=b'\x00\x02\x00\x00'))

    def test_named_root(self):
        with self.assertRaises(MalformedBlockTree):
            decode(make_fat(root_record=b'\x01\x02\x01\x00\x01'))

    def test_unnamed_child(self):
        with self.assertRaises(MalformedBlockTree):
            decode(make_fat(child_record=b'\x00\x01\x00\x02'))

    def test_trailing_bytes(self):
        with self.assertRaises(MalformedBlockTree):
            decode(FAT_FIXTURE + b'\x00')

        self.assertEqual(decode(FAT_FIXTURE + b'\x00', compliant=Compliant.NONE), make_small_tree())


class SlimTests(unittest.TestCase):

    def test_empty_root(self):
        data = encode(Block(), FormatVariant.SLIM)

        # names_ref, names size, block count, field count, blob size, fields size
        # then the root record: not named, ue(0), ue(0) -> 011 + padding
        self.assertEqual(data, b'\x03\x01\x00\x01\x00\x00\x00\x60')
        self.assertEqual(decode(data), Block())

    def test_small_tree(self):
        data = encode(make_small_tree(), FormatVariant.SLIM)

        # same name table as the fat layout
        self.assertEqual(data[1:18], b'\x05\x0f\x03int\x03str\x01a\x04flag')
        self.assertEqual(decode(data), make_small_tree())

    def test_single_name_needs_no_bits(self):
        root = Block()
        root.add_param('only', 1)
        root.add_param('only', 2)

        data = encode(root, FormatVariant.SLIM)
        self.assertEqual(decode(data), root)

        # type, names, block count, field count, blob size then the size of
        # the fields: 2 records of 0 + 8 + 32 bits
        self.assertEqual(data[15], 10)

    def test_index_width_on_disk(self):
        for n, width in [(2, 1), (256, 8), (257, 9)]:
            with self.subTest(n=n):
                self.check_index_width(n, width)

    def check_index_width(self, n, width):
        # n - 1 params and a child block, every one with its own name
        root = Block()
        for idx in range(n - 1):
            root.add_param('p%d' % idx, idx)
        root.add_block('p%d' % (n - 1))

        regions = SlimLayout().split(encode(root, FormatVariant.SLIM)[1:])

        record_bits = width + 8 + 32
        self.assertEqual(len(regions.fields), -(-(n - 1) * record_bits // 8))
        fields = int.from_bytes(regions.fields, 'big')
        last = (n - 2) * record_bits
        self.assertEqual(fields >> (8 * len(regions.fields) - last - width) & ((1 << width) - 1), n - 2)

        # root: unnamed, ue(n - 1), ue(0), ue(1), ue(1)
        root_bits = 1 + 2 * n.bit_length() - 1 + 1 + 3 + 3
        # child: named, its index, ue(0), ue(0)
        child_bits = 1 + width + 1 + 1
        self.assertEqual(len(regions.blocks), -(-(root_bits + child_bits) // 8))
        blocks = int.from_bytes(regions.blocks, 'big')
        self.assertEqual(blocks >> (8 * len(regions.blocks) - root_bits - 1 - width) & ((1 << width) - 1), n - 1)

    def test_nonzero_padding(self):
        data = bytearray(encode(Block(), FormatVariant.SLIM))
        data[-1] |= 0x01

        with self.assertRaises(MalformedBlockTree):
            decode(bytes(data))

        self.assertEqual(decode(bytes(data), compliant=Compliant.NONE), Block())


class RawTests(unittest.TestCase):

    def test_record_sizes(self):
        self.assertEqual(FIELD_RECORD_SIZE, 9)
        self.assertEqual(BLOCK_RECORD_SIZE, 24)

    def test_empty_root(self):
        data = encode(Block(), FormatVariant.RAW)

        self.assertEqual(data, b'\x00BBF\x03\x00' + b'\x00' * 16 + b'\x01\x00\x00\x00' + b'\x00' * 24)
        self.assertEqual(decode(data), Block())

    def test_small_tree(self):
        data = encode(make_small_tree(), FormatVariant.RAW)

        self.assertEqual(data[6:10], b'\x04\x00\x00\x00')
        self.assertEqual(decode(data), make_small_tree())

        # the root record declares its only descendant
        root_record = data[-2 * BLOCK_RECORD_SIZE:-BLOCK_RECORD_SIZE]
        self.assertEqual(root_record[-4:], struct.pack('<I', BLOCK_RECORD_SIZE))

    def test_version(self):
        data = bytearray(encode(make_small_tree(), FormatVariant.RAW))
        data[4] = 4

        with self.assertRaises(MagicException):
            decode(bytes(data))

        self.assertEqual(decode(bytes(data), compliant=Compliant.NONE), make_small_tree())

    def test_names_count(self):
        data = bytearray(encode(make_small_tree(), FormatVariant.RAW))
        data[6] = 5

        with self.assertRaises(MalformedName):
            decode(bytes(data))

        self.assertEqual(decode(bytes(data), compliant=Compliant.STRICT & ~Compliant.NAME_COUNT), make_small_tree())

    def test_subtree_size(self):
        data = bytearray(encode(make_small_tree(), FormatVariant.RAW))
        data[-BLOCK_RECORD_SIZE - 4] = 2 * BLOCK_RECORD_SIZE

        with self.assertRaises(MalformedBlockTree):
            decode(bytes(data))

        self.assertEqual(decode(bytes(data), compliant=Compliant.NONE), make_small_tree())

        data[-BLOCK_RECORD_SIZE - 4] = 7
        with self.assertRaises(MalformedBlockTree):
            decode(bytes(data))

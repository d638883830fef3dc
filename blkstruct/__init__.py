"""
# Blkstruct: codec for binary block files.

A block file is a configuration tree: each block has an ordered list of
named typed values (params) and an ordered list of named child blocks; the
root block has no name.

On disk the tree is flattened into

 1. a name table: every name used by the file, stored once and referenced
    by index (or the name table shared by all the files of a container)
 2. the field records: name, type and a 4 bytes cell for each param
 3. the block records: name and the ranges of fields and child blocks owned
 4. a blob holding the values that don't fit in a cell

and it comes in three layouts (raw, fat and slim) each one optionally
compressed with zstd, see blkstruct.detect for the headers.

Two basic operations are defined

 1. decode(): detect the variant, decompress, decode the name table, the
    records and finally assemble the tree validating every index read from
    the data
 2. encode(): flatten the tree and write it in any of the variants

The fixed width parts (the raw layout and the headers) are described
declaratively with Chunk and the fields of blkstruct.fields.

"""
from .dispatch import decode, decode_batch
from .enum import Compliant, FormatVariant, Layout, ValueType
from .names import NameTable, SharedNameTable
from .serializer import encode
from .tree import Block, Param
from .values import TypedValue

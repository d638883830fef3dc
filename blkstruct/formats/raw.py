'''
# Raw layout

Legacy layout with fixed width little endian integers, it comes after the
"\\x00BBF" signature and its version:

    u32 names_count, u32 names_size, name records (no micro-index)
    u32 blob_size, blob
    u32 field_count, field_count x { u32 name, u8 type, 4 bytes cell }
    u32 block_count, block_count x { u32 name_ref, u32 first_field, u32 field_count,
                                     u32 first_child, u32 child_count, u32 subtree_size }

subtree_size is the size in bytes of the block records of all the descendants.
'''
from . import BaseLayout, RawRegionSet
from .. import fields
from ..builder import BlockRecord, FieldRecord
from ..core import Chunk
from ..enum import Compliant
from ..properties import Dependency, ScaledDependency
from ..streams import Stream


class RawFieldRecord(Chunk):
    name_id = fields.StructField('I')
    type_id = fields.StructField('B')
    cell    = fields.StringField(4)


class RawBlockRecord(Chunk):
    name_ref     = fields.StructField('I')
    first_field  = fields.StructField('I')
    field_count  = fields.StructField('I')
    first_child  = fields.StructField('I')
    child_count  = fields.StructField('I')
    subtree_size = fields.StructField('I')


FIELD_RECORD_SIZE = RawFieldRecord().size
BLOCK_RECORD_SIZE = RawBlockRecord().size


class RawBody(Chunk):
    names_count = fields.StructField('I')
    names_size  = fields.StructField('I')
    names       = fields.StringField(Dependency('.names_size'))
    blob_size   = fields.StructField('I')
    blob        = fields.StringField(Dependency('.blob_size'))
    field_count = fields.StructField('I')
    records     = fields.StringField(ScaledDependency(FIELD_RECORD_SIZE, '.field_count'))
    block_count = fields.StructField('I')
    blocks      = fields.StringField(ScaledDependency(BLOCK_RECORD_SIZE, '.block_count'))


class RawLayout(BaseLayout):
    has_micro_index = False

    def split(self, body: bytes, compliant=Compliant.STRICT) -> RawRegionSet:
        stream = Stream(body, name='raw body')
        chunk = RawBody(stream)
        self.check(stream.remaining() == 0, f'{stream.remaining()} bytes after the last block record',
                   compliant, Compliant.TRAILING)

        return RawRegionSet(
            names=chunk.names.value,
            name_index=None,
            names_count=chunk.names_count.value,
            fields=chunk.records.value,
            field_count=chunk.field_count.value,
            blocks=chunk.blocks.value,
            block_count=chunk.block_count.value,
            blob=chunk.blob.value,
        )

    def join(self, regions: RawRegionSet) -> bytes:
        chunk = RawBody()
        chunk.names_count = regions.names_count
        chunk.names_size = len(regions.names)
        chunk.names = regions.names
        chunk.blob_size = len(regions.blob)
        chunk.blob = regions.blob
        chunk.field_count = regions.field_count
        chunk.records = regions.fields
        chunk.block_count = regions.block_count
        chunk.blocks = regions.blocks

        return chunk.raw

    def read_fields(self, regions, names, compliant):
        array = fields.ArrayField(RawFieldRecord(), n=regions.field_count, name='fields')
        array.unpack(Stream(regions.fields, name='fields'))

        return [
            FieldRecord(record.name_id.value, record.type_id.value, record.cell.value)
            for record in array
        ]

    def write_fields(self, records, names) -> bytes:
        array = fields.ArrayField(RawFieldRecord(), name='fields')
        for record in records:
            chunk = RawFieldRecord()
            chunk.name_id = record.name_index
            chunk.type_id = record.type_id
            chunk.cell = record.cell
            array.append(chunk)

        return array.raw

    def read_blocks(self, regions, names, compliant):
        array = fields.ArrayField(RawBlockRecord(), n=regions.block_count, name='blocks')
        array.unpack(Stream(regions.blocks, name='blocks'))

        records = []
        for idx, chunk in enumerate(array):
            subtree_size = chunk.subtree_size.value
            aligned = subtree_size % BLOCK_RECORD_SIZE == 0
            self.check(aligned, f'block {idx} has subtree size {subtree_size}, not a multiple of {BLOCK_RECORD_SIZE}',
                       compliant, Compliant.SUBTREE_SIZE)

            records.append(BlockRecord(
                chunk.name_ref.value - 1 if chunk.name_ref.value else None,
                chunk.field_count.value,
                chunk.first_field.value,
                chunk.child_count.value,
                chunk.first_child.value,
                subtree_size // BLOCK_RECORD_SIZE if aligned else None,
            ))

        return records

    def write_blocks(self, records, names) -> bytes:
        array = fields.ArrayField(RawBlockRecord(), name='blocks')
        for record in records:
            chunk = RawBlockRecord()
            chunk.name_ref = record.name_index + 1 if record.name_index is not None else 0
            chunk.first_field = record.first_field or 0
            chunk.field_count = record.field_count
            chunk.first_child = record.first_child or 0
            chunk.child_count = record.child_count
            chunk.subtree_size = (record.subtree_blocks or 0) * BLOCK_RECORD_SIZE
            array.append(chunk)

        return array.raw

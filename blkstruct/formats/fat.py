'''
# Fat layout

    uleb names_count, uleb names_size, name records, names_count x u32 micro-index
    uleb block_count, uleb field_count, uleb blob_size, blob
    field_count x { u32 name (bits 0..23) | type (bits 24..31), 4 bytes cell }
    block_count x { uleb name_ref, uleb field_count, uleb child_count,
                    [uleb first_field], [uleb first_child] }

name_ref is zero for an unnamed block, the name index plus one otherwise;
first_field and first_child are present only when the corresponding count
is not zero.
'''
import struct

from . import BaseLayout, RawRegionSet
from ..builder import BlockRecord, FieldRecord
from ..enum import Compliant
from ..exceptions import TruncatedData, ValueOutOfRange
from ..streams import Stream, pack_uleb128


FIELD_RECORD_SIZE = 8
MAX_NAME_INDEX = (1 << 24) - 1
# smallest block record: three single byte uleb128
MIN_BLOCK_RECORD_SIZE = 3


class FatLayout(BaseLayout):

    def split(self, body: bytes, compliant=Compliant.STRICT) -> RawRegionSet:
        stream = Stream(body, name='fat body')

        names_count = stream.read_uleb128()
        names_size = stream.read_uleb128()
        names = stream.read(names_size)
        name_index = stream.read(4 * names_count)

        block_count = stream.read_uleb128()
        field_count = stream.read_uleb128()
        blob_size = stream.read_uleb128()
        blob = stream.read(blob_size)
        fields = stream.read(FIELD_RECORD_SIZE * field_count)

        return RawRegionSet(
            names=names,
            name_index=name_index,
            names_count=names_count,
            fields=fields,
            field_count=field_count,
            blocks=stream.read_all(),
            block_count=block_count,
            blob=blob,
        )

    def join(self, regions: RawRegionSet) -> bytes:
        return b''.join([
            pack_uleb128(regions.names_count),
            pack_uleb128(len(regions.names)),
            regions.names,
            regions.name_index,
            pack_uleb128(regions.block_count),
            pack_uleb128(regions.field_count),
            pack_uleb128(len(regions.blob)),
            regions.blob,
            regions.fields,
            regions.blocks,
        ])

    def read_fields(self, regions, names, compliant):
        return [
            FieldRecord(header & MAX_NAME_INDEX, header >> 24, cell)
            for header, cell in struct.iter_unpack('<I4s', regions.fields)
        ]

    def write_fields(self, records, names) -> bytes:
        result = []
        for record in records:
            if record.name_index > MAX_NAME_INDEX:
                raise ValueOutOfRange(f'name index {record.name_index} doesn\'t fit in 24 bits')
            result.append(struct.pack('<I4s', record.name_index | (record.type_id << 24), record.cell))

        return b''.join(result)

    def read_blocks(self, regions, names, compliant):
        if regions.block_count * MIN_BLOCK_RECORD_SIZE > len(regions.blocks):
            raise TruncatedData(f'{regions.block_count} block records can\'t fit in {len(regions.blocks)} bytes')

        stream = Stream(regions.blocks, name='blocks')
        records = []
        for _ in range(regions.block_count):
            name_ref = stream.read_uleb128()
            field_count = stream.read_uleb128()
            child_count = stream.read_uleb128()
            first_field = stream.read_uleb128() if field_count else None
            first_child = stream.read_uleb128() if child_count else None

            records.append(BlockRecord(
                name_ref - 1 if name_ref else None,
                field_count,
                first_field,
                child_count,
                first_child,
            ))

        self.check(stream.remaining() == 0, f'{stream.remaining()} bytes after the last block record',
                   compliant, Compliant.TRAILING)

        return records

    def write_blocks(self, records, names) -> bytes:
        result = []
        for record in records:
            result.append(pack_uleb128(record.name_index + 1 if record.name_index is not None else 0))
            result.append(pack_uleb128(record.field_count))
            result.append(pack_uleb128(record.child_count))
            if record.field_count:
                result.append(pack_uleb128(record.first_field))
            if record.child_count:
                result.append(pack_uleb128(record.first_child))

        return b''.join(result)

'''
# Slim layout

    uleb names_ref: 0 when the names come from the shared name table,
                    otherwise the number of names plus one followed by
                    uleb names_size, name records, micro-index
    uleb block_count, uleb field_count, uleb blob_size, blob
    uleb fields_size, bitstream of field records
    bitstream of block records up to the end

Every name index is written with index_width(N) bits, N being the size of
the name table in use (the file's own or the shared one). The bitstreams
are MSB first and zero padded to the byte boundary:

    field record: uint:w name, uint:8 type, 32 bits cell
    block record: bool named, [uint:w name], ue field_count, [ue first_field],
                  ue child_count, [ue first_child]
'''
from . import BaseLayout, RawRegionSet
from ..builder import BlockRecord, FieldRecord
from ..enum import Compliant
from ..exceptions import TruncatedData
from ..streams import BitReader, BitWriter, Stream, pack_uleb128
from ..values import CELL_SIZE


TYPE_BITS = 8
# smallest block record: a flag and two ue zeros
MIN_BLOCK_RECORD_BITS = 3


class SlimLayout(BaseLayout):

    def split(self, body: bytes, compliant=Compliant.STRICT) -> RawRegionSet:
        stream = Stream(body, name='slim body')

        names_ref = stream.read_uleb128()
        if names_ref:
            names_count = names_ref - 1
            names = stream.read(stream.read_uleb128())
            name_index = stream.read(4 * names_count)
        else:
            names_count, names, name_index = None, b'', None

        block_count = stream.read_uleb128()
        field_count = stream.read_uleb128()
        blob = stream.read(stream.read_uleb128())
        fields = stream.read(stream.read_uleb128())

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
        if regions.names_count is None:
            names = [pack_uleb128(0)]
        else:
            names = [
                pack_uleb128(regions.names_count + 1),
                pack_uleb128(len(regions.names)),
                regions.names,
                regions.name_index,
            ]

        return b''.join(names + [
            pack_uleb128(regions.block_count),
            pack_uleb128(regions.field_count),
            pack_uleb128(len(regions.blob)),
            regions.blob,
            pack_uleb128(len(regions.fields)),
            regions.fields,
            regions.blocks,
        ])

    def _check_padding(self, reader, what, compliant):
        padding = reader.padding()
        self.check(padding == 0, f'padding of the {what} records is not zero', compliant, Compliant.TRAILING)
        self.check(reader.remaining == 0, f'{reader.remaining // 8} bytes after the last {what} record',
                   compliant, Compliant.TRAILING)

    def read_fields(self, regions, names, compliant):
        width = names.width
        record_bits = width + TYPE_BITS + 8 * CELL_SIZE
        if regions.field_count * record_bits > 8 * len(regions.fields):
            raise TruncatedData(f'{regions.field_count} field records can\'t fit in {len(regions.fields)} bytes')

        self.logger.debug('reading %d field records with %d bits name indices' % (regions.field_count, width))

        reader = BitReader(regions.fields, name='fields')
        records = []
        for _ in range(regions.field_count):
            name_index = reader.read_uint(width)
            type_id = reader.read_uint(TYPE_BITS)
            records.append(FieldRecord(name_index, type_id, reader.read_bytes(CELL_SIZE)))

        self._check_padding(reader, 'field', compliant)

        return records

    def write_fields(self, records, names) -> bytes:
        width = names.width
        writer = BitWriter()
        for record in records:
            writer.write_uint(record.name_index, width)
            writer.write_uint(record.type_id, TYPE_BITS)
            writer.write_bytes(record.cell)

        return writer.getvalue()

    def read_blocks(self, regions, names, compliant):
        if regions.block_count * MIN_BLOCK_RECORD_BITS > 8 * len(regions.blocks):
            raise TruncatedData(f'{regions.block_count} block records can\'t fit in {len(regions.blocks)} bytes')

        width = names.width
        reader = BitReader(regions.blocks, name='blocks')
        records = []
        for _ in range(regions.block_count):
            name_index = reader.read_uint(width) if reader.read_bool() else None
            field_count = reader.read_ue()
            first_field = reader.read_ue() if field_count else None
            child_count = reader.read_ue()
            first_child = reader.read_ue() if child_count else None

            records.append(BlockRecord(name_index, field_count, first_field, child_count, first_child))

        self._check_padding(reader, 'block', compliant)

        return records

    def write_blocks(self, records, names) -> bytes:
        width = names.width
        writer = BitWriter()
        for record in records:
            writer.write_bool(record.name_index is not None)
            if record.name_index is not None:
                writer.write_uint(record.name_index, width)
            writer.write_ue(record.field_count)
            if record.field_count:
                writer.write_ue(record.first_field)
            writer.write_ue(record.child_count)
            if record.child_count:
                writer.write_ue(record.first_child)

        return writer.getvalue()

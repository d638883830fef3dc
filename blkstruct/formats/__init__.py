'''
# Layouts

Each layout knows how to split a (decompressed) body into its regions and
how to read and write the field and block records stored in them.

 - raw: legacy layout, fixed width integers, described with Chunk records
 - fat: uleb128 counts, 8 bytes field records, micro-indexed name table
 - slim: like fat but name indices are bit-packed, can rely on a shared name table
'''
import logging
from collections import namedtuple

from ..enum import Compliant, Layout
from ..exceptions import MalformedBlockTree, MissingNameTable
from ..names import NameTable


# names_count is the number of names stored in the file, None when the
# file relies on the shared name table
RawRegionSet = namedtuple(
    'RawRegionSet',
    ['names', 'name_index', 'names_count', 'fields', 'field_count', 'blocks', 'block_count', 'blob'],
)


def get_layout(layout: Layout):
    from . import raw, fat, slim

    return {
        Layout.RAW: raw.RawLayout,
        Layout.FAT: fat.FatLayout,
        Layout.SLIM: slim.SlimLayout,
    }[layout]()


class BaseLayout(object):
    '''Common logic of the layouts, subclasses implement the region split/join
    and the record (de)serialization.'''
    has_micro_index = True

    def __init__(self):
        self.logger = logging.getLogger(f'{self.__module__}.{self.__class__.__name__}')

    def check(self, condition, message, compliant, level):
        if condition:
            return

        if compliant & level:
            raise MalformedBlockTree(message)

        self.logger.warning(message)

    def split(self, body: bytes, compliant=Compliant.STRICT) -> RawRegionSet:
        raise NotImplementedError(f'{self.__class__.__name__}.split() not implemented')

    def join(self, regions: RawRegionSet) -> bytes:
        raise NotImplementedError(f'{self.__class__.__name__}.join() not implemented')

    def read_fields(self, regions, names, compliant):
        raise NotImplementedError(f'{self.__class__.__name__}.read_fields() not implemented')

    def read_blocks(self, regions, names, compliant):
        raise NotImplementedError(f'{self.__class__.__name__}.read_blocks() not implemented')

    def write_fields(self, records, names) -> bytes:
        raise NotImplementedError(f'{self.__class__.__name__}.write_fields() not implemented')

    def write_blocks(self, records, names) -> bytes:
        raise NotImplementedError(f'{self.__class__.__name__}.write_blocks() not implemented')

    def read_names(self, regions, shared_names=None, compliant=Compliant.STRICT):
        if regions.names_count is None:
            if shared_names is None:
                raise MissingNameTable('the file relies on a shared name table but none was given')
            return shared_names

        return NameTable.decode(
            regions.names,
            regions.names_count,
            index=regions.name_index if self.has_micro_index else None,
            compliant=compliant,
        )

    def decode(self, body: bytes, shared_names=None, compliant=Compliant.STRICT):
        '''Returns the name table and the records, ready for the tree builder'''
        regions = self.split(body, compliant=compliant)
        self.logger.debug('regions: %d names (%d bytes), %d fields (%d bytes), %d blocks (%d bytes), blob of %d bytes' % (
            regions.names_count or 0, len(regions.names),
            regions.field_count, len(regions.fields),
            regions.block_count, len(regions.blocks),
            len(regions.blob),
        ))

        names = self.read_names(regions, shared_names=shared_names, compliant=compliant)
        field_records = self.read_fields(regions, names, compliant)
        block_records = self.read_blocks(regions, names, compliant)

        return names, field_records, block_records, regions.blob

    def encode(self, names, field_records, block_records, blob, shared=False) -> bytes:
        if shared:
            data, index = b'', b''
        else:
            data, index = names.encode()

        regions = RawRegionSet(
            names=data,
            name_index=index if self.has_micro_index else None,
            names_count=None if shared else len(names),
            fields=self.write_fields(field_records, names),
            field_count=len(field_records),
            blocks=self.write_blocks(block_records, names),
            block_count=len(block_records),
            blob=bytes(blob),
        )

        return self.join(regions)

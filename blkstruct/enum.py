from enum import Enum, Flag, auto


class Compliant(Flag):
    '''It indicates which degree of compliantness the data must reflect the format.

    Only consistency checks that don't affect the bounds of what is read are
    listed here: a relaxed check logs a warning instead of raising.'''
    NONE         = 0
    NAME_COUNT   = 1 << 0
    UNIQUE_NAMES = 1 << 1
    TRAILING     = 1 << 2
    SUBTREE_SIZE = 1 << 3
    MAGIC        = 1 << 4
    STRICT       = NAME_COUNT | UNIQUE_NAMES | TRAILING | SUBTREE_SIZE | MAGIC


class Layout(Enum):
    '''The three historical layouts of the body of a block file.'''
    RAW  = auto()  # legacy, fixed width records
    FAT  = auto()  # offset-packed, uleb128 block records
    SLIM = auto()  # bit-packed name indices


class FormatVariant(Enum):
    '''A layout crossed with the compression of the body.'''
    RAW            = (Layout.RAW, False, False)
    RAW_ZSTD       = (Layout.RAW, True, False)
    FAT            = (Layout.FAT, False, False)
    FAT_ZSTD       = (Layout.FAT, True, False)
    SLIM           = (Layout.SLIM, False, False)
    SLIM_ZSTD      = (Layout.SLIM, True, False)
    SLIM_ZSTD_DICT = (Layout.SLIM, True, True)

    @property
    def layout(self):
        return self.value[0]

    @property
    def is_compressed(self):
        return self.value[1]

    @property
    def needs_dictionary(self):
        return self.value[2]

    @property
    def is_slim(self):
        return self.layout == Layout.SLIM


class ValueType(Enum):
    '''Type tags of the values, as stored in the field records.'''
    STR     = 0x01
    INT     = 0x02
    FLOAT   = 0x03
    FLOAT2  = 0x04
    FLOAT3  = 0x05
    FLOAT4  = 0x06
    INT2    = 0x07
    INT3    = 0x08
    BOOL    = 0x09
    COLOR   = 0x0a
    FLOAT12 = 0x0b
    LONG    = 0x0c
    UINT    = 0x0d
    DOUBLE  = 0x0e
    BYTES   = 0x0f

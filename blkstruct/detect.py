'''
# Format detection

The first bytes of a file tell which variant it is:

    00 'BBF' u16 version               raw
    00 'BBZ' u16 version u32 size      raw, zstd compressed
    01                                 fat
    02 u32 size                        fat, zstd compressed (the frame starts with 01)
    03                                 slim
    04 u32 size                        slim, zstd compressed
    05 u32 size                        slim, zstd compressed with a dictionary

size is the length of the decompressed payload. There is no fallback: a
variant not matching its header is an error, never a reason to try the
next one.
'''
import logging

from . import fields
from .compression import decompress
from .core import Chunk
from .enum import Compliant, FormatVariant
from .exceptions import MissingDictionary, TruncatedData, UnrecognizedFormat
from .streams import Stream


logger = logging.getLogger(__name__)

RAW_SIGNATURE = b'\x00BBF'
RAW_ZSTD_SIGNATURE = b'\x00BBZ'
RAW_VERSION = 3

FAT_MARKER = b'\x01'

TYPE_BYTES = {
    FormatVariant.FAT:            0x01,
    FormatVariant.FAT_ZSTD:       0x02,
    FormatVariant.SLIM:           0x03,
    FormatVariant.SLIM_ZSTD:      0x04,
    FormatVariant.SLIM_ZSTD_DICT: 0x05,
}
VARIANTS_BY_TYPE = {value: key for key, value in TYPE_BYTES.items()}


class RawHeader(Chunk):
    magic   = fields.StringField(4, default=RAW_SIGNATURE, is_magic=True)
    version = fields.StructField('H', default=RAW_VERSION, is_magic=True)


class RawZstdHeader(Chunk):
    magic         = fields.StringField(4, default=RAW_ZSTD_SIGNATURE, is_magic=True)
    version       = fields.StructField('H', default=RAW_VERSION, is_magic=True)
    declared_size = fields.StructField('I')


class CompressedHeader(Chunk):
    type_id       = fields.StructField('B')
    declared_size = fields.StructField('I')


def get_header_cls(variant: FormatVariant):
    if variant == FormatVariant.RAW:
        return RawHeader
    if variant == FormatVariant.RAW_ZSTD:
        return RawZstdHeader
    if variant.is_compressed:
        return CompressedHeader

    return None


def _header_size(variant):
    header_cls = get_header_cls(variant)

    return header_cls().size if header_cls is not None else 1


def detect(data: bytes):
    '''Return the variant and the offset where its body starts, looking only at the header.'''
    if not data:
        raise TruncatedData('there is no data to detect the format from')

    if data[0] == 0:
        if len(data) < len(RAW_SIGNATURE):
            raise TruncatedData(f'{len(data)} bytes are not enough for the raw signature')

        signature = bytes(data[:len(RAW_SIGNATURE)])
        if signature == RAW_SIGNATURE:
            variant = FormatVariant.RAW
        elif signature == RAW_ZSTD_SIGNATURE:
            variant = FormatVariant.RAW_ZSTD
        else:
            raise UnrecognizedFormat(f'unknown signature {signature!r}')
    else:
        try:
            variant = VARIANTS_BY_TYPE[data[0]]
        except KeyError:
            raise UnrecognizedFormat(f'unknown type byte {data[0]:#04x}')

    offset = _header_size(variant)
    if len(data) < offset:
        raise TruncatedData(f'header of {variant.name} needs {offset} bytes, there are {len(data)}')

    logger.debug('detected %s, body at offset %d' % (variant.name, offset))

    return variant, offset


def unpack_body(data: bytes, dictionary=None, compliant=Compliant.STRICT):
    '''Return the variant and its body, decompressed and without header.'''
    variant, offset = detect(data)

    header_cls = get_header_cls(variant)
    header = header_cls(Stream(bytes(data[:offset]), name='header'), compliant=compliant) if header_cls else None

    if not variant.is_compressed:
        return variant, bytes(data[offset:])

    if variant.needs_dictionary and dictionary is None:
        raise MissingDictionary(f'{variant.name} needs the dictionary it was compressed with')

    body = decompress(
        data[offset:],
        expected_len=header.declared_size.value,
        dictionary=dictionary if variant.needs_dictionary else None,
        compliant=compliant,
    )

    if variant == FormatVariant.FAT_ZSTD:
        if body[:1] != FAT_MARKER:
            raise UnrecognizedFormat(f'compressed fat payload starts with {body[:1]!r} instead of {FAT_MARKER!r}')
        body = body[1:]

    return variant, body

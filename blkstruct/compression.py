'''
# Compression collaborator

Compressed variants wrap their body in a zstd frame, the slim variant
with a dictionary optionally uses one shared by all the files of a
container. The algorithm itself is a black box provided by zstandard.
'''
import logging

import zstandard as zstd

from .enum import Compliant
from .exceptions import DecompressionError, LengthMismatch


logger = logging.getLogger(__name__)

DEFAULT_COMPRESSION_LEVEL = 3
READ_SIZE = 1 << 16


def as_dictionary(dictionary):
    '''Accept raw dictionary bytes or an already built ZstdCompressionDict'''
    if dictionary is None or isinstance(dictionary, zstd.ZstdCompressionDict):
        return dictionary

    return zstd.ZstdCompressionDict(bytes(dictionary))


def _read_frame(dctx, data, limit):
    '''Decompress the first frame, stopping as soon as it goes past limit bytes.'''
    chunks = []
    produced = 0
    with dctx.stream_reader(data, read_across_frames=False) as reader:
        while True:
            chunk = reader.read(READ_SIZE if limit is None else min(READ_SIZE, limit + 1 - produced))
            if not chunk:
                return b''.join(chunks)

            chunks.append(chunk)
            produced += len(chunk)

            if limit is not None and produced > limit:
                raise LengthMismatch(limit, produced)


def decompress(data: bytes, expected_len=None, dictionary=None, compliant=Compliant.STRICT) -> bytes:
    '''Decompress a single zstd frame.

    When expected_len is indicated the output must have exactly that length:
    we never truncate or pad to make it fit and we stop decompressing as soon
    as the frame produces more than that. Bytes after the frame are an error
    unless Compliant.TRAILING is relaxed.'''
    data = bytes(data)
    try:
        dctx = zstd.ZstdDecompressor(dict_data=as_dictionary(dictionary))
        output = _read_frame(dctx, data, expected_len)
        # the length is known now, so the second pass only finds the end of the frame
        dobj = dctx.decompressobj()
        dobj.decompress(data)
        unused = dobj.unused_data
    except zstd.ZstdError as e:
        raise DecompressionError(f'zstd failed on {len(data)} bytes: {e}') from e

    logger.debug('decompressed %d bytes into %d' % (len(data) - len(unused), len(output)))

    if expected_len is not None and len(output) != expected_len:
        raise LengthMismatch(expected_len, len(output))

    if unused:
        if compliant & Compliant.TRAILING:
            raise DecompressionError(f'{len(unused)} bytes after the end of the zstd frame')
        logger.warning('ignoring %d bytes after the end of the zstd frame' % len(unused))

    return output


def compress(data: bytes, level=DEFAULT_COMPRESSION_LEVEL, dictionary=None) -> bytes:
    cctx = zstd.ZstdCompressor(level=level, dict_data=as_dictionary(dictionary))
    output = cctx.compress(data)

    logger.debug('compressed %d bytes into %d' % (len(data), len(output)))

    return output

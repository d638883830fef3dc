'''
# Decoding pipeline

detect -> decompress -> split in regions -> name table -> records -> tree

Every call works on its own buffers, the only things that can be shared
between concurrent decodings are the (immutable) shared name table and
the zstd dictionary.
'''
import concurrent.futures
import functools
import logging

from .builder import DEFAULT_MAX_DEPTH, build_tree
from .compression import as_dictionary
from .detect import unpack_body
from .enum import Compliant
from .formats import get_layout
from .tree import Block


logger = logging.getLogger(__name__)


def decode(data, shared_names=None, dictionary=None, max_depth=DEFAULT_MAX_DEPTH,
           compliant=Compliant.STRICT) -> Block:
    '''Decode a whole block file into its tree.

    shared_names is the name table of the container, needed by slim files
    that don't carry their own, dictionary is the zstd dictionary needed by
    SLIM_ZSTD_DICT files.'''
    data = bytes(data)
    variant, body = unpack_body(data, dictionary=dictionary, compliant=compliant)

    logger.debug('decoding %s body of %d bytes' % (variant.name, len(body)))

    layout = get_layout(variant.layout)
    names, field_records, block_records, blob = layout.decode(body, shared_names=shared_names, compliant=compliant)

    return build_tree(
        names,
        field_records,
        block_records,
        blob,
        max_depth=max_depth,
        value_names=names,
        compliant=compliant,
    )


def decode_batch(blobs, shared_names=None, dictionary=None, max_depth=DEFAULT_MAX_DEPTH,
                 compliant=Compliant.STRICT, max_workers=None):
    '''Decode independent files concurrently, the result keeps the order
    of the input and the first failure is raised.'''
    worker = functools.partial(
        decode,
        shared_names=shared_names,
        # shared read-only by the workers
        dictionary=as_dictionary(dictionary),
        max_depth=max_depth,
        compliant=compliant,
    )

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(worker, blobs))

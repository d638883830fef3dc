'''
# Name table

Every field and block name of a file is stored once in the name table and
referenced by its 0-based index everywhere else.

A record of the table is a uleb128 length followed by that many UTF-8
bytes, the records are packed back to back without padding. The fat and
slim layouts add a micro-index, an array of u32 starting offsets, so that
an entry can be located without scanning the whole region.

The slim layout stores the indices with the minimal number of bits able
to address the table, see index_width().

A SharedNameTable comes from a name-map file shared by all the slim files
of a container: it's built once, it's immutable and can be used by
concurrent decodings.
'''
import logging
import struct
from collections import deque
from collections.abc import Sequence

from .compression import compress, decompress, DEFAULT_COMPRESSION_LEVEL
from .enum import Compliant
from .exceptions import IndexOutOfBounds, MalformedName, TruncatedData, UnpackException
from .streams import Stream, pack_uleb128


logger = logging.getLogger(__name__)

NM_NAMES_DIGEST_SIZE = 8
NM_DICT_DIGEST_SIZE = 32


def index_width(n: int) -> int:
    '''Number of bits needed to address a table of n entries, i.e. ceil(log2(n)).

    A table with a single entry needs no bit at all.'''
    if n <= 1:
        return 0

    return (n - 1).bit_length()


def _check(condition, compliant, level, message):
    if condition:
        return

    if compliant & level:
        raise MalformedName(message)

    logger.warning(message)


class NameTable(Sequence):
    '''Immutable ordered sequence of unique names.'''

    def __init__(self, names=()):
        self._names = tuple(names)
        self._index = {}
        for idx, name in enumerate(self._names):
            self._index.setdefault(name, idx)

    def __getitem__(self, item):
        return self._names[item]

    def __len__(self):
        return len(self._names)

    def __contains__(self, name):
        return name in self._index

    def __eq__(self, other):
        if isinstance(other, NameTable):
            return self._names == other._names
        return NotImplemented

    def __hash__(self):
        return hash(self._names)

    def __repr__(self):
        return '<%s(%d names)>' % (self.__class__.__name__, len(self))

    @property
    def width(self):
        return index_width(len(self))

    def lookup(self, idx: int) -> str:
        if not 0 <= idx < len(self._names):
            raise IndexOutOfBounds(f'name index {idx} is outside of a table of {len(self._names)} names')

        return self._names[idx]

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise KeyError(f'name {name!r} is not in the table')

    @staticmethod
    def _read_record(stream):
        offset = stream.tell()
        try:
            length = stream.read_uleb128()
            raw = stream.read(length)
        except UnpackException as e:
            raise MalformedName(f'name record at offset {offset}: {e.message}') from e

        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedName(f'name record at offset {offset} is not valid UTF-8: {raw!r}') from e

    @classmethod
    def decode(cls, data: bytes, count: int, index: bytes = None, compliant=Compliant.STRICT):
        '''Decode the region of the records.

        With a micro-index each record is located by its offset, otherwise the
        region is scanned and the records must tile it.'''
        stream = Stream(data, name='names')
        names = []

        if index is not None:
            if len(index) != 4 * count:
                raise MalformedName(f'micro-index of {len(index)} bytes for {count} names')

            end = 0
            for idx, offset in enumerate(struct.unpack('<%dI' % count, index)):
                if offset < end or offset >= len(data):
                    raise MalformedName(f'micro-index entry {idx} points to {offset} (region of {len(data)} bytes, previous record ended at {end})')
                stream.seek(offset)
                names.append(cls._read_record(stream))
                end = stream.tell()

            _check(end == len(data), compliant, Compliant.TRAILING,
                   f'{len(data) - end} bytes after the last name')
        else:
            while stream.remaining():
                names.append(cls._read_record(stream))

            _check(len(names) == count, compliant, Compliant.NAME_COUNT,
                   f'name count mismatch, expected {count} but found {len(names)}')

        _check(len(set(names)) == len(names), compliant, Compliant.UNIQUE_NAMES,
               'duplicated entries in the name table')

        logger.debug('decoded %d names from %d bytes' % (len(names), len(data)))

        return cls(names)

    def encode(self):
        '''Return the records and the micro-index'''
        records = []
        offsets = []
        offset = 0
        for name in self._names:
            raw = name.encode('utf-8')
            record = pack_uleb128(len(raw)) + raw
            offsets.append(offset)
            records.append(record)
            offset += len(record)

        return b''.join(records), struct.pack('<%dI' % len(offsets), *offsets)

    @classmethod
    def from_tree(cls, root, base=None):
        '''Collect the names used by a tree.

        The names still used from the base table keep its order, the new ones
        follow in breadth first order, for each block first the names of its
        params then the names of its child blocks.'''
        used = {}
        queue = deque([root])
        while queue:
            block = queue.popleft()
            for param in block.params:
                used.setdefault(param.name, None)
            for child in block.blocks:
                used.setdefault(child.name, None)
            queue.extend(block.blocks)

        used.pop(None, None)

        if base is None:
            return cls(used)

        ordered = [_ for _ in base if _ in used]
        ordered.extend(_ for _ in used if _ not in base)

        return cls(ordered)


class SharedNameTable(NameTable):
    '''Name table coming from a name-map file.

    The file is composed of the digest of the names, the digest of the zstd
    dictionary used by the container and a zstd stream containing the
    uleb128 count, the uleb128 size and the name records.'''

    def __init__(self, names=(), names_digest=b'\x00' * NM_NAMES_DIGEST_SIZE,
                 dict_digest=b'\x00' * NM_DICT_DIGEST_SIZE):
        super().__init__(names)
        self.names_digest = names_digest
        self.dict_digest = dict_digest

    @classmethod
    def from_nm_file(cls, data: bytes, compliant=Compliant.STRICT):
        header_size = NM_NAMES_DIGEST_SIZE + NM_DICT_DIGEST_SIZE
        if len(data) < header_size:
            raise TruncatedData(f'name-map file of {len(data)} bytes is shorter than its header')

        names_digest = data[:NM_NAMES_DIGEST_SIZE]
        dict_digest = data[NM_NAMES_DIGEST_SIZE:header_size]

        stream = Stream(decompress(data[header_size:], compliant=compliant), name='nm')
        count = stream.read_uleb128()
        size = stream.read_uleb128()
        table = NameTable.decode(stream.read(size), count, compliant=compliant)

        logger.debug('loaded shared name table with %d names' % len(table))

        return cls(table, names_digest=names_digest, dict_digest=dict_digest)

    def to_nm_file(self, level=DEFAULT_COMPRESSION_LEVEL) -> bytes:
        records, _ = self.encode()
        payload = pack_uleb128(len(self)) + pack_uleb128(len(records)) + records

        return self.names_digest + self.dict_digest + compress(payload, level=level)

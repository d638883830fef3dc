"""
Core module for the declarative description of binary records

"""
from typing import Tuple, List

from .fields import Field
from .meta import MetaChunk
from .streams import Stream
from .exceptions import BlkException


class Chunk(Field, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a record: the fields
    declared as class attributes are packed/unpacked in declaration order.

    A Chunk can contain sub-chunks and arrays of chunks.

        class Blob(Chunk):
            length = fields.StructField('I')
            data = fields.StringField(Dependency('.length'))

        blob = Blob(b'\\x02\\x00\\x00\\x00ab')
        blob.data.value  # b'ab'
    """

    def __init__(self, data=None, **kwargs):
        super().__init__(**kwargs)

        # now we have setup all the fields necessary and we can unpack if
        # some data is passed with the constructor
        if data is not None:
            stream = data if isinstance(data, Stream) else Stream(data, name=self.__class__.__name__)
            self.logger.debug('unpacking \'%s\' from %s' % (self.__class__.__name__, stream))
            self.unpack(stream)

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, repr(field))
        return msg

    def init(self):
        for _, field in self.get_fields():
            field.init()

    def _get_value(self):
        return self

    def _set_value(self, value):
        raise AttributeError(f'a {self.__class__.__name__} can\'t be assigned, set its fields')

    def _get_size(self):
        '''the size MUST be derived from the subchunks'''
        return sum(field.size for _, field in self.get_fields())

    def _get_raw(self):
        return b''.join(field.raw for _, field in self.get_fields())

    def unpack(self, stream):
        '''Take the binary data at the actual position of the stream and
        transform it in the representation given by the class.

        Errors raised by the fields keep their type, the name of the field
        is appended to their chain.'''
        for field_name, field in self.get_fields():
            field.offset = stream.tell()
            self.logger.debug('unpacking %s.%s at offset %d' % (self.__class__.__name__, field_name, field.offset))

            try:
                field.unpack(stream)
            except BlkException as e:
                e.chain.append(field_name)
                raise

        if hasattr(self, 'validate'):
            self.validate()

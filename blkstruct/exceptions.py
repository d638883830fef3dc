class BlkException(Exception):
    '''Base class to extend in order to throw exception in blkstruct.

    Beside the message it takes the chain of the layers that caused the
    exception, innermost first: the record framework appends the name of
    each field it was unpacking while the exception travels upward.
    '''

    def __init__(self, message='', chain=None):
        self.message = message
        self.chain = chain if chain is not None else []
        super().__init__(message)

    def __str__(self):
        if not self.chain:
            return self.message

        return '%s (at %s)' % (self.message, '.'.join(reversed(self.chain)))


class UnpackException(BlkException):
    '''Something went wrong while decoding'''
    pass


class UnrecognizedFormat(UnpackException):
    pass


class MagicException(UnrecognizedFormat):
    '''A field flagged as magic doesn't contain the expected value.'''
    pass


class TruncatedData(UnpackException):
    pass


class DecompressionError(UnpackException):
    pass


class LengthMismatch(UnpackException):

    def __init__(self, expected, found, chain=None):
        self.expected = expected
        self.found = found
        super().__init__(f'declared length is {expected} bytes but {found} were produced', chain=chain)


class MalformedName(UnpackException):
    pass


class MalformedValue(UnpackException):
    pass


class BlobRangeError(MalformedValue):
    pass


class UnsupportedType(UnpackException):

    def __init__(self, tag, chain=None):
        self.tag = tag
        super().__init__(f'unsupported value type {tag!r}', chain=chain)


class MissingNameTable(UnpackException):
    pass


class MissingDictionary(UnpackException):
    pass


class StructureError(UnpackException):
    '''The block/field records don't describe a tree.'''
    pass


class IndexOutOfBounds(StructureError):
    pass


class OverlappingBlockRange(StructureError):
    pass


class MaxDepthExceeded(StructureError):
    pass


class MalformedBlockTree(StructureError):
    pass


class PackException(BlkException):
    '''Something went wrong while encoding'''
    pass


class ValueOutOfRange(PackException, ValueError):
    pass


class TextFormatError(BlkException):

    def __init__(self, message, lineno=None):
        self.lineno = lineno
        super().__init__(message if lineno is None else f'line {lineno}: {message}')

import logging


class Dependency:
    '''This makes the relation between fields possible.

    In practice this class allows to write something like

        class Blob(Chunk):
            length = fields.StructField('I')
            data = fields.StringField(Dependency('.length'))

    and have the length of the string contained in the field named 'data'
    read from the field named 'length' while unpacking.

    The expression starts with a '.' since the resolution starts from the
    chunk containing the field, the following components descend into it.

    While packing the relation is not reversed automatically: whoever builds
    the chunk sets the size explicitly.
    '''
    def __init__(self, expression):
        if not expression.startswith('.'):
            raise ValueError(f'dependency {expression!r} must be relative to the containing chunk')

        self.expression = expression
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def resolve_field(self, instance):
        field = instance.father

        if field is None:
            raise AttributeError(f'{self!r} can\'t be resolved for a field without father')

        # '.length'.split(".") -> ['', 'length']
        for component_name in self.expression.split('.')[1:]:
            field = getattr(field, component_name)

        self.logger.debug(' resolved %s as field %s' % (self.expression, field.__class__.__name__))

        return field

    def resolve(self, instance):
        '''With this method we resolve the attribute with respect to the instance
        passed as argument.'''
        return self.resolve_field(instance).value


class ScaledDependency(Dependency):
    '''Resolve as the referenced value multiplied by a factor, like a count of
    fixed size records giving the size in bytes.'''

    def __init__(self, factor, expression):
        super().__init__(expression)
        self._factor = factor

    def resolve(self, instance):
        return super().resolve(instance) * self._factor

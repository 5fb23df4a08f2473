# Copyright (c) 2019 Iotic Labs Ltd. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://github.com/Iotic-Labs/py-ubjson/blob/master/LICENSE
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Producer & consumer contracts between rencode and application types

An application type which should be encoded implements Serializable, i.e.
describes itself as a series of primitive calls on the Encoder it is given:

    class Point(Serializable):

        def serialize(self, encoder):
            encoder.begin_list(2)
            encoder.emit_i64(self.x)
            encoder.emit_i64(self.y)
            encoder.end_list()

An application type which should be decoded provides a Visitor. The decoder
calls exactly one visit_* method per value with what it found on the wire and
the visitor returns whatever it builds from it. Containers are handed over as
access cursors (see pyrencode.decoder.SequenceAccess & MapAccess) which the
visitor pulls elements from, using a visitor of its choosing for each one:

    class PointVisitor(Visitor):
        expecting = 'point'

        def visit_seq(self, access):
            x, y = access.iter_elements(IntVisitor())
            return Point(x, y)
"""

from abc import ABCMeta, abstractmethod
from sys import intern

from .exceptions import InvalidText, TypeMismatch

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class Serializable(metaclass=ABCMeta):
    """Implemented by objects which can describe themselves to an Encoder."""

    __slots__ = ()

    @abstractmethod
    def serialize(self, encoder):
        """Emits exactly one value (which may be a container) via the given pyrencode.encoder.Encoder."""
        raise NotImplementedError


class Visitor(object):
    """Builds a value from what the decoder finds. Every visit_* method not overridden reports a TypeMismatch."""

    # used in mismatch messages
    expecting = 'value'

    def mismatch(self, found):
        raise TypeMismatch('Expected %s, found %s' % (self.expecting, found))

    def visit_none(self):
        return self.mismatch('none')

    def visit_bool(self, value):
        return self.mismatch('bool')

    def visit_i8(self, value):
        return self.visit_i64(value)

    def visit_i16(self, value):
        return self.visit_i64(value)

    def visit_i32(self, value):
        return self.visit_i64(value)

    def visit_i64(self, value):
        return self.mismatch('integer')

    def visit_f32(self, value):
        return self.visit_f64(value)

    def visit_f64(self, value):
        return self.mismatch('float')

    def visit_bytes(self, raw):
        """Receives the raw payload of any string. Decodes it as UTF-8 and passes it on to visit_str()."""
        if type(self).visit_str is Visitor.visit_str:
            return self.mismatch('string')
        try:
            text = raw.decode('utf-8')
        except UnicodeError as ex:
            raise InvalidText('Failed to decode string') from ex
        return self.visit_str(text)

    def visit_str(self, value):
        return self.mismatch('string')

    def visit_seq(self, access):
        return self.mismatch('list')

    def visit_map(self, access):
        return self.mismatch('dict')


class PythonVisitor(Visitor):
    """Produces plain Python objects - see pyrencode.decoder.load() for the mapping & options."""

    expecting = 'any value'

    def __init__(self, raw_strings=False, object_hook=None, object_pairs_hook=None, intern_object_keys=False):
        if object_pairs_hook is None and object_hook is None:
            object_hook = _object_hook_noop
        self.__raw_strings = raw_strings
        self.__object_hook = object_hook
        self.__object_pairs_hook = object_pairs_hook
        self.__intern_object_keys = intern_object_keys

    def visit_none(self):
        return None

    def visit_bool(self, value):
        return value

    def visit_i64(self, value):
        return value

    def visit_f64(self, value):
        return value

    def visit_bytes(self, raw):
        if self.__raw_strings:
            return raw
        return super(PythonVisitor, self).visit_bytes(raw)

    def visit_str(self, value):
        return value

    def visit_seq(self, access):
        return list(access.iter_elements(self))

    def visit_map(self, access):
        if self.__object_pairs_hook is not None:
            return self.__object_pairs_hook([(self.__key(key), value) for key, value in access.iter_items(self, self)])

        obj = {}
        for key, value in access.iter_items(self, self):
            try:
                obj[self.__key(key)] = value
            except TypeError as ex:
                raise TypeMismatch('Unhashable dict key of type %s' % type(key).__name__) from ex
        return self.__object_hook(obj)

    def __key(self, key):
        if self.__intern_object_keys and isinstance(key, str):
            return intern(key)
        return key


def _object_hook_noop(obj):
    return obj


class BoolVisitor(Visitor):

    expecting = 'bool'

    def visit_bool(self, value):
        return value


class IntVisitor(Visitor):
    """Accepts integers within [min_value, max_value]."""

    expecting = 'integer'

    def __init__(self, min_value=INT64_MIN, max_value=INT64_MAX):
        self.__min_value = min_value
        self.__max_value = max_value

    def visit_i64(self, value):
        if not self.__min_value <= value <= self.__max_value:
            raise TypeMismatch('Integer %d outside of [%d, %d]' % (value, self.__min_value, self.__max_value))
        return value


class FloatVisitor(Visitor):
    """Accepts floats of either width as well as integers (converted to float)."""

    expecting = 'float'

    def visit_i64(self, value):
        return float(value)

    def visit_f64(self, value):
        return value


class StrVisitor(Visitor):

    expecting = 'string'

    def visit_str(self, value):
        return value


class BytesVisitor(Visitor):
    """Returns string payloads undecoded."""

    expecting = 'string'

    def visit_bytes(self, raw):
        return bytes(raw)


class OptionalVisitor(Visitor):
    """Returns None for a none value and defers to the inner visitor for everything else."""

    def __init__(self, inner):
        self.__inner = inner
        self.expecting = 'none or %s' % inner.expecting

    def visit_none(self):
        return None

    def visit_bool(self, value):
        return self.__inner.visit_bool(value)

    def visit_i8(self, value):
        return self.__inner.visit_i8(value)

    def visit_i16(self, value):
        return self.__inner.visit_i16(value)

    def visit_i32(self, value):
        return self.__inner.visit_i32(value)

    def visit_i64(self, value):
        return self.__inner.visit_i64(value)

    def visit_f32(self, value):
        return self.__inner.visit_f32(value)

    def visit_f64(self, value):
        return self.__inner.visit_f64(value)

    def visit_bytes(self, raw):
        return self.__inner.visit_bytes(raw)

    def visit_str(self, value):
        return self.__inner.visit_str(value)

    def visit_seq(self, access):
        return self.__inner.visit_seq(access)

    def visit_map(self, access):
        return self.__inner.visit_map(access)


class ListVisitor(Visitor):
    """Builds a list, decoding each element with the given visitor."""

    def __init__(self, element):
        self.__element = element
        self.expecting = 'list of %s' % element.expecting

    def visit_seq(self, access):
        return list(access.iter_elements(self.__element))


class DictVisitor(Visitor):
    """Builds a dict, decoding keys & values with the given visitors."""

    def __init__(self, key, value):
        self.__key = key
        self.__value = value
        self.expecting = 'dict of %s to %s' % (key.expecting, value.expecting)

    def visit_map(self, access):
        obj = {}
        for key, value in access.iter_items(self.__key, self.__value):
            try:
                obj[key] = value
            except TypeError as ex:
                raise TypeMismatch('Unhashable dict key of type %s' % type(key).__name__) from ex
        return obj

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


"""Generic rencode value, for use when the shape of the data is not known in advance

Example usage:

    value = Value.decode(raw)
    if value.kind == KIND_DICT:
        name = value['name'].data

    raw = Value.from_python({'name': 'bob', 'code': -133}).encode()
"""

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from .decoder import loadb
from .encoder import dumpb
from .exceptions import TypeMismatch
from .visitor import Serializable, Visitor, INT64_MIN, INT64_MAX

__all__ = ('Value', 'ValueVisitor', 'KIND_NONE', 'KIND_BOOL', 'KIND_I64', 'KIND_U64', 'KIND_F64', 'KIND_STRING',
           'KIND_LIST', 'KIND_DICT')

UINT64_MAX = 2 ** 64 - 1

KIND_NONE = 'none'
KIND_BOOL = 'bool'
KIND_I64 = 'i64'
KIND_U64 = 'u64'
KIND_F64 = 'f64'
KIND_STRING = 'string'
KIND_LIST = 'list'
KIND_DICT = 'dict'

# Compared by numeric value, regardless of which of these two kinds
_INTEGER_KINDS = frozenset((KIND_I64, KIND_U64))


class Value(Serializable):
    """A value of any rencode type. Instances are immutable and form a tree: a list or dict value owns its children.

    Dict values only have string keys and always iterate (and are encoded) in sorted key order.
    """

    __slots__ = ('__kind', '__data')

    def __init__(self, kind, data):
        # use the named constructors, which validate data
        self.__kind = kind
        self.__data = data

    @classmethod
    def none(cls):
        return cls(KIND_NONE, None)

    @classmethod
    def boolean(cls, value):
        if not isinstance(value, bool):
            raise TypeError('bool required, got %s' % type(value).__name__)
        return cls(KIND_BOOL, value)

    @classmethod
    def i64(cls, value):
        _check_int(value, INT64_MIN, INT64_MAX)
        return cls(KIND_I64, value)

    @classmethod
    def u64(cls, value):
        _check_int(value, 0, UINT64_MAX)
        return cls(KIND_U64, value)

    @classmethod
    def f64(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError('float required, got %s' % type(value).__name__)
        return cls(KIND_F64, float(value))

    @classmethod
    def string(cls, value):
        if not isinstance(value, str):
            raise TypeError('str required, got %s' % type(value).__name__)
        return cls(KIND_STRING, value)

    @classmethod
    def list_of(cls, items):
        items = tuple(items)
        for item in items:
            _check_value(item)
        return cls(KIND_LIST, items)

    @classmethod
    def dict_of(cls, items):
        """Builds a dict value from a mapping or an iterable of (key, value) pairs."""
        items = dict(items.items() if isinstance(items, Mapping) else items)
        for key, item in items.items():
            if not isinstance(key, str):
                raise TypeError('Dict keys must be str, got %s' % type(key).__name__)
            _check_value(item)
        return cls(KIND_DICT, MappingProxyType({key: items[key] for key in sorted(items)}))

    @classmethod
    def from_python(cls, obj):
        """Converts None, bool, int, float, str, sequences & str-keyed mappings (recursively) to a Value.

        Raises:
            TypeError: For unsupported types (including bytes & non-str mapping keys)
            ValueError: For integers outside of the 64-bit ranges and circular references
        """
        return _from_python(obj, {})

    @classmethod
    def decode(cls, raw, **kwargs):
        """Decodes the given bytes into a Value. See pyrencode.decoder.load() for available arguments."""
        return loadb(raw, visitor=ValueVisitor(), **kwargs)

    @property
    def kind(self):
        """One of the KIND_* constants"""
        return self.__kind

    @property
    def data(self):
        """The wrapped Python value: None, bool, int, float, str, tuple (of Value) or read-only str to Value mapping"""
        return self.__data

    def encode(self, **kwargs):
        """Returns this value encoded. See pyrencode.encoder.dump() for available arguments."""
        return dumpb(self, **kwargs)

    def to_python(self):
        """Converts (recursively) to plain Python objects, with lists for list values."""
        if self.__kind == KIND_LIST:
            return [item.to_python() for item in self.__data]
        if self.__kind == KIND_DICT:
            return {key: item.to_python() for key, item in self.__data.items()}
        return self.__data

    def serialize(self, encoder):
        kind = self.__kind
        data = self.__data
        if kind == KIND_NONE:
            encoder.emit_none()
        elif kind == KIND_BOOL:
            encoder.emit_bool(data)
        elif kind == KIND_I64:
            encoder.emit_i64(data)
        elif kind == KIND_U64:
            encoder.emit_u64(data)
        elif kind == KIND_F64:
            encoder.emit_f64(data)
        elif kind == KIND_STRING:
            encoder.emit_str(data)
        elif kind == KIND_LIST:
            encoder.begin_list(len(data))
            for item in data:
                item.serialize(encoder)
            encoder.end_list()
        else:
            encoder.begin_dict(len(data))
            for key, item in data.items():
                encoder.emit_str(key)
                item.serialize(encoder)
            encoder.end_dict()

    def __len__(self):
        if self.__kind not in (KIND_LIST, KIND_DICT):
            raise TypeError('%s value has no length' % self.__kind)
        return len(self.__data)

    def __getitem__(self, key):
        if self.__kind not in (KIND_LIST, KIND_DICT):
            raise TypeError('%s value is not subscriptable' % self.__kind)
        return self.__data[key]

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        if self.__kind in _INTEGER_KINDS and other.kind in _INTEGER_KINDS:
            return self.__data == other.data
        return self.__kind == other.kind and self.__data == other.data

    __hash__ = None

    def __repr__(self):
        if self.__kind == KIND_NONE:
            return 'Value.none()'
        if self.__kind == KIND_BOOL:
            return 'Value.boolean(%r)' % self.__data
        if self.__kind == KIND_STRING:
            return 'Value.string(%r)' % self.__data
        if self.__kind == KIND_LIST:
            return 'Value.list_of(%r)' % (list(self.__data),)
        if self.__kind == KIND_DICT:
            return 'Value.dict_of(%r)' % (dict(self.__data),)
        return 'Value.%s(%r)' % (self.__kind, self.__data)


def _check_int(value, min_value, max_value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError('int required, got %s' % type(value).__name__)
    if not min_value <= value <= max_value:
        raise ValueError('Integer %d outside of [%d, %d]' % (value, min_value, max_value))


def _check_value(item):
    if not isinstance(item, Value):
        raise TypeError('Value required, got %s' % type(item).__name__)


def _from_python(obj, seen_containers):
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return Value.none()
    if obj is True or obj is False:
        return Value.boolean(obj)
    if isinstance(obj, int):
        return Value.i64(obj) if INT64_MIN <= obj <= INT64_MAX else Value.u64(obj)
    if isinstance(obj, float):
        return Value.f64(obj)
    if isinstance(obj, str):
        return Value.string(obj)
    if isinstance(obj, (bytes, bytearray)):
        raise TypeError('Cannot convert %s to Value' % type(obj).__name__)
    if isinstance(obj, (Mapping, Sequence)):
        # circular reference check
        container_id = id(obj)
        if container_id in seen_containers:
            raise ValueError('Circular reference detected')
        seen_containers[container_id] = obj
        if isinstance(obj, Mapping):
            value = Value.dict_of((key, _from_python(item, seen_containers)) for key, item in obj.items())
        else:
            value = Value.list_of(_from_python(item, seen_containers) for item in obj)
        del seen_containers[container_id]
        return value
    raise TypeError('Cannot convert %s to Value' % type(obj).__name__)


class ValueVisitor(Visitor):
    """Builds Value trees, children before their containers."""

    expecting = 'any value'

    def visit_none(self):
        return Value.none()

    def visit_bool(self, value):
        return Value.boolean(value)

    def visit_i64(self, value):
        return Value.i64(value)

    def visit_f64(self, value):
        return Value.f64(value)

    def visit_str(self, value):
        return Value.string(value)

    def visit_seq(self, access):
        return Value.list_of(access.iter_elements(self))

    def visit_map(self, access):
        items = {}
        for key, item in access.iter_items(self, self):
            if key.kind != KIND_STRING:
                raise TypeMismatch('Expected string dict key, found %s' % key.kind)
            items[key.data] = item
        return Value.dict_of(items)

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


"""rencode encoder"""

from collections.abc import Iterator, Mapping, Sequence
from io import BytesIO
from struct import pack, Struct, error as StructError

from .exceptions import EncoderException
from .typecodes import (LIST, DICT, TYPE_LIST, TYPE_DICT, TYPE_INT16, TYPE_INT32, TYPE_INT64, TYPE_INT8,
                        TYPE_FLOAT32, TYPE_FLOAT64, TYPE_TRUE, TYPE_FALSE, TYPE_NONE, TYPE_TERM, STR_DELIM,
                        INT_POS_FIXED_START, INT_POS_FIXED_END, INT_NEG_FIXED_START, INT_NEG_FIXED_COUNT,
                        DICT_FIXED_START, DICT_FIXED_COUNT, STR_FIXED_START, STR_FIXED_COUNT, LIST_FIXED_START,
                        LIST_FIXED_COUNT)
from .visitor import Serializable, INT64_MIN, INT64_MAX

__all__ = ('Encoder', 'dump', 'dumpb', 'EncoderException')

UINT64_MAX = 2 ** 64 - 1


def _encode_small_int(value):
    if -INT_NEG_FIXED_COUNT <= value < 0:
        return bytes((INT_NEG_FIXED_START - 1 - value,))
    if 0 <= value <= INT_POS_FIXED_END:
        return bytes((INT_POS_FIXED_START + value,))
    return TYPE_INT8 + pack('>b', value)


# Lookup tables for encoding small integers & embedded headers, pre-initialised larger integer & float packers
_SMALL_INTS_ENCODED = {i: _encode_small_int(i) for i in range(-128, 128)}
_STR_FIXED_ENCODED = tuple(bytes((STR_FIXED_START + i,)) for i in range(STR_FIXED_COUNT))
_LIST_FIXED_ENCODED = tuple(bytes((LIST_FIXED_START + i,)) for i in range(LIST_FIXED_COUNT))
_DICT_FIXED_ENCODED = tuple(bytes((DICT_FIXED_START + i,)) for i in range(DICT_FIXED_COUNT))
_PACK_INT16 = Struct('>h').pack
_PACK_INT32 = Struct('>i').pack
_PACK_INT64 = Struct('>q').pack
_PACK_FLOAT32 = Struct('>f').pack
_PACK_FLOAT64 = Struct('>d').pack

_CONTAINER_NAMES = {LIST: 'list', DICT: 'dict'}


def _encode_int(fp_write, item):
    # narrowest representation wins
    if -(2 ** 7) <= item < 2 ** 7:
        fp_write(_SMALL_INTS_ENCODED[item])
    elif -(2 ** 15) <= item < 2 ** 15:
        fp_write(TYPE_INT16)
        fp_write(_PACK_INT16(item))
    elif -(2 ** 31) <= item < 2 ** 31:
        fp_write(TYPE_INT32)
        fp_write(_PACK_INT32(item))
    elif INT64_MIN <= item <= INT64_MAX:
        fp_write(TYPE_INT64)
        fp_write(_PACK_INT64(item))
    else:
        raise EncoderException('Integer %d outside of signed 64-bit range' % item)


def _encode_str(fp_write, raw):
    length = len(raw)
    if length < STR_FIXED_COUNT:
        fp_write(_STR_FIXED_ENCODED[length])
    else:
        fp_write(str(length).encode('ascii'))
        fp_write(STR_DELIM)
    fp_write(raw)


class _Frame(object):
    """An open container (or the top level, with typecode None)"""

    __slots__ = ('typecode', 'length', 'terminated', 'items')

    def __init__(self, typecode, length, terminated):
        self.typecode = typecode
        self.length = length
        self.terminated = terminated
        self.items = 0


class Encoder(object):
    """Writes rencode values via fp_write, a write(bytes)-able callable.

    Application types implementing pyrencode.visitor.Serializable are handed an
    instance of this class and describe themselves with the emit_*(), begin_*()
    & end_*() methods, using encode() for any nested object which can be
    encoded as-is.

    Containers can be started with or without a length. With a small enough
    length the count is embedded in the typecode, otherwise a terminator is
    written by the matching end_*() call. A declared length must match the
    number of values (or key/value pairs) emitted.
    """

    def __init__(self, fp_write, sort_keys=False, float32=False, default=None):
        self.__fp_write = fp_write
        self.__sort_keys = sort_keys
        self.__float32 = float32
        self.__default = default
        self.__seen_containers = {}
        self.__frames = [_Frame(None, None, False)]

    def __item(self):
        # checked before anything is written
        frame = self.__frames[-1]
        if frame.length is not None:
            if frame.typecode == LIST and frame.items >= frame.length:
                raise EncoderException('List declared with %d elements but more emitted' % frame.length)
            if frame.typecode == DICT and frame.items >= 2 * frame.length:
                raise EncoderException('Dict declared with %d pairs but more emitted' % frame.length)
        frame.items += 1

    def emit_none(self):
        self.__item()
        self.__fp_write(TYPE_NONE)

    def emit_bool(self, value):
        self.__item()
        self.__fp_write(TYPE_TRUE if value else TYPE_FALSE)

    def emit_i64(self, value):
        if not isinstance(value, int):
            raise EncoderException('Cannot encode item of type %s as integer' % type(value))
        self.__item()
        _encode_int(self.__fp_write, value)

    def emit_u64(self, value):
        if not isinstance(value, int):
            raise EncoderException('Cannot encode item of type %s as integer' % type(value))
        if not 0 <= value <= UINT64_MAX:
            raise EncoderException('Integer %d outside of unsigned 64-bit range' % value)
        if value > INT64_MAX:
            raise EncoderException('Unsigned integer %d cannot be represented (above signed 64-bit maximum)' % value)
        self.emit_i64(value)

    def emit_f32(self, value):
        try:
            packed = _PACK_FLOAT32(value)
        except (OverflowError, StructError) as ex:
            raise EncoderException('Cannot encode %r as float32' % (value,)) from ex
        self.__item()
        self.__fp_write(TYPE_FLOAT32)
        self.__fp_write(packed)

    def emit_f64(self, value):
        try:
            packed = _PACK_FLOAT64(value)
        except StructError as ex:
            raise EncoderException('Cannot encode %r as float64' % (value,)) from ex
        self.__item()
        self.__fp_write(TYPE_FLOAT64)
        self.__fp_write(packed)

    def emit_str(self, value):
        """Writes a str (as UTF-8) or bytes-like value (as-is) as a string."""
        if isinstance(value, str):
            try:
                raw = value.encode('utf-8')
            except UnicodeError as ex:
                raise EncoderException('Failed to encode string') from ex
        elif isinstance(value, (bytes, bytearray)):
            raw = value
        else:
            raise EncoderException('Cannot encode item of type %s as string' % type(value))
        self.__item()
        _encode_str(self.__fp_write, raw)

    def begin_list(self, length=None):
        """Starts a list of the given number of elements (or of unknown length if None)."""
        self.__begin(LIST, length, LIST_FIXED_COUNT, _LIST_FIXED_ENCODED, TYPE_LIST)

    def end_list(self):
        frame = self.__end(LIST)
        if frame.length is not None and frame.items != frame.length:
            raise EncoderException('List declared with %d elements but %d emitted' % (frame.length, frame.items))
        if frame.terminated:
            self.__fp_write(TYPE_TERM)

    def begin_dict(self, length=None):
        """Starts a dict of the given number of key/value pairs (or of unknown length if None)."""
        self.__begin(DICT, length, DICT_FIXED_COUNT, _DICT_FIXED_ENCODED, TYPE_DICT)

    def end_dict(self):
        frame = self.__end(DICT)
        if frame.items % 2:
            raise EncoderException('Dict key emitted without value')
        if frame.length is not None and frame.items // 2 != frame.length:
            raise EncoderException('Dict declared with %d pairs but %d emitted' % (frame.length, frame.items // 2))
        if frame.terminated:
            self.__fp_write(TYPE_TERM)

    def __begin(self, typecode, length, fixed_count, fixed_encoded, type_open):
        if length is not None and length < 0:
            raise EncoderException('Negative %s length' % _CONTAINER_NAMES[typecode])
        self.__item()
        if length is not None and length < fixed_count:
            self.__fp_write(fixed_encoded[length])
            self.__frames.append(_Frame(typecode, length, False))
        else:
            # count too large for typecode or not known
            self.__fp_write(type_open)
            self.__frames.append(_Frame(typecode, length, True))

    def __end(self, typecode):
        if self.__frames[-1].typecode != typecode:
            raise EncoderException('No %s to end' % _CONTAINER_NAMES[typecode])
        return self.__frames.pop()

    def encode(self, item):
        """Writes any supported object - see dump() for the type mapping."""
        if isinstance(item, (str, bytes, bytearray)):
            self.emit_str(item)

        elif item is None:
            self.emit_none()

        elif item is True or item is False:
            self.emit_bool(item)

        elif isinstance(item, int):
            self.emit_i64(item)

        elif isinstance(item, float):
            if self.__float32:
                self.emit_f32(item)
            else:
                self.emit_f64(item)

        elif isinstance(item, Serializable):
            self.__encode_serializable(item)

        # order important since mappings could also be sequences
        elif isinstance(item, Mapping):
            self.__encode_dict(item)

        elif isinstance(item, Sequence):
            self.__encode_list(item)

        elif isinstance(item, Iterator):
            self.begin_list()
            for value in item:
                self.encode(value)
            self.end_list()

        elif self.__default is not None:
            self.encode(self.__default(item))

        else:
            raise EncoderException('Cannot encode item of type %s' % type(item))

    def __encode_serializable(self, item):
        frame = self.__frames[-1]
        items = frame.items
        item.serialize(self)
        if self.__frames[-1] is not frame:
            raise EncoderException('%s.serialize() left a container open' % type(item).__name__)
        if frame.items != items + 1:
            raise EncoderException('%s.serialize() emitted %d values instead of one' % (type(item).__name__,
                                                                                     frame.items - items))

    def __encode_list(self, item):
        # circular reference check
        container_id = id(item)
        if container_id in self.__seen_containers:
            raise ValueError('Circular reference detected')
        self.__seen_containers[container_id] = item

        self.begin_list(len(item))
        for value in item:
            self.encode(value)
        self.end_list()

        del self.__seen_containers[container_id]

    def __encode_dict(self, item):
        # circular reference check
        container_id = id(item)
        if container_id in self.__seen_containers:
            raise ValueError('Circular reference detected')
        self.__seen_containers[container_id] = item

        items = item.items()
        if self.__sort_keys:
            try:
                items = sorted(items)
            except TypeError as ex:
                raise EncoderException('Cannot sort mapping keys') from ex

        self.begin_dict(len(item))
        for key, value in items:
            self.encode(key)
            self.encode(value)
        self.end_dict()

        del self.__seen_containers[container_id]


def dump(obj, fp, sort_keys=False, float32=False, default=None):
    """Writes the given object as rencode to the provided file-like object

    Args:
        obj: The object to encode
        fp: write([size])-able object
        sort_keys (bool): Sort keys of mappings
        float32 (bool): Store float numbers as float32 instead of float64.
                        This saves space at the loss of precision and fails
                        for values outside of the float32 range.
        default (callable): Called for objects which cannot be serialised.
                            Should return a rencode-encodable version of the
                            object or raise an EncoderException.

    Raises:
        EncoderException: If an encoding failure occured.

    Bytes already written to fp before a failure are not rolled back - use
    dumpb() if that matters. The following Python types and interfaces (ABCs)
    are supported (as are any subclasses):

    +--------------------------------+-----------------------------------+
    | Python                         | rencode                           |
    +================================+===================================+
    | str                            | string (UTF-8)                    |
    +--------------------------------+-----------------------------------+
    | bytes, bytearray               | string (as-is)                    |
    +--------------------------------+-----------------------------------+
    | None                           | none                              |
    +--------------------------------+-----------------------------------+
    | bool                           | true, false                       |
    +--------------------------------+-----------------------------------+
    | int                            | int (embedded), int8, int16,      |
    |                                | int32, int64                      |
    +--------------------------------+-----------------------------------+
    | float                          | float64 (float32)                 |
    +--------------------------------+-----------------------------------+
    | pyrencode.visitor.Serializable | (whatever serialize() emits)      |
    | (incl. pyrencode.value.Value)  |                                   |
    +--------------------------------+-----------------------------------+
    | collections.abc.Mapping        | dict                              |
    +--------------------------------+-----------------------------------+
    | collections.abc.Sequence       | list                              |
    +--------------------------------+-----------------------------------+
    | collections.abc.Iterator       | list (terminated)                 |
    +--------------------------------+-----------------------------------+

    Notes:
    - Items are resolved in the order of this table, e.g. if the item implements
      both Mapping and Sequence interfaces, it will be encoded as a mapping.
    - None and bool do not use an isinstance check
    - Integers must lie within the signed 64-bit range.
    - Containers with few enough items have their count embedded in the
      typecode (lists: < 64, dicts: < 25), all others (including iterators,
      whose length is not known in advance) are terminated.
    - Mapping keys can be of any encodable type. Mixed key types cannot be
      combined with sort_keys.
    """
    if not callable(fp.write):
        raise TypeError('fp.write not callable')

    Encoder(fp.write, sort_keys=sort_keys, float32=float32, default=default).encode(obj)


def dumpb(obj, sort_keys=False, float32=False, default=None):
    """Returns the given object as rencode in a bytes instance. See dump() for
       available arguments."""
    with BytesIO() as fp:
        dump(obj, fp, sort_keys=sort_keys, float32=float32, default=default)
        return fp.getvalue()

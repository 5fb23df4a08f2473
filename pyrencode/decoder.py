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


"""rencode decoder"""

from io import BytesIO
from struct import Struct

from .exceptions import (DecoderException, InsufficientInput, InvalidTypecode, UnexpectedTerminator, InvalidLength,
                         InvalidText, TypeMismatch, UnknownField, MissingField, LimitExceeded)
from .typecodes import (LIST, DICT, INT8, INT16, INT32, INT64, FLOAT32, FLOAT64, TRUE, FALSE, NONE, TERM, STR_DELIM,
                        INT_POS_FIXED_START, INT_POS_FIXED_END, INT_NEG_FIXED_START, INT_NEG_FIXED_END,
                        DICT_FIXED_START, DICT_FIXED_END, STR_FIXED_START, STR_FIXED_END, LIST_FIXED_START,
                        LIST_FIXED_END, DIGITS)
from .visitor import PythonVisitor

__all__ = ('Decoder', 'SequenceAccess', 'MapAccess', 'load', 'loadb', 'DEFAULT_MAX_DEPTH', 'DEFAULT_MAX_LENGTH',
           'DecoderException', 'InsufficientInput', 'InvalidTypecode', 'UnexpectedTerminator', 'InvalidLength',
           'InvalidText', 'TypeMismatch', 'UnknownField', 'MissingField', 'LimitExceeded')

# Maximum container nesting
DEFAULT_MAX_DEPTH = 100
# Maximum length (in bytes) a decimal length prefix may declare
DEFAULT_MAX_LENGTH = 2 ** 26

_UNPACK_INT8 = Struct('>b').unpack
_UNPACK_INT16 = Struct('>h').unpack
_UNPACK_INT32 = Struct('>i').unpack
_UNPACK_INT64 = Struct('>q').unpack
_UNPACK_FLOAT32 = Struct('>f').unpack
_UNPACK_FLOAT64 = Struct('>d').unpack

_DELIM = ord(STR_DELIM)
_ZERO = ord('0')


class _ContainerAccess(object):
    """Counts down remaining items of a fixed container or watches for the terminator of an open one."""

    def __init__(self, decoder, count):
        self._decoder = decoder
        self._remaining = count
        self._terminated = False

    @property
    def size_hint(self):
        """Number of items left if known (i.e. for a container with count in its typecode), None otherwise."""
        return self._remaining

    def has_next(self):
        if self._remaining is not None:
            return self._remaining > 0
        if self._terminated:
            return False
        # only place where a terminator is acceptable
        if self._decoder.peek() == TERM:
            self._decoder.advance()
            self._terminated = True
            return False
        return True

    def _take(self, what):
        if not self.has_next():
            raise DecoderException('No more %s' % what)
        if self._remaining is not None:
            self._remaining -= 1


class SequenceAccess(_ContainerAccess):
    """Cursor over the elements of a list being decoded"""

    def next_element(self, visitor):
        self._take('list elements')
        return self._decoder.decode(visitor)

    def iter_elements(self, visitor):
        """Yields all remaining elements, each decoded with the given visitor."""
        while self.has_next():
            yield self.next_element(visitor)

    def end(self):
        if self.has_next():
            raise DecoderException('List not fully consumed')


class MapAccess(_ContainerAccess):
    """Cursor over the key/value pairs of a dict being decoded"""

    def __init__(self, decoder, count):
        super(MapAccess, self).__init__(decoder, count)
        self.__pending_value = False

    def has_next(self):
        return self.__pending_value or super(MapAccess, self).has_next()

    def next_key(self, visitor):
        if self.__pending_value:
            raise DecoderException('Dict key requested before value of previous key')
        self._take('dict items')
        key = self._decoder.decode(visitor)
        self.__pending_value = True
        return key

    def next_value(self, visitor):
        if not self.__pending_value:
            raise DecoderException('Dict value requested before key')
        self.__pending_value = False
        return self._decoder.decode(visitor)

    def iter_items(self, key_visitor, value_visitor):
        """Yields all remaining (key, value) pairs, decoded with the given visitors."""
        while self.has_next():
            key = self.next_key(key_visitor)
            yield key, self.next_value(value_visitor)

    def end(self):
        if self.has_next():
            raise DecoderException('Dict not fully consumed')


class Decoder(object):
    """Decodes rencode values from fp_read, a read([size])-able callable. Holds no state other than the limits, the
    current nesting depth and at most one byte of lookahead.
    """

    def __init__(self, fp_read, max_depth=DEFAULT_MAX_DEPTH, max_length=DEFAULT_MAX_LENGTH):
        self.__fp_read = fp_read
        self.__peeked = None
        self.__depth = 0
        self.max_depth = max_depth
        self.max_length = max_length

    def peek(self):
        """Returns the next byte (as an integer) without consuming it."""
        if self.__peeked is None:
            raw = self.__fp_read(1)
            if not raw:
                raise InsufficientInput('Insufficient input')
            self.__peeked = raw[0]
        return self.__peeked

    def advance(self):
        """Consumes and returns the next byte (as an integer)."""
        byte = self.peek()
        self.__peeked = None
        return byte

    def read(self, length):
        """Reads exactly length bytes of payload. Any peeked byte must have been consumed already."""
        if not length:
            return b''
        raw = self.__fp_read(length)
        if len(raw) < length:
            raise InsufficientInput('Insufficient input (%d of %d bytes)' % (len(raw), length))
        return raw

    def decode(self, visitor):
        """Decodes a single value and returns whatever the visitor builds from it."""
        typecode = self.peek()
        return _DISPATCH[typecode](self, visitor, typecode)

    def _decode_invalid(self, visitor, typecode):
        raise InvalidTypecode('Invalid typecode %d' % typecode)

    def _decode_term(self, visitor, typecode):
        raise UnexpectedTerminator('Unexpected terminator')

    def _decode_none(self, visitor, typecode):
        self.advance()
        return visitor.visit_none()

    def _decode_true(self, visitor, typecode):
        self.advance()
        return visitor.visit_bool(True)

    def _decode_false(self, visitor, typecode):
        self.advance()
        return visitor.visit_bool(False)

    def _decode_int_pos_fixed(self, visitor, typecode):
        self.advance()
        return visitor.visit_i8(typecode - INT_POS_FIXED_START)

    def _decode_int_neg_fixed(self, visitor, typecode):
        self.advance()
        return visitor.visit_i8(INT_NEG_FIXED_START - 1 - typecode)

    def _decode_int8(self, visitor, typecode):
        self.advance()
        return visitor.visit_i8(_UNPACK_INT8(self.read(1))[0])

    def _decode_int16(self, visitor, typecode):
        self.advance()
        return visitor.visit_i16(_UNPACK_INT16(self.read(2))[0])

    def _decode_int32(self, visitor, typecode):
        self.advance()
        return visitor.visit_i32(_UNPACK_INT32(self.read(4))[0])

    def _decode_int64(self, visitor, typecode):
        self.advance()
        return visitor.visit_i64(_UNPACK_INT64(self.read(8))[0])

    def _decode_float32(self, visitor, typecode):
        self.advance()
        return visitor.visit_f32(_UNPACK_FLOAT32(self.read(4))[0])

    def _decode_float64(self, visitor, typecode):
        self.advance()
        return visitor.visit_f64(_UNPACK_FLOAT64(self.read(8))[0])

    def _decode_str_fixed(self, visitor, typecode):
        self.advance()
        return visitor.visit_bytes(self.read(typecode - STR_FIXED_START))

    def _decode_str_prefixed(self, visitor, typecode):
        # typecode is the first digit of the length
        length = 0
        byte = self.advance()
        while byte != _DELIM:
            if byte not in DIGITS:
                raise InvalidLength('Invalid string length prefix (byte %d)' % byte)
            length = length * 10 + byte - _ZERO
            if length > self.max_length:
                raise LimitExceeded('String length above limit (%d)' % self.max_length)
            byte = self.advance()
        return visitor.visit_bytes(self.read(length))

    def _decode_list(self, visitor, typecode):
        self.advance()
        count = None if typecode == LIST else typecode - LIST_FIXED_START
        return self.__visit_container(visitor.visit_seq, SequenceAccess(self, count))

    def _decode_dict(self, visitor, typecode):
        self.advance()
        count = None if typecode == DICT else typecode - DICT_FIXED_START
        return self.__visit_container(visitor.visit_map, MapAccess(self, count))

    def __visit_container(self, visit, access):
        if self.__depth >= self.max_depth:
            raise LimitExceeded('Maximum nesting depth (%d) exceeded' % self.max_depth)
        self.__depth += 1
        try:
            value = visit(access)
            access.end()
        except RecursionError as ex:
            # max_depth set above what the interpreter stack allows
            raise LimitExceeded('Maximum nesting depth of interpreter reached (at depth %d)' % self.__depth) from ex
        finally:
            self.__depth -= 1
        return value


def __build_dispatch():
    table = [Decoder._decode_invalid] * 256
    for start, end, method in ((INT_POS_FIXED_START, INT_POS_FIXED_END, Decoder._decode_int_pos_fixed),
                               (INT_NEG_FIXED_START, INT_NEG_FIXED_END, Decoder._decode_int_neg_fixed),
                               (DICT_FIXED_START, DICT_FIXED_END, Decoder._decode_dict),
                               (STR_FIXED_START, STR_FIXED_END, Decoder._decode_str_fixed),
                               (LIST_FIXED_START, LIST_FIXED_END, Decoder._decode_list)):
        for typecode in range(start, end + 1):
            table[typecode] = method
    # digits overlap embedded integers and take priority
    for typecode in DIGITS:
        table[typecode] = Decoder._decode_str_prefixed
    for typecode, method in ((LIST, Decoder._decode_list),
                             (DICT, Decoder._decode_dict),
                             (INT8, Decoder._decode_int8),
                             (INT16, Decoder._decode_int16),
                             (INT32, Decoder._decode_int32),
                             (INT64, Decoder._decode_int64),
                             (FLOAT32, Decoder._decode_float32),
                             (FLOAT64, Decoder._decode_float64),
                             (TRUE, Decoder._decode_true),
                             (FALSE, Decoder._decode_false),
                             (NONE, Decoder._decode_none),
                             (TERM, Decoder._decode_term)):
        table[typecode] = method
    return tuple(table)


_DISPATCH = __build_dispatch()


def load(fp, visitor=None, raw_strings=False, object_hook=None, object_pairs_hook=None, intern_object_keys=False,
         max_depth=DEFAULT_MAX_DEPTH, max_length=DEFAULT_MAX_LENGTH):
    """Decodes and returns a single rencode value from the given file-like object

    Args:
        fp: read([size])-able object
        visitor (Visitor): Builds the result from what is decoded (see
                           pyrencode.visitor). If not set, a PythonVisitor is
                           used, configured by the four options below.
        raw_strings (bool): If set, strings are returned as bytes instead of
                            being decoded as UTF-8.
        object_hook (callable): Called with the result of any dict decoded
                                (instead of dict).
        object_pairs_hook (callable): Called with the result of any dict
                                      decoded with an ordered list of pairs
                                      (instead of dict). Takes precedence over
                                      object_hook.
        intern_object_keys (bool): If set, string dict keys are interned which
                                   can provide a memory saving when many
                                   repeated keys are used.
        max_depth (int): Maximum nesting of lists & dicts.
        max_length (int): Maximum length a long (decimal length prefixed)
                          string may declare.

    Returns:
        Decoded object

    Raises:
        DecoderException: If a decoding failure occured. The subclass
                          indicates the kind of failure, e.g.
                          InsufficientInput for truncated input and
                          TypeMismatch if the visitor did not expect the
                          decoded value.

    Input following the value is left unread. rencode types are mapped to
    Python types (by the default visitor) as follows:

        +----------------------------------+---------------------+
        | rencode                          | Python              |
        +==================================+=====================+
        | dict (fixed & terminated)        | dict                |
        +----------------------------------+---------------------+
        | list (fixed & terminated)        | list                |
        +----------------------------------+---------------------+
        | string (fixed & length prefixed) | str (bytes if       |
        |                                  | raw_strings is set) |
        +----------------------------------+---------------------+
        | int (embedded), int8 - int64     | int                 |
        +----------------------------------+---------------------+
        | float32, float64                 | float               |
        +----------------------------------+---------------------+
        | true                             | True                |
        +----------------------------------+---------------------+
        | false                            | False               |
        +----------------------------------+---------------------+
        | none                             | None                |
        +----------------------------------+---------------------+
    """
    if visitor is None:
        visitor = PythonVisitor(raw_strings=raw_strings, object_hook=object_hook, object_pairs_hook=object_pairs_hook,
                                intern_object_keys=intern_object_keys)

    if not callable(fp.read):
        raise TypeError('fp.read not callable')

    try:
        return Decoder(fp.read, max_depth=max_depth, max_length=max_length).decode(visitor)
    except DecoderException as ex:
        raise ex.__class__(ex.args[0], position=(fp.tell() if hasattr(fp, 'tell') else None)) from ex


def loadb(chars, visitor=None, raw_strings=False, object_hook=None, object_pairs_hook=None, intern_object_keys=False,
          max_depth=DEFAULT_MAX_DEPTH, max_length=DEFAULT_MAX_LENGTH):
    """Decodes and returns a single rencode value from the given bytes or bytearray object. See load() for available
       arguments."""
    with BytesIO(chars) as fp:
        return load(fp, visitor=visitor, raw_strings=raw_strings, object_hook=object_hook,
                    object_pairs_hook=object_pairs_hook, intern_object_keys=intern_object_keys, max_depth=max_depth,
                    max_length=max_length)

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


from io import BytesIO
from struct import pack
from unittest import TestCase

from pyrencode import (dumpb, loadb, Encoder, EncoderException, DecoderException, TypeMismatch, UnknownField,
                       MissingField, InvalidText, Serializable, Visitor)
from pyrencode.typecodes import LIST, DICT, TERM, FLOAT32
from pyrencode.visitor import (PythonVisitor, BoolVisitor, IntVisitor, FloatVisitor, StrVisitor, BytesVisitor,
                               OptionalVisitor, ListVisitor, DictVisitor)


class Msg(Serializable):

    __slots__ = ('name', 'code')

    def __init__(self, name, code):
        self.name = name
        self.code = code

    def serialize(self, encoder):
        encoder.begin_dict(2)
        encoder.emit_str('name')
        encoder.emit_str(self.name)
        encoder.emit_str('code')
        encoder.emit_i64(self.code)
        encoder.end_dict()

    def __eq__(self, other):
        return isinstance(other, Msg) and (self.name, self.code) == (other.name, other.code)


class MsgVisitor(Visitor):

    expecting = 'message'

    def visit_map(self, access):
        fields = {}
        while access.has_next():
            key = access.next_key(StrVisitor())
            if key == 'name':
                fields[key] = access.next_value(StrVisitor())
            elif key == 'code':
                fields[key] = access.next_value(IntVisitor(-(2 ** 31), 2 ** 31 - 1))
            else:
                raise UnknownField('Unknown field %s' % key)
        for field in ('name', 'code'):
            if field not in fields:
                raise MissingField('Missing field %s' % field)
        return Msg(**fields)


class Emitting(Serializable):
    """Serializes by calling the given function with the encoder"""

    __slots__ = ('func',)

    def __init__(self, func):
        self.func = func

    def serialize(self, encoder):
        self.func(encoder)


class TestRecord(TestCase):

    def test_encode(self):
        self.assertEqual(dumpb(Msg('bob', -133)),
                         bytes((104, 132)) + b'name' + bytes((131,)) + b'bob' + bytes((132,)) + b'code' +
                         bytes((63, 255, 123)))
        self.assertEqual(dumpb(Msg('bob', -133)), dumpb({'name': 'bob', 'code': -133}))

    def test_decode(self):
        self.assertEqual(loadb(dumpb(Msg('bob', -133)), visitor=MsgVisitor()), Msg('bob', -133))
        # field order does not matter & open form is accepted
        self.assertEqual(loadb(bytes((DICT, 132)) + b'code' + bytes((5, 132)) + b'name' + bytes((128, TERM)),
                               visitor=MsgVisitor()),
                         Msg('', 5))

    def test_nested(self):
        msgs = [Msg('msg%d' % i, i * 1000) for i in range(70)]
        encoded = dumpb({'msgs': msgs})
        self.assertEqual(loadb(encoded, visitor=DictVisitor(StrVisitor(), ListVisitor(MsgVisitor()))),
                         {'msgs': msgs})
        self.assertEqual(loadb(encoded)['msgs'][69], {'name': 'msg69', 'code': 69000})

    def test_field_errors(self):
        with self.assertRaisesRegex(MissingField, 'code'):
            loadb(dumpb({'name': 'bob'}), visitor=MsgVisitor())
        with self.assertRaisesRegex(UnknownField, 'extra'):
            loadb(dumpb({'name': 'bob', 'code': 1, 'extra': 2}), visitor=MsgVisitor())
        with self.assertRaisesRegex(TypeMismatch, 'Expected string, found integer'):
            loadb(dumpb({'name': 1, 'code': 2}), visitor=MsgVisitor())
        with self.assertRaises(TypeMismatch):
            loadb(dumpb({'name': 'bob', 'code': 2 ** 40}), visitor=MsgVisitor())
        with self.assertRaisesRegex(TypeMismatch, 'Expected message, found list'):
            loadb(dumpb(['bob', 1]), visitor=MsgVisitor())

    def test_field_error_position(self):
        with self.assertRaises(UnknownField) as ctx:
            loadb(dumpb({'extra': 2}), visitor=MsgVisitor())
        self.assertEqual(ctx.exception.position, 7)

    def test_abstract(self):
        with self.assertRaises(TypeError):
            Serializable()  # pylint: disable=abstract-class-instantiated


class TestProducerContract(TestCase):

    def check_invalid(self, func, message):
        with self.assertRaisesRegex(EncoderException, message):
            dumpb(Emitting(func))

    @staticmethod
    def __emit(*calls):
        def func(encoder):
            for name, args in calls:
                getattr(encoder, name)(*args)
        return func

    def test_invalid(self):
        emit = self.__emit
        self.check_invalid(emit(('begin_list', (2,)), ('emit_i64', (1,)), ('end_list', ())), 'declared with 2')
        self.check_invalid(emit(('begin_list', (80,)), ('emit_i64', (1,)), ('end_list', ())), 'declared with 80')
        self.check_invalid(emit(('begin_dict', (1,)), ('end_dict', ())), 'declared with 1')
        self.check_invalid(emit(('emit_i64', (1,)), ('emit_i64', (2,))), 'emitted 2 values')
        self.check_invalid(emit(), 'emitted 0 values')
        self.check_invalid(emit(('begin_list', ())), 'left a container open')
        self.check_invalid(emit(('end_dict', ())), 'No dict to end')
        self.check_invalid(emit(('begin_list', ()), ('end_dict', ())), 'No dict to end')
        self.check_invalid(emit(('begin_dict', ()), ('emit_str', ('a',)), ('end_dict', ())), 'without value')
        self.check_invalid(emit(('begin_list', (-1,))), 'Negative list length')
        self.check_invalid(emit(('emit_i64', (1.5,))), 'as integer')
        self.check_invalid(emit(('emit_str', (5,))), 'as string')
        self.check_invalid(emit(('emit_u64', (-1,))), 'unsigned 64-bit range')
        self.check_invalid(emit(('emit_u64', (2 ** 63,))), 'cannot be represented')
        self.check_invalid(emit(('emit_f32', (1e40,))), 'float32')

    def test_emit(self):
        out = BytesIO()
        encoder = Encoder(out.write)
        encoder.begin_list()
        encoder.emit_u64(2 ** 63 - 1)
        encoder.emit_f32(1.5)
        encoder.emit_bool(False)
        encoder.emit_none()
        encoder.encode(('a', {}))
        encoder.end_list()
        self.assertEqual(out.getvalue(), bytes((LIST, 65, 127, 255, 255, 255, 255, 255, 255, 255, FLOAT32)) +
                         pack('>f', 1.5) + bytes((68, 69, 194, 129, 97, 102, TERM)))

    def test_excess_not_written(self):
        for begin, emits, expected in (('begin_list', 1, bytes((193, 1))),
                                       ('begin_list', 0, bytes((192,))),
                                       ('begin_list', 70, bytes((LIST,)) + bytes((1,)) * 70),
                                       ('begin_dict', 4, bytes((104, 1, 1, 1, 1)))):
            out = BytesIO()
            encoder = Encoder(out.write)
            length = emits // 2 if begin == 'begin_dict' else emits
            getattr(encoder, begin)(length)
            for _ in range(emits):
                encoder.emit_i64(1)
            with self.assertRaisesRegex(EncoderException, 'but more emitted'):
                encoder.emit_i64(2)
            with self.assertRaisesRegex(EncoderException, 'but more emitted'):
                encoder.begin_list()
            self.assertEqual(out.getvalue(), expected)

    def test_declared_length(self):
        def long_list(encoder):
            encoder.begin_list(80)
            for i in range(80):
                encoder.emit_i64(i)
            encoder.end_list()

        encoded = dumpb(Emitting(long_list))
        self.assertEqual(encoded[0], LIST)
        self.assertEqual(encoded[-1], TERM)
        self.assertEqual(loadb(encoded), list(range(80)))

        def unknown_dict(encoder):
            encoder.begin_dict()
            encoder.emit_str('a')
            encoder.encode([1])
            encoder.end_dict()

        self.assertEqual(dumpb(Emitting(unknown_dict)), bytes((DICT, 129, 97, 193, 1, TERM)))


class TestVisitors(TestCase):

    def test_base(self):
        for obj, found in ((None, 'none'), (True, 'bool'), (5, 'integer'), (1.5, 'float'), ('a', 'string'),
                           ([], 'list'), ({}, 'dict')):
            with self.assertRaisesRegex(TypeMismatch, 'Expected value, found %s' % found):
                loadb(dumpb(obj), visitor=Visitor())

    def test_bool(self):
        self.assertIs(loadb(dumpb(False), visitor=BoolVisitor()), False)
        with self.assertRaisesRegex(TypeMismatch, 'Expected bool, found string'):
            loadb(dumpb('abc'), visitor=BoolVisitor())
        # invalid text into a visitor not accepting strings is a mismatch first
        with self.assertRaisesRegex(TypeMismatch, 'Expected bool, found string'):
            loadb(bytes((129, 0xfe)), visitor=BoolVisitor())

    def test_int(self):
        for value in (0, -32, 100, -200, 100000, -400000000000):
            self.assertEqual(loadb(dumpb(value), visitor=IntVisitor()), value)
        self.assertEqual(loadb(dumpb(255), visitor=IntVisitor(0, 255)), 255)
        for value in (300, -1):
            with self.assertRaises(TypeMismatch):
                loadb(dumpb(value), visitor=IntVisitor(0, 255))
        with self.assertRaisesRegex(TypeMismatch, 'Expected integer, found float'):
            loadb(dumpb(1.0), visitor=IntVisitor())

    def test_float(self):
        value = loadb(dumpb(5), visitor=FloatVisitor())
        self.assertIsInstance(value, float)
        self.assertEqual(value, 5.0)
        self.assertEqual(loadb(dumpb(2.5, float32=True), visitor=FloatVisitor()), 2.5)
        with self.assertRaises(TypeMismatch):
            loadb(dumpb(True), visitor=FloatVisitor())

    def test_str(self):
        self.assertEqual(loadb(dumpb('a' * 100), visitor=StrVisitor()), 'a' * 100)
        with self.assertRaisesRegex(TypeMismatch, 'Expected string, found none'):
            loadb(dumpb(None), visitor=StrVisitor())
        with self.assertRaises(InvalidText):
            loadb(bytes((130, 0, 255)), visitor=StrVisitor())

    def test_bytes(self):
        self.assertEqual(loadb(bytes((130, 0, 255)), visitor=BytesVisitor()), b'\x00\xff')
        self.assertEqual(loadb(dumpb('©'), visitor=BytesVisitor()), '©'.encode('utf-8'))

    def test_optional(self):
        visitor = OptionalVisitor(IntVisitor())
        self.assertEqual(visitor.expecting, 'none or integer')
        self.assertIsNone(loadb(dumpb(None), visitor=visitor))
        self.assertEqual(loadb(dumpb(-5), visitor=visitor), -5)
        with self.assertRaises(TypeMismatch):
            loadb(dumpb('a'), visitor=visitor)
        self.assertEqual(loadb(dumpb([1, None]), visitor=ListVisitor(visitor)), [1, None])

    def test_list(self):
        visitor = ListVisitor(IntVisitor())
        self.assertEqual(loadb(dumpb([1, 2, 3]), visitor=visitor), [1, 2, 3])
        self.assertEqual(loadb(bytes((LIST, 1, 2, TERM)), visitor=visitor), [1, 2])
        with self.assertRaises(TypeMismatch):
            loadb(dumpb([1, 'a']), visitor=visitor)
        with self.assertRaisesRegex(TypeMismatch, 'Expected list of integer, found integer'):
            loadb(dumpb(5), visitor=visitor)

    def test_dict(self):
        visitor = DictVisitor(StrVisitor(), IntVisitor())
        self.assertEqual(loadb(dumpb({'a': 1, 'b': 2}), visitor=visitor), {'a': 1, 'b': 2})
        with self.assertRaises(TypeMismatch):
            loadb(dumpb({1: 1}), visitor=visitor)
        with self.assertRaises(TypeMismatch):
            loadb(dumpb({'a': None}), visitor=visitor)
        with self.assertRaises(TypeMismatch):
            loadb(dumpb({(1,): 1}), visitor=DictVisitor(ListVisitor(IntVisitor()), IntVisitor()))


class TestAccess(TestCase):

    def test_size_hint(self):
        class Hint(Visitor):
            def visit_seq(self, access):
                hint = access.size_hint
                list(access.iter_elements(PythonVisitor()))
                return hint

            def visit_map(self, access):
                hint = access.size_hint
                list(access.iter_items(PythonVisitor(), PythonVisitor()))
                return hint

        self.assertEqual(loadb(dumpb([1, 2, 3]), visitor=Hint()), 3)
        self.assertEqual(loadb(dumpb({'a': 1}), visitor=Hint()), 1)
        self.assertIsNone(loadb(dumpb([1] * 80), visitor=Hint()))
        self.assertIsNone(loadb(dumpb({i: i for i in range(80)}), visitor=Hint()))

    def test_not_fully_consumed(self):
        class FirstOnly(Visitor):
            def visit_seq(self, access):
                return access.next_element(PythonVisitor())

            def visit_map(self, access):
                return access.next_key(PythonVisitor())

        for encoded in (bytes((194, 1, 2)), bytes((LIST, 1, 2, TERM))):
            with self.assertRaisesRegex(DecoderException, 'List not fully consumed'):
                loadb(encoded, visitor=FirstOnly())
        self.assertEqual(loadb(bytes((LIST, 1, TERM)), visitor=FirstOnly()), 1)
        with self.assertRaisesRegex(DecoderException, 'Dict not fully consumed'):
            loadb(dumpb({'a': 1}), visitor=FirstOnly())

    def test_out_of_order(self):
        class TooMany(Visitor):
            def visit_seq(self, access):
                return [access.next_element(PythonVisitor()) for _ in range(3)]

        class ValueFirst(Visitor):
            def visit_map(self, access):
                return access.next_value(PythonVisitor())

        class KeyTwice(Visitor):
            def visit_map(self, access):
                return access.next_key(PythonVisitor()), access.next_key(PythonVisitor())

        with self.assertRaisesRegex(DecoderException, 'No more list elements'):
            loadb(dumpb([1, 2]), visitor=TooMany())
        with self.assertRaisesRegex(DecoderException, 'No more list elements'):
            loadb(bytes((LIST, 1, 2, TERM)), visitor=TooMany())
        with self.assertRaisesRegex(DecoderException, 'before key'):
            loadb(dumpb({'a': 1}), visitor=ValueFirst())
        with self.assertRaisesRegex(DecoderException, 'before value'):
            loadb(dumpb({'a': 1, 'b': 2}), visitor=KeyTwice())

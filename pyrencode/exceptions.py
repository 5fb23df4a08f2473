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


"""Exceptions raised by the rencode encoder & decoder"""


class EncoderException(TypeError):
    """Raised when encoding of an object fails."""


class DecoderException(ValueError):
    """Raised when decoding of a rencode stream fails."""

    def __init__(self, message, position=None):
        if position is not None:
            super(DecoderException, self).__init__('%s (at byte %d)' % (message, position), position)
        else:
            super(DecoderException, self).__init__(str(message), None)

    @property
    def position(self):
        """Position in stream where decoding failed. Can be None in case where decoding from string of when file-like
        object does not support tell().
        """
        return self.args[1]  # pylint: disable=unsubscriptable-object


class InsufficientInput(DecoderException):
    """Input ended before a value was complete."""


class InvalidTypecode(DecoderException):
    """Leading byte is not a valid typecode in its position."""


class UnexpectedTerminator(InvalidTypecode):
    """Container terminator found where a value was required."""


class InvalidLength(DecoderException):
    """Malformed decimal length prefix of a string."""


class InvalidText(DecoderException):
    """String payload is not valid UTF-8."""


class TypeMismatch(DecoderException):
    """Decoded value does not have the shape the visitor expects."""


class UnknownField(DecoderException):
    """Record visitor encountered a field it does not know."""


class MissingField(DecoderException):
    """Record visitor did not receive a required field."""


class LimitExceeded(DecoderException):
    """Nesting depth or declared length is above the configured limit."""

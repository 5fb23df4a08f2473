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


"""rencode implementation (compact self-describing binary serialization)

Example usage:

# To encode
encoded = pyrencode.dumpb({'a': 1})

# To decode
decoded = pyrencode.loadb(encoded)

To use a file-like object as input/output, use dump() & load() methods instead.
For data of unknown shape which should keep the distinction between rencode
types, use pyrencode.Value. For application types, see pyrencode.visitor.
"""

from .encoder import Encoder, dump, dumpb, EncoderException
from .decoder import (Decoder, load, loadb, DecoderException, InsufficientInput, InvalidTypecode,
                      UnexpectedTerminator, InvalidLength, InvalidText, TypeMismatch, UnknownField, MissingField,
                      LimitExceeded)
from .value import Value, ValueVisitor
from .visitor import Serializable, Visitor

__version__ = '0.1.0'

__all__ = ('Encoder', 'dump', 'dumpb', 'EncoderException', 'Decoder', 'load', 'loadb', 'DecoderException',
           'InsufficientInput', 'InvalidTypecode', 'UnexpectedTerminator', 'InvalidLength', 'InvalidText',
           'TypeMismatch', 'UnknownField', 'MissingField', 'LimitExceeded', 'Value', 'ValueVisitor', 'Serializable',
           'Visitor')

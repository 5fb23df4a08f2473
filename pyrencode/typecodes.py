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


"""rencode typecode definitions

Typecode ranges (inclusive):

     0 -  43  int (embedded)      102 - 126  dict (embedded count)
    44        float64             127        terminator
    59        list               128 - 191  string (embedded length)
    60        dict               192 - 255  list (embedded count)
    62 -  65  int8 - int64
    66        float32
    67 -  69  true, false, none
    70 - 101  negative int (embedded)

ASCII digits (48 - 57) start a string with a decimal length prefix and take
priority over embedded integers for those codes. 45 - 47, 58 & 61 are unused.
"""

# Value types
LIST = 59
DICT = 60
INT8 = 62
INT16 = 63
INT32 = 64
INT64 = 65
FLOAT32 = 66
FLOAT64 = 44
TRUE = 67
FALSE = 68
NONE = 69

# Container terminator
TERM = 127

# Separates decimal length prefix from string payload
STR_DELIM = b':'

# Positive integers with value embedded in typecode
INT_POS_FIXED_START = 0
INT_POS_FIXED_COUNT = 44
INT_POS_FIXED_END = INT_POS_FIXED_START + INT_POS_FIXED_COUNT - 1

# Negative integers with value embedded in typecode (70 is -1)
INT_NEG_FIXED_START = 70
INT_NEG_FIXED_COUNT = 32
INT_NEG_FIXED_END = INT_NEG_FIXED_START + INT_NEG_FIXED_COUNT - 1

# Dictionaries with count embedded in typecode
DICT_FIXED_START = 102
DICT_FIXED_COUNT = 25
DICT_FIXED_END = DICT_FIXED_START + DICT_FIXED_COUNT - 1

# Strings with length embedded in typecode
STR_FIXED_START = 128
STR_FIXED_COUNT = 64
STR_FIXED_END = STR_FIXED_START + STR_FIXED_COUNT - 1

# Lists with count embedded in typecode
LIST_FIXED_START = STR_FIXED_START + STR_FIXED_COUNT
LIST_FIXED_COUNT = 64
LIST_FIXED_END = LIST_FIXED_START + LIST_FIXED_COUNT - 1

# Start of strings with decimal length prefix
DIGITS = frozenset(range(ord('0'), ord('9') + 1))

# Single-byte forms
TYPE_LIST = bytes((LIST,))
TYPE_DICT = bytes((DICT,))
TYPE_INT8 = bytes((INT8,))
TYPE_INT16 = bytes((INT16,))
TYPE_INT32 = bytes((INT32,))
TYPE_INT64 = bytes((INT64,))
TYPE_FLOAT32 = bytes((FLOAT32,))
TYPE_FLOAT64 = bytes((FLOAT64,))
TYPE_TRUE = bytes((TRUE,))
TYPE_FALSE = bytes((FALSE,))
TYPE_NONE = bytes((NONE,))
TYPE_TERM = bytes((TERM,))

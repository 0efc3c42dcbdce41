# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""One's complement record checksum.

The checksum of a record is the one's complement of the low byte of the sum
of all the record bytes preceding it (count, address, payload).
Once the checksum byte itself is added, the low byte of the sum is ``0xFF``.
"""

from typing import Iterable


def accumulate(total: int, byte: int) -> int:
    r"""Adds a byte to a running checksum sum.

    The sum is unbounded; only its low byte is ever examined.

    Examples:
        >>> accumulate(0x1FE, 0x03)
        513
    """

    return total + byte


def finalize(total: int) -> int:
    r"""Computes the checksum byte of a running sum.

    Examples:
        >>> hex(finalize(0x03 + 0x12 + 0x34))
        '0xb6'
    """

    return ~total & 0xFF


def verify(total: int, received: int) -> bool:
    r"""Verifies a received checksum byte against a running sum.

    Examples:
        >>> verify(0x03 + 0x12 + 0x34, 0xB6)
        True
        >>> verify(0x03 + 0x12 + 0x35, 0xB6)
        False
    """

    return ((total + received) & 0xFF) == 0xFF


def checksum(*chunks: Iterable[int], total: int = 0) -> int:
    r"""Computes the checksum byte of some byte strings.

    Args:
        chunks (bytes):
            Byte strings (or iterables of byte values) to sum, in order.

        total (int):
            Initial sum.

    Returns:
        int: Checksum byte.

    Examples:
        >>> hex(checksum(b'\x06', b'\x12\x34', b'abc'))
        '0x8d'
    """

    for chunk in chunks:
        for byte in chunk:
            total = accumulate(total, byte)
    return finalize(total)

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

r"""FLEX binary format.

A FLEX binary (``.CMD``, ``.BIN``) is a plain sequence of *load records*::

    02 AH AL NN <NN data bytes>     data record
    16 AH AL                        transfer address record

Address bytes are big-endian.
Any ``00`` bytes between records are filler (FLEX pads sectors with them).
There is no checksum and no end marker, other than the end of the stream.
"""

import enum
import logging
from typing import IO
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Type

from ..base import AnyBytes
from ..base import BaseReader
from ..base import BaseRecord
from ..base import BaseTag
from ..base import BaseWriter
from ..base import UnrecognizedTypeError
from ..utils import hexlify
from ..utils import split_word

_logger = logging.getLogger(__name__)

FILE_EXT: Sequence[str] = [
    '.bin', '.cmd', '.sys',
]
r"""File extensions commonly used for FLEX binaries."""


class FlexTag(BaseTag, enum.IntEnum):
    r"""FLEX binary record tag."""

    DATA = 0x02
    r"""Binary data."""

    TRANSFER = 0x16
    r"""Transfer (start) address."""

    _DATA = DATA

    def is_data(self) -> bool:

        return self == self.DATA

    def is_start(self) -> bool:

        return self == self.TRANSFER


class FlexRecord(BaseRecord):
    r"""FLEX binary record object."""

    Tag: Type[FlexTag] = FlexTag

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
    ) -> 'FlexRecord':
        r"""Creates a data record.

        Args:
            address (int):
                Load address.

            data (bytes):
                Record byte data, up to 255 bytes.

        Returns:
            :class:`FlexRecord`: Data record object.

        Examples:
            >>> from flexrec import FlexRecord
            >>> record = FlexRecord.create_data(0x1000, b'\xAA\xBB\xCC')
            >>> bytes(record)
            b'\x02\x10\x00\x03\xaa\xbb\xcc'
        """

        record = cls(cls.Tag.DATA, address=address, data=data)
        return record

    @classmethod
    def create_start(cls, address: int = 0) -> 'FlexRecord':
        r"""Creates a transfer address record.

        Examples:
            >>> from flexrec import FlexRecord
            >>> bytes(FlexRecord.create_start(0x2000))
            b'\x16 \x00'
        """

        record = cls(cls.Tag.TRANSFER, address=address)
        return record

    def to_bytestr(self) -> bytes:

        self.validate(checksum=False, count=False)
        tag = FlexTag(self.tag)
        bytestr = bytes([tag]) + split_word(self.address)

        if tag == FlexTag.DATA:
            bytestr += bytes([len(self.data)]) + bytes(self.data)

        return bytestr

    def to_tokens(self) -> Mapping[str, bytes]:

        self.validate(checksum=False, count=False)
        tag = FlexTag(self.tag)
        is_data = tag == FlexTag.DATA

        return {
            'tag': b'%02X' % tag,
            'address': b'%04X' % self.address,
            'count': (b'%02X' % len(self.data)) if is_data else b'',
            'data': hexlify(self.data),
            'end': b'\n',
        }

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> 'FlexRecord':

        super().validate(checksum=checksum, count=count)

        if len(self.data) > 0xFF:
            raise ValueError('data size overflow')

        if self.tag == FlexTag.TRANSFER and self.data:
            raise ValueError('unexpected data')

        return self


class FlexReader(BaseReader):
    r"""FLEX binary stream decoder.

    Examples:
        >>> from flexrec import FlexReader
        >>> reader = FlexReader(b'\x02\x10\x00\x01\xAA\x00\x00\x16\x10\x00')
        >>> [(r.tag, hex(r.address), r.data) for r in reader]
        [(<FlexTag.DATA: 2>, '0x1000', b'\xaa'), (<FlexTag.TRANSFER: 22>, '0x1000', b'')]
        >>> reader.offset
        10
    """

    Record: Type[FlexRecord] = FlexRecord

    def read(self) -> Optional[FlexRecord]:

        c = self._getc()
        while c == 0x00:
            c = self._getc()
        if c < 0:
            return None

        start = self.offset - 1
        try:
            tag = FlexTag(c)
        except ValueError:
            raise UnrecognizedTypeError(f'unrecognized record type 0x{c:02X}',
                                        offset=start, value=c) from None

        address = self._require() << 8
        address |= self._require()
        data = b''

        if tag == FlexTag.DATA:
            size = self._require()
            chunk = bytearray()
            for _ in range(size):
                chunk.append(self._require())
            data = bytes(chunk)

        record = self.Record(tag, address=address, data=data,
                             coords=(self.index, start))
        self.index += 1
        _logger.debug('decoded %s at offset 0x%04X', tag.name, start)
        return record


class FlexWriter(BaseWriter):
    r"""FLEX binary stream encoder.

    Records from any format are translated: *data* records become
    :attr:`FlexTag.DATA` records, non-null *start* records become
    :attr:`FlexTag.TRANSFER` records, anything else is dropped.

    Args:
        stream (bytes IO):
            Target byte stream.

        skip_empty_data (bool):
            Drops data records without payload.
    """

    Record: Type[FlexRecord] = FlexRecord

    def __init__(
        self,
        stream: IO,
        skip_empty_data: bool = False,
    ):

        super().__init__(stream)
        self.skip_empty_data: bool = skip_empty_data

    def write(self, record: BaseRecord) -> Optional[FlexRecord]:

        tag = record.tag

        if tag.is_data():
            if self.skip_empty_data and not record.data:
                _logger.debug('skipped empty data record at 0x%04X', record.address)
                return None
            output = self.Record.create_data(record.address, record.data)

        elif tag.is_start():
            if not record.address:
                _logger.debug('skipped null transfer address')
                return None
            output = self.Record.create_start(record.address)

        else:
            return None

        return self._emit(output)

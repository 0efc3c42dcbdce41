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

r"""Motorola S-record format, 16-bit address flavor.

Only the record types meaningful for a 64 KiB address space are supported::

    S0 cc 0000 <text> ss        header
    S1 cc aaaa <data> ss        data
    S5 cc nnnn ss               data record count
    S9 cc aaaa ss               start (transfer) address

See Also:
    `<https://en.wikipedia.org/wiki/SREC_(file_format)>`_
"""

import enum
import logging
from typing import IO
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import Union

from ..base import AnyBytes
from ..base import BadFramingError
from ..base import BaseReader
from ..base import BaseRecord
from ..base import BaseTag
from ..base import BaseWriter
from ..base import ChecksumError
from ..base import UnrecognizedTypeError
from ..checksum import accumulate
from ..checksum import checksum
from ..checksum import verify
from ..utils import NIBBLE_VALUES
from ..utils import hexlify
from ..utils import split_word

_logger = logging.getLogger(__name__)

FILE_EXT: Sequence[str] = [
    '.s19', '.s1', '.s', '.srec', '.mot', '.exo',
]
r"""File extensions commonly used for 16-bit S-record files."""

FILLER_BYTES: bytes = b'\0\r\n'
r"""Bytes allowed between records."""


class SrecTag(BaseTag, enum.IntEnum):
    r"""Motorola S-record tag."""

    HEADER = 0
    r"""Header string."""

    DATA_16 = 1
    r"""16-bit address data record."""

    COUNT_16 = 5
    r"""16-bit record count."""

    START_16 = 9
    r"""16-bit start address. Terminates :attr:`DATA_16`."""

    _DATA = DATA_16

    def is_count(self) -> bool:

        return self == self.COUNT_16

    def is_data(self) -> bool:

        return self == self.DATA_16

    def is_header(self) -> bool:

        return self == self.HEADER

    def is_start(self) -> bool:

        return self == self.START_16


class SrecRecord(BaseRecord):
    r"""Motorola S-record record object."""

    Tag: Type[SrecTag] = SrecTag

    DATA_MAX: int = 0xFF - 3
    r"""Maximum payload size, as the count field also covers address and
    checksum bytes."""

    def compute_checksum(self) -> int:

        count = self.compute_count() if self.count is None else self.count
        return checksum((count & 0xFF,), split_word(self.address), self.data)

    def compute_count(self) -> int:

        return 2 + len(self.data) + 1

    @classmethod
    def create_count(cls, count: int) -> 'SrecRecord':
        r"""Creates a record count record.

        Args:
            count (int):
                Number of preceding *data* records.

        Returns:
            :class:`SrecRecord`: Record count record object.

        Examples:
            >>> from flexrec import SrecRecord
            >>> bytes(SrecRecord.create_count(0x1234))
            b'S5031234B6\n'
            >>> bytes(SrecRecord.create_count(0))
            b'S5030000FC\n'
        """

        if not 0 <= count <= 0xFFFF:
            raise ValueError('count overflow')

        record = cls(cls.Tag.COUNT_16, address=count)
        return record

    @classmethod
    def create_data(
        cls,
        address: int,
        data: AnyBytes,
    ) -> 'SrecRecord':
        r"""Creates a data record.

        Args:
            address (int):
                Record address.

            data (bytes):
                Record byte data.

        Returns:
            :class:`SrecRecord`: Data record object.

        Raises:
            ValueError: address or data size overflow.

        Examples:
            >>> from flexrec import SrecRecord
            >>> bytes(SrecRecord.create_data(0x1234, b'abc'))
            b'S10612346162638D\n'
        """

        if not 0 <= address <= 0xFFFF:
            raise ValueError('address overflow')

        if len(data) > cls.DATA_MAX:
            raise ValueError('data size overflow')

        record = cls(cls.Tag.DATA_16, address=address, data=data)
        return record

    @classmethod
    def create_header(cls, data: AnyBytes = b'') -> 'SrecRecord':
        r"""Creates a header record.

        Args:
            data (bytes):
                Header byte data, usually the source file name.

        Returns:
            :class:`SrecRecord`: Header record.

        Raises:
            ValueError: data size overflow.

        Examples:
            >>> from flexrec import SrecRecord
            >>> bytes(SrecRecord.create_header())
            b'S0030000FC\n'
            >>> bytes(SrecRecord.create_header(b'HDR\0'))
            b'S0070000484452001A\n'
        """

        if len(data) > cls.DATA_MAX:
            raise ValueError('data size overflow')

        record = cls(cls.Tag.HEADER, data=data)
        return record

    @classmethod
    def create_start(cls, address: int = 0) -> 'SrecRecord':
        r"""Creates a start address record.

        The default null address makes the null start record, which tells
        that the image has no transfer address.

        Examples:
            >>> from flexrec import SrecRecord
            >>> bytes(SrecRecord.create_start(0x1234))
            b'S9031234B6\n'
            >>> bytes(SrecRecord.create_start())
            b'S9030000FC\n'
        """

        if not 0 <= address <= 0xFFFF:
            raise ValueError('address overflow')

        record = cls(cls.Tag.START_16, address=address)
        return record

    @classmethod
    def parse(
        cls,
        line: AnyBytes,
        verify_checksum: bool = True,
    ) -> 'SrecRecord':
        r"""Parses a record from bytes.

        Args:
            line (bytes):
                String of bytes to parse.

            verify_checksum (bool):
                Raise :class:`ChecksumError` on checksum mismatch.

        Returns:
            :class:`SrecRecord`: Parsed record.

        Raises:
            RecordError: Malformed record.
            ValueError: Empty line.

        Examples:
            >>> from flexrec import SrecRecord
            >>> record = SrecRecord.parse(b'S9031234B6\r\n')
            >>> record.tag, hex(record.address)
            (<SrecTag.START_16: 9>, '0x1234')
        """

        record = SrecReader(line, verify_checksum=verify_checksum).read()
        if record is None:
            raise ValueError('empty line')
        return record

    def to_bytestr(self, end: AnyBytes = b'\n') -> bytes:

        return b''.join(self.to_tokens(end=end).values())

    def to_tokens(self, end: AnyBytes = b'\n') -> Mapping[str, bytes]:

        self.validate(checksum=False, count=False)
        tag = SrecTag(self.tag)

        return {
            'begin': b'S',
            'tag': b'%X' % tag,
            'count': b'%02X' % ((self.count or 0) & 0xFF),
            'address': b'%04X' % self.address,
            'data': hexlify(self.data),
            'checksum': b'%02X' % ((self.checksum or 0) & 0xFF),
            'end': bytes(end),
        }

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> 'SrecRecord':

        super().validate(checksum=checksum, count=count)

        if self.checksum is not None:
            if not 0 <= self.checksum <= 0xFF:
                raise ValueError('checksum overflow')

        if self.count is not None:
            if not 3 <= self.count <= 0xFF:
                raise ValueError('count overflow')

        tag = SrecTag(self.tag)
        data_size = len(self.data)

        if data_size and not (tag.is_data() or tag.is_header()):
            raise ValueError('unexpected data')

        if data_size > self.DATA_MAX:
            raise ValueError('data size overflow')

        return self


class SrecReader(BaseReader):
    r"""Motorola S-record stream decoder.

    Hexadecimal digits are read one at a time; any byte which is not an
    uppercase hexadecimal digit is skipped while looking for the next one.
    This tolerates stray whitespace, at the cost of silently shifting field
    boundaries within corrupt records.

    Args:
        stream (bytes IO or buffer):
            Stream or byte buffer to decode records from.

        verify_checksum (bool):
            Raise :class:`ChecksumError` on checksum mismatch.
            If false, mismatching records are only logged.

    Examples:
        >>> from flexrec import SrecReader
        >>> buffer = b'S0030000FC\r\nS10612346162638D\r\nS9030000FC\r\n'
        >>> [r.tag.name for r in SrecReader(buffer)]
        ['HEADER', 'DATA_16', 'START_16']
    """

    Record: Type[SrecRecord] = SrecRecord

    def __init__(
        self,
        stream: Union[AnyBytes, IO],
        verify_checksum: bool = True,
    ):

        super().__init__(stream)
        self.verify_checksum: bool = verify_checksum

    def _hexbyte(self) -> Tuple[int, int]:
        r"""Reads a hexadecimal byte.

        Returns:
            int couple: Byte value, and offset of its first digit.
        """

        while True:
            high = NIBBLE_VALUES.get(self._require())
            if high is not None:
                break
        mark = self.offset - 1

        while True:
            low = NIBBLE_VALUES.get(self._require())
            if low is not None:
                break

        return (high << 4) | low, mark

    def read(self) -> Optional[SrecRecord]:

        while True:
            c = self._getc()
            if c < 0:
                return None
            if c == 0x53:  # 'S'
                break
            if c not in FILLER_BYTES:
                raise BadFramingError(f'unexpected byte 0x{c:02X} between records',
                                      offset=(self.offset - 1), value=c)
        start = self.offset - 1

        c = self._require()
        try:
            tag = SrecTag(c - 0x30)
        except ValueError:
            raise UnrecognizedTypeError(f'unrecognized record type {chr(c)!r}',
                                        offset=(self.offset - 1), value=c) from None

        count, mark = self._hexbyte()
        if count < 3:
            raise BadFramingError('count underflow', offset=mark, value=count)
        total = count

        high, _ = self._hexbyte()
        low, _ = self._hexbyte()
        address = (high << 8) | low
        total = accumulate(accumulate(total, high), low)

        data = bytearray()
        if not tag.is_start():
            for _ in range(count - 3):
                value, _ = self._hexbyte()
                total = accumulate(total, value)
                data.append(value)

        received, mark = self._hexbyte()
        if not verify(total, received):
            if self.verify_checksum:
                raise ChecksumError(f'wrong checksum 0x{received:02X}',
                                    offset=mark, value=received)
            _logger.warning('wrong checksum 0x%02X at offset 0x%04X', received, mark)

        if tag.is_count():
            data.clear()  # no meaning beyond the checksum

        record = self.Record(tag, address=address, data=bytes(data),
                             count=count, checksum=received,
                             coords=(self.index, start), validate=False)
        self.index += 1
        _logger.debug('decoded %s at offset 0x%04X', tag.name, start)
        return record


class SrecWriter(BaseWriter):
    r"""Motorola S-record stream encoder.

    Records from any format are translated by nature: *data* into ``S1``,
    *start* into ``S9``, *header* into ``S0``, *count* into ``S5``.

    Args:
        stream (bytes IO):
            Target byte stream.

        end (bytes):
            Line terminator.

    Examples:
        >>> import io
        >>> from flexrec import FlexRecord, SrecWriter
        >>> stream = io.BytesIO()
        >>> writer = SrecWriter(stream)
        >>> _ = writer.write(FlexRecord.create_start(0x2000))
        >>> stream.getvalue()
        b'S9032000DC\n'
    """

    DEFAULT_END: bytes = b'\n'

    Record: Type[SrecRecord] = SrecRecord

    def __init__(
        self,
        stream: IO,
        end: Optional[AnyBytes] = None,
    ):

        super().__init__(stream)
        self.end: bytes = self.DEFAULT_END if end is None else bytes(end)

    def _emit(self, record: BaseRecord, *args, **kwargs) -> SrecRecord:

        return super()._emit(record, end=self.end)

    def write(self, record: BaseRecord) -> Optional[SrecRecord]:

        Record = self.Record
        tag = record.tag

        if tag.is_data():
            output = Record.create_data(record.address, record.data)
        elif tag.is_start():
            output = Record.create_start(record.address)
        elif tag.is_header():
            output = Record.create_header(record.data)
        elif tag.is_count():
            output = Record.create_count(record.address)
        else:
            return None

        return self._emit(output)

    def write_count(self, count: int) -> SrecRecord:

        return self._emit(self.Record.create_count(count))

    def write_header(self, text: AnyBytes = b'') -> SrecRecord:

        return self._emit(self.Record.create_header(text))

    def write_null_start(self) -> SrecRecord:

        return self._emit(self.Record.create_start())

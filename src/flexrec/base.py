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

r""" Base types and classes."""

import abc
import enum
import io
import os
import sys
from typing import IO
from typing import Any
from typing import Iterator
from typing import Mapping
from typing import MutableMapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type
from typing import Union

import colorama

AnyBytes = Union[bytes, bytearray, memoryview]
AnyPath = Union[bytes, bytearray, str, os.PathLike]
EllipsisType = Type['Ellipsis']

TOKEN_COLOR_CODES: Mapping[str, bytes] = {
    '':         colorama.Style.RESET_ALL.encode(),
    '<':        colorama.Style.RESET_ALL.encode(),
    '>':        colorama.Style.RESET_ALL.encode(),
    'address':  colorama.Fore.RED.encode(),
    'begin':    colorama.Fore.YELLOW.encode(),
    'checksum': colorama.Fore.MAGENTA.encode(),
    'count':    colorama.Fore.BLUE.encode(),
    'data':     colorama.Fore.CYAN.encode(),
    'dataalt':  colorama.Fore.LIGHTCYAN_EX.encode(),
    'end':      colorama.Style.RESET_ALL.encode(),
    'tag':      colorama.Fore.GREEN.encode(),
}
r"""ANSI color codes for each possible token type."""


def colorize_tokens(
    tokens: Mapping[str, bytes],
    altdata: bool = True,
) -> Mapping[str, bytes]:
    r"""Prepends ANSI color codes to record field tokens.

    For each token within `tokens`, its key is used to look up the ANSI color
    code from :data:`TOKEN_COLOR_CODES`; unknown keys get the reset code.
    Empty tokens are dropped.

    Args:
        tokens (dict):
            A mapping of each token key name to token byte string.

        altdata (bool):
            If true, it alternates each byte (two hex digits) of the ``data``
            token between the ``data`` and ``dataalt`` color codes.

    Returns:
        dict: `tokens` with prepended ANSI color codes.

    Examples:
        >>> from flexrec.base import colorize_tokens
        >>> from flexrec import SrecRecord
        >>> tokens = SrecRecord.create_start(0x1234).to_tokens()
        >>> colorized = colorize_tokens(tokens)
        >>> colorized['tag']
        b'\x1b[32m9'
        >>> colorized['address']
        b'\x1b[31m1234'
    """

    codes = TOKEN_COLOR_CODES
    colorized = {'<': codes['<']}

    for key, value in tokens.items():
        if not value:
            continue
        code = codes.get(key, codes[''])

        if key == 'data' and altdata:
            altcode = codes['dataalt']
            buffer = bytearray()
            for i in range(0, len(value), 2):
                buffer.extend(altcode if i & 2 else code)
                buffer.extend(value[i:(i + 2)])
            colorized[key] = bytes(buffer)
        else:
            colorized[key] = code + value

    colorized['>'] = codes['>']
    return colorized


class ErrorKind(enum.Enum):
    r"""Kind of conversion failure."""

    UNRECOGNIZED_TYPE = 'R'
    r"""Unknown or unsupported record type."""

    BAD_FRAMING = 'S'
    r"""Unexpected bytes between records."""

    CHECKSUM_MISMATCH = 'C'
    r"""Record checksum does not match its contents."""

    TRUNCATED = 'T'
    r"""Stream ended in the middle of a record."""

    IO_FAILURE = 'I'
    r"""Stream could not be opened, read, or written."""

    OVERFLOW = 'O'
    r"""Record cannot be represented in the output format."""


class RecordError(ValueError):
    r"""Malformed record within a stream.

    Attributes:
        kind (:class:`ErrorKind`):
            Nature of the failure.

        offset (int):
            Byte offset within the source stream, where the failure was
            detected.

        value (int):
            Offending byte or field value, if meaningful; ``None`` otherwise.
    """

    kind: ErrorKind = None  # override

    def __init__(
        self,
        message: str,
        offset: int = -1,
        value: Optional[int] = None,
    ):

        super().__init__(message)
        self.offset: int = offset
        self.value: Optional[int] = value


class UnrecognizedTypeError(RecordError):
    kind = ErrorKind.UNRECOGNIZED_TYPE


class BadFramingError(RecordError):
    kind = ErrorKind.BAD_FRAMING


class ChecksumError(RecordError):
    kind = ErrorKind.CHECKSUM_MISMATCH


class TruncatedError(RecordError):
    kind = ErrorKind.TRUNCATED


class BaseTag:
    r"""Record tag.

    The *record tag* indicates the *nature* of a record, and it is directly
    written into the serialized representation of a record.

    The predicates below let a record be re-encoded into another format
    without knowing the tag class of its source format.
    """

    _DATA: Optional['BaseTag'] = None
    r"""Alias to the data record tag."""

    @abc.abstractmethod
    def is_data(self) -> bool:
        r"""Tells whether this is a data record tag.

        Returns:
            bool: This is a data record tag.

        Examples:
            >>> from flexrec import FlexRecord, SrecRecord
            >>> FlexRecord.create_data(0x1234, b'abc').tag.is_data()
            True
            >>> SrecRecord.create_header(b'HDR').tag.is_data()
            False
        """
        ...

    # noinspection PyMethodMayBeStatic
    def is_start(self) -> bool:
        r"""Tells whether this is a transfer (start) address record tag.

        Returns:
            bool: This is a start address record tag.
        """

        return False

    # noinspection PyMethodMayBeStatic
    def is_header(self) -> bool:

        return False

    # noinspection PyMethodMayBeStatic
    def is_count(self) -> bool:

        return False


class BaseRecord(abc.ABC):
    r"""Record.

    A *record* is the basic means to transfer a load image across systems.
    It carries either a chunk of binary data to be allocated at some
    *address*, or some *meta* information (e.g. *transfer address*,
    *record count*).

    The *constructor* (:meth:`__init__`) allows direct assignment of attribute
    values, as well as skipping *validation*.
    Instead, factory methods (e.g. :meth:`create_data`) should be preferred.

    Attributes:
        tag (:class:`BaseTag`):
            The mandatory *tag*, indicating the *nature* of the record.

        address (int):
            Load address for *data* records, transfer address for *start*
            records, record count for *count* records.

        data (bytes):
            Record payload.

        count (int):
            Count field of the serialized record, or ``None`` if the format
            has none.

        checksum (int):
            Checksum field of the serialized record, or ``None`` if the format
            has none.

        coords (int couple):
            Record index and byte offset within the parsed stream.
            This is a non-standard feature, useful for diagnostics only.

    Args:
        tag (:class:`BaseTag`):
            See :attr:`tag` attribute.

        address (int):
            See :attr:`address` attribute.

        data (bytes):
            See :attr:`data` attribute.

        count (int):
            See :attr:`count` attribute.
            ``Ellipsis`` initializes :attr:`count` via :meth:`compute_count`.
            ``None`` assigns ``None``, skipping further validation.

        checksum (int):
            See :attr:`checksum` attribute.
            ``Ellipsis`` initializes :attr:`checksum` via
            :meth:`compute_checksum`.
            ``None`` assigns ``None``, skipping further validation.

        coords (int couple):
            See :attr:`coords` attribute.

        validate (bool):
            If true, :meth:`validate` is called upon initialization.
    """

    EQUALITY_KEYS: Sequence[str] = [
        'address',
        'checksum',
        'count',
        'data',
        'tag',
    ]
    r"""Meta keys for equality checks."""

    META_KEYS: Sequence[str] = [
        'address',
        'checksum',
        'coords',
        'count',
        'data',
        'tag',
    ]
    r"""Meta keys, as copied by :meth:`copy`."""

    Tag: Type[BaseTag] = None  # override
    r"""Tag object type."""

    def __bytes__(self) -> bytes:

        return self.to_bytestr()

    def __eq__(self, other: 'BaseRecord') -> bool:

        return not self != other

    def __init__(
        self,
        tag: BaseTag,
        address: int = 0,
        data: AnyBytes = b'',
        count: Optional[Union[int, EllipsisType]] = Ellipsis,
        checksum: Optional[Union[int, EllipsisType]] = Ellipsis,
        coords: Tuple[int, int] = (-1, -1),
        validate: bool = True,
    ):

        self.address: int = address.__index__()
        self.checksum: Optional[int] = None
        self.coords: Tuple[int, int] = coords
        self.count: Optional[int] = None
        self.data: AnyBytes = data
        self.tag: BaseTag = tag

        if count is Ellipsis:
            self.update_count()
        elif count is not None:
            self.count = count.__index__()

        if checksum is Ellipsis:
            self.update_checksum()
        elif checksum is not None:
            self.checksum = checksum.__index__()

        if validate:
            _count = count is not None
            _checksum = checksum is not None and _count
            self.validate(checksum=_checksum, count=_count)

    def __ne__(self, other: 'BaseRecord') -> bool:

        for key in self.EQUALITY_KEYS:
            if not hasattr(other, key):
                return True
            if getattr(self, key) != getattr(other, key):
                return True

        return False

    def __repr__(self) -> str:

        meta = self.get_meta()
        text = f'<{self.__class__!s} @0x{id(self):08X} '
        text += ' '.join(f'{key!s}:={value!r}' for key, value in meta.items())
        text += '>'
        return text

    def __str__(self) -> str:

        return self.to_bytestr().decode('latin-1')

    def compute_checksum(self) -> Optional[int]:
        r"""Computes the checksum field value.

        When not specialized, it returns ``None`` by default.

        Returns:
            int: Computed checksum value.
        """

        return None

    def compute_count(self) -> Optional[int]:
        r"""Computes the count field value.

        When not specialized, it returns ``None`` by default.

        Returns:
            int: Computed count value.
        """

        return None

    def copy(self, validate: bool = True) -> 'BaseRecord':  # shallow

        meta = self.get_meta()
        tag = meta.pop('tag')
        cls = type(self)
        return cls(tag, validate=validate, **meta)

    @classmethod
    @abc.abstractmethod
    def create_data(cls, address: int, data: AnyBytes) -> 'BaseRecord':
        r"""Creates a data record.

        Args:
            address (int):
                Load address.

            data (bytes):
                Record byte data.

        Returns:
            :class:`BaseRecord`: Data record object.
        """
        ...

    @classmethod
    @abc.abstractmethod
    def create_start(cls, address: int = 0) -> 'BaseRecord':
        r"""Creates a transfer (start) address record.

        Args:
            address (int):
                Transfer address.

        Returns:
            :class:`BaseRecord`: Start address record object.
        """
        ...

    def get_meta(self) -> MutableMapping[str, Any]:
        r"""Gets meta information.

        Returns:
             dict: Attribute values listed by :attr:`META_KEYS`.
        """

        meta = {key: getattr(self, key) for key in self.META_KEYS}
        return meta

    def print(
        self,
        *args,
        stream: Optional[IO] = None,
        color: bool = False,
        **kwargs,
    ) -> 'BaseRecord':
        r"""Prints a record.

        The record is converted into tokens (eventually colorized) then joined
        and written onto a byte stream (*stdout* by default).

        Args:
            args:
                Forwarded to the underlying call to :meth:`to_tokens`.

            stream (bytes IO):
                The byte stream where the record tokens are printed.
                If ``None``, *stdout* is selected.

            color (bool):
                Tokens are colorized before printing.

            kwargs:
                Forwarded to the underlying call to :meth:`to_tokens`.

        Returns:
            :class:`BaseRecord`: *self*.
        """

        if stream is None:
            stream = sys.stdout.buffer
        tokens = self.to_tokens(*args, **kwargs)
        if color:
            tokens = colorize_tokens(tokens)
        stream.writelines(tokens.values())
        return self

    def serialize(self, stream: IO, *args, **kwargs) -> 'BaseRecord':
        r"""Serializes onto a stream.

        This wraps a call to :meth:`to_bytestr` and ``stream.write``.

        Returns:
            :class:`BaseRecord`: *self*.
        """

        stream.write(self.to_bytestr(*args, **kwargs))
        return self

    @abc.abstractmethod
    def to_bytestr(self, *args, **kwargs) -> bytes:
        r"""Converts into a byte string.

        Returns:
            bytes: Byte string representation.
        """
        ...

    @abc.abstractmethod
    def to_tokens(self, *args, **kwargs) -> Mapping[str, bytes]:
        r"""Converts into byte string tokens.

        Returns:
            dict: Mapping of token keys to token byte strings.
        """
        ...

    def update_checksum(self) -> 'BaseRecord':

        self.checksum = self.compute_checksum()
        return self

    def update_count(self) -> 'BaseRecord':

        self.count = self.compute_count()
        return self

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> 'BaseRecord':
        r"""Validates consistency of attribute values.

        Args:
            checksum (bool):
                Check the consistency of the :attr:`checksum` attribute.

            count (bool):
                Check the consistency of the :attr:`count` attribute.

        Returns:
            :class:`BaseRecord`: *self*.

        Raises:
            ValueError: Some targeted attributes are inconsistent.
        """

        if not 0 <= self.address <= 0xFFFF:
            raise ValueError('address overflow')

        if self.checksum is not None:
            if self.checksum < 0:
                raise ValueError('checksum overflow')

            if checksum:
                if self.checksum != self.compute_checksum():
                    raise ValueError('wrong checksum')

        if self.count is not None:
            if self.count < 0:
                raise ValueError('count overflow')

            if count:
                if self.count != self.compute_count():
                    raise ValueError('wrong count')

        self.Tag(self.tag)
        return self


class BaseReader(abc.ABC):
    r"""Record stream decoder.

    It pulls bytes from a byte stream, one at a time, keeping track of the
    byte :attr:`offset` for diagnostics.

    Attributes:
        stream (bytes IO):
            Source byte stream.

        offset (int):
            Number of bytes consumed so far.

        index (int):
            Number of records decoded so far.

    Args:
        stream (bytes IO or buffer):
            Stream or byte buffer to decode records from.
    """

    Record: Type[BaseRecord] = None  # override

    def __init__(self, stream: Union[AnyBytes, IO]):

        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(stream)

        self.stream: IO = stream
        self.offset: int = 0
        self.index: int = 0

    def __iter__(self) -> Iterator[BaseRecord]:

        while True:
            record = self.read()
            if record is None:
                break
            yield record

    def _getc(self) -> int:
        r"""Reads the next byte.

        Returns:
            int: Byte value, or -1 on end of stream.
        """

        c = self.stream.read(1)
        if not c:
            return -1
        self.offset += 1
        return c[0]

    def _require(self) -> int:

        c = self._getc()
        if c < 0:
            raise TruncatedError('truncated record', offset=self.offset)
        return c

    @abc.abstractmethod
    def read(self) -> Optional[BaseRecord]:
        r"""Decodes the next record.

        Returns:
            :class:`BaseRecord`: Next record, or ``None`` on clean end of
            stream.

        Raises:
            RecordError: Malformed record.
        """
        ...


class BaseWriter(abc.ABC):
    r"""Record stream encoder.

    Attributes:
        stream (bytes IO):
            Target byte stream.

        offset (int):
            Number of bytes written so far.

        index (int):
            Number of records written so far.
    """

    Record: Type[BaseRecord] = None  # override

    def __init__(self, stream: IO):

        self.stream: IO = stream
        self.offset: int = 0
        self.index: int = 0

    def _emit(self, record: BaseRecord, *args, **kwargs) -> BaseRecord:

        chunk = record.to_bytestr(*args, **kwargs)
        record.coords = (self.index, self.offset)
        self.stream.write(chunk)
        self.offset += len(chunk)
        self.index += 1
        return record

    @abc.abstractmethod
    def write(self, record: BaseRecord) -> Optional[BaseRecord]:
        r"""Encodes a record of any format.

        Args:
            record (:class:`BaseRecord`):
                Record to translate and write.

        Returns:
            :class:`BaseRecord`: The record actually written, or ``None`` if
            the record has no representation in this format.
        """
        ...

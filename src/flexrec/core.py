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

r"""Conversion driver.

A conversion *run* pulls records from a reader, one at a time, and pushes
each of them into the writer of the other format, until the input stream
ends cleanly or the first malformed record is met.

Output records mirror the input records one by one: nothing is merged,
split, or padded.
"""

import contextlib
import dataclasses
import enum
import logging
import os
import sys
from typing import IO
from typing import Any
from typing import Optional
from typing import Tuple
from typing import Union

from bytesparse import Memory

from .base import AnyBytes
from .base import AnyPath
from .base import BaseReader
from .base import BaseRecord
from .base import BaseWriter
from .base import ErrorKind
from .base import RecordError
from .formats import flex as _flex
from .formats import srec as _srec
from .formats.flex import FlexReader
from .formats.flex import FlexWriter
from .formats.srec import SrecReader
from .formats.srec import SrecRecord
from .formats.srec import SrecWriter

_logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    r"""Conversion direction."""

    FLEX_TO_SREC = 'flex2sr'
    r"""FLEX binary to Motorola S-record."""

    SREC_TO_FLEX = 'sr2flex'
    r"""Motorola S-record to FLEX binary."""


class RunState(enum.Enum):
    r"""Conversion run state."""

    RUNNING = 'running'
    DONE = 'done'
    FAILED = 'failed'


@dataclasses.dataclass(frozen=True)
class RunSummary:
    r"""Outcome of a conversion run.

    Attributes:
        direction (:class:`Direction`):
            Conversion direction.

        data_count (int):
            Number of *data* records read.

        start_count (int):
            Number of *start* (transfer address) records read.

        records_in (int):
            Number of records read, of any kind.

        records_out (int):
            Number of records written, including synthesized ones.

        bytes_in (int):
            Number of input bytes consumed.

        bytes_out (int):
            Number of output bytes written.
    """

    direction: Direction
    data_count: int = 0
    start_count: int = 0
    records_in: int = 0
    records_out: int = 0
    bytes_in: int = 0
    bytes_out: int = 0


ERROR_TEXTS = {
    ErrorKind.UNRECOGNIZED_TYPE: 'unrecognized record type',
    ErrorKind.BAD_FRAMING: 'bad data between records',
    ErrorKind.CHECKSUM_MISMATCH: 'wrong checksum',
    ErrorKind.TRUNCATED: 'truncated record',
    ErrorKind.IO_FAILURE: 'input/output failure',
    ErrorKind.OVERFLOW: 'record overflow',
}


class ConversionError(Exception):
    r"""Failed conversion run.

    Attributes:
        kind (:class:`ErrorKind`):
            Nature of the failure.

        offset (int):
            Byte offset within the input stream, where the failure was
            detected.

        value (int):
            Offending byte value, if meaningful.

        summary (:class:`RunSummary`):
            Partial summary, up to the failure.
    """

    def __init__(
        self,
        kind: ErrorKind,
        offset: int = -1,
        value: Optional[int] = None,
        summary: Optional[RunSummary] = None,
    ):

        self.kind: ErrorKind = kind
        self.offset: int = offset
        self.value: Optional[int] = value
        self.summary: Optional[RunSummary] = summary

        text = ERROR_TEXTS[kind]
        if value is not None:
            text += f' {value:02X}'
        if offset >= 0:
            text += f' at offset {offset:04X}'
        super().__init__(text)


class ConversionSession:
    r"""Conversion run.

    It owns a reader of the input format, a writer of the output format, and
    the counters needed to synthesize the trailing records.

    Args:
        direction (:class:`Direction`):
            Conversion direction.

        input_stream (bytes IO or buffer):
            Input byte stream.

        output_stream (bytes IO):
            Output byte stream.

        header (bytes):
            Text of the ``S0`` header record (S-record output only).
            If ``None``, no header record is written.

        end (bytes):
            S-record line terminator.

        verify_checksum (bool):
            Fail on S-record checksum mismatch.

        skip_empty_data (bool):
            Drop S-record data records without payload.
    """

    def __init__(
        self,
        direction: Direction,
        input_stream: Union[AnyBytes, IO],
        output_stream: IO,
        header: Optional[AnyBytes] = b'',
        end: Optional[AnyBytes] = None,
        verify_checksum: bool = True,
        skip_empty_data: bool = False,
    ):

        direction = Direction(direction)

        if direction is Direction.FLEX_TO_SREC:
            reader = FlexReader(input_stream)
            writer = SrecWriter(output_stream, end=end)
        else:
            reader = SrecReader(input_stream, verify_checksum=verify_checksum)
            writer = FlexWriter(output_stream, skip_empty_data=skip_empty_data)

        self.direction: Direction = direction
        self.reader: BaseReader = reader
        self.writer: BaseWriter = writer
        self.header: Optional[AnyBytes] = header
        self.state: RunState = RunState.RUNNING
        self.data_count: int = 0
        self.start_count: int = 0
        self._started: bool = False

    def _fail(self, kind: ErrorKind, offset: int, value: Optional[int] = None) -> ConversionError:

        self.state = RunState.FAILED
        _logger.error('%s failed: %s at offset 0x%04X',
                      self.direction.value, kind.name, offset)
        return ConversionError(kind, offset=offset, value=value, summary=self.summary())

    def begin(self) -> None:
        r"""Writes the leading records, if any."""

        if self._started:
            return
        self._started = True

        if self.direction is Direction.FLEX_TO_SREC and self.header is not None:
            self.writer.write_header(self.header)

    def finish(self) -> None:
        r"""Writes the trailing records, and terminates the run."""

        if self.direction is Direction.FLEX_TO_SREC:
            self.writer.write_count(self.data_count)
            if not self.start_count:
                self.writer.write_null_start()

        self.state = RunState.DONE
        _logger.info('%s done: %d data records, %d transfer records',
                     self.direction.value, self.data_count, self.start_count)

    def step(self) -> Optional[BaseRecord]:
        r"""Processes one input record.

        Returns:
            :class:`BaseRecord`: The processed input record, or ``None`` when
            the run is over.

        Raises:
            ConversionError: Malformed input, or stream failure.
        """

        if self.state is not RunState.RUNNING:
            return None
        record = None

        try:
            self.begin()
            record = self.reader.read()

            if record is None:
                self.finish()
                return None

            tag = record.tag
            if tag.is_data():
                self.data_count += 1
            elif tag.is_start():
                self.start_count += 1

            self.writer.write(record)

        except RecordError as exc:
            raise self._fail(exc.kind, exc.offset, exc.value) from exc

        except ValueError as exc:  # record does not fit the output format
            offset = self.reader.offset if record is None else record.coords[1]
            raise self._fail(ErrorKind.OVERFLOW, offset) from exc

        except OSError as exc:
            raise self._fail(ErrorKind.IO_FAILURE, self.reader.offset) from exc

        return record

    def run(self) -> RunSummary:
        r"""Processes all the input records.

        Returns:
            :class:`RunSummary`: Run summary.

        Raises:
            ConversionError: Malformed input, or stream failure.
        """

        while self.step() is not None:
            pass
        return self.summary()

    def summary(self) -> RunSummary:

        return RunSummary(
            direction=self.direction,
            data_count=self.data_count,
            start_count=self.start_count,
            records_in=self.reader.index,
            records_out=self.writer.index,
            bytes_in=self.reader.offset,
            bytes_out=self.writer.offset,
        )


def convert(
    direction: Union[Direction, str],
    input_stream: Union[AnyBytes, IO],
    output_stream: IO,
    **options: Any,
) -> RunSummary:
    r"""Converts a stream into the other format.

    Args:
        direction (:class:`Direction`):
            Conversion direction, or its name (``flex2sr``, ``sr2flex``).

        input_stream (bytes IO or buffer):
            Input byte stream.

        output_stream (bytes IO):
            Output byte stream. It is flushed, but not closed.

        options:
            Forwarded to :class:`ConversionSession`.

    Returns:
        :class:`RunSummary`: Run summary.

    Raises:
        ConversionError: Malformed input, or stream failure.

    Examples:
        >>> import io
        >>> from flexrec import convert
        >>> stream = io.BytesIO()
        >>> summary = convert('flex2sr', b'\x02\x10\x00\x01\xAA', stream, header=None)
        >>> print(stream.getvalue().decode(), end='')
        S1041000AA41
        S5030001FB
        S9030000FC
        >>> summary.data_count
        1
    """

    session = ConversionSession(direction, input_stream, output_stream, **options)
    try:
        return session.run()
    finally:
        flush = getattr(output_stream, 'flush', None)
        if flush is not None:
            flush()


def guess_format_name(file_path: str) -> str:
    r"""Guesses the record format name from a file extension.

    Returns:
        str: Either ``'flex'`` or ``'srec'``.

    Raises:
        ValueError: Unknown file extension.

    Examples:
        >>> guess_format_name('HELLO.CMD')
        'flex'
        >>> guess_format_name('hello.s19')
        'srec'
    """

    _, ext = os.path.splitext(str(file_path))
    ext = ext.lower()

    if ext in _flex.FILE_EXT:
        return 'flex'
    if ext in _srec.FILE_EXT:
        return 'srec'
    raise ValueError(f'extension not supported: {ext!r}')


def guess_direction(input_path: str) -> Direction:
    r"""Guesses the conversion direction from the input file extension.

    Examples:
        >>> guess_direction('hello.s19')
        <Direction.SREC_TO_FLEX: 'sr2flex'>
    """

    if guess_format_name(input_path) == 'flex':
        return Direction.FLEX_TO_SREC
    return Direction.SREC_TO_FLEX


def make_header(input_path: Optional[AnyPath]) -> bytes:
    r"""Builds the ``S0`` header text from the input file name.

    Examples:
        >>> make_header('/flex/utils/HELLO.CMD')
        b'HELLO.CMD'
        >>> make_header(None)
        b''
    """

    if input_path is None or input_path == '-':
        return b''
    name = os.path.basename(os.fsencode(input_path))
    return name[:SrecRecord.DATA_MAX]


def _open_stream(path: Optional[AnyPath], mode: str) -> Any:

    if path is None or path == '-':
        stream = sys.stdin.buffer if 'r' in mode else sys.stdout.buffer
        return contextlib.nullcontext(stream)
    return open(path, mode)


def convert_file(
    direction: Optional[Union[Direction, str]],
    input_path: Optional[AnyPath],
    output_path: Optional[AnyPath],
    **options: Any,
) -> RunSummary:
    r"""Converts a file into the other format.

    Both files stay open for the whole run, and are closed on every exit path.

    Args:
        direction (:class:`Direction`):
            Conversion direction. If ``None``, it is guessed from the
            extension of `input_path`.

        input_path (str):
            Input file path; ``None`` or ``'-'`` for *stdin*.

        output_path (str):
            Output file path; ``None`` or ``'-'`` for *stdout*.

        options:
            Forwarded to :class:`ConversionSession`.
            By default, `header` is the base name of `input_path`.

    Returns:
        :class:`RunSummary`: Run summary.

    Raises:
        ConversionError: Malformed input, or stream failure.
    """

    if direction is None:
        direction = guess_direction(input_path)
    options.setdefault('header', make_header(input_path))

    try:
        with _open_stream(input_path, 'rb') as input_stream:
            with _open_stream(output_path, 'wb') as output_stream:
                return convert(direction, input_stream, output_stream, **options)

    except OSError as exc:
        _logger.error('cannot access file: %s', exc)
        raise ConversionError(ErrorKind.IO_FAILURE, offset=0) from exc


def load_image(
    stream: Union[AnyBytes, IO],
    format_name: str = 'flex',
    verify_checksum: bool = True,
) -> Tuple[Memory, Optional[int]]:
    r"""Loads a whole record stream into a memory image.

    Args:
        stream (bytes IO or buffer):
            Input byte stream.

        format_name (str):
            Either ``'flex'`` or ``'srec'``.

        verify_checksum (bool):
            Fail on S-record checksum mismatch.

    Returns:
        (memory, startaddr): Sparse memory image, and the last non-null
        transfer address (``None`` if missing).

    Raises:
        RecordError: Malformed input.

    Examples:
        >>> from flexrec import load_image
        >>> buffer = b'\x02\x10\x00\x02AB\x02\x20\x00\x01C\x16\x10\x00'
        >>> memory, startaddr = load_image(buffer)
        >>> [(start, bytes(data)) for start, data in memory.to_blocks()]
        [(4096, b'AB'), (8192, b'C')]
        >>> hex(startaddr)
        '0x1000'
    """

    if format_name == 'flex':
        reader = FlexReader(stream)
    elif format_name == 'srec':
        reader = SrecReader(stream, verify_checksum=verify_checksum)
    else:
        raise ValueError(f'unknown format: {format_name!r}')

    memory = Memory()
    startaddr = None

    for record in reader:
        tag = record.tag
        if tag.is_data():
            memory.write(record.address, record.data)
        elif tag.is_start() and record.address:
            startaddr = record.address

    return memory, startaddr

import abc
import io
import sys
from typing import cast as _cast

import pytest

import flexrec.base as _fb
from flexrec.base import BadFramingError
from flexrec.base import BaseRecord
from flexrec.base import BaseTag
from flexrec.base import ChecksumError
from flexrec.base import ErrorKind
from flexrec.base import RecordError
from flexrec.base import TruncatedError
from flexrec.base import UnrecognizedTypeError
from flexrec.base import colorize_tokens
from flexrec.formats.flex import FlexReader


@pytest.fixture
def fake_token_color_codes(request):
    backup = _fb.TOKEN_COLOR_CODES
    _fb.TOKEN_COLOR_CODES = {key: (b'[%s]' % key.encode()) for key in backup}
    yield
    _fb.TOKEN_COLOR_CODES = backup


def test_colorize_tokens_altdata(fake_token_color_codes):
    tokens = {
        'begin':    b'S',
        'tag':      b'1',
        'count':    b'06',
        'address':  b'1234',
        'data':     b'616263',
        'checksum': b'8D',
        'end':      b'\n',
    }
    actual = colorize_tokens(tokens, altdata=True)
    expected = {
        '<':        b'[<]',
        'begin':    b'[begin]S',
        'tag':      b'[tag]1',
        'count':    b'[count]06',
        'address':  b'[address]1234',
        'data':     b'[data]61[dataalt]62[data]63',
        'checksum': b'[checksum]8D',
        'end':      b'[end]\n',
        '>':        b'[>]',
    }
    assert actual == expected


def test_colorize_tokens_plain(fake_token_color_codes):
    tokens = {
        'data':    b'616263',
        'unknown': b'?',
        'empty':   b'',
    }
    actual = colorize_tokens(tokens, altdata=False)
    expected = {
        '<':       b'[<]',
        'data':    b'[data]616263',
        'unknown': b'[]?',
        '>':       b'[>]',
    }
    assert actual == expected


class TestRecordError:

    def test_kinds(self):
        assert UnrecognizedTypeError.kind == ErrorKind.UNRECOGNIZED_TYPE
        assert BadFramingError.kind == ErrorKind.BAD_FRAMING
        assert ChecksumError.kind == ErrorKind.CHECKSUM_MISMATCH
        assert TruncatedError.kind == ErrorKind.TRUNCATED

    def test_attributes(self):
        exc = ChecksumError('wrong checksum', offset=10, value=0x42)
        assert isinstance(exc, RecordError)
        assert isinstance(exc, ValueError)
        assert str(exc) == 'wrong checksum'
        assert exc.offset == 10
        assert exc.value == 0x42

    def test_defaults(self):
        exc = TruncatedError('truncated record')
        assert exc.offset == -1
        assert exc.value is None


class TestBaseReader:

    def test___init___buffer(self):
        reader = FlexReader(b'')
        assert reader.offset == 0
        assert reader.index == 0
        assert reader.read() is None

    def test___init___stream(self):
        stream = io.BytesIO(b'\x16\x12\x34')
        reader = FlexReader(stream)
        assert reader.stream is stream
        record = reader.read()
        assert record.address == 0x1234
        assert reader.offset == 3
        assert reader.index == 1

    def test__getc(self):
        reader = FlexReader(b'\xAB')
        assert reader._getc() == 0xAB
        assert reader.offset == 1
        assert reader._getc() == -1
        assert reader.offset == 1

    def test__require_raises(self):
        reader = FlexReader(b'\xAB')
        reader._require()
        with pytest.raises(TruncatedError, match='truncated record') as info:
            reader._require()
        assert info.value.offset == 1


class BaseTestTag:

    Tag = BaseTag
    Tag_FAKE = _cast(BaseTag, -1)

    @abc.abstractmethod
    def test_is_data(self):
        ...

    @abc.abstractmethod
    def test_is_start(self):
        ...


class BaseTestRecord:

    Record = BaseRecord

    def test___bytes__(self):
        Record = self.Record
        record = Record(self.Record.Tag._DATA)
        assert bytes(record) == record.to_bytestr()

    def test___eq__(self):
        Tag = self.Record.Tag
        Record = self.Record
        records = [
            Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                   coords=(33, 44), validate=False),
            Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                   coords=(55, 44), validate=False),
            Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                   coords=(33, 66), validate=False),
        ]
        record1 = records[0]
        for record2 in records:
            assert record2 == record1

    def test___init___basic(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        assert record.address == 0x1234
        assert record.checksum == 0xA5
        assert record.coords == (33, 44)
        assert record.count == 3
        assert record.data == b'xyz'
        assert record.tag == Tag._DATA

    def test___init___checksum_ellipsis(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=..., checksum=...,
                        coords=(33, 44), validate=False)
        assert record.checksum == record.compute_checksum()
        assert record.count == record.compute_count()

    def test___init___checksum_none(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=..., checksum=None,
                        coords=(33, 44), validate=False)
        assert record.checksum is None
        assert record.count == record.compute_count()

    def test___init___count_none(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=None, checksum=0xA5,
                        coords=(33, 44), validate=False)
        assert record.checksum == 0xA5
        assert record.count is None

    def test___init___default(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA)
        assert record.address == 0
        assert record.checksum == record.compute_checksum()
        assert record.coords == (-1, -1)
        assert record.count == record.compute_count()
        assert record.data == b''
        assert record.tag == Tag._DATA

    def test___ne__(self):
        Tag = self.Record.Tag
        Record = self.Record
        Tag_FAKE = _cast(Tag, -1)
        records = [
            Record(Tag_FAKE, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                   coords=(33, 44), validate=False),
            Record(Tag._DATA, address=0x4321, data=b'xyz', count=3, checksum=0xA5,
                   coords=(33, 44), validate=False),
            Record(Tag._DATA, address=0x1234, data=b'abc', count=3, checksum=0xA5,
                   coords=(33, 44), validate=False),
            Record(Tag._DATA, address=0x1234, data=b'xyz', count=4, checksum=0xA5,
                   coords=(33, 44), validate=False),
            Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0x5A,
                   coords=(33, 44), validate=False),
        ]
        record1 = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                         coords=(33, 44), validate=False)
        for record2 in records:
            assert record2 != record1

    def test___ne___meta_keys(self):
        Tag = self.Record.Tag
        Record = self.Record
        record1 = Record(Tag._DATA, address=0x1234, data=b'xyz', validate=False)
        record2 = Record(Tag._DATA, address=0x1234, data=b'xyz', validate=False)
        delattr(record1, 'data')
        assert record2 != record1

    def test___repr___type(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        text = repr(record)
        assert isinstance(text, str)
        assert 'address:=4660' in text

    def test___str___type(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        text = str(record)
        assert isinstance(text, str)
        assert text

    @abc.abstractmethod
    def test_compute_checksum(self):
        ...

    @abc.abstractmethod
    def test_compute_count(self):
        ...

    def test_copy(self):
        Tag = self.Record.Tag
        Record = self.Record
        record1 = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                         coords=(33, 44), validate=False)
        record2 = record1.copy(validate=False)
        assert record1 is not record2
        assert record1 == record2

    @abc.abstractmethod
    def test_create_data(self):
        ...

    @abc.abstractmethod
    def test_create_start(self):
        ...

    def test_get_meta(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        actual = record.get_meta()
        expected = {
            'address': 0x1234,
            'checksum': 0xA5,
            'coords': (33, 44),
            'count': 3,
            'data': b'xyz',
            'tag': Tag._DATA,
        }
        assert actual == expected

    def test_print(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        plain_stream = io.BytesIO()
        record.print(stream=plain_stream, color=False)
        color_stream = io.BytesIO()
        record.print(stream=color_stream, color=True)
        plain_text = plain_stream.getvalue()
        color_text = color_stream.getvalue()
        assert plain_text
        assert color_text
        assert len(color_text) > len(plain_text)

    def test_print_stdout(self, capsysbinary):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        record.print()
        sys.stdout.flush()
        captured = capsysbinary.readouterr()
        assert captured.out == b''.join(record.to_tokens().values())

    def test_serialize(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=0xA5,
                        coords=(33, 44), validate=False)
        stream = io.BytesIO()
        returned = record.serialize(stream)
        assert returned is record
        assert stream.getvalue() == record.to_bytestr()

    @abc.abstractmethod
    def test_to_bytestr(self):
        ...

    @abc.abstractmethod
    def test_to_tokens(self):
        ...

    def test_update_checksum(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=3, checksum=None,
                        validate=False)
        returned = record.update_checksum()
        assert returned is record
        assert record.checksum == record.compute_checksum()

    def test_update_count(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA, address=0x1234, data=b'xyz', count=None, checksum=0xA5,
                        validate=False)
        returned = record.update_count()
        assert returned is record
        assert record.count == record.compute_count()

    def test_validate_default(self):
        Tag = self.Record.Tag
        Record = self.Record
        record = Record(Tag._DATA)
        returned = record.validate()
        assert returned is record

    def test_validate_raises_basic(self):
        Tag = self.Record.Tag
        Record = self.Record
        records = [
            Record(Tag._DATA, address=-1, count=0, checksum=0, validate=False),
            Record(Tag._DATA, address=0x10000, count=0, checksum=0, validate=False),

            Record(Tag._DATA, address=0, count=0, checksum=-1, validate=False),
            Record(Tag._DATA, address=0, count=0, checksum=42, validate=False),

            Record(Tag._DATA, address=0, count=-1, checksum=0, validate=False),
            Record(Tag._DATA, address=0, count=42, checksum=0, validate=False),

            Record(_cast(Tag, -1), address=0, count=0, checksum=0, validate=False),
        ]
        matches = [
            'address overflow',
            'address overflow',

            'checksum overflow',
            'wrong checksum',

            'count overflow',
            'wrong count',

            'is not a valid',
        ]
        for record, match in zip(records, matches):
            record.compute_checksum = lambda: 0  # override
            record.compute_count = lambda: 0  # override

            with pytest.raises(ValueError, match=match):
                record.validate()

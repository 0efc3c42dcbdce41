from flexrec.utils import NIBBLE_VALUES
from flexrec.utils import hexlify
from flexrec.utils import split_word


def test_hexlify():
    assert hexlify(b'') == b''
    assert hexlify(b'\x00\x0F\xF0\xFF') == b'000FF0FF'
    assert hexlify(b'\xAB\xCD', upper=False) == b'abcd'
    assert hexlify(b'\xAB\xCD', sep=b' ') == b'AB CD'
    assert hexlify(bytearray(b'\x12')) == b'12'


def test_nibble_values():
    for i, c in enumerate(b'0123456789ABCDEF'):
        assert NIBBLE_VALUES[c] == i
    for c in b'abcdefG \r\n\0S':
        assert c not in NIBBLE_VALUES
    assert len(NIBBLE_VALUES) == 16


def test_split_word():
    assert split_word(0x0000) == b'\x00\x00'
    assert split_word(0x1234) == b'\x12\x34'
    assert split_word(0xFFFF) == b'\xFF\xFF'
    assert split_word(0x12345) == b'\x23\x45'

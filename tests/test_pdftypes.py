import zlib
from base64 import a85encode
from decimal import Decimal
from typing import Any

import pytest

from pdfcontent.filters import ascii85decode, asciihexdecode, rldecode
from pdfcontent.pdfexceptions import (
    PDFNotImplementedError,
    PDFTypeError,
    PDFValueError,
)
from pdfcontent.pdftypes import (
    PDFInlineData,
    PDFStream,
    encode,
    is_operator,
    new_operator,
    operator_name,
    unparse,
)
from pdfcontent.psparser import KWD, LIT
from pdfcontent.utils import apply_png_predictor


@pytest.mark.parametrize(
    ("obj", "expected"),
    [
        (None, b"null"),
        (True, b"true"),
        (False, b"false"),
        (0, b"0"),
        (-12, b"-12"),
        (1.5, b"1.5"),
        (0.1, b"0.1"),
        (3.0, b"3"),
        (-0.0, b"0"),
        (1e20, b"100000000000000000000"),
        (1.5e-7, b"0.00000015"),
        (Decimal("1.50"), b"1.5"),
        (b"abc", b"(abc)"),
        (b"a(b)\\", b"(a\\(b\\)\\\\)"),
        (b"line\n\t", b"(line\\n\\t)"),
        (b"cafe\xe9", b"(cafe\\351)"),
        (b"caf\xe9", b"<636166e9>"),
        (b"\x00\x01", b"<0001>"),
        (b"", b"()"),
        (LIT("F1"), b"/F1"),
        (LIT("A B"), b"/A#20B"),
        (LIT("a/b#"), b"/a#2fb#23"),
        (LIT(""), b"/"),
        (KWD(b"Tj"), b"Tj"),
        ([1, [2, LIT("x")]], b"[ 1 [ 2 /x ] ]"),
        ([], b"[ ]"),
        ({"K": 1, "L": b"v"}, b"<< /K 1 /L (v) >>"),
        ({}, b"<< >>"),
        (PDFInlineData(b"\x00EI"), b"\x00EI"),
    ],
)
def test_unparse(obj: Any, expected: bytes) -> None:
    assert unparse(obj) == expected


def test_unparse_invalid() -> None:
    with pytest.raises(PDFTypeError):
        unparse(object())
    with pytest.raises(PDFValueError):
        unparse(float("nan"))
    with pytest.raises(PDFValueError):
        unparse(Decimal("inf"))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        (12, 12),
        (0.5, 0.5),
        ("abc", b"abc"),
        ("\xe9", b"\xe9"),
        ("€", b"\xfe\xff\x20\xac"),
        (bytearray(b"x"), b"x"),
        ((1, "a"), [1, b"a"]),
        ({"K": "v", LIT("L"): 1}, {"K": b"v", "L": 1}),
        ([KWD(b"junk")], [KWD(b"junk")]),
        (LIT("F1"), LIT("F1")),
    ],
)
def test_encode(value: Any, expected: Any) -> None:
    assert encode(value) == expected


@pytest.mark.parametrize(
    "value",
    [KWD(b"Tj"), object(), {1: 2}, [object()]],
)
def test_encode_invalid(value: Any) -> None:
    with pytest.raises(PDFTypeError):
        encode(value)


def test_encode_non_finite() -> None:
    with pytest.raises(PDFValueError):
        encode(float("inf"))


def test_operators() -> None:
    assert new_operator("Tj") is KWD(b"Tj")
    assert new_operator(b"T*") is KWD(b"T*")
    assert operator_name(KWD(b"BDC")) == "BDC"
    assert is_operator(KWD(b"q"))
    assert not is_operator(LIT("q"))
    assert not is_operator(b"q")


def test_empty_operator() -> None:
    with pytest.raises(PDFValueError):
        new_operator("")
    with pytest.raises(PDFValueError):
        new_operator(b"")


class TestPDFStream:
    def test_no_filter(self):
        assert PDFStream({}, b"abc").get_data() == b"abc"

    def test_flate(self):
        stream = PDFStream({"Filter": LIT("FlateDecode")}, zlib.compress(b"abc"))
        assert stream.get_data() == b"abc"
        assert stream.get_rawdata() is None

    def test_filter_chain(self):
        raw = zlib.compress(b"abc").hex().encode("ascii") + b">"
        stream = PDFStream({"F": [LIT("AHx"), LIT("Fl")]}, raw)
        assert stream.get_data() == b"abc"

    def test_image_codec_is_not_decoded(self):
        stream = PDFStream({"Filter": LIT("DCTDecode")}, b"\xff\xd8")
        assert stream.get_data() == b"\xff\xd8"

    def test_unsupported_filter(self):
        stream = PDFStream({"Filter": LIT("LZWDecode")}, b"\x80")
        with pytest.raises(PDFNotImplementedError):
            stream.get_data()

    def test_png_predictor(self):
        rows = b"\x02\x01\x02" + b"\x02\x01\x01" + b"\x01\x05\x01"
        stream = PDFStream(
            {
                "Filter": LIT("FlateDecode"),
                "DecodeParms": {"Predictor": 12, "Columns": 2},
            },
            zlib.compress(rows),
        )
        assert stream.get_data() == b"\x01\x02\x02\x03\x05\x06"

    def test_unsupported_predictor(self):
        stream = PDFStream(
            {"Filter": LIT("FlateDecode"), "DecodeParms": {"Predictor": 2}},
            zlib.compress(b"abc"),
        )
        with pytest.raises(PDFNotImplementedError):
            stream.get_data()

    def test_filters(self):
        stream = PDFStream({"Filter": [LIT("A85"), LIT("Fl")], "DP": [None]}, b"")
        assert stream.get_filters() == [(LIT("A85"), {}), (LIT("Fl"), {})]


def test_ascii85decode() -> None:
    data = a85encode(b"Hello world")
    assert ascii85decode(data + b"~>") == b"Hello world"
    assert ascii85decode(a85encode(b"Hello world", adobe=True)) == b"Hello world"
    assert ascii85decode(data[:5] + b"\n" + data[5:]) == b"Hello world"
    assert ascii85decode(b"z~>") == b"\x00\x00\x00\x00"


def test_asciihexdecode() -> None:
    assert asciihexdecode(b"61 62\n6>") == b"ab`"
    assert asciihexdecode(b"616") == b"a`"
    with pytest.raises(PDFValueError):
        asciihexdecode(b"6g>")


def test_rldecode() -> None:
    data = bytes([2]) + b"abc" + bytes([254]) + b"x" + bytes([128]) + b"junk"
    assert rldecode(data) == b"abcxxx"


@pytest.mark.parametrize(
    ("rows", "expected"),
    [
        (b"\x00\x01\x02\x00\x03\x04", b"\x01\x02\x03\x04"),
        (b"\x01\x01\x01\x01\xff\x01", b"\x01\x02\xff\x00"),
        (b"\x02\x01\x02\x02\x01\x01", b"\x01\x02\x02\x03"),
        (b"\x03\x02\x02\x03\x01\x01", b"\x02\x03\x02\x03"),
        (b"\x04\x01\x01\x04\x01\x01", b"\x01\x02\x02\x03"),
    ],
)
def test_apply_png_predictor(rows: bytes, expected: bytes) -> None:
    assert apply_png_predictor(1, 2, 8, rows) == expected


def test_apply_png_predictor_invalid() -> None:
    with pytest.raises(PDFValueError):
        apply_png_predictor(1, 2, 8, b"\x05\x00\x00")
    with pytest.raises(PDFValueError):
        apply_png_predictor(1, 2, 16, b"\x00\x00\x00")

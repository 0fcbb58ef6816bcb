from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Union

from pdfcontent import settings
from pdfcontent.filters import ascii85decode, asciihexdecode, flatedecode, rldecode
from pdfcontent.pdfexceptions import (
    PDFNotImplementedError,
    PDFTypeError,
    PDFValueError,
)
from pdfcontent.psparser import KWD, LIT, PSKeyword, PSLiteral, PSObject
from pdfcontent.utils import apply_png_predictor


# Abbreviation of Filter names in PDF 4.8.6. "Inline Images"
LITERALS_FLATE_DECODE = (LIT("FlateDecode"), LIT("Fl"))
LITERALS_ASCII85_DECODE = (LIT("ASCII85Decode"), LIT("A85"))
LITERALS_ASCIIHEX_DECODE = (LIT("ASCIIHexDecode"), LIT("AHx"))
LITERALS_RUNLENGTH_DECODE = (LIT("RunLengthDecode"), LIT("RL"))
LITERALS_CCITTFAX_DECODE = (LIT("CCITTFaxDecode"), LIT("CCF"))
LITERALS_DCT_DECODE = (LIT("DCTDecode"), LIT("DCT"))
LITERALS_JBIG2_DECODE = (LIT("JBIG2Decode"),)
LITERALS_JPX_DECODE = (LIT("JPXDecode"),)

# Image codecs whose data is handed back as is
LITERALS_IMAGE_CODECS = (
    LITERALS_CCITTFAX_DECODE
    + LITERALS_DCT_DECODE
    + LITERALS_JBIG2_DECODE
    + LITERALS_JPX_DECODE
)


class PDFObject(PSObject):
    pass


class PDFInlineData(PDFObject):
    """The raw bytes of an inline image, found between ID and EI.

    Unlike a string, the data is written back verbatim.
    """

    def __init__(self, data: bytes) -> None:
        self.data = data

    def __repr__(self) -> str:
        return "<PDFInlineData: len=%d>" % len(self.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PDFInlineData):
            return NotImplemented
        return self.data == other.data

    def __hash__(self) -> int:
        return hash(self.data)


# Type checking
def int_value(x: object) -> int:
    if not isinstance(x, int) or isinstance(x, bool):
        if settings.STRICT:
            raise PDFTypeError("Integer required: %r" % (x,))
        return 0
    return x


def dict_value(x: object) -> dict[Any, Any]:
    if not isinstance(x, dict):
        if settings.STRICT:
            raise PDFTypeError("Dict required: %r" % (x,))
        return {}
    return x


class PDFStream(PDFObject):
    def __init__(self, attrs: dict[str, Any], rawdata: bytes) -> None:
        assert isinstance(attrs, dict), str(type(attrs))
        self.attrs = attrs
        self.rawdata: Optional[bytes] = rawdata
        self.data: Optional[bytes] = None

    def __repr__(self) -> str:
        if self.data is None:
            assert self.rawdata is not None
            return "<PDFStream: raw=%d, %r>" % (len(self.rawdata), self.attrs)
        else:
            return "<PDFStream: len=%d, %r>" % (len(self.data), self.attrs)

    def __contains__(self, name: object) -> bool:
        return name in self.attrs

    def __getitem__(self, name: str) -> Any:
        return self.attrs[name]

    def get(self, name: str, default: object = None) -> Any:
        return self.attrs.get(name, default)

    def get_any(self, names: tuple[str, ...], default: object = None) -> Any:
        for name in names:
            if name in self.attrs:
                return self.attrs[name]
        return default

    def get_filters(self) -> list[tuple[Any, Any]]:
        filters = self.get_any(("F", "Filter"))
        params = self.get_any(("DP", "DecodeParms", "FDecodeParms"), {})
        if not filters:
            return []
        if not isinstance(filters, list):
            filters = [filters]
        if not isinstance(params, list):
            # Make sure the parameters list is the same as filters.
            params = [params] * len(filters)
        if settings.STRICT and len(params) != len(filters):
            raise PDFValueError("Parameters len filter mismatch")
        # Missing parameters behave like an empty dictionary
        params = [dict_value(p) if p is not None else {} for p in params]
        params += [{}] * (len(filters) - len(params))
        return list(zip(filters, params))

    def decode(self) -> None:
        assert self.data is None and self.rawdata is not None, str(
            (self.data, self.rawdata),
        )
        data = self.rawdata
        for f, params in self.get_filters():
            if f in LITERALS_FLATE_DECODE:
                data = flatedecode(data)
            elif f in LITERALS_ASCII85_DECODE:
                data = ascii85decode(data)
            elif f in LITERALS_ASCIIHEX_DECODE:
                data = asciihexdecode(data)
            elif f in LITERALS_RUNLENGTH_DECODE:
                data = rldecode(data)
            elif f in LITERALS_IMAGE_CODECS:
                # Image codecs are decoded by an image library, not here.
                # Nothing may follow them in the filter chain.
                break
            else:
                raise PDFNotImplementedError("Unsupported filter: %r" % f)
            pred = int_value(params.get("Predictor", 1))
            if pred >= 10:
                # PNG predictor
                data = apply_png_predictor(
                    int_value(params.get("Colors", 1)),
                    int_value(params.get("Columns", 1)),
                    int_value(params.get("BitsPerComponent", 8)),
                    data,
                )
            elif pred > 1:
                raise PDFNotImplementedError("Unsupported predictor: %r" % pred)
        self.data = data
        self.rawdata = None

    def get_data(self) -> bytes:
        if self.data is None:
            self.decode()
            assert self.data is not None
        return self.data

    def get_rawdata(self) -> Optional[bytes]:
        return self.rawdata


# Operator tokens
def is_operator(obj: object) -> bool:
    return isinstance(obj, PSKeyword)


def operator_name(obj: PSKeyword) -> str:
    return str(obj.name, "latin-1")


def new_operator(name: Union[str, bytes]) -> PSKeyword:
    """Wrap an arbitrary name as an operator token."""
    if isinstance(name, str):
        name = name.encode("utf-8")
    if not name:
        raise PDFValueError("An operator name cannot be empty")
    return KWD(bytes(name))


# Binary serialization
NAME_DELIMITERS = b"()<>[]{}/%#"
# Bytes that may appear in a literal string without an octal escape
STRING_ESCAPES = {
    ord("\n"): b"\\n",
    ord("\r"): b"\\r",
    ord("\t"): b"\\t",
    ord("\b"): b"\\b",
    ord("\f"): b"\\f",
    ord("("): b"\\(",
    ord(")"): b"\\)",
    ord("\\"): b"\\\\",
}


def unparse_real(x: Union[float, Decimal]) -> bytes:
    """Format a real in plain decimal notation, never with an exponent."""
    if isinstance(x, float):
        if x != x or x in (float("inf"), float("-inf")):
            raise PDFValueError("Cannot represent %r as a PDF real" % x)
        x = Decimal(repr(x))
    elif not x.is_finite():
        raise PDFValueError("Cannot represent %r as a PDF real" % x)
    s = format(x, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s in ("", "-", "-0"):
        s = "0"
    return s.encode("ascii")


def unparse_name(name: Union[str, bytes]) -> bytes:
    if isinstance(name, str):
        name = name.encode("utf-8")
    out = bytearray(b"/")
    for c in name:
        if c < 0x21 or c > 0x7E or c in NAME_DELIMITERS:
            out += b"#%02x" % c
        else:
            out.append(c)
    return bytes(out)


def use_hex_string(s: bytes) -> bool:
    """Binary-looking strings are written in hexadecimal: those holding
    control characters without a literal escape, or with more than a
    fifth of their bytes outside ASCII."""
    non_ascii = 0
    for c in s:
        if c > 126 or 24 <= c < 32:
            non_ascii += 1
        elif c < 32 and c not in STRING_ESCAPES:
            return True
    return 5 * non_ascii > len(s)


def unparse_string(s: bytes) -> bytes:
    if use_hex_string(s):
        return b"<" + s.hex().encode("ascii") + b">"
    out = bytearray(b"(")
    for c in s:
        if c in STRING_ESCAPES:
            out += STRING_ESCAPES[c]
        elif c < 32 or c > 126:
            out += b"\\%03o" % c
        else:
            out.append(c)
    out += b")"
    return bytes(out)


def unparse(obj: object) -> bytes:
    """Produce the bytes a content stream interpreter reads back as `obj`."""
    if obj is None:
        return b"null"
    if isinstance(obj, bool):
        return b"true" if obj else b"false"
    if isinstance(obj, int):
        return str(obj).encode("ascii")
    if isinstance(obj, (float, Decimal)):
        return unparse_real(obj)
    if isinstance(obj, bytes):
        return unparse_string(obj)
    if isinstance(obj, PSLiteral):
        return unparse_name(obj.name)
    if isinstance(obj, PSKeyword):
        return obj.name
    if isinstance(obj, PDFInlineData):
        return obj.data
    if isinstance(obj, list):
        return b"[ " + b"".join(unparse(v) + b" " for v in obj) + b"]"
    if isinstance(obj, dict):
        return (
            b"<< "
            + b"".join(unparse_name(k) + b" " + unparse(v) + b" " for k, v in obj.items())
            + b">>"
        )
    raise PDFTypeError("Cannot unparse %r" % (obj,))


# Operand encoding
def encode_string(s: str) -> bytes:
    """Text strings are stored as Latin-1 when possible, otherwise as
    UTF-16BE with a byte order mark."""
    try:
        return s.encode("latin-1")
    except UnicodeEncodeError:
        return b"\xfe\xff" + s.encode("utf-16-be")


def encode(value: object) -> Any:
    """Convert a host value into an operand object, checking it on the way.

    Operators are never operands, so a `PSKeyword` is rejected along with
    anything that has no PDF representation.  Inside arrays and
    dictionaries keywords are let through; malformed streams have them.
    """
    if isinstance(value, PSKeyword):
        raise PDFTypeError("An operator cannot be used as an operand: %r" % value)
    return _encode(value)


def _encode(value: object) -> Any:
    if value is None or isinstance(
        value, (bool, int, PSLiteral, PSKeyword, PDFInlineData)
    ):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise PDFValueError("Cannot encode %r as a PDF real" % value)
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise PDFValueError("Cannot encode %r as a PDF real" % value)
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return encode_string(value)
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, Mapping):
        d = {}
        for k, v in value.items():
            if isinstance(k, PSLiteral):
                k = k.name if isinstance(k.name, str) else str(k.name, "latin-1")
            elif not isinstance(k, str):
                raise PDFTypeError("Dictionary keys must be names: %r" % (k,))
            d[k] = _encode(v)
        return d
    raise PDFTypeError("Cannot encode %r as a PDF object" % (value,))

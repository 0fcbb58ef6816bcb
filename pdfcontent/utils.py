"""Miscellaneous Routines."""

from collections.abc import Iterable, Iterator
from typing import TypeVar

import charset_normalizer  # For str encoding detection

from pdfcontent.pdfexceptions import PDFValueError

_T = TypeVar("_T")


def make_compat_str(o: object) -> str:
    """Converts everything to string, if bytes guessing the encoding."""
    if isinstance(o, bytes):
        enc = charset_normalizer.detect(o)
        if enc["encoding"] is None:
            return str(o)
        try:
            return o.decode(enc["encoding"])
        except (UnicodeDecodeError, LookupError):
            return str(o)
    else:
        return str(o)


def shorten_str(s: str, size: int) -> str:
    if size < 7:
        return s[:size]
    if len(s) > size:
        length = (size - 5) // 2
        return f"{s[:length]} ... {s[-length:]}"
    else:
        return s


def choplist(n: int, seq: Iterable[_T]) -> Iterator[tuple[_T, ...]]:
    """Groups every n elements of the list."""
    r = []
    for x in seq:
        r.append(x)
        if len(r) == n:
            yield tuple(r)
            r = []


def paeth_predictor(left: int, above: int, upper_left: int) -> int:
    # From http://www.libpng.org/pub/png/spec/1.2/PNG-Filters.html
    p = left + above - upper_left
    pa = abs(p - left)
    pb = abs(p - above)
    pc = abs(p - upper_left)
    if pa <= pb and pa <= pc:
        return left
    elif pb <= pc:
        return above
    return upper_left


def apply_png_predictor(
    colors: int,
    columns: int,
    bitspercomponent: int,
    data: bytes,
) -> bytes:
    """Undo the PNG row filters; every row starts with its filter type."""
    if bitspercomponent not in (1, 2, 4, 8):
        raise PDFValueError(f"Unsupported BitsPerComponent: {bitspercomponent}")
    nbytes = (colors * columns * bitspercomponent + 7) // 8
    bpp = max(1, colors * bitspercomponent // 8)
    out = bytearray()
    prior = bytearray(nbytes)
    for i in range(0, len(data), nbytes + 1):
        filter_type = data[i]
        line = data[i + 1 : i + 1 + nbytes]
        raw = bytearray()
        for j, x in enumerate(line):
            left = raw[j - bpp] if j >= bpp else 0
            above = prior[j]
            if filter_type == 0:
                pass
            elif filter_type == 1:
                x += left
            elif filter_type == 2:
                x += above
            elif filter_type == 3:
                x += (left + above) // 2
            elif filter_type == 4:
                upper_left = prior[j - bpp] if j >= bpp else 0
                x += paeth_predictor(left, above, upper_left)
            else:
                raise PDFValueError(f"Unsupported PNG filter type: {filter_type}")
            raw.append(x & 255)
        out += raw
        prior = raw + bytearray(nbytes - len(raw))
    return bytes(out)

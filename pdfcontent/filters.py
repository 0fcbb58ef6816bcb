"""Decoders for the stream filters an inline image may use.

Inline images are restricted to the filters that can be expressed
without external resources (PDF 1.7, 8.9.7): ASCIIHexDecode,
ASCII85Decode, LZWDecode, FlateDecode, RunLengthDecode, CCITTFaxDecode
and DCTDecode.  The image codecs are left to the caller.
"""

import logging
import re
import zlib
from base64 import a85decode
from binascii import unhexlify

from pdfcontent import settings
from pdfcontent.pdfexceptions import PDFValueError

log = logging.getLogger(__name__)

bws_re = re.compile(rb"\s")


def ascii85decode(data: bytes) -> bytes:
    """Decode ASCII85 data, with or without the Adobe "<~" prefix.

    The "~>" end-of-data marker is required by PDF but tolerated when
    missing.
    """
    data = bws_re.sub(b"", data)
    if data.startswith(b"<~"):
        data = data[2:]
    if not data.endswith(b"~>"):
        data += b"~>"
    try:
        return a85decode(b"<~" + data, adobe=True)
    except ValueError as e:
        raise PDFValueError(f"Invalid ASCII85 data: {e}") from e


def asciihexdecode(data: bytes) -> bytes:
    """ASCIIHexDecode filter: PDF 1.7 section 7.4.2.

    White-space is ignored, ">" marks the end of data and an odd
    trailing digit behaves as if followed by 0.
    """
    data = bws_re.sub(b"", data)
    idx = data.find(b">")
    if idx != -1:
        data = data[:idx]
    if len(data) % 2 == 1:
        data += b"0"
    try:
        return unhexlify(data)
    except ValueError as e:
        raise PDFValueError(f"Invalid ASCIIHex data: {e}") from e


def rldecode(data: bytes) -> bytes:
    """RunLengthDecode filter: PDF 1.7 section 7.4.5.

    A length byte of 0-127 copies the next length+1 bytes, 129-255
    repeats the next byte 257-length times and 128 ends the data.
    """
    decoded = bytearray()
    i = 0
    while i < len(data):
        length = data[i]
        if length == 128:
            break
        if length < 128:
            run = data[i + 1 : i + 2 + length]
            decoded += run
            i += 2 + length
        else:
            decoded += data[i + 1 : i + 2] * (257 - length)
            i += 2
    return bytes(decoded)


def flatedecode(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as e:
        if settings.STRICT:
            raise PDFValueError(f"Invalid zlib bytes: {e!r}") from e
        log.warning("Invalid zlib bytes: %r", e)
        # Recover whatever decompresses before the corruption
        d = zlib.decompressobj()
        try:
            return d.decompress(data)
        except zlib.error:
            return b""

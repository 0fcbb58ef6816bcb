import logging
from collections.abc import Sequence
from io import BytesIO
from typing import Any, Optional, Union

from pdfcontent import settings
from pdfcontent.pdfexceptions import (
    PDFNotImplementedError,
    PDFTypeError,
    PDFValueError,
)
from pdfcontent.pdftypes import (
    LITERALS_DCT_DECODE,
    LITERALS_IMAGE_CODECS,
    PDFInlineData,
    PDFStream,
    dict_value,
    int_value,
    unparse,
)
from pdfcontent.psparser import LIT, PSLiteral, literal_name
from pdfcontent.utils import choplist

log = logging.getLogger(__name__)

PIL_ERROR_MESSAGE = (
    "Could not import Pillow. This dependency of pdfcontent is not "
    "installed by default. You need it to convert inline images. Install it "
    "with `pip install 'pdfcontent[image]'`"
)

# PDF 1.7, Table 93 and Table 94: abbreviations used in inline images
ABBREVIATED_KEYS = {
    "BPC": "BitsPerComponent",
    "CS": "ColorSpace",
    "D": "Decode",
    "DP": "DecodeParms",
    "F": "Filter",
    "H": "Height",
    "IM": "ImageMask",
    "I": "Interpolate",
    "W": "Width",
}
ABBREVIATED_COLORSPACES = {
    "G": "DeviceGray",
    "RGB": "DeviceRGB",
    "CMYK": "DeviceCMYK",
    "I": "Indexed",
}
ABBREVIATED_FILTERS = {
    "AHx": "ASCIIHexDecode",
    "A85": "ASCII85Decode",
    "LZW": "LZWDecode",
    "Fl": "FlateDecode",
    "RL": "RunLengthDecode",
    "CCF": "CCITTFaxDecode",
    "DCT": "DCTDecode",
}

PIL_MODES = {
    ("DeviceGray", 1): "1",
    ("DeviceGray", 8): "L",
    ("DeviceRGB", 8): "RGB",
    ("DeviceCMYK", 8): "CMYK",
}


def _expand(value: Any, abbreviations: dict[str, str]) -> Any:
    if isinstance(value, PSLiteral):
        name = literal_name(value)
        return LIT(abbreviations.get(name, name))
    return value


class PDFInlineImage:
    """An image embedded in a content stream between BI and EI.

    `image_object` holds the metadata tokens exactly as they appeared
    (keys and values interleaved) and is what gets written back;
    `attrs` is the same dictionary with abbreviations expanded.
    """

    def __init__(
        self,
        image_data: Union[PDFInlineData, bytes],
        image_object: Sequence[Any],
    ) -> None:
        if isinstance(image_data, PDFInlineData):
            image_data = image_data.data
        if not isinstance(image_data, bytes):
            raise PDFTypeError("Inline image data must be bytes: %r" % (image_data,))
        if len(image_object) % 2 != 0:
            raise PDFValueError(
                "Inline image metadata must be key/value pairs: %r" % (image_object,)
            )
        self.image_data = image_data
        self.image_object = tuple(image_object)
        self.attrs: dict[str, Any] = {}
        for k, v in choplist(2, self.image_object):
            if not isinstance(k, PSLiteral) and settings.STRICT:
                raise PDFTypeError("Inline image key is not a name: %r" % (k,))
            key = literal_name(k)
            key = ABBREVIATED_KEYS.get(key, key)
            if key == "ColorSpace":
                if isinstance(v, list):
                    v = [_expand(c, ABBREVIATED_COLORSPACES) for c in v]
                else:
                    v = _expand(v, ABBREVIATED_COLORSPACES)
            elif key == "Filter":
                if isinstance(v, list):
                    v = [_expand(f, ABBREVIATED_FILTERS) for f in v]
                else:
                    v = _expand(v, ABBREVIATED_FILTERS)
            self.attrs[key] = v

    def __repr__(self) -> str:
        return "<PDFInlineImage: %dx%d, colorspace=%r, filters=%r, len=%d>" % (
            self.width,
            self.height,
            self.colorspace,
            self.filters,
            len(self.image_data),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PDFInlineImage):
            return NotImplemented
        return (
            self.image_object == other.image_object
            and self.image_data == other.image_data
        )

    @property
    def width(self) -> int:
        return int_value(self.attrs.get("Width"))

    @property
    def height(self) -> int:
        return int_value(self.attrs.get("Height"))

    @property
    def image_mask(self) -> bool:
        return self.attrs.get("ImageMask") is True

    @property
    def bits_per_component(self) -> int:
        if self.image_mask:
            return 1
        return int_value(self.attrs.get("BitsPerComponent", 8))

    @property
    def colorspace(self) -> Optional[str]:
        """Name of the color space; for arrays such as
        [/Indexed /DeviceRGB 255 <...>], the family name."""
        cs = self.attrs.get("ColorSpace")
        if isinstance(cs, list):
            cs = cs[0] if cs else None
        if cs is None:
            return None
        return literal_name(cs)

    @property
    def filters(self) -> list[str]:
        f = self.attrs.get("Filter")
        if f is None:
            return []
        if not isinstance(f, list):
            f = [f]
        return [literal_name(x) for x in f]

    @property
    def decode_parms(self) -> list[dict[str, Any]]:
        dp = self.attrs.get("DecodeParms")
        if dp is None:
            return []
        if not isinstance(dp, list):
            dp = [dp]
        return [dict_value(x) for x in dp]

    def get_rawdata(self) -> bytes:
        return self.image_data

    def get_stream(self) -> PDFStream:
        return PDFStream(dict(self.attrs), self.image_data)

    def get_data(self) -> bytes:
        """The image data with every non-image filter removed."""
        return self.get_stream().get_data()

    def unparse(self) -> bytes:
        """The complete BI ... ID ... EI construct, metadata as written."""
        tokens = [b"BI"]
        if self.image_object:
            tokens.append(b" ".join(unparse(obj) for obj in self.image_object))
        tokens.append(b"ID")
        # One space before EI, which the reader strips again
        tokens.append(self.image_data + b" EI")
        return b"\n".join(tokens)

    def as_pil_image(self) -> Any:
        """Convert to a Pillow image, for the simple cases only."""
        try:
            from PIL import Image  # type: ignore[import]
        except ImportError:
            raise ImportError(PIL_ERROR_MESSAGE)

        stream = self.get_stream()
        filters = stream.get_filters()
        if filters and filters[-1][0] in LITERALS_DCT_DECODE:
            return Image.open(BytesIO(stream.get_data()))
        if filters and filters[-1][0] in LITERALS_IMAGE_CODECS:
            raise PDFNotImplementedError(
                "Unsupported image codec: %r" % (filters[-1][0],)
            )

        colorspace = "DeviceGray" if self.image_mask else self.colorspace
        mode = PIL_MODES.get((colorspace or "", self.bits_per_component))
        if mode is None:
            raise PDFNotImplementedError(
                "Cannot convert %s image with %d bits per component"
                % (colorspace, self.bits_per_component)
            )
        log.debug("as_pil_image: mode=%r, size=%r", mode, (self.width, self.height))
        return Image.frombytes(mode, (self.width, self.height), stream.get_data())

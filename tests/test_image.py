import zlib
from io import BytesIO

import pytest

from pdfcontent import settings
from pdfcontent.image import PDFInlineImage
from pdfcontent.pdfexceptions import (
    PDFNotImplementedError,
    PDFTypeError,
    PDFValueError,
)
from pdfcontent.pdftypes import PDFInlineData
from pdfcontent.psparser import LIT


def make_image(data, *metadata):
    return PDFInlineImage(image_data=PDFInlineData(data), image_object=metadata)


class TestPDFInlineImage:
    def test_abbreviations(self):
        image = make_image(
            b"",
            LIT("W"), 4, LIT("H"), 2, LIT("CS"), LIT("RGB"), LIT("BPC"), 8,
            LIT("F"), [LIT("AHx"), LIT("Fl")], LIT("DP"), [None, {"K": 1}],
        )
        assert (image.width, image.height) == (4, 2)
        assert image.colorspace == "DeviceRGB"
        assert image.bits_per_component == 8
        assert image.filters == ["ASCIIHexDecode", "FlateDecode"]
        assert image.decode_parms == [{}, {"K": 1}]
        assert not image.image_mask
        assert image.attrs["Width"] == 4

    def test_full_names(self):
        image = make_image(
            b"", LIT("Width"), 1, LIT("ColorSpace"), LIT("DeviceCMYK")
        )
        assert image.width == 1
        assert image.height == 0
        assert image.colorspace == "DeviceCMYK"
        assert image.filters == []
        assert image.decode_parms == []

    def test_indexed_colorspace(self):
        image = make_image(
            b"\x00\x01",
            LIT("CS"), [LIT("I"), LIT("RGB"), 1, b"\x00\x00\x00\xff\xff\xff"],
        )
        assert image.colorspace == "Indexed"
        assert image.attrs["ColorSpace"][1] is LIT("DeviceRGB")

    def test_image_mask(self):
        image = make_image(b"\xf0", LIT("IM"), True, LIT("BPC"), 8)
        assert image.image_mask
        assert image.bits_per_component == 1
        assert image.colorspace is None

    def test_raw_bytes(self):
        image = PDFInlineImage(b"abc", [])
        assert image.get_rawdata() == b"abc"
        assert image == make_image(b"abc")
        assert image != make_image(b"abd")

    def test_invalid(self):
        with pytest.raises(PDFValueError):
            make_image(b"", LIT("W"))
        with pytest.raises(PDFTypeError):
            PDFInlineImage(image_data="abc", image_object=[])

    def test_key_is_not_a_name(self, monkeypatch):
        assert make_image(b"", 1, 2).attrs == {"1": 2}
        monkeypatch.setattr(settings, "STRICT", True)
        with pytest.raises(PDFTypeError):
            make_image(b"", 1, 2)

    @pytest.mark.parametrize(
        ("filters", "data"),
        [
            (LIT("Fl"), zlib.compress(b"\x01\x02")),
            (LIT("AHx"), b"01 02>"),
            (LIT("A85"), b"!<N~>"),
            (LIT("RL"), b"\x01\x01\x02\x80"),
            ([LIT("AHx"), LIT("Fl")], zlib.compress(b"\x01\x02").hex().encode()),
        ],
    )
    def test_get_data(self, filters, data):
        image = make_image(data, LIT("W"), 2, LIT("H"), 1, LIT("F"), filters)
        assert image.get_data() == b"\x01\x02"

    def test_unsupported_filter(self):
        image = make_image(b"\x80", LIT("F"), LIT("LZW"))
        with pytest.raises(PDFNotImplementedError):
            image.get_data()

    def test_unparse(self):
        image = make_image(
            b"\x00EI\x01", LIT("W"), 1, LIT("H"), 1, LIT("D"), [1, 0]
        )
        assert image.unparse() == b"BI\n/W 1 /H 1 /D [ 1 0 ]\nID\n\x00EI\x01 EI"
        assert make_image(b"x").unparse() == b"BI\nID\nx EI"


class TestAsPILImage:
    @pytest.fixture(autouse=True)
    def pil(self):
        return pytest.importorskip("PIL.Image")

    def test_gray(self):
        image = make_image(
            b"\x00\xff", LIT("W"), 2, LIT("H"), 1, LIT("CS"), LIT("G"), LIT("BPC"), 8
        )
        pil_image = image.as_pil_image()
        assert pil_image.mode == "L"
        assert pil_image.size == (2, 1)
        assert pil_image.getpixel((1, 0)) == 255

    def test_rgb_filtered(self):
        image = make_image(
            b"ff000000ff00>",
            LIT("W"), 2, LIT("H"), 1, LIT("CS"), LIT("RGB"), LIT("F"), LIT("AHx"),
        )
        pil_image = image.as_pil_image()
        assert pil_image.mode == "RGB"
        assert pil_image.getpixel((0, 0)) == (255, 0, 0)

    def test_mask(self):
        image = make_image(b"\xf0", LIT("W"), 8, LIT("H"), 1, LIT("IM"), True)
        pil_image = image.as_pil_image()
        assert pil_image.mode == "1"
        assert pil_image.getpixel((0, 0)) == 255
        assert pil_image.getpixel((7, 0)) == 0

    def test_dct(self, pil):
        buf = BytesIO()
        pil.new("L", (3, 2)).save(buf, "JPEG")
        image = make_image(
            buf.getvalue(), LIT("W"), 3, LIT("H"), 2, LIT("F"), LIT("DCT")
        )
        assert image.as_pil_image().size == (3, 2)

    def test_unsupported(self):
        image = make_image(b"", LIT("W"), 1, LIT("H"), 1, LIT("F"), LIT("CCF"))
        with pytest.raises(PDFNotImplementedError):
            image.as_pil_image()
        image = make_image(
            b"\x00", LIT("W"), 1, LIT("H"), 1, LIT("CS"), LIT("CMYK"), LIT("BPC"), 4
        )
        with pytest.raises(PDFNotImplementedError):
            image.as_pil_image()

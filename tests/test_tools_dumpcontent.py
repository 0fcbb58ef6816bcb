import pytest

from tools import dumpcontent

CONTENT = b"q 1 0 0 1 72 720 cm BT /F1 12 Tf (Hello) Tj ET Q"


@pytest.fixture
def content_file(tmp_path):
    path = tmp_path / "content.bin"
    path.write_bytes(CONTENT)
    return path


def run(*args):
    return dumpcontent.main([str(arg) for arg in args])


class TestDumpContent:
    def test_listing(self, content_file, tmp_path):
        output = tmp_path / "out.txt"
        assert run("-o", output, content_file) == 0
        assert output.read_text().splitlines() == [
            "q",
            "1 0 0 1 72 720 cm",
            "BT",
            "/F1 12 Tf",
            "(Hello) Tj",
            "ET",
            "Q",
        ]

    def test_operators(self, content_file, tmp_path):
        output = tmp_path / "out.bin"
        assert run("-b", "-O", "cm Tj", "-o", output, content_file) == 0
        assert output.read_bytes() == b"1 0 0 1 72 720 cm\n(Hello) Tj"

    def test_several_files(self, content_file, tmp_path):
        output = tmp_path / "out.bin"
        run("--binary", "--operators", "q", "-o", output, content_file, content_file)
        assert output.read_bytes() == b"q\nQ\nq\nQ"

    def test_stdout(self, content_file, capsys):
        run("-d", "-O", "Tf", content_file)
        assert capsys.readouterr().out == "/F1 12 Tf\n"

    def test_inline_image(self, tmp_path):
        path = tmp_path / "image.bin"
        path.write_bytes(b"BI /W 1 /H 1 /CS /G ID \x00 EI")
        output = tmp_path / "out.txt"
        run("-o", output, path)
        assert output.read_text() == (
            "<PDFInlineImage: 1x1, colorspace='DeviceGray', filters=[], len=1>\n"
        )

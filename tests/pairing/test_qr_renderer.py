"""Tests for QR renderer module."""

import pytest

from proxylens.pairing.code import PairingCode
from proxylens.pairing.qr_renderer import QrRenderer


@pytest.fixture
def code():
    return PairingCode(
        protocol_tag="PA",
        channel_address="https://rendezvous.mypico.org/abc123",
        encryption_key_descriptor="AES/CBC/PKCS7Padding/AAECAwQFBgcICQoLDA0ODw==",
        auth_key_descriptor="HmacSHA256/MDEyMzQ1Njc4OTo7PD0+P0BBQkNERUZHSElKS0xNTk8=",
    )


class TestQrRendererInit:
    """Tests for QrRenderer construction."""

    def test_unknown_mode_rejected(self):
        """Unknown display modes raise ValueError."""
        with pytest.raises(ValueError):
            QrRenderer(display_mode="hologram")

    @pytest.mark.parametrize("mode", ["png", "html"])
    def test_file_modes_need_path(self, mode):
        """File modes require an output path."""
        with pytest.raises(ValueError):
            QrRenderer(display_mode=mode)

    def test_unknown_level_rejected(self):
        """Unknown error correction levels raise ValueError."""
        with pytest.raises(ValueError):
            QrRenderer(error_correction="Z")


class TestQrRendererOutput:
    """Tests for rendering."""

    def test_terminal_output(self, code):
        """Terminal mode echoes ASCII art."""
        lines = []
        QrRenderer(echo=lines.append).show_code(code)

        assert len(lines) == 1
        assert len(lines[0].splitlines()) > 20

    def test_qr_contains_code_json(self, code):
        """The QR payload is the pairing code JSON."""
        renderer = QrRenderer()
        qr = renderer._create_qr(code)

        assert qr.data_list[0].data == code.to_json().encode("utf-8")

    def test_png_written(self, code, tmp_path):
        """PNG mode saves an image."""
        path = tmp_path / "code.png"
        QrRenderer(display_mode="png", output_path=str(path), echo=lambda s: None).show_code(code)

        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_html_written(self, code, tmp_path):
        """HTML mode saves a page with an embedded image."""
        path = tmp_path / "code.html"
        QrRenderer(display_mode="html", output_path=str(path), echo=lambda s: None).show_code(code)

        content = path.read_text()
        assert "data:image/png;base64," in content
        assert "Scan to Pair" in content


class TestQrRendererErrors:
    """Tests for failure reporting."""

    def test_error_reported(self):
        """show_error echoes the failure."""
        lines = []
        QrRenderer(echo=lines.append).show_error("Directory returned 500")

        assert lines == ["Pairing failed: Directory returned 500"]

    def test_png_withdrawn_on_error(self, code, tmp_path):
        """A PNG that was shown is removed when pairing fails."""
        path = tmp_path / "code.png"
        renderer = QrRenderer(display_mode="png", output_path=str(path), echo=lambda s: None)
        renderer.show_code(code)
        renderer.show_error("write failed")

        assert not path.exists()
        assert renderer.shown is None

    def test_html_replaced_on_error(self, code, tmp_path):
        """An HTML page that was shown is replaced with the failure."""
        path = tmp_path / "code.html"
        renderer = QrRenderer(display_mode="html", output_path=str(path), echo=lambda s: None)
        renderer.show_code(code)
        renderer.show_error("write <failed>")

        content = path.read_text()
        assert "data:image/png" not in content
        assert "write &lt;failed&gt;" in content

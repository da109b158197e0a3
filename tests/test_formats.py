from background_picker.thumbnail_engine.formats import (
    ImageFormat,
    format_for_extension,
    sniff_format,
)


def test_extensions_cover_supported_formats():
    extensions = {ext for fmt in ImageFormat for ext in fmt.extensions}
    assert extensions == {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"}
    assert all(format_for_extension(ext) is not None for ext in extensions)


def test_only_bmp_falls_back_to_qt():
    assert [fmt for fmt in ImageFormat if fmt.qt_readable] == [ImageFormat.BMP]


def test_sniff_signatures():
    assert sniff_format(b"\x89PNG\r\n\x1a\n\x00\x00\x00\r") is ImageFormat.PNG
    assert sniff_format(b"\xff\xd8\xff\xe0\x00\x10JFIF\x00") is ImageFormat.JPEG
    assert sniff_format(b"GIF89a\x01\x00\x01\x00\x00\x00") is ImageFormat.GIF
    assert sniff_format(b"BM\x00\x00\x00\x00\x00\x00\x00\x00\x36\x00") is ImageFormat.BMP
    assert sniff_format(b"RIFF\x24\x00\x00\x00WEBP") is ImageFormat.WEBP


def test_sniff_rejects_unknown_content():
    assert sniff_format(b"") is None
    assert sniff_format(b"hello world!") is None
    # RIFF container that is not WebP (a WAV file).
    assert sniff_format(b"RIFF\x24\x00\x00\x00WAVE") is None
    assert sniff_format(b"II*\x00\x08\x00\x00\x00\x00\x00\x00\x00") is None


def test_format_for_extension():
    assert format_for_extension(".JPEG") is ImageFormat.JPEG
    assert format_for_extension("webp") is ImageFormat.WEBP
    assert format_for_extension(".tiff") is None
    assert format_for_extension("") is None
    assert ImageFormat.PNG.mime_type == "image/png"

import io
import os

import pytest
from PIL import Image

from photo_overlay import file_io
from photo_overlay.errors import DecodeError, EncodeError, ErrorCategory, IoError
from photo_overlay.models import FrameSettings, OutputFormat, OverlaySettings, PhotoMetadata
from photo_overlay.pipeline.render import RenderPipeline
from photo_overlay.pipeline.request import ProcessingRequest


@pytest.fixture
def pipeline():
    return RenderPipeline()


def _render(pipeline, input_path, output_path, metadata=None, frame=None, quality=90):
    return pipeline.render(
        input_path,
        metadata or PhotoMetadata(),
        OverlaySettings(),
        frame or FrameSettings(),
        output_path,
        quality,
    )


def test_render_png_by_extension(pipeline, make_image, tmp_path, sample_metadata):
    src = make_image()
    out = str(tmp_path / "out.png")
    info = _render(pipeline, src, out, metadata=sample_metadata)

    with Image.open(out) as im:
        assert im.format == "PNG"
        assert im.mode == "RGBA"
        assert im.size == (320, 240)
    assert info.processed_size == os.path.getsize(out)
    assert info.original_size == os.path.getsize(src)
    assert info.input_path == src
    assert info.processing_time_ms >= 0


@pytest.mark.parametrize("name", ["out.jpg", "out.jpeg", "out.unknown"])
def test_render_jpeg_by_extension(pipeline, make_image, tmp_path, name):
    out = str(tmp_path / name)
    _render(pipeline, make_image(), out)
    with Image.open(out) as im:
        assert im.format == "JPEG"
        assert im.mode == "RGB"


def test_render_applies_frame(pipeline, make_image, tmp_path):
    out = str(tmp_path / "framed.png")
    _render(pipeline, make_image(size=(100, 50)), out, frame=FrameSettings(enabled=True, width=15))
    with Image.open(out) as im:
        assert im.size == (130, 80)


def test_render_leaves_no_temp_files(pipeline, make_image, tmp_path):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    _render(pipeline, make_image(), str(out_dir / "result.jpg"))
    assert os.listdir(out_dir) == ["result.jpg"]


def test_render_request(pipeline, make_image, tmp_path):
    src = make_image()
    request = ProcessingRequest.from_dict({
        'inputPath': src,
        'outputPath': str(tmp_path / "req.png"),
        'metadata': {'camera': {'make': 'Nikon'}},
        'quality': 80,
    })
    info = pipeline.render_request(request)
    assert os.path.exists(info.output_path)


def test_missing_input_is_io_error(pipeline, tmp_path):
    with pytest.raises(IoError) as exc:
        _render(pipeline, str(tmp_path / "nope.jpg"), str(tmp_path / "out.jpg"))
    assert exc.value.category is ErrorCategory.IO


def test_corrupt_input_is_decode_error(pipeline, tmp_path):
    bad = tmp_path / "bad.jpg"
    bad.write_bytes(b"this is not an image")
    with pytest.raises(DecodeError) as exc:
        _render(pipeline, str(bad), str(tmp_path / "out.jpg"))
    assert exc.value.path == str(bad)


def test_unwritable_output_is_io_error(pipeline, make_image, tmp_path):
    out = str(tmp_path / "missing-dir" / "out.jpg")
    with pytest.raises(IoError):
        _render(pipeline, make_image(), out)


def test_preview_downsamples_and_keeps_aspect(pipeline, make_image):
    data = pipeline.render_preview(
        make_image(size=(1600, 1200)), PhotoMetadata(), OverlaySettings(), FrameSettings()
    )
    assert data.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(data)) as im:
        assert im.size == (800, 600)


def test_preview_never_enlarges(pipeline, make_image):
    data = pipeline.render_preview(
        make_image(size=(200, 100)), PhotoMetadata(), OverlaySettings(), FrameSettings(), 800, 600
    )
    with Image.open(io.BytesIO(data)) as im:
        assert im.size == (200, 100)


def test_preview_custom_bounds(pipeline, make_image):
    data = pipeline.render_preview(
        make_image(size=(1000, 500)), PhotoMetadata(), OverlaySettings(), FrameSettings(), 300, 300
    )
    with Image.open(io.BytesIO(data)) as im:
        assert im.size == (300, 150)


def test_full_render_is_jpeg_at_full_size(pipeline, make_image):
    data = pipeline.render_full(make_image(size=(640, 480)), PhotoMetadata(), OverlaySettings(), FrameSettings())
    with Image.open(io.BytesIO(data)) as im:
        assert im.format == "JPEG"
        assert im.size == (640, 480)


def test_validate_image_file():
    assert file_io.validate_image_file("a/b/photo.JPG")
    assert file_io.validate_image_file("shot.heic")
    assert file_io.validate_image_file("raw.CR3")
    assert not file_io.validate_image_file("notes.txt")


def test_encode_error_is_typed():
    # PNG cannot hold a 32-bit float image
    with pytest.raises(EncodeError):
        file_io.encode_image(Image.new("F", (4, 4)), OutputFormat.Png)


def test_corrupt_raw_is_decode_error(tmp_path):
    bad = tmp_path / "broken.dng"
    bad.write_bytes(b"not a raw file at all")
    with pytest.raises(DecodeError):
        file_io.load_image(str(bad))

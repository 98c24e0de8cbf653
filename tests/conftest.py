import pytest
from PIL import Image

from photo_overlay.models import (
    CameraInfo,
    CameraSettings,
    FrameSettings,
    OverlaySettings,
    PhotoMetadata,
)


@pytest.fixture
def sample_metadata():
    return PhotoMetadata(
        camera=CameraInfo(make="Canon", model="EOS R5"),
        settings=CameraSettings(aperture="f/2.8", shutter_speed="1/125", iso=400, focal_length="50mm"),
        timestamp="2024-05-01 10:30:00",
    )


@pytest.fixture
def make_image(tmp_path):
    """Write a solid-colour image and return its path."""
    def _make(name="photo.jpg", size=(320, 240), color=(40, 90, 160)):
        path = tmp_path / name
        Image.new("RGB", size, color).save(path)
        return str(path)
    return _make


@pytest.fixture
def overlay_settings():
    return OverlaySettings.from_dict({
        'position': 'BottomRight',
        'font': {'size': 16, 'color': '#FFFFFF'},
        'background': {'color': '#000000', 'opacity': 0.6, 'padding': 8},
    })


@pytest.fixture
def frame_factory():
    def _frame(style="Simple", width=20, **extra):
        data = {'enabled': True, 'style': style, 'color': '#FFFFFF', 'width': width}
        data.update(extra)
        return FrameSettings.from_dict(data)
    return _frame

import json
import os

import pytest
from PIL import Image

from photo_overlay import main as cli
from photo_overlay.api import OverlayService
from photo_overlay.config import EngineConfig
from photo_overlay.models import PhotoMetadata


@pytest.fixture(autouse=True)
def offline_service(monkeypatch):
    def factory():
        return OverlayService(
            extractor=lambda path: PhotoMetadata.from_dict({'camera': {'make': 'Pentax'}}),
            config=EngineConfig(),
        )
    monkeypatch.setattr(cli, "OverlayService", factory)
    monkeypatch.setattr(cli, "install_crash_handler", lambda: None)


def test_render_command(make_image, tmp_path, capsys):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({'frameSettings': {'enabled': True, 'width': 5}}))
    out = str(tmp_path / "out.png")

    assert cli.main(["render", make_image(size=(50, 40)), out, "--settings", str(settings)]) == 0
    with Image.open(out) as im:
        assert im.size == (60, 50)
    assert out in capsys.readouterr().out


def test_batch_command_reports_failures(make_image, tmp_path, capsys):
    out_dir = str(tmp_path / "out")
    code = cli.main(["batch", make_image(), str(tmp_path / "gone.jpg"), "--output-dir", out_dir, "--format", "png"])
    assert code == 1
    assert os.listdir(out_dir) == ["photo_processed.png"]
    assert "1/2 succeeded" in capsys.readouterr().out


def test_preview_command(make_image, tmp_path):
    out = str(tmp_path / "preview.png")
    assert cli.main(["preview", make_image(size=(1000, 500)), out, "--max-width", "100"]) == 0
    with Image.open(out) as im:
        assert im.size == (100, 50)


def test_missing_input(tmp_path):
    assert cli.main(["render", str(tmp_path / "none.jpg"), str(tmp_path / "o.jpg")]) == 1


def test_bad_settings_value(make_image, tmp_path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({'overlaySettings': {'font': {'color': 'chartreuse'}}}))
    code = cli.main(["render", make_image(), str(tmp_path / "o.jpg"), "--settings", str(settings)])
    assert code == 1

import io
import os

import pytest
from PIL import Image

from photo_overlay.api import OverlayService
from photo_overlay.config import EngineConfig
from photo_overlay.models import PhotoMetadata


def fake_extractor(path):
    return PhotoMetadata.from_dict({'camera': {'make': 'Sony'}, 'settings': {'iso': 100}})


@pytest.fixture
def service():
    svc = OverlayService(extractor=fake_extractor, config=EngineConfig())
    yield svc
    svc.close()


def test_render_to_file(service, make_image, tmp_path):
    out = str(tmp_path / "out.jpg")
    response = service.render_to_file({
        'inputPath': make_image(),
        'outputPath': out,
        'metadata': {'camera': {'make': 'Sony', 'model': 'A7 IV'}},
        'overlaySettings': {'position': 'top-left'},
        'frameSettings': {'enabled': True, 'style': 'Film', 'width': 12, 'color': '#111111'},
        'quality': 85,
    })
    assert response['ok'] is True
    assert response['data']['outputPath'] == out
    assert os.path.getsize(out) == response['data']['processedSize']


def test_render_to_file_reports_invalid_color(service, make_image, tmp_path):
    response = service.render_to_file({
        'inputPath': make_image(),
        'outputPath': str(tmp_path / "out.jpg"),
        'metadata': {'camera': {'make': 'Sony'}},
        'overlaySettings': {'background': {'color': 'rgb(300,0,0)'}},
    })
    assert response['ok'] is False
    assert response['error']['category'] == "invalid_color"
    assert "rgb(300,0,0)" in response['error']['message']


@pytest.mark.parametrize("request_data", [
    {'outputPath': 'x.jpg'},
    {'inputPath': 'a.jpg', 'outputPath': 'x.jpg', 'quality': 0},
    {'inputPath': 'a.jpg', 'outputPath': 'x.jpg', 'overlaySettings': {'position': 'Middle'}},
    {'inputPath': 'a.jpg', 'outputPath': 'x.jpg', 'overlaySettings': {'font': {'size': -3}}},
])
def test_render_to_file_rejects_bad_requests(service, request_data):
    response = service.render_to_file(request_data)
    assert response['ok'] is False
    assert response['error']['category'] == "invalid_settings"


def test_render_batch(service, make_image, tmp_path):
    paths = [make_image("one.jpg"), str(tmp_path / "two.jpg")]
    response = service.render_batch(paths, {'outputFormat': 'Png'}, str(tmp_path / "out"))
    assert response['ok'] is True
    data = response['data']
    assert data['totalFiles'] == 2
    assert len(data['successful']) == 1
    assert data['failed'][0]['filePath'] == paths[1]


def test_render_batch_bad_settings(service, tmp_path):
    response = service.render_batch([], {'quality': 101}, str(tmp_path))
    assert response['ok'] is False
    assert response['error']['category'] == "invalid_settings"


def test_preview_bytes_and_stats(service, make_image):
    src = make_image(size=(1200, 900))
    settings = {'maxWidth': 400, 'maxHeight': 400}

    first = service.generate_preview_bytes(src, settings)
    second = service.generate_preview_bytes(src, settings)

    assert first['ok'] and second['ok']
    assert first['data'] == second['data']
    with Image.open(io.BytesIO(first['data'])) as im:
        assert im.format == "PNG"
        assert im.size == (400, 300)

    stats = service.query_stats()['data']
    assert stats['cacheHits'] == 1
    assert stats['cacheMisses'] == 1


def test_preview_of_missing_file(service, tmp_path):
    response = service.generate_preview_bytes(str(tmp_path / "none.jpg"), {})
    assert response['ok'] is False
    assert response['error']['category'] == "io"
    assert response['error']['path'].endswith("none.jpg")


@pytest.mark.parametrize("overrides", [
    {'overlaySettings': {'font': 'Arial'}},
    {'overlaySettings': {'displayItems': {'iso': 'false'}}},
    {'frameSettings': 'Polaroid'},
    {'metadata': {'camera': 'Canon'}},
])
def test_malformed_nested_records_are_reported(service, make_image, tmp_path, overrides):
    request_data = {'inputPath': make_image(), 'outputPath': str(tmp_path / "out.jpg")}
    request_data.update(overrides)
    response = service.render_to_file(request_data)
    assert response['ok'] is False
    assert response['error']['category'] == "invalid_settings"


def test_injected_engine_is_kept(service):
    other = OverlayService(engine=service.engine, extractor=fake_extractor)
    assert other.engine is service.engine

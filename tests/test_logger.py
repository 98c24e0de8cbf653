import pytest
from loguru import logger

from photo_overlay.logger import create_logger


@pytest.fixture
def captured():
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), level="DEBUG", format="{message}")
    yield messages
    logger.remove(sink_id)


def test_file_id_prefix(captured):
    create_logger(file_id="IMG_0001.jpg").info("Processing (1/3)")
    assert captured[-1]['message'] == "[IMG_0001.jpg] Processing (1/3)"
    assert captured[-1]['level'].name == "INFO"


def test_levels_and_caller(captured):
    log = create_logger()
    log.success("done")
    log.log("quiet", level="debug")
    assert [r['level'].name for r in captured[-2:]] == ["SUCCESS", "DEBUG"]
    assert captured[-1]['message'] == "quiet"
    # Records point at this test, not at the wrapper
    assert captured[-1]['function'] == "test_levels_and_caller"

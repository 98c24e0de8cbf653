import pytest

from photo_overlay.color import RGBA, parse_color
from photo_overlay.errors import ErrorCategory, InvalidColorFormat


@pytest.mark.parametrize("text, opacity, expected", [
    ("#FF0000", 1.0, (255, 0, 0, 255)),
    ("#00ff7f", 0.0, (0, 255, 127, 0)),
    ("#000000", 0.6, (0, 0, 0, 153)),
    ("rgb(10, 20, 30)", 1.0, (10, 20, 30, 255)),
    ("rgba(0,128,255,0.5)", 1.0, (0, 128, 255, 128)),
    ("rgba(1, 2, 3, 1)", 0.2, (1, 2, 3, 255)),
    ("  RGB(255,255,255)  ", 0.5, (255, 255, 255, 128)),
])
def test_parse_valid_colors(text, opacity, expected):
    assert parse_color(text, opacity) == RGBA(*expected)


@pytest.mark.parametrize("text", [
    "blue",
    "rgb(1,2)",
    "#ZZZZZZ",
    "#FFF",
    "rgb(256,0,0)",
    "rgb(-1,0,0)",
    "rgb(1.5,0,0)",
    "rgba(0,0,0,1.5)",
    "rgba(0,0,0,abc)",
    "",
])
def test_parse_invalid_colors(text):
    with pytest.raises(InvalidColorFormat) as exc:
        parse_color(text)
    assert exc.value.category is ErrorCategory.INVALID_COLOR
    assert exc.value.color_text == text
    assert repr(text) in exc.value.message


def test_opacity_out_of_range_is_rejected():
    with pytest.raises(InvalidColorFormat):
        parse_color("#FFFFFF", 1.5)


def test_invalid_color_is_value_error():
    with pytest.raises(ValueError):
        parse_color("not-a-color")

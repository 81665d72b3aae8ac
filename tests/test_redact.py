from PIL import Image

from scanredact.models import RedactionBox
from scanredact.redact import decode_image, draw_preview, encode_image, redact_image


def _box(x, y, w, h, kind="text"):
    return RedactionBox(x, y, w, h, kind)


def test_redact_image_paints_copy():
    src = Image.new("RGB", (20, 20), "white")
    out = redact_image(src, [_box(5, 5, 4, 4)], inflate_px=0)
    assert out is not src
    assert src.getpixel((5, 5)) == (255, 255, 255)
    assert out.getpixel((5, 5)) == (0, 0, 0)
    assert out.getpixel((8, 8)) == (0, 0, 0)
    assert out.getpixel((9, 9)) == (255, 255, 255)


def test_fractional_box_paints_partial_edge_pixels():
    src = Image.new("RGB", (20, 20), "white")
    out = redact_image(src, [_box(5.5, 5.5, 2.7, 2.7)], inflate_px=0)
    assert out.getpixel((5, 5)) == (0, 0, 0)
    assert out.getpixel((8, 8)) == (0, 0, 0)
    assert out.getpixel((9, 9)) == (255, 255, 255)


def test_inflation_is_clamped_to_image():
    src = Image.new("RGB", (10, 10), "white")
    out = redact_image(src, [_box(0, 0, 3, 3), _box(8, 8, 2, 2)], fill_rgb=(255, 0, 0), inflate_px=2)
    assert out.getpixel((0, 0)) == (255, 0, 0)
    assert out.getpixel((4, 4)) == (255, 0, 0)
    assert out.getpixel((5, 5)) == (255, 255, 255)
    assert out.getpixel((9, 9)) == (255, 0, 0)


def test_grayscale_input_is_converted():
    src = Image.new("L", (10, 10), 255)
    out = redact_image(src, [_box(1, 1, 2, 2)], inflate_px=0)
    assert out.mode == "RGB"
    assert out.getpixel((1, 1)) == (0, 0, 0)


def test_preview_colours_by_box_type():
    src = Image.new("RGB", (40, 40), "white")
    out = draw_preview(src, [_box(2, 2, 10, 10), _box(20, 20, 10, 10, "visual")], width=1)
    assert out.getpixel((2, 2)) == (0, 255, 0)
    assert out.getpixel((20, 20)) == (0, 0, 255)
    assert out.getpixel((6, 6)) == (255, 255, 255)


def test_base64_with_data_url_prefix():
    img = Image.new("RGB", (3, 2), (1, 2, 3))
    back = decode_image("data:image/png;base64," + encode_image(img))
    assert back.size == (3, 2)
    assert back.convert("RGB").getpixel((0, 0)) == (1, 2, 3)

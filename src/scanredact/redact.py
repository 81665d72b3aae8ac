"""Redaction routines.

Paints opaque rectangles over redaction boxes, draws QA previews, and converts
images to and from the base64 form used at the OCR boundary.
"""

from __future__ import annotations

import base64
import io
from typing import Iterable, Tuple

from PIL import Image, ImageDraw

from .models import RedactionBox

_DATA_URL = "base64,"


def _inflate(
    box: Tuple[int, int, int, int], px: int, W: int, H: int
) -> Tuple[int, int, int, int]:
    """Inflate a rectangle while clamping to image bounds.

    Parameters
    ----------
    box:
        Rectangle as ``(x, y, w, h)``.
    px:
        Pixels to inflate on all sides.
    W:
        Image width.
    H:
        Image height.

    Returns
    -------
    tuple
        Clamped rectangle ``(x, y, w, h)`` after inflation.
    """
    x, y, w, h = box
    x2 = max(0, x - px)
    y2 = max(0, y - px)
    w2 = min(W - x2, w + (x - x2) + px)
    h2 = min(H - y2, h + (y - y2) + px)
    return (x2, y2, max(0, w2), max(0, h2))


def redact_image(
    img: Image.Image,
    boxes: Iterable[RedactionBox],
    fill_rgb=(0, 0, 0),
    inflate_px: int = 1,
) -> Image.Image:
    """Draw filled rectangles over every box on a copy of the image.

    Parameters
    ----------
    img:
        Source page image; left untouched.
    boxes:
        Redaction boxes from :func:`scanredact.boxes.build_redaction_boxes`.
    fill_rgb:
        Fill color as an RGB tuple.
    inflate_px:
        Pixels to inflate each rectangle for safer coverage.

    Returns
    -------
    PIL.Image.Image
        Redacted image.
    """
    out = img.convert("RGB") if img.mode not in ("RGB", "RGBA") else img.copy()
    W, H = out.size
    draw = ImageDraw.Draw(out)
    for box in boxes:
        x, y, w, h = _inflate(box.rect, inflate_px, W, H)
        if w <= 0 or h <= 0:
            continue
        # PIL rectangles include the end pixel
        draw.rectangle([x, y, x + w - 1, y + h - 1], fill=tuple(fill_rgb))
    return out


def draw_preview(
    img: Image.Image,
    boxes: Iterable[RedactionBox],
    *,
    text_color=(0, 255, 0),
    visual_color=(0, 0, 255),
    width: int = 3,
) -> Image.Image:
    """Draw outline boxes for QA preview: green=text, blue=visual."""
    out = img.convert("RGB") if img.mode not in ("RGB", "RGBA") else img.copy()
    draw = ImageDraw.Draw(out)
    for box in boxes:
        x, y, w, h = box.rect
        color = visual_color if box.type == "visual" else text_color
        draw.rectangle([x, y, x + w, y + h], outline=color, width=width)
    return out


def decode_image(data: str) -> Image.Image:
    """Decode base64 image content; ``data:image/...;base64,`` prefixes are accepted."""
    if _DATA_URL in data[:64]:
        data = data.split(_DATA_URL, 1)[1]
    img = Image.open(io.BytesIO(base64.b64decode(data)))
    img.load()
    return img


def encode_image(img: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return base64.b64encode(buf.getvalue()).decode("ascii")


__all__ = ["redact_image", "draw_preview", "decode_image", "encode_image"]

"""Rendering helpers: text redaction, alignment, boxes and compositing."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from PIL import Image

from scanredact.align import align_entity
from scanredact.boxes import build_redaction_boxes
from scanredact.models import Entity, OCRWord, RedactionBox, VisualPIIDetection
from scanredact.redact import draw_preview, redact_image
from scanredact.text_redact import redact_text

from .config import RunConfig


@dataclass
class RenderResult:
    redacted_text: str
    boxes: List[RedactionBox]
    alignment_misses: int
    redacted_image: Optional[Image.Image]
    preview_path: Optional[str]
    timings: Dict[str, float]


def render_document(
    text: str,
    entities: Sequence[Entity],
    words: Sequence[OCRWord],
    cfg: RunConfig,
    *,
    img: Optional[Image.Image] = None,
    visual_pii: Sequence[VisualPIIDetection] = (),
    preview_file: Optional[Path] = None,
) -> RenderResult:
    """Produce redacted text, redaction boxes and (given an image) the redacted image."""
    t0 = time.perf_counter()
    redacted_text = redact_text(text, entities)
    t_text = time.perf_counter()

    aligned = [
        (e, align_entity(e, words, cfg.fuzzy_threshold, cfg.fuzzy_top_k)) for e in entities
    ]
    built = build_redaction_boxes(aligned, visual_pii)
    t_align = time.perf_counter()

    redacted: Optional[Image.Image] = None
    preview_path: Optional[str] = None
    if img is not None:
        redacted = redact_image(
            img, built.boxes, fill_rgb=cfg.fill_rgb, inflate_px=cfg.box_inflation_px
        )
        if cfg.generate_previews and preview_file is not None:
            draw_preview(img, built.boxes).save(preview_file)
            preview_path = str(preview_file)
    t_redact = time.perf_counter()

    return RenderResult(
        redacted_text=redacted_text,
        boxes=built.boxes,
        alignment_misses=built.alignment_misses,
        redacted_image=redacted,
        preview_path=preview_path,
        timings={
            "text": t_text - t0,
            "align": t_align - t_text,
            "redact": t_redact - t_align,
        },
    )


__all__ = ["RenderResult", "render_document"]

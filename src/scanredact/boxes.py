"""Assemble the final redaction rectangles handed to the compositor."""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence, Tuple

from .logging import get_logger
from .models import Alignment, Entity, RedactionBox, VisualPIIDetection

logger = get_logger(__name__)


class BoxBuildResult(NamedTuple):
    boxes: List[RedactionBox]
    alignment_misses: int


def build_redaction_boxes(
    aligned: Sequence[Tuple[Entity, Optional[Alignment]]],
    visual_pii: Sequence[VisualPIIDetection] = (),
) -> BoxBuildResult:
    """Turn aligned entities and visual detections into redaction boxes.

    Entities without an alignment produce no box; they are logged and counted
    in ``alignment_misses`` but remain redacted in the text output. Text and
    visual boxes are not deduplicated against each other.
    """
    boxes: List[RedactionBox] = []
    misses = 0
    for idx, (entity, alignment) in enumerate(aligned):
        if alignment is None:
            misses += 1
            logger.info(
                "No OCR region for entity",
                extra={"entity_ref": idx, "label": entity.label.value},
            )
            continue
        bb = alignment.bounding_box
        boxes.append(
            RedactionBox(
                x=bb.x,
                y=bb.y,
                width=bb.width,
                height=bb.height,
                type="text",
                entity=entity,
                entity_ref=idx,
            )
        )
    for idx, det in enumerate(visual_pii):
        bb = det.bounding_box
        boxes.append(
            RedactionBox(
                x=bb.x,
                y=bb.y,
                width=bb.width,
                height=bb.height,
                type="visual",
                visual_pii=det,
                visual_pii_ref=idx,
            )
        )
    return BoxBuildResult(boxes=boxes, alignment_misses=misses)


__all__ = ["BoxBuildResult", "build_redaction_boxes"]

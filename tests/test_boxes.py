from scanredact.align import align_entity
from scanredact.boxes import build_redaction_boxes
from scanredact.models import BoundingBox, Label, VisualPIIDetection

from conftest import make_entity, make_words


def test_text_and_visual_boxes_with_misses():
    words = make_words(["Jane", "Roe", "signed"])
    found = make_entity("Jane Roe", 0)
    missing = make_entity("Ghost", 20, Label.ORGANIZATION)
    aligned = [(found, align_entity(found, words)), (missing, align_entity(missing, words))]
    sig = VisualPIIDetection("signature", (10, 20, 110, 70), 0.9)

    result = build_redaction_boxes(aligned, [sig])

    assert result.alignment_misses == 1
    text_boxes = [b for b in result.boxes if b.type == "text"]
    visual = [b for b in result.boxes if b.type == "visual"]
    assert len(text_boxes) == 1 and len(visual) == 1
    assert text_boxes[0].entity is found and text_boxes[0].entity_ref == 0
    assert (visual[0].x, visual[0].y, visual[0].width, visual[0].height) == (10, 20, 100, 50)
    assert visual[0].visual_pii_ref == 0


def test_text_and_visual_boxes_are_not_deduplicated():
    e = make_entity("Jane", 0)
    aligned = [(e, align_entity(e, make_words(["Jane"])))]
    bb = aligned[0][1].bounding_box
    same = VisualPIIDetection("handwritten_text", (bb.x, bb.y, bb.right, bb.bottom), 0.8)
    result = build_redaction_boxes(aligned, [same])
    assert len(result.boxes) == 2
    assert result.alignment_misses == 0


def test_nothing_in_nothing_out():
    result = build_redaction_boxes([], [])
    assert result.boxes == [] and result.alignment_misses == 0
    assert BoundingBox(0, 0, 0, 0).width == 0

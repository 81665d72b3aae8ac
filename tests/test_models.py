import pytest

from scanredact.models import (
    BoundingBox,
    Label,
    OCRWord,
    RedactionBox,
    RiskLevel,
    VisualPIIDetection,
)

from conftest import make_entity


def test_entity_rejects_bad_offsets_and_confidence():
    with pytest.raises(ValueError):
        make_entity("x", 5, end=5)
    with pytest.raises(ValueError):
        make_entity("x", -1, end=0)
    with pytest.raises(ValueError):
        make_entity("abc", 0, confidence=1.5)


def test_entity_overlap_is_half_open():
    a = make_entity("abc", 0)
    b = make_entity("def", 3)
    c = make_entity("cd", 2)
    assert not a.overlaps(b)
    assert a.overlaps(c) and c.overlaps(b)


def test_entity_wire_shape_is_camel_case():
    d = make_entity("Jane", 4).to_dict()
    assert d["riskLevel"] == "HIGH"
    assert d["redactionPolicy"] == "FULL"
    assert "context" not in d


def test_risk_levels_are_ordered():
    ranks = [r.rank for r in (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)]
    assert ranks == sorted(ranks) and len(set(ranks)) == 4


def test_person_name_labels():
    assert Label.PERSON.is_person_name
    assert Label.WITNESS_NAME.is_person_name
    assert Label.PERSON_NAME.is_person_name
    assert not Label.COURT_NAME.is_person_name
    assert not Label.SSN.is_person_name
    assert not Label.ORGANIZATION.is_person_name


def test_bounding_box_union_and_validation():
    a = BoundingBox(0, 0, 10, 10)
    b = BoundingBox(20, 5, 10, 10)
    assert a.union(b) == BoundingBox(0, 0, 30, 15)
    with pytest.raises(ValueError):
        BoundingBox(0, 0, -1, 4)


def test_ocr_word_from_wire_dict():
    w = OCRWord.from_dict(
        {"text": "Smith", "confidence": 0.8, "boundingBox": {"x": 1, "y": 2, "width": 3, "height": 4}}
    )
    assert w.bounding_box == BoundingBox(1, 2, 3, 4)
    assert w.to_dict()["boundingBox"]["width"] == 3


def test_visual_detection_converts_corner_bbox():
    det = VisualPIIDetection.from_dict({"type": "signature", "bbox": [10, 20, 110, 70], "confidence": 0.9})
    assert det.bounding_box == BoundingBox(10, 20, 100, 50)
    assert det.risk_level is RiskLevel.HIGH


def test_redaction_box_refs_in_wire_shape():
    box = RedactionBox(1.4, 2.6, 10.5, 3.0, "text", entity=make_entity("Jane", 0), entity_ref=0)
    d = box.to_dict()
    assert d["entityRef"] == 0 and d["label"] == "PERSON"
    assert "visualPIIRef" not in d
    assert box.rect == (1, 2, 11, 4)


def test_redaction_box_rect_covers_fractional_edges():
    box = RedactionBox(10.7, 5.2, 20.6, 11.6, "visual")
    x, y, w, h = box.rect
    assert (x, y) == (10, 5)
    assert x + w >= 10.7 + 20.6 and y + h >= 5.2 + 11.6
    assert (w, h) == (22, 12)

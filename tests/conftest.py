from typing import List, Optional

import pytest

from scanredact.models import (
    BoundingBox,
    Entity,
    Label,
    OCRWord,
    RedactionPolicy,
    RiskLevel,
)
from scanredact.ner_detect import RawNERResult
from scanredact.pipeline.config import RunConfig


def make_entity(
    text: str,
    start: int,
    label: Label = Label.PERSON,
    risk: RiskLevel = RiskLevel.HIGH,
    policy: RedactionPolicy = RedactionPolicy.FULL,
    confidence: float = 0.9,
    end: Optional[int] = None,
) -> Entity:
    return Entity(
        text=text,
        label=label,
        confidence=confidence,
        start=start,
        end=start + len(text) if end is None else end,
        risk_level=risk,
        redaction_policy=policy,
    )


def make_words(texts: List[str], y: int = 10, width: int = 40, gap: int = 10) -> List[OCRWord]:
    """Lay words out left to right on one line."""
    words = []
    x = 0
    for t in texts:
        words.append(OCRWord(text=t, confidence=0.95, bounding_box=BoundingBox(x, y, width, 12)))
        x += width + gap
    return words


class FakeBackend:
    """NER backend returning canned results, or raising when ``error`` is set."""

    def __init__(self, results=None, error: Optional[Exception] = None, name: str = "fake"):
        self.results = list(results or [])
        self.error = error
        self.name = name
        self.calls = 0

    def predict(self, text: str, language: str) -> List[RawNERResult]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.results)


def ner(group: str, text: str, word: str, score: float = 0.9) -> RawNERResult:
    start = text.index(word)
    return RawNERResult(group, word, score, start, start + len(word))


@pytest.fixture
def cfg() -> RunConfig:
    return RunConfig(instrument=False)

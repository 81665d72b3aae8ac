"""Core value types shared by every pipeline stage.

All types here are immutable. Detectors create :class:`Entity` values, the
reconciler selects among them, and later stages only read them. Each type has
a ``to_dict`` producing the camelCase wire shape used in result payloads.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Label(str, Enum):
    """Closed PII taxonomy."""

    PERSON = "PERSON"
    NAME = "NAME"
    PERSON_NAME = "PERSON_NAME"
    ORGANIZATION = "ORGANIZATION"
    COMPANY_NAME = "COMPANY_NAME"
    LOCATION = "LOCATION"
    MISC = "MISC"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    ADDRESS = "ADDRESS"
    SIGNATURE = "SIGNATURE"
    DATE = "DATE"
    DATE_OF_BIRTH = "DATE_OF_BIRTH"
    MONETARY_AMOUNT = "MONETARY_AMOUNT"
    SSN = "SSN"
    TAX_ID = "TAX_ID"
    PASSPORT = "PASSPORT"
    DRIVERS_LICENSE = "DRIVERS_LICENSE"
    CREDIT_CARD = "CREDIT_CARD"
    ACCOUNT_NUMBER = "ACCOUNT_NUMBER"
    BANK_ACCOUNT = "BANK_ACCOUNT"
    ROUTING_NUMBER = "ROUTING_NUMBER"
    INVOICE_NUMBER = "INVOICE_NUMBER"
    TRANSACTION_ID = "TRANSACTION_ID"
    LOAN_NUMBER = "LOAN_NUMBER"
    POLICY_NUMBER = "POLICY_NUMBER"
    REFERENCE_NUMBER = "REFERENCE_NUMBER"
    P_O_NUMBER = "P_O_NUMBER"
    CUSTOMER_ID = "CUSTOMER_ID"
    CASE_NUMBER = "CASE_NUMBER"
    DOCKET_NUMBER = "DOCKET_NUMBER"
    JUDGE_NAME = "JUDGE_NAME"
    ATTORNEY_NAME = "ATTORNEY_NAME"
    WITNESS_NAME = "WITNESS_NAME"
    PLAINTIFF_NAME = "PLAINTIFF_NAME"
    DEFENDANT_NAME = "DEFENDANT_NAME"
    VICTIM_NAME = "VICTIM_NAME"
    MINOR_NAME = "MINOR_NAME"
    EXPERT_WITNESS = "EXPERT_WITNESS"
    COURT_CLERK = "COURT_CLERK"
    COURT_NAME = "COURT_NAME"

    @property
    def is_person_name(self) -> bool:
        return self in _PERSON_NAME_LABELS


_PERSON_NAME_LABELS = frozenset(
    {
        Label.PERSON,
        Label.NAME,
        Label.PERSON_NAME,
        Label.JUDGE_NAME,
        Label.ATTORNEY_NAME,
        Label.WITNESS_NAME,
        Label.PLAINTIFF_NAME,
        Label.DEFENDANT_NAME,
        Label.VICTIM_NAME,
        Label.MINOR_NAME,
        Label.EXPERT_WITNESS,
        Label.COURT_CLERK,
    }
)


class RiskLevel(str, Enum):
    """Ordered severity: LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class RedactionPolicy(str, Enum):
    FULL = "FULL"
    PARTIAL = "PARTIAL"
    HASH = "HASH"
    MASK = "MASK"


@dataclass(frozen=True)
class Entity:
    """A detected PII span.

    Attributes
    ----------
    text:
        Substring as detected.
    label:
        Taxonomy label.
    confidence:
        Detector confidence in ``[0, 1]``.
    start, end:
        Half-open character offsets into the source text.
    risk_level, redaction_policy:
        Severity and the transformation applied by the text redactor.
    context:
        Surrounding snippet for reviewers; never used for matching.
    source:
        ``"PATTERN"`` or ``"MODEL"``.
    """

    text: str
    label: Label
    confidence: float
    start: int
    end: int
    risk_level: RiskLevel
    redaction_policy: RedactionPolicy
    context: Optional[str] = None
    source: str = "PATTERN"

    def __post_init__(self) -> None:
        if not 0 <= self.start < self.end:
            raise ValueError(
                f"invalid span [{self.start}, {self.end}) for {self.label.value}"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Entity") -> bool:
        return self.start < other.end and self.end > other.start

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "text": self.text,
            "label": self.label.value,
            "confidence": self.confidence,
            "start": self.start,
            "end": self.end,
            "riskLevel": self.risk_level.value,
            "redactionPolicy": self.redaction_policy.value,
            "source": self.source,
        }
        if self.context is not None:
            out["context"] = self.context
        return out


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned pixel rectangle."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"negative box size: {self.width}x{self.height}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def union(self, other: "BoundingBox") -> "BoundingBox":
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        return BoundingBox(
            x=left,
            y=top,
            width=max(self.right, other.right) - left,
            height=max(self.bottom, other.bottom) - top,
        )

    @staticmethod
    def from_corners(x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class OCRWord:
    text: str
    confidence: float
    bounding_box: BoundingBox

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "OCRWord":
        bb = data["boundingBox"]
        return OCRWord(
            text=str(data["text"]),
            confidence=float(data.get("confidence", 1.0)),
            bounding_box=BoundingBox(
                x=bb["x"], y=bb["y"], width=bb["width"], height=bb["height"]
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "boundingBox": self.bounding_box.to_dict(),
        }


@dataclass(frozen=True)
class OCRResult:
    text: str
    words: Tuple[OCRWord, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "boundingBoxes": [w.to_dict() for w in self.words]}


@dataclass(frozen=True)
class VisualPIIDetection:
    """Visual PII found by an external detector (signature, stamp, ...)."""

    type: str
    bbox: Tuple[float, float, float, float]
    confidence: float
    risk_level: RiskLevel = RiskLevel.HIGH

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_corners(*self.bbox)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "VisualPIIDetection":
        x1, y1, x2, y2 = data["bbox"]
        return VisualPIIDetection(
            type=str(data.get("type", "signature")),
            bbox=(x1, y1, x2, y2),
            confidence=float(data.get("confidence", 1.0)),
            risk_level=RiskLevel(str(data.get("riskLevel", "HIGH")).upper()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "bbox": list(self.bbox),
            "confidence": self.confidence,
            "riskLevel": self.risk_level.value,
        }


@dataclass(frozen=True)
class Alignment:
    """Union rectangle found for an entity and how it was found."""

    bounding_box: BoundingBox
    text: str
    confidence: float
    strategy: str


@dataclass(frozen=True)
class RedactionBox:
    """Final rectangle handed to the compositor, with provenance."""

    x: float
    y: float
    width: float
    height: float
    type: str
    entity: Optional[Entity] = None
    visual_pii: Optional[VisualPIIDetection] = None
    entity_ref: Optional[int] = None
    visual_pii_ref: Optional[int] = None

    @property
    def rect(self) -> Tuple[int, int, int, int]:
        """Integer ``(x, y, width, height)`` covering every fractional pixel."""
        x0, y0 = math.floor(self.x), math.floor(self.y)
        x1 = math.ceil(self.x + self.width)
        y1 = math.ceil(self.y + self.height)
        return (x0, y0, x1 - x0, y1 - y0)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "type": self.type,
        }
        if self.entity_ref is not None:
            out["entityRef"] = self.entity_ref
        if self.visual_pii_ref is not None:
            out["visualPIIRef"] = self.visual_pii_ref
        if self.entity is not None:
            out["label"] = self.entity.label.value
        if self.visual_pii is not None:
            out["visualType"] = self.visual_pii.type
        return out


__all__ = [
    "Label",
    "RiskLevel",
    "RedactionPolicy",
    "Entity",
    "BoundingBox",
    "OCRWord",
    "OCRResult",
    "VisualPIIDetection",
    "Alignment",
    "RedactionBox",
]

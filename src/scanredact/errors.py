"""Error taxonomy for document processing.

``DetectionFailure`` is fatal for a document and propagates to the caller.
``MalformedInput`` is caught by the pipeline and turned into an explicit empty
result. Alignment misses are not exceptions; they are counted in the result
metrics.
"""

from __future__ import annotations


class RedactionError(Exception):
    """Base class for scanredact errors."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class DetectionFailure(RedactionError):
    """OCR or NER collaborator failed after every fallback was tried."""


class MalformedInput(RedactionError):
    """Input carries nothing to detect on (empty text, no OCR words)."""


__all__ = ["RedactionError", "DetectionFailure", "MalformedInput"]

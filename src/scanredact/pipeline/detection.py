"""Detection stage: pattern and model detectors, then reconciliation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional

from scanredact.errors import MalformedInput
from scanredact.logging import get_logger
from scanredact.models import Entity
from scanredact.ner_detect import ModelAdapter
from scanredact.policy import Policy
from scanredact.reconcile import reconcile
from scanredact.regex_detect import detect_patterns

from .config import RunConfig

logger = get_logger(__name__)


class Candidates(NamedTuple):
    patterns: List[Entity]
    model: List[Entity]

    @property
    def all(self) -> List[Entity]:
        return self.patterns + self.model


def detect_candidates(
    text: str, cfg: RunConfig, model: Optional[ModelAdapter] = None
) -> Candidates:
    """Run the configured detectors concurrently and return their candidates.

    Raises
    ------
    MalformedInput
        When ``text`` is empty or whitespace; no detector is called.
    DetectionFailure
        When the model adapter exhausts its fallback.
    """
    if not text or not text.strip():
        raise MalformedInput("no text to analyse")
    if cfg.use_model and model is None:
        raise ValueError("use_model is set but no ModelAdapter was supplied")

    with ThreadPoolExecutor(max_workers=2) as ex:
        pat_fut = ex.submit(detect_patterns, text) if cfg.use_patterns else None
        ner_fut = (
            ex.submit(model.detect, text, cfg.lang, cfg.confidence_threshold)
            if cfg.use_model and model is not None
            else None
        )
        patterns = pat_fut.result() if pat_fut is not None else []
        found = ner_fut.result() if ner_fut is not None else []

    logger.info(
        "Detection candidates",
        extra={"pattern_matches": len(patterns), "model_matches": len(found)},
    )
    return Candidates(patterns=patterns, model=found)


def resolve_final_entities(
    candidates: Candidates, cfg: RunConfig, policy: Optional[Policy] = None
) -> List[Entity]:
    """Reconcile candidates into the canonical list, then apply the policy."""
    canonical = reconcile(candidates.all, cfg.confidence_threshold)
    if policy is not None:
        canonical = policy.apply(canonical)
    logger.info("Canonical entities", extra={"entities": len(canonical)})
    return canonical


__all__ = ["Candidates", "detect_candidates", "resolve_final_entities"]

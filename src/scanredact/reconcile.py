"""Merge pattern and model candidates into one canonical entity list."""

from __future__ import annotations

from typing import Iterable, List

from .models import Entity


def _priority(e: Entity):
    # risk desc, confidence desc, earliest start, longer span
    return (-e.risk_level.rank, -e.confidence, e.start, -e.length)


def reconcile(candidates: Iterable[Entity], threshold: float = 0.0) -> List[Entity]:
    """Resolve overlapping candidates into a non-overlapping selection.

    Parameters
    ----------
    candidates:
        Entities from every detector, in any order.
    threshold:
        Candidates with ``confidence < threshold`` are dropped before any
        overlap resolution.

    Returns
    -------
    list[Entity]
        Accepted entities sorted by ``start``. Each one is an input value,
        never a modified copy. Touching spans (``a.end == b.start``) are both
        kept.
    """
    ranked = sorted((c for c in candidates if c.confidence >= threshold), key=_priority)
    accepted: List[Entity] = []
    for cand in ranked:
        if not any(cand.overlaps(a) for a in accepted):
            accepted.append(cand)
    accepted.sort(key=lambda e: e.start)
    return accepted


__all__ = ["reconcile"]

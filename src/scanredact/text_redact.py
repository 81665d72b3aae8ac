"""Apply per-entity redaction policies to source text."""

from __future__ import annotations

from functools import reduce
from typing import Iterable, Tuple

from .models import Entity, RedactionPolicy

BLOCK = "█"
MASK = "*"


def redaction_value(text: str, policy: RedactionPolicy) -> str:
    """Return the replacement string for ``text`` under ``policy``.

    ``FULL`` never reveals length below 3; ``PARTIAL`` keeps the first and last
    characters of spans longer than 3; ``HASH`` reveals only the length.
    """
    n = len(text)
    if policy is RedactionPolicy.FULL:
        return BLOCK * max(n, 3)
    if policy is RedactionPolicy.PARTIAL:
        if n <= 3:
            return BLOCK * n
        return text[0] + BLOCK * (n - 2) + text[-1]
    if policy is RedactionPolicy.HASH:
        return f"[REDACTED-{n}]"
    if policy is RedactionPolicy.MASK:
        return MASK * n
    raise ValueError(f"Unknown redaction policy: {policy}")


def _splice(state: Tuple[str, int], entity: Entity) -> Tuple[str, int]:
    text, offset = state
    value = redaction_value(entity.text, entity.redaction_policy)
    start, end = entity.start + offset, entity.end + offset
    return text[:start] + value + text[end:], offset + len(value) - entity.length


def redact_text(text: str, entities: Iterable[Entity]) -> str:
    """Replace every entity span in ``text`` with its redaction value.

    ``entities`` must be non-overlapping with offsets into ``text`` (the
    reconciler's output). They are applied in ascending ``start`` order while
    an offset tracks how far earlier replacements shifted the string.
    """
    ordered = sorted(entities, key=lambda e: e.start)
    redacted, _ = reduce(_splice, ordered, (text, 0))
    return redacted


__all__ = ["redaction_value", "redact_text"]

"""Align detected entities to OCR word boxes to produce redaction rectangles.

OCR text and detector text rarely agree character for character, so instead
of mapping offsets the aligner matches the entity's text against the words
themselves, trying progressively looser strategies:

1. name pairing: two consecutive words that together spell a person name;
2. token overlap: the longest run of consecutive words sharing tokens with the
   entity;
3. fuzzy: up to ``top_k`` words whose edit-distance similarity to the whole
   entity clears ``threshold``.

The matched words' rectangles are unioned into a single box.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import regex as re

from .models import Alignment, BoundingBox, Entity, OCRWord

_NON_ALNUM = re.compile(r"[^\p{L}\p{N}]+")


def normalize_token(token: str) -> str:
    """Lower-case and strip everything that is not a letter or digit."""
    return _NON_ALNUM.sub("", token.lower())


def tokenize(text: str) -> List[str]:
    return [t for t in (normalize_token(p) for p in text.split()) if t]


def levenshtein(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            ins = previous[j] + 1
            dele = current[j - 1] + 1
            subst = previous[j - 1] + (ca != cb)
            current.append(min(ins, dele, subst))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """``1 - lev(a, b) / max(len(a), len(b))`` on lower-cased input."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest


def _union(words: Sequence[OCRWord]) -> BoundingBox:
    box = words[0].bounding_box
    for w in words[1:]:
        box = box.union(w.bounding_box)
    return box


def _alignment(words: Sequence[OCRWord], strategy: str) -> Alignment:
    return Alignment(
        bounding_box=_union(words),
        text=" ".join(w.text for w in words),
        confidence=min(w.confidence for w in words),
        strategy=strategy,
    )


def _match_name_pair(entity: Entity, words: Sequence[OCRWord]) -> Optional[Alignment]:
    target = " ".join(entity.text.split()).lower()
    for first, second in zip(words, words[1:]):
        pair = f"{first.text} {second.text}".lower()
        if pair == target or pair in target or target in pair:
            return _alignment((first, second), "name_pair")
    return None


def word_score(token: str, entity_tokens: Sequence[str], joined: str) -> float:
    """Score one normalized word token against the entity's tokens.

    2 for an exact token, 1 for a substring match with a token (either way,
    so an OCR'd initial ``j`` hits ``john``), 0.5 for a word that only
    appears inside the joined token string (it straddles a token boundary),
    else 0.
    """
    if not token:
        return 0.0
    if token in entity_tokens:
        return 2.0
    if any(token in et or et in token for et in entity_tokens):
        return 1.0
    if token in joined:
        return 0.5
    return 0.0


def _match_token_runs(entity: Entity, words: Sequence[OCRWord]) -> Optional[Alignment]:
    entity_tokens = tokenize(entity.text)
    joined = "".join(entity_tokens)
    runs: List[List[OCRWord]] = []
    current: List[OCRWord] = []
    for w in words:
        if word_score(normalize_token(w.text), entity_tokens, joined) > 0:
            current.append(w)
        elif current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    if not runs:
        return None
    best = max(runs, key=lambda run: len(" ".join(w.text for w in run)))
    return _alignment(best, "token_overlap")


def _match_fuzzy(
    entity: Entity, words: Sequence[OCRWord], threshold: float, top_k: int
) -> Optional[Alignment]:
    scored: List[Tuple[float, int]] = []
    for idx, w in enumerate(words):
        s = similarity(entity.text, w.text)
        if s >= threshold:
            scored.append((s, idx))
    if not scored:
        return None
    scored.sort(key=lambda item: -item[0])
    chosen = sorted(idx for _, idx in scored[:top_k])
    return _alignment([words[i] for i in chosen], "fuzzy")


def align_entity(
    entity: Entity,
    words: Sequence[OCRWord],
    fuzzy_threshold: float = 0.6,
    fuzzy_top_k: int = 3,
) -> Optional[Alignment]:
    """Find the OCR region covering ``entity``.

    Parameters
    ----------
    entity:
        Canonical entity to locate.
    words:
        OCR words in reading order.
    fuzzy_threshold, fuzzy_top_k:
        Minimum similarity and maximum number of words for the fuzzy step.

    Returns
    -------
    Alignment | None
        The union rectangle with the strategy that produced it, or ``None``
        when no strategy matches (including entities without any
        alphanumeric token).
    """
    if not words or not tokenize(entity.text):
        return None
    if entity.label.is_person_name:
        found = _match_name_pair(entity, words)
        if found is not None:
            return found
    found = _match_token_runs(entity, words)
    if found is not None:
        return found
    return _match_fuzzy(entity, words, fuzzy_threshold, fuzzy_top_k)


__all__ = [
    "align_entity",
    "levenshtein",
    "similarity",
    "normalize_token",
    "tokenize",
    "word_score",
]

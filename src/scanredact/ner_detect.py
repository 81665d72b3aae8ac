"""NER model adapter and backends.

The adapter turns raw ``(entity_group, word, score, start, end)`` results from
a generic NER model into :class:`~scanredact.models.Entity` values. Backends
are plain objects injected by the caller; each one owns its loaded model, so
there is no process-wide model cache shared between documents.

Model-tier fallback:
- Try the primary backend.
- If it raises, log a warning and try the secondary backend (a CPU-mode or
  alternate model).
- If that raises too, surface :class:`~scanredact.errors.DetectionFailure`.
"""

from __future__ import annotations

from enum import Enum
from importlib import import_module
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Protocol, Tuple

import regex as re
import spacy

from .errors import DetectionFailure
from .logging import get_logger
from .models import Entity, Label, RedactionPolicy, RiskLevel

logger = get_logger(__name__)

CONTEXT_CHARS = 20


class RawNERResult(NamedTuple):
    """One aggregated entity as reported by an NER runtime."""

    entity_group: str
    word: str
    score: float
    start: int
    end: int


class NERBackend(Protocol):
    name: str

    def predict(self, text: str, language: str) -> List[RawNERResult]:
        ...


class EntityGroup(str, Enum):
    """CoNLL-style groups understood by the adapter."""

    PER = "PER"
    ORG = "ORG"
    LOC = "LOC"
    GPE = "GPE"
    MISC = "MISC"


_Rule = Tuple[Label, RiskLevel, RedactionPolicy]

GROUP_RULES: Dict[EntityGroup, _Rule] = {
    EntityGroup.PER: (Label.PERSON, RiskLevel.HIGH, RedactionPolicy.PARTIAL),
    EntityGroup.ORG: (Label.ORGANIZATION, RiskLevel.MEDIUM, RedactionPolicy.PARTIAL),
    EntityGroup.LOC: (Label.LOCATION, RiskLevel.MEDIUM, RedactionPolicy.PARTIAL),
    EntityGroup.GPE: (Label.LOCATION, RiskLevel.MEDIUM, RedactionPolicy.PARTIAL),
}

# Content sniffing for the MISC bucket, first match wins.
MISC_RULES: List[Tuple[Any, _Rule]] = [
    (
        lambda w: "@" in w,
        (Label.EMAIL, RiskLevel.HIGH, RedactionPolicy.HASH),
    ),
    # Dashes required: a bare 9-digit run must still reach ROUTING_NUMBER below.
    (
        re.compile(r"\b\d{3}-\d{2}-\d{4}\b").search,
        (Label.SSN, RiskLevel.CRITICAL, RedactionPolicy.FULL),
    ),
    (
        re.compile(r"\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b").search,
        (Label.CREDIT_CARD, RiskLevel.CRITICAL, RedactionPolicy.FULL),
    ),
    (
        re.compile(r"\b\d{9}\b").search,
        (Label.ROUTING_NUMBER, RiskLevel.CRITICAL, RedactionPolicy.FULL),
    ),
    (
        re.compile(r"\b\d{8,17}\b").search,
        (Label.BANK_ACCOUNT, RiskLevel.CRITICAL, RedactionPolicy.FULL),
    ),
    (
        re.compile(r"[$€£]\s?\d|\d+\.\d{2}\b").search,
        (Label.MONETARY_AMOUNT, RiskLevel.MEDIUM, RedactionPolicy.PARTIAL),
    ),
    (
        re.compile(r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b").search,
        (Label.DATE, RiskLevel.LOW, RedactionPolicy.PARTIAL),
    ),
]
MISC_DEFAULT: _Rule = (Label.ORGANIZATION, RiskLevel.MEDIUM, RedactionPolicy.PARTIAL)


def _parse_group(raw: str) -> Optional[EntityGroup]:
    g = (raw or "").upper()
    if g[:2] in ("B-", "I-", "E-", "S-"):
        g = g[2:]
    if g == "PERSON":
        g = "PER"
    try:
        return EntityGroup(g)
    except ValueError:
        return None


def classify(group: EntityGroup, word: str) -> _Rule:
    """Return ``(label, risk, policy)`` for a model group and its surface text."""
    if group is not EntityGroup.MISC:
        return GROUP_RULES[group]
    lowered = word.lower()
    for matches, rule in MISC_RULES:
        if matches(lowered):
            return rule
    return MISC_DEFAULT


class ModelAdapter:
    """Normalize NER model output, with a primary→secondary model fallback."""

    def __init__(self, primary: NERBackend, fallback: Optional[NERBackend] = None) -> None:
        self.primary = primary
        self.fallback = fallback

    def _predict(self, text: str, language: str) -> List[RawNERResult]:
        try:
            return self.primary.predict(text, language)
        except Exception as primary_exc:
            if self.fallback is None:
                raise DetectionFailure(
                    f"NER backend {self.primary.name} failed: {primary_exc}"
                ) from primary_exc
            logger.warning(
                "Primary NER backend failed; falling back",
                extra={"primary": self.primary.name, "fallback": self.fallback.name},
                exc_info=primary_exc,
            )
            try:
                return self.fallback.predict(text, language)
            except Exception as fallback_exc:
                raise DetectionFailure(
                    f"NER backends failed: {self.primary.name}: {primary_exc}; "
                    f"{self.fallback.name}: {fallback_exc}"
                ) from fallback_exc

    def detect(self, text: str, language: str = "en", threshold: float = 0.7) -> List[Entity]:
        """Run the model and return entities scoring at or above ``threshold``.

        Entity text is always the source slice ``text[start:end]`` so offsets
        and text agree for the text redactor.
        """
        if not text.strip():
            return []
        out: List[Entity] = []
        for raw in self._predict(text, language):
            if raw.score < threshold:
                continue
            group = _parse_group(raw.entity_group)
            if group is None:
                continue
            start, end = int(raw.start), int(raw.end)
            if not 0 <= start < end <= len(text):
                continue
            surface = text[start:end]
            label, risk, policy = classify(group, surface)
            out.append(
                Entity(
                    text=surface,
                    label=label,
                    confidence=min(1.0, max(0.0, float(raw.score))),
                    start=start,
                    end=end,
                    risk_level=risk,
                    redaction_policy=policy,
                    context=text[max(0, start - CONTEXT_CHARS) : end + CONTEXT_CHARS],
                    source="MODEL",
                )
            )
        return out


# spaCy -------------------------------------------------------------------

SPACY_AUTO_MODELS = {
    "fr": "fr_core_news_lg",
    "de": "de_core_news_lg",
    "es": "es_core_news_lg",
}
SPACY_DEFAULT_MODEL = "en_core_web_lg"

_SPACY_GROUPS = {
    "PERSON": "PER",
    "PER": "PER",
    "ORG": "ORG",
    "GPE": "GPE",
    "LOC": "LOC",
    "FAC": "LOC",
}


def resolve_spacy_model(name: str, language: str) -> str:
    """Resolve ``"auto"`` to a language-appropriate spaCy model name."""
    name = (name or "").strip()
    if name.lower() != "auto":
        return name
    return SPACY_AUTO_MODELS.get((language or "en").lower()[:2], SPACY_DEFAULT_MODEL)


def load_spacy_pipeline(name: str):
    """Load a spaCy pipeline.

    Loading strategy:
    - If name is a valid path, load from path
    - Try spacy.load(name)
    - Try importing the package and calling its .load()

    Raises ``OSError`` when every strategy fails or the pipeline has no NER
    component; the caller's model-tier fallback handles that.
    """
    errors: List[str] = []
    p = Path(name)
    if name and p.exists():
        try:
            nlp = spacy.load(str(p))
        except Exception as e:
            errors.append(f"path load failed: {e}")
        else:
            return _require_ner(nlp, name)
    try:
        nlp = spacy.load(name)
    except Exception as e:
        errors.append(f"spacy.load failed: {e}")
    else:
        return _require_ner(nlp, name)
    # Wheel installed but not registered as a spaCy package
    try:
        pkg = import_module(name)
        if hasattr(pkg, "load"):
            return _require_ner(pkg.load(), name)
        errors.append("package has no load()")
    except Exception as e:
        errors.append(f"import_module failed: {e}")
    raise OSError(f"spaCy model '{name}' could not be loaded: {'; '.join(errors)}")


def _require_ner(nlp, name: str):
    if "ner" not in nlp.pipe_names:
        raise OSError(f"spaCy model '{name}' has no NER component")
    return nlp


class SpacyNERBackend:
    """spaCy NER folded into CoNLL groups.

    spaCy does not expose per-entity probabilities, so every entity is
    reported with ``default_score``.
    """

    def __init__(self, model: str = "auto", default_score: float = 0.85) -> None:
        self.model = model
        self.default_score = default_score
        self._pipelines: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        return f"spacy:{self.model}"

    def _nlp(self, language: str):
        resolved = resolve_spacy_model(self.model, language)
        if resolved not in self._pipelines:
            logger.info("Loading spaCy model", extra={"model": resolved})
            self._pipelines[resolved] = load_spacy_pipeline(resolved)
        return self._pipelines[resolved]

    def predict(self, text: str, language: str) -> List[RawNERResult]:
        doc = self._nlp(language)(text)
        return [
            RawNERResult(
                entity_group=_SPACY_GROUPS.get(ent.label_, "MISC"),
                word=ent.text,
                score=self.default_score,
                start=ent.start_char,
                end=ent.end_char,
            )
            for ent in doc.ents
        ]


# transformers ------------------------------------------------------------

HF_ENGLISH_MODEL = "dslim/bert-base-NER"
HF_MULTILINGUAL_MODEL = "Davlan/bert-base-multilingual-cased-ner-hrl"


def resolve_hf_model(name: str, language: str) -> str:
    name = (name or "").strip()
    if name.lower() != "auto":
        return name
    if (language or "en").lower().startswith("en"):
        return HF_ENGLISH_MODEL
    return HF_MULTILINGUAL_MODEL


class TransformersNERBackend:
    """Hugging Face token-classification pipeline with simple aggregation.

    ``device`` follows the ``transformers`` convention: ``-1`` is CPU, ``0``
    and up select a GPU.
    """

    def __init__(self, model: str = "auto", device: int = -1) -> None:
        self.model = model
        self.device = device
        self._pipelines: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        mode = "cpu" if self.device < 0 else f"cuda:{self.device}"
        return f"transformers:{self.model}@{mode}"

    def _pipe(self, language: str):
        resolved = resolve_hf_model(self.model, language)
        if resolved not in self._pipelines:
            from transformers import pipeline

            logger.info(
                "Loading transformers NER model",
                extra={"model": resolved, "device": self.device},
            )
            self._pipelines[resolved] = pipeline(
                "token-classification",
                model=resolved,
                aggregation_strategy="simple",
                device=self.device,
            )
        return self._pipelines[resolved]

    def predict(self, text: str, language: str) -> List[RawNERResult]:
        results = self._pipe(language)(text)
        return [
            RawNERResult(
                entity_group=str(r.get("entity_group", "")),
                word=str(r.get("word", "")),
                score=float(r.get("score", 0.0)),
                start=int(r.get("start", 0)),
                end=int(r.get("end", 0)),
            )
            for r in results
        ]


def build_model_adapter(cfg) -> ModelAdapter:
    """Construct a fresh adapter (and backends) from a ``RunConfig``."""
    if cfg.ner_backend == "transformers":
        primary: NERBackend = TransformersNERBackend(cfg.ner_model, device=cfg.ner_device)
        fallback: Optional[NERBackend] = TransformersNERBackend(cfg.ner_model, device=-1)
    elif cfg.ner_backend == "spacy":
        primary = SpacyNERBackend(cfg.ner_model, default_score=cfg.spacy_score)
        fallback = (
            SpacyNERBackend(cfg.ner_fallback_model, default_score=cfg.spacy_score)
            if cfg.ner_fallback_model
            else None
        )
    else:
        raise ValueError(f"Unknown NER backend: {cfg.ner_backend}")
    return ModelAdapter(primary, fallback)


__all__ = [
    "RawNERResult",
    "NERBackend",
    "EntityGroup",
    "GROUP_RULES",
    "classify",
    "ModelAdapter",
    "SpacyNERBackend",
    "TransformersNERBackend",
    "load_spacy_pipeline",
    "resolve_spacy_model",
    "resolve_hf_model",
    "build_model_adapter",
]

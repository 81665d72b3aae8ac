"""Configuration primitives for the scanredact pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel


def _parse_bool(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if v in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def _split_csv(value: str | None) -> List[str]:
    if not value:
        return []
    parts = [p.strip() for p in value.split(",") if p.strip()]
    return parts


@dataclass
class RunConfig:
    """Runtime configuration for OCR, detection, alignment and redaction."""

    lang: str = "en"
    confidence_threshold: float = 0.7
    use_patterns: bool = True
    use_model: bool = True
    ner_backend: str = "spacy"  # 'spacy' or 'transformers'
    ner_model: str = "auto"
    ner_fallback_model: Optional[str] = "en_core_web_sm"
    ner_device: int = 0
    spacy_score: float = 0.85
    psm: int = 3
    ocr_min_confidence: float = 0.3
    preprocess: bool = True
    deskew: bool = False
    binarize: bool = True
    auto_psm: bool = True
    tess_configs: Optional[Dict[str, Any]] = None
    fuzzy_threshold: float = 0.6
    fuzzy_top_k: int = 3
    box_inflation_px: int = 2
    fill_rgb: Tuple[int, int, int] = (0, 0, 0)
    policy_path: Optional[str] = None
    instrument: bool = True
    generate_previews: bool = False
    language_hints: List[str] = field(default_factory=list)

    @property
    def hints(self) -> List[str]:
        return self.language_hints or [self.lang]

    @staticmethod
    def from_env(**overrides: Any) -> "RunConfig":
        """Build a config from ``SCANREDACT_*`` variables, then apply ``overrides``."""
        env = os.environ.get
        cfg = RunConfig()
        cfg.lang = env("SCANREDACT_LANG", cfg.lang)
        cfg.confidence_threshold = float(
            env("SCANREDACT_CONFIDENCE", str(cfg.confidence_threshold))
        )
        cfg.use_patterns = _parse_bool(env("SCANREDACT_USE_PATTERNS"), default=True)
        cfg.use_model = _parse_bool(env("SCANREDACT_USE_MODEL"), default=True)
        cfg.ner_backend = env("SCANREDACT_NER_BACKEND", cfg.ner_backend).lower()
        cfg.ner_model = env("SCANREDACT_NER_MODEL", cfg.ner_model)
        fallback = env("SCANREDACT_NER_FALLBACK_MODEL")
        if fallback is not None:
            cfg.ner_fallback_model = fallback.strip() or None
        cfg.ner_device = int(env("SCANREDACT_NER_DEVICE", str(cfg.ner_device)))
        cfg.psm = int(env("SCANREDACT_OCR_PSM", str(cfg.psm)))
        cfg.ocr_min_confidence = float(
            env("SCANREDACT_OCR_MIN_CONFIDENCE", str(cfg.ocr_min_confidence))
        )
        cfg.preprocess = _parse_bool(env("SCANREDACT_PREPROCESS"), default=cfg.preprocess)
        cfg.deskew = _parse_bool(env("SCANREDACT_DESKEW"), default=cfg.deskew)
        cfg.binarize = _parse_bool(env("SCANREDACT_BINARIZE"), default=cfg.binarize)
        cfg.auto_psm = _parse_bool(env("SCANREDACT_AUTO_PSM"), default=cfg.auto_psm)
        cfg.box_inflation_px = int(env("SCANREDACT_BOX_INFLATE", str(cfg.box_inflation_px)))
        fill = _split_csv(env("SCANREDACT_FILL_RGB"))
        if len(fill) == 3:
            cfg.fill_rgb = (int(fill[0]), int(fill[1]), int(fill[2]))
        cfg.policy_path = env("SCANREDACT_POLICY") or None
        cfg.language_hints = _split_csv(env("SCANREDACT_LANGUAGE_HINTS"))
        cfg.generate_previews = _parse_bool(
            env("SCANREDACT_PREVIEWS"), default=cfg.generate_previews
        )
        for key, value in overrides.items():
            if not hasattr(cfg, key):
                raise AttributeError(f"Unknown RunConfig field: {key}")
            setattr(cfg, key, value)
        return cfg


class DocumentResult(BaseModel):
    """Per-document output payload."""

    status: str = "ok"  # 'ok' or 'empty'
    reason: Optional[str] = None
    text: str = ""
    redacted_text: str = ""
    entities: List[Dict[str, Any]] = []
    boxes: List[Dict[str, Any]] = []
    metrics: Dict[str, int] = {}
    timings: Optional[Dict[str, float]] = None
    preview_path: Optional[str] = None


__all__ = ["RunConfig", "DocumentResult"]

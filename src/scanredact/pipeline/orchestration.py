"""High-level orchestration for scanredact runs."""

from __future__ import annotations

import time
from dataclasses import asdict
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

import orjson
from PIL import Image

from scanredact.audit import write_audit
from scanredact.errors import MalformedInput
from scanredact.logging import get_logger
from scanredact.models import Entity, OCRResult, RiskLevel, VisualPIIDetection
from scanredact.ner_detect import ModelAdapter, build_model_adapter
from scanredact.ocr import TesseractOCR
from scanredact.policy import Policy, load_policy
from scanredact.text_redact import redact_text

from .config import DocumentResult, RunConfig
from .detection import Candidates, detect_candidates, resolve_final_entities
from .rendering import render_document

logger = get_logger("scanredact")

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp"}


class DocumentOutput(NamedTuple):
    result: DocumentResult
    redacted_image: Optional[Image.Image]


def _empty(reason: str, text: str = "") -> DocumentResult:
    logger.info("Nothing to redact", extra={"reason": reason})
    return DocumentResult(status="empty", reason=reason, text=text, redacted_text=text)


def _metrics(candidates: Candidates, entities: Sequence[Entity]) -> dict:
    return {
        "pattern_matches": len(candidates.patterns),
        "model_matches": len(candidates.model),
        "total_entities": len(entities),
        "critical_entities": sum(1 for e in entities if e.risk_level is RiskLevel.CRITICAL),
        "alignment_misses": 0,
        "visual_boxes": 0,
    }


def build_ocr(cfg: RunConfig) -> TesseractOCR:
    return TesseractOCR(
        psm=cfg.psm,
        min_confidence=cfg.ocr_min_confidence,
        preprocess=cfg.preprocess,
        deskew=cfg.deskew,
        binarize=cfg.binarize,
        auto_psm=cfg.auto_psm,
        tess_configs=cfg.tess_configs,
    )


def process_text(
    text: str,
    cfg: RunConfig,
    *,
    model: Optional[ModelAdapter] = None,
    policy: Optional[Policy] = None,
) -> DocumentResult:
    """Detect and redact plain text; no OCR words, so no boxes."""
    t0 = time.perf_counter()
    try:
        candidates = detect_candidates(text, cfg, model)
    except MalformedInput as e:
        return _empty(e.reason, text)
    t_detect = time.perf_counter()
    entities = resolve_final_entities(candidates, cfg, policy)
    redacted = redact_text(text, entities)
    t_end = time.perf_counter()
    return DocumentResult(
        text=text,
        redacted_text=redacted,
        entities=[e.to_dict() for e in entities],
        metrics=_metrics(candidates, entities),
        timings={"detect": t_detect - t0, "total": t_end - t0} if cfg.instrument else None,
    )


def process_document(
    ocr: OCRResult,
    cfg: RunConfig,
    *,
    model: Optional[ModelAdapter] = None,
    policy: Optional[Policy] = None,
    img: Optional[Image.Image] = None,
    visual_pii: Sequence[VisualPIIDetection] = (),
    preview_file: Optional[Path] = None,
) -> DocumentOutput:
    """Run detection, reconciliation, redaction and alignment on an OCR result.

    An OCR result without words is malformed input: the result comes back
    with ``status="empty"`` and no detector is called. Detector failures
    (:class:`~scanredact.errors.DetectionFailure`) propagate.
    """
    t0 = time.perf_counter()
    try:
        if not ocr.words:
            raise MalformedInput("OCR returned no words")
        candidates = detect_candidates(ocr.text, cfg, model)
    except MalformedInput as e:
        return DocumentOutput(_empty(e.reason, ocr.text), None)
    t_detect = time.perf_counter()

    entities = resolve_final_entities(candidates, cfg, policy)
    rendered = render_document(
        ocr.text,
        entities,
        ocr.words,
        cfg,
        img=img,
        visual_pii=visual_pii,
        preview_file=preview_file,
    )
    metrics = _metrics(candidates, entities)
    metrics["alignment_misses"] = rendered.alignment_misses
    metrics["visual_boxes"] = sum(1 for b in rendered.boxes if b.type == "visual")
    logger.info(
        "Document processed",
        extra={**metrics, "boxes": len(rendered.boxes)},
    )

    timings = None
    if cfg.instrument:
        timings = {"detect": t_detect - t0, **rendered.timings}
        timings["total"] = time.perf_counter() - t0
    result = DocumentResult(
        text=ocr.text,
        redacted_text=rendered.redacted_text,
        entities=[e.to_dict() for e in entities],
        boxes=[b.to_dict() for b in rendered.boxes],
        metrics=metrics,
        timings=timings,
        preview_path=rendered.preview_path,
    )
    return DocumentOutput(result, rendered.redacted_image)


def load_visual_pii(path: Optional[str]) -> List[VisualPIIDetection]:
    """Read visual-PII detections from a JSON list of ``{type, bbox, confidence}``."""
    if not path:
        return []
    data = orjson.loads(Path(path).read_bytes())
    return [VisualPIIDetection.from_dict(item) for item in data]


def meta_path_for(output_path: str | Path) -> Path:
    out = Path(output_path)
    return out.with_name(f"{out.stem}.meta.json")


def process_path(
    input_path: str,
    output_path: str,
    cfg: RunConfig,
    *,
    visual_pii_path: Optional[str] = None,
    model: Optional[ModelAdapter] = None,
) -> DocumentResult:
    """OCR an image file, redact it and write image, metadata and audit files.

    A model adapter is built from ``cfg`` when none is given, so each call
    (and each batch worker) owns its detectors.
    """
    path = Path(input_path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {input_path}")
    if path.suffix.lower() not in IMAGE_EXTS:
        raise ValueError(f"Unsupported input type: {input_path}")
    out_path = Path(output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    policy = load_policy(cfg.policy_path)
    visual_pii = load_visual_pii(visual_pii_path)
    if model is None and cfg.use_model:
        model = build_model_adapter(cfg)

    t0 = time.perf_counter()
    with Image.open(path) as src:
        img = src.convert("RGB")
    ocr = build_ocr(cfg).recognize_image(img, cfg.hints)
    t_ocr = time.perf_counter() - t0

    preview_file = out_path.with_name(f"{out_path.stem}.preview.png")
    output = process_document(
        ocr,
        cfg,
        model=model,
        policy=policy,
        img=img,
        visual_pii=visual_pii,
        preview_file=preview_file,
    )
    result = output.result
    if result.timings is not None:
        result.timings["ocr"] = t_ocr
    if output.redacted_image is not None:
        output.redacted_image.save(out_path)

    meta_path_for(out_path).write_bytes(
        orjson.dumps(result.model_dump(), option=orjson.OPT_INDENT_2)
    )
    write_audit(str(path), str(out_path), result, asdict(cfg), policy=policy.to_dict())
    return result


__all__ = [
    "DocumentOutput",
    "process_text",
    "process_document",
    "process_path",
    "load_visual_pii",
    "build_ocr",
    "meta_path_for",
]

"""OCR adapter.

Decodes base64 image content and extracts word-level text, confidence and
bounding boxes using Tesseract, returning an :class:`~scanredact.models.OCRResult`.

Enhancements for difficult scans:
- Optional preprocessing (grayscale, binarize) using OpenCV
- Optional deskew to correct small rotation angles
- Optional auto-PSM retry to maximize token recovery on noisy pages
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, List, Optional

import cv2
import numpy as np
import pandas as pd
import pytesseract
from PIL import Image

from .errors import DetectionFailure
from .logging import get_logger
from .models import BoundingBox, OCRResult, OCRWord
from .redact import decode_image

logger = get_logger(__name__)

# ISO-639-1 hint -> Tesseract traineddata code
TESSERACT_LANGS: Dict[str, str] = {
    "en": "eng",
    "fr": "fra",
    "de": "deu",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "nl": "nld",
}

_LINE_KEYS = ["page_num", "block_num", "par_num", "line_num"]


def tesseract_lang(hints: Optional[Iterable[str]]) -> str:
    """Map language hints to a ``+``-joined Tesseract language string."""
    codes: List[str] = []
    for hint in hints or ():
        h = (hint or "").strip().lower()
        if not h:
            continue
        code = TESSERACT_LANGS.get(h[:2], h)
        if code not in codes:
            codes.append(code)
    return "+".join(codes) or "eng"


def _preprocess_image(
    img: Image.Image,
    *,
    deskew: bool = True,
    binarize: bool = True,
) -> Image.Image:
    """Apply simple preprocessing to improve OCR robustness.

    - Convert to grayscale
    - Optional deskew using a Hough-based heuristic
    - Optional binarization with adaptive threshold

    Deskewing rotates the pixels, so word boxes come back in the rotated
    frame; keep it off when boxes must land on the input image.
    """
    arr = np.array(img.convert("RGB"))
    work = cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)
    if deskew:
        edges = cv2.Canny(work, 50, 150)
        lines = cv2.HoughLines(edges, 1, np.pi / 180, threshold=120)
        if lines is not None and len(lines) > 0:
            angles = []
            for rho_theta in lines[:200]:
                _, theta = rho_theta[0]
                angle = (theta * 180 / np.pi) - 90
                if angle > 45:
                    angle -= 90
                if angle < -45:
                    angle += 90
                angles.append(angle)
            med = float(np.median(angles))
            if 0.3 < abs(med) < 8.0:
                h, w = work.shape[:2]
                M = cv2.getRotationMatrix2D((w / 2, h / 2), med, 1.0)
                work = cv2.warpAffine(
                    work,
                    M,
                    (w, h),
                    flags=cv2.INTER_LINEAR,
                    borderMode=cv2.BORDER_REPLICATE,
                )
    if binarize:
        work = cv2.adaptiveThreshold(
            work, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, 35, 15
        )
    return Image.fromarray(work)


def read_tsv(raw: str) -> pd.DataFrame:
    """Parse Tesseract TSV output, keeping the ``text`` column as strings.

    Left to inference, a page of bare numbers would come back as floats
    (``123`` as ``123.0``, long digit runs rounded).
    """
    return pd.read_csv(
        io.StringIO(raw),
        sep="\t",
        quoting=csv.QUOTE_NONE,
        dtype={"text": str},
    )


def _clean_tsv(tsv: pd.DataFrame) -> pd.DataFrame:
    tsv = tsv.dropna(subset=["text"])
    tsv = tsv.assign(text=tsv["text"].astype(str))
    tsv = tsv[tsv["text"].str.strip() != ""]
    return tsv.reset_index(drop=True)


def tsv_to_result(tsv: pd.DataFrame, min_confidence: float = 0.0) -> OCRResult:
    """Convert a Tesseract TSV DataFrame to an :class:`OCRResult`.

    Words with empty text, a negative confidence (layout rows) or a
    normalized confidence below ``min_confidence`` are dropped. Page text
    joins words with spaces inside a line and lines with newlines.
    """
    words: List[OCRWord] = []
    lines: List[str] = []
    current_key = None
    current: List[str] = []
    for _, row in _clean_tsv(tsv).iterrows():
        text = str(row["text"]).strip()
        conf = float(row["conf"])
        if conf < 0:
            continue
        conf = min(1.0, conf / 100.0)
        if conf < min_confidence:
            continue
        key = tuple(int(row[k]) for k in _LINE_KEYS if k in row)
        if key != current_key and current:
            lines.append(" ".join(current))
            current = []
        current_key = key
        current.append(text)
        words.append(
            OCRWord(
                text=text,
                confidence=conf,
                bounding_box=BoundingBox(
                    x=float(row["left"]),
                    y=float(row["top"]),
                    width=float(row["width"]),
                    height=float(row["height"]),
                ),
            )
        )
    if current:
        lines.append(" ".join(current))
    return OCRResult(text="\n".join(lines), words=tuple(words))


class TesseractOCR:
    """Tesseract-backed OCR collaborator.

    Parameters
    ----------
    psm:
        Page segmentation mode (0-13).
    min_confidence:
        Words below this normalized confidence are discarded.
    preprocess, deskew, binarize:
        OpenCV preprocessing toggles.
    auto_psm:
        Re-run with alternate PSMs when fewer than 5 tokens are found.
    tess_configs:
        Extra ``-c key=value`` Tesseract variables.
    """

    def __init__(
        self,
        psm: int = 3,
        min_confidence: float = 0.0,
        *,
        preprocess: bool = True,
        deskew: bool = False,
        binarize: bool = True,
        auto_psm: bool = True,
        tess_configs: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.psm = psm
        self.min_confidence = min_confidence
        self.preprocess = preprocess
        self.deskew = deskew
        self.binarize = binarize
        self.auto_psm = auto_psm
        self.tess_configs = tess_configs or {}

    def _config(self, psm: int) -> str:
        cfg = {"preserve_interword_spaces": 1}
        cfg.update(self.tess_configs)
        return f"--oem 1 --psm {psm}" + "".join(f" -c {k}={v}" for k, v in cfg.items())

    def _run(self, img: Image.Image, lang: str, psm: int) -> pd.DataFrame:
        raw = pytesseract.image_to_data(
            img,
            lang=lang,
            config=self._config(psm),
            output_type=pytesseract.Output.STRING,
        )
        return _clean_tsv(read_tsv(raw))

    def image_tsv(self, img: Image.Image, lang: str = "eng") -> pd.DataFrame:
        """Run Tesseract on a PIL image and return the word-level TSV."""
        if self.preprocess:
            img = _preprocess_image(img, deskew=self.deskew, binarize=self.binarize)
        tsv = self._run(img, lang, self.psm)
        if self.auto_psm and len(tsv) < 5:
            for alt in (6, 4, 11):
                if alt == self.psm:
                    continue
                try:
                    alt_df = self._run(img, lang, alt)
                except pytesseract.TesseractError as e:
                    logger.warning("Alternate PSM failed", extra={"psm": alt, "error": str(e)})
                    continue
                if len(alt_df) > len(tsv):
                    tsv = alt_df
        return tsv

    def recognize_image(
        self, img: Image.Image, language_hints: Optional[Iterable[str]] = None
    ) -> OCRResult:
        lang = tesseract_lang(language_hints)
        try:
            tsv = self.image_tsv(img, lang)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise DetectionFailure(f"Tesseract failed: {e}") from e
        result = tsv_to_result(tsv, self.min_confidence)
        logger.info("OCR complete", extra={"words": len(result.words), "lang": lang})
        return result

    def recognize(
        self, image_b64: str, language_hints: Optional[Iterable[str]] = None
    ) -> OCRResult:
        """OCR base64 image content; returns text plus word boxes."""
        return self.recognize_image(decode_image(image_b64), language_hints)


__all__ = ["TesseractOCR", "read_tsv", "tesseract_lang", "tsv_to_result", "TESSERACT_LANGS"]

"""Batch runner with multiprocessing concurrency.

Processes a directory or list of images and writes redacted images to an
output directory, preserving base filenames. Each worker call builds its own
detectors; a failing document is recorded and the batch carries on.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Tuple

from tqdm import tqdm

from .logging import get_logger
from .pipeline.config import RunConfig
from .pipeline.orchestration import IMAGE_EXTS, process_path

logger = get_logger(__name__)


def _one(args: Tuple[str, str, RunConfig]) -> Dict[str, Any]:
    inp, out_dir, cfg = args
    p = Path(inp)
    out_path = str(Path(out_dir) / f"{p.stem}.redacted{p.suffix.lower()}")
    res = process_path(inp, out_path, cfg)
    return {"input": inp, "output": out_path, "status": res.status}


def collect_inputs(input_dir: str) -> List[str]:
    return [
        str(fp)
        for fp in sorted(Path(input_dir).iterdir())
        if fp.is_file() and fp.suffix.lower() in IMAGE_EXTS
    ]


def run_batch(
    inputs: List[str], output_dir: str, cfg: RunConfig, workers: int = 2
) -> List[Dict[str, Any]]:
    """Process multiple inputs concurrently.

    Returns one entry per input: ``{"input", "output", "status"}`` on success,
    ``{"input", "error"}`` when the document failed.
    """
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    results: List[Dict[str, Any]] = []
    with ProcessPoolExecutor(max_workers=max(1, int(workers))) as ex:
        futs = {ex.submit(_one, (i, output_dir, cfg)): i for i in inputs}
        for f in tqdm(as_completed(futs), total=len(futs), desc="Redact"):
            inp = futs[f]
            try:
                results.append(f.result())
            except Exception as e:
                logger.error("Document failed", extra={"input": inp, "error": str(e)})
                results.append({"input": inp, "error": str(e)})
    return results


__all__ = ["run_batch", "collect_inputs"]

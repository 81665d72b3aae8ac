"""Audit logging for scanredact runs.

Produces an audit JSON alongside the redacted output including config
snapshot, hashes, version, a redaction summary, and an optional HMAC signature
when `SCANREDACT_HMAC_KEY` is present. The record never contains entity text.
"""

from __future__ import annotations

import getpass
import hashlib
import hmac
import os
import socket
import time
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import orjson

if TYPE_CHECKING:
    from .pipeline.config import DocumentResult


def _sha256_file(path: str | Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def audit_path_for(output_path: str | Path) -> Path:
    out = Path(output_path)
    return out.with_name(f"{out.stem}.audit.json")


def summarize(result: DocumentResult) -> Dict[str, Any]:
    """Counts only; labels and risk levels, no entity text."""
    by_label = Counter(e["label"] for e in result.entities)
    by_risk = Counter(e["riskLevel"] for e in result.entities)
    return {
        "status": result.status,
        "reason": result.reason,
        "total_redactions": len(result.entities),
        "critical_redactions": by_risk.get("CRITICAL", 0),
        "boxes": len(result.boxes),
        "alignment_misses": result.metrics.get("alignment_misses", 0),
        "by_label": dict(by_label),
        "by_risk": dict(by_risk),
    }


def write_audit(
    input_path: str,
    output_path: str,
    result: DocumentResult,
    cfg: Dict[str, Any],
    policy: Optional[Dict[str, Any]] = None,
    errors: Optional[List[str]] = None,
) -> Path:
    """Write an audit JSON next to the output image and return its path."""
    out = Path(output_path)
    inp = Path(input_path)
    audit_path = audit_path_for(out)
    from scanredact import __version__ as version

    record = {
        "version": version,
        "timestamp": int(time.time()),
        "user": getpass.getuser(),
        "host": socket.gethostname(),
        "input": {
            "path": str(inp),
            "sha256": _sha256_file(inp),
        },
        "output": {
            "path": str(out),
            "sha256": _sha256_file(out) if out.exists() else None,
        },
        "config": cfg,
        "policy": policy,
        "summary": summarize(result),
        "errors": errors or [],
    }

    # Optional HMAC signature for tamper detection
    key = os.environ.get("SCANREDACT_HMAC_KEY")
    data_bytes = orjson.dumps(record)
    if key:
        sig = hmac.new(key.encode("utf-8"), data_bytes, hashlib.sha256).hexdigest()
        record["hmac"] = {
            "alg": "HMAC-SHA256",
            "key_hint": "env:SCANREDACT_HMAC_KEY",
            "value": sig,
        }

    audit_path.write_bytes(orjson.dumps(record, option=orjson.OPT_INDENT_2))
    return audit_path


__all__ = ["write_audit", "summarize", "audit_path_for"]

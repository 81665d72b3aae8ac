"""scanredact

Redaction toolkit for scanned documents: pattern + NER detection, span
reconciliation, text redaction and projection of redacted spans back onto
OCR word boxes. See ``scanredact.pipeline`` for the composable pipeline APIs
and ``scanredact.cli`` for the command-line entrypoint.
"""

__all__ = [
    "models",
    "errors",
    "ocr",
    "regex_detect",
    "ner_detect",
    "reconcile",
    "text_redact",
    "align",
    "boxes",
    "redact",
    "policy",
    "audit",
    "batch",
    "logging",
    "pipeline",
    "cli",
]

__version__ = "0.1.0"

"""Composable building blocks for the scanredact pipeline."""

from .config import DocumentResult, RunConfig
from .detection import Candidates, detect_candidates, resolve_final_entities
from .orchestration import process_document, process_path, process_text
from .rendering import render_document

__all__ = [
    "RunConfig",
    "DocumentResult",
    "Candidates",
    "detect_candidates",
    "resolve_final_entities",
    "render_document",
    "process_text",
    "process_document",
    "process_path",
]

"""Command-line interface for scanredact.

Provides:
- `run`: Redact one scanned image and write image, metadata and audit files.
- `text`: Redact a plain-text file and print the result.
- `batch`: Redact every image in a directory with parallel workers.

Options left unset fall back to the ``SCANREDACT_*`` environment, then to the
``RunConfig`` defaults.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich import print

from .batch import collect_inputs, run_batch
from .errors import RedactionError
from .ner_detect import build_model_adapter
from .pipeline.config import RunConfig
from .pipeline.orchestration import meta_path_for, process_path, process_text
from .policy import load_policy

app = typer.Typer(add_completion=False, help="scanredact: scanned-document PII redactor")


def _config(**given: Any) -> RunConfig:
    overrides: Dict[str, Any] = {k: v for k, v in given.items() if v is not None}
    return RunConfig.from_env(**overrides)


@app.command()
def run(
    input: str = typer.Option(..., "--input", "-i", help="Input image path"),
    output: str = typer.Option(..., "--output", "-o", help="Output redacted image path"),
    lang: Optional[str] = typer.Option(None, help="Document language (ISO-639-1) [default: en]"),
    confidence: Optional[float] = typer.Option(
        None, help="Minimum entity confidence [default: 0.7]"
    ),
    policy: Optional[str] = typer.Option(
        None, help="Policy name or YAML/JSON path (default, financial, legal)"
    ),
    visual_pii: Optional[str] = typer.Option(
        None, help="JSON list of visual-PII detections with bbox=[x1,y1,x2,y2]"
    ),
    ner_backend: Optional[str] = typer.Option(
        None, help="NER backend: spacy | transformers [default: spacy]"
    ),
    ner_model: Optional[str] = typer.Option(None, help="NER model name (or 'auto')"),
    box_inflate: Optional[int] = typer.Option(None, help="Inflate redaction boxes (px) [default: 2]"),
    preview: Optional[bool] = typer.Option(
        None, "--preview/--no-preview", help="Write a QA preview with box outlines"
    ),
    use_model: Optional[bool] = typer.Option(
        None, "--use-model/--no-model", help="Enable NER model detection"
    ),
):
    """Redact PII from a scanned image.

    Parameters
    ----------
    input:
        Input image (PNG, JPEG, TIFF, BMP).
    output:
        Output path for the redacted image.
    lang:
        Language hint for OCR and NER model selection.
    confidence:
        Entities below this confidence are discarded.
    policy:
        Builtin policy name or path to a policy file.
    visual_pii:
        Pre-computed signature/stamp detections to paint over as well.
    """
    cfg = _config(
        lang=lang,
        confidence_threshold=confidence,
        policy_path=policy,
        ner_backend=ner_backend,
        ner_model=ner_model,
        box_inflation_px=box_inflate,
        generate_previews=preview,
        use_model=use_model,
    )
    try:
        res = process_path(input, output, cfg, visual_pii_path=visual_pii)
    except (RedactionError, FileNotFoundError, ValueError) as e:
        print(f"[red]Failed:[/red] {getattr(e, 'reason', e)}")
        raise SystemExit(1)
    if res.status == "empty":
        print(f"[yellow]Nothing redacted:[/yellow] {res.reason}")
    else:
        print(f"[green]Redacted image:[/green] {output}")
        print(
            f"[green]Entities:[/green] {res.metrics['total_entities']} "
            f"(alignment misses: {res.metrics['alignment_misses']})"
        )
    print(f"[green]Details:[/green] {meta_path_for(output)}")


@app.command()
def text(
    input: str = typer.Option(..., "--input", "-i", help="Input text file"),
    lang: Optional[str] = typer.Option(None, help="Text language (ISO-639-1) [default: en]"),
    confidence: Optional[float] = typer.Option(
        None, help="Minimum entity confidence [default: 0.7]"
    ),
    policy: Optional[str] = typer.Option(None, help="Policy name or YAML/JSON path"),
    ner_backend: Optional[str] = typer.Option(
        None, help="NER backend: spacy | transformers [default: spacy]"
    ),
    use_model: Optional[bool] = typer.Option(
        None, "--use-model/--no-model", help="Enable NER model detection"
    ),
):
    """Redact a plain-text file and print the redacted text."""
    cfg = _config(
        lang=lang,
        confidence_threshold=confidence,
        policy_path=policy,
        ner_backend=ner_backend,
        use_model=use_model,
    )
    try:
        model = build_model_adapter(cfg) if cfg.use_model else None
        res = process_text(
            Path(input).read_text(encoding="utf-8"),
            cfg,
            model=model,
            policy=load_policy(cfg.policy_path),
        )
    except (RedactionError, FileNotFoundError, ValueError) as e:
        print(f"[red]Failed:[/red] {getattr(e, 'reason', e)}")
        raise SystemExit(1)
    typer.echo(res.redacted_text)


@app.command()
def batch(
    input_dir: str = typer.Option(..., help="Input directory of images"),
    output_dir: str = typer.Option(..., help="Output directory for redacted images"),
    workers: int = typer.Option(2, help="Concurrent workers"),
    lang: Optional[str] = typer.Option(None, help="Document language (ISO-639-1) [default: en]"),
    confidence: Optional[float] = typer.Option(
        None, help="Minimum entity confidence [default: 0.7]"
    ),
    policy: Optional[str] = typer.Option(None, help="Policy name or YAML/JSON path"),
    ner_backend: Optional[str] = typer.Option(
        None, help="NER backend: spacy | transformers [default: spacy]"
    ),
    ner_model: Optional[str] = typer.Option(None, help="NER model name (or 'auto')"),
):
    """Batch process a directory of images concurrently."""
    files = collect_inputs(input_dir) if Path(input_dir).is_dir() else []
    if not files:
        print("[red]No inputs found[/red]")
        raise SystemExit(1)
    cfg = _config(
        lang=lang,
        confidence_threshold=confidence,
        policy_path=policy,
        ner_backend=ner_backend,
        ner_model=ner_model,
    )
    results = run_batch(files, output_dir, cfg, workers=workers)
    failed = [r for r in results if "error" in r]
    for r in failed:
        print(f"[red]Failed:[/red] {r['input']}: {r['error']}")
    print(f"[green]Completed {len(results) - len(failed)}/{len(results)} files[/green]")
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    app()

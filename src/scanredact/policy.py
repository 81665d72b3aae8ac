"""Selection policy management.

Provides an allow/deny policy over PII labels with per-label redaction-policy
overrides, YAML/JSON loaders and a `should_redact` decision helper. Policies
are applied after reconciliation and can be packaged as YAML files and
selected at runtime via `RunConfig.policy_path`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import orjson
import yaml

from .models import Entity, RedactionPolicy


@dataclass
class Policy:
    """PII selection policy.

    Attributes
    ----------
    name:
        Human-friendly identifier for the policy.
    allowed_categories:
        If set, only these labels are redacted; all others are ignored.
    denied_categories:
        Labels explicitly not redacted (overrides allowed when both set).
    default_redact:
        Default decision when a label is not found in either list.
    overrides:
        Label -> redaction policy replacing the detector's choice.
    metadata:
        Free-form metadata (e.g., version, source, jurisdiction).
    """

    name: str = "default"
    allowed_categories: Optional[List[str]] = None
    denied_categories: Optional[List[str]] = None
    default_redact: bool = True
    overrides: Dict[str, RedactionPolicy] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def should_redact(self, category: str) -> bool:
        """Return True if the given label should be redacted under this policy."""
        c = (category or "").upper()
        if self.denied_categories and c in set(x.upper() for x in self.denied_categories):
            return False
        if self.allowed_categories is not None:
            return c in set(x.upper() for x in self.allowed_categories)
        return self.default_redact

    def apply(self, entities: Iterable[Entity]) -> List[Entity]:
        """Drop unredacted labels and return new entities for overridden ones."""
        out: List[Entity] = []
        for e in entities:
            if not self.should_redact(e.label.value):
                continue
            override = self.overrides.get(e.label.value)
            if override is not None and override is not e.redaction_policy:
                e = replace(e, redaction_policy=override)
            out.append(e)
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "allowed_categories": self.allowed_categories,
            "denied_categories": self.denied_categories,
            "default_redact": self.default_redact,
            "overrides": {k: v.value for k, v in self.overrides.items()},
            "metadata": self.metadata,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any], name: str = "default") -> "Policy":
        overrides = {
            str(k).upper(): RedactionPolicy(str(v).upper())
            for k, v in (data.get("overrides") or {}).items()
        }
        return Policy(
            name=data.get("name", name),
            allowed_categories=data.get("allowed_categories"),
            denied_categories=data.get("denied_categories"),
            default_redact=bool(data.get("default_redact", True)),
            overrides=overrides,
            metadata=data.get("metadata") or {},
        )

    @staticmethod
    def from_file(path: Union[str, Path, Traversable]) -> "Policy":
        text: str
        stem: str
        suffix: str

        if isinstance(path, Traversable):
            text = path.read_text(encoding="utf-8")
            stem = Path(path.name).stem
            suffix = Path(path.name).suffix.lower()
        else:
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"Policy file not found: {path}")
            text = p.read_text(encoding="utf-8")
            stem = p.stem
            suffix = p.suffix.lower()
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = orjson.loads(text)
        return Policy.from_dict(data, name=stem)


def find_builtin_policy(name: str) -> Optional[Traversable]:
    """Locate a packaged builtin policy by name."""
    ref = resources.files("scanredact").joinpath("data", "policies", f"{name}.yaml")
    if ref.is_file():
        return ref
    return None


def load_policy(name_or_path: Optional[str]) -> Policy:
    """Load a builtin policy by name or a policy file by path.

    ``None`` gives the permissive default policy.
    """
    if not name_or_path:
        return Policy()
    builtin = find_builtin_policy(name_or_path)
    if builtin is not None:
        return Policy.from_file(builtin)
    return Policy.from_file(name_or_path)


__all__ = ["Policy", "find_builtin_policy", "load_policy"]

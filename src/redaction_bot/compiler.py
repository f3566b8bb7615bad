"""Change compiler interface and loader."""

from __future__ import annotations

from dataclasses import dataclass, field
import importlib

from .models import CandidateBatch, EditOperation, Redaction
from .source import SourceSnapshot


@dataclass(frozen=True)
class CompileResult:
    changeset: list[EditOperation] = field(default_factory=list)
    redactions: list[Redaction] = field(default_factory=list)


class ChangeCompiler:
    """Turns a batch of candidate ids into edits and redactions."""

    def compile(self, snapshot: SourceSnapshot, batch: CandidateBatch) -> CompileResult:
        raise NotImplementedError


def load_change_compiler(reference: str) -> ChangeCompiler:
    module_name, sep, attr = str(reference or "").partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"change_compiler must look like 'package.module:factory', got {reference!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ValueError(f"change_compiler factory not found: {reference}")
    compiler = factory()
    if not hasattr(compiler, "compile"):
        raise ValueError(f"change_compiler factory returned no compiler: {reference}")
    return compiler

"""Explicit run context threaded through the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import BotProfile
from .models import RedactionMode
from .summary import RunSummary


@dataclass(frozen=True)
class RunOptions:
    dry_run: bool = False
    verbose: bool = False
    ignore_regions: bool = False
    redaction_id_hidden: int = 1
    redaction_id_visible: int = 2


@dataclass
class RunContext:
    profile: BotProfile
    options: RunOptions = field(default_factory=RunOptions)
    summary: RunSummary = field(default_factory=RunSummary)

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def redaction_id_for(self, mode: RedactionMode) -> int:
        if mode == RedactionMode.VISIBLE:
            return self.options.redaction_id_visible
        return self.options.redaction_id_hidden

    def exit_code(self) -> int:
        return self.summary.exit_code(dry_run=self.options.dry_run)

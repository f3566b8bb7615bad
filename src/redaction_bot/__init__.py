"""Redaction bot package."""

from .runner import BatchOutcome, RedactionBotRunner
from .summary import RunSummary

__all__ = ["RedactionBotRunner", "BatchOutcome", "RunSummary"]

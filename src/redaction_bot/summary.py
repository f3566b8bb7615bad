"""Run-level counters and exit status."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .models import CandidateBatch


@dataclass
class RunSummary:
    changeset_success: int = 0
    changeset_failures: int = 0
    candidate_success: int = 0
    candidate_failures: int = 0
    region_failed: bool = False

    def record_batch_success(self, batch: CandidateBatch) -> None:
        self.candidate_success += batch.total

    def record_batch_failure(self, batch: CandidateBatch) -> None:
        self.candidate_failures += batch.total

    @property
    def has_failures(self) -> bool:
        return self.changeset_failures > 0 or self.candidate_failures > 0 or self.region_failed

    def exit_code(self, *, dry_run: bool) -> int:
        # a dry run never reports success, nothing was committed
        if dry_run or self.has_failures:
            return 1
        return 0

    def log(self, logger: logging.Logger) -> None:
        logger.info("Summary")
        logger.info("%d successful changesets", self.changeset_success)
        logger.info("%d successful candidates", self.candidate_success)
        logger.info("%d failed changesets", self.changeset_failures)
        logger.info("%d failed candidates", self.candidate_failures)
        if self.region_failed:
            logger.info("region failed")

"""Redaction bot orchestration: claim a region, walk its areas, process entity batches."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .areas import Area, AreaWorkList
from .candidates import CandidateSource, CandidateStore, MapCandidateSource, TrackerCandidateSource
from .compiler import ChangeCompiler
from .context import RunContext
from .errors import (
    AreaSplitRequired,
    ChangesetError,
    InvalidRedactionIdsError,
    NoWorkError,
    RedactionFailedError,
)
from .models import CandidateBatch, EditOperation, EntityKind, Redaction, Region
from .osmchange import render_osmchange
from .remote import RemoteEditService
from .scheduler import RegionScheduler
from .source import SourceSnapshot
from .tracker import TrackerStore, chunked

DRY_RUN_CHANGESET_ID = "0"


@dataclass(frozen=True)
class BatchOutcome:
    succeeded: bool
    chunks_uploaded: int = 0
    reason: str | None = None


def build_candidate_source(
    context: RunContext,
    store: CandidateStore,
    remote: RemoteEditService,
) -> CandidateSource:
    if context.profile.candidate_source == "map":
        return MapCandidateSource(store, remote)
    return TrackerCandidateSource(store)


class RedactionBotRunner:
    def __init__(
        self,
        context: RunContext,
        *,
        tracker: TrackerStore,
        remote: RemoteEditService,
        compiler: ChangeCompiler,
        snapshot: SourceSnapshot,
        candidate_source: CandidateSource | None = None,
    ) -> None:
        self.logger = logging.getLogger(__name__)
        self.context = context
        self.profile = context.profile
        self.remote = remote
        self.compiler = compiler
        self.snapshot = snapshot
        self.scheduler = RegionScheduler(tracker, dry_run=context.dry_run)
        self.candidates = CandidateStore(tracker, dry_run=context.dry_run)
        self.candidate_source = candidate_source or build_candidate_source(context, self.candidates, remote)

    def run(self) -> int:
        """Process one region (or one direct batch) and return the process exit code."""
        try:
            if self.context.dry_run:
                self.logger.info("RB: no actions will be taken")
            else:
                self.validate_redaction_ids()
            if self.context.options.ignore_regions:
                self.process_candidates_directly()
            else:
                region = self.scheduler.claim_next()
                if region is None:
                    self.logger.error("RB: no region to process")
                    raise NoWorkError("No region to process")
                self.process_region(region)
        finally:
            self.context.summary.log(self.logger)
        if self.context.dry_run:
            self.logger.warning("RB: dry run, no actions committed")
        return self.context.exit_code()

    def validate_redaction_ids(self) -> None:
        options = self.context.options
        wanted = {options.redaction_id_hidden, options.redaction_id_visible}
        found = self.snapshot.existing_redaction_ids(wanted)
        if found != wanted:
            self.logger.error(
                "RB: invalid redaction ids (hidden=%s, visible=%s, missing=%s)",
                options.redaction_id_hidden,
                options.redaction_id_visible,
                sorted(wanted - found),
            )
            raise InvalidRedactionIdsError(f"INVALID_REDACTION_IDS:{sorted(wanted - found)}")

    def process_candidates_directly(self) -> BatchOutcome:
        # a bounded batch keeps conflicts with mappers down
        self.logger.info("RB: ignoring the regions")
        limit = self.profile.ignore_regions_batch_size
        batch = CandidateBatch.of(
            nodes=self.candidates.list_unprocessed(EntityKind.NODE, limit=limit),
            ways=self.candidates.list_unprocessed(EntityKind.WAY, limit=limit),
            relations=self.candidates.list_unprocessed(EntityKind.RELATION, limit=limit),
        )
        if batch.is_empty():
            self.logger.error("RB: no entities to process")
            raise NoWorkError("No entities to process")
        return self.process_entities(batch)

    def process_region(self, region: Region) -> None:
        self.logger.info("RB: processing region (region_id=%s, lat=%s, lon=%s)", region.id, region.lat, region.lon)
        areas = AreaWorkList(
            Area.for_region(region),
            max_request_area=self.profile.max_request_area,
            min_split_area=self.profile.min_split_area,
        )
        try:
            while True:
                area = areas.next_area()
                if area is None:
                    break
                self.logger.info("RB: processing area %s", area)
                try:
                    batch = self.candidate_source.candidates_for(area)
                except AreaSplitRequired:
                    areas.split(area)
                    continue
                if batch.is_empty():
                    self.logger.debug("RB: no candidates in area %s", area)
                    continue
                self.process_entities(batch, region)
        except Exception as exc:
            self.logger.exception("RB: region aborted (region_id=%s): %s", region.id, exc)
            self._fail_region(region)
            raise
        self.scheduler.mark_complete(region)

    def process_entities(self, batch: CandidateBatch, region: Region | None = None) -> BatchOutcome:
        """Compile, upload and redact one batch.

        Changeset failures are contained here: the batch (and its region) is
        marked failed and a failed outcome is returned. Redaction failures are
        not caught and end the run.
        """
        self.logger.debug("RB: processing entities %s", batch.describe())
        result = self.compiler.compile(self.snapshot, batch)

        uploaded = 0
        if not result.changeset:
            self.logger.info("RB: no changeset to apply")
        else:
            chunks = list(chunked(result.changeset, self.profile.max_changeset_elements))
            try:
                for chunk in chunks:
                    self._upload_chunk(chunk)
                    uploaded += 1
            except ChangesetError as exc:
                self.logger.error(
                    "RB: changeset chunk %d/%d failed, abandoning batch: %s",
                    uploaded + 1,
                    len(chunks),
                    exc,
                )
                self.context.summary.changeset_failures += 1
                if region is not None:
                    self._fail_region(region)
                self._mark_failed(batch)
                return BatchOutcome(succeeded=False, chunks_uploaded=uploaded, reason=str(exc))

        self._apply_redactions(result.redactions)
        self._mark_succeeded(batch)
        return BatchOutcome(succeeded=True, chunks_uploaded=uploaded)

    def _upload_chunk(self, chunk: list[EditOperation]) -> None:
        if self.context.dry_run:
            payload = render_osmchange(chunk, DRY_RUN_CHANGESET_ID)
            self.logger.debug("RB: dry run, changeset not sent:\n%s", payload)
            return
        changeset_id = self.remote.open_changeset(self.profile.changeset_tags)
        payload = render_osmchange(chunk, changeset_id)
        self.logger.debug("RB: changeset %s:\n%s", changeset_id, payload)
        self.remote.upload_changeset(changeset_id, payload)
        self.context.summary.changeset_success += 1

    def _apply_redactions(self, redactions: list[Redaction]) -> None:
        self.logger.debug("RB: creating redactions %d", len(redactions))
        for redaction in redactions:
            entity = redaction.entity
            self.logger.info(
                "RB: redaction for %s %s v%s %s",
                entity.kind.value,
                entity.id,
                entity.version,
                redaction.mode.value,
            )
            if entity.version is None:
                raise RedactionFailedError(f"REDACTION_VERSION_MISSING:{entity.kind.value}/{entity.id}")
            if self.context.dry_run:
                continue
            self.remote.apply_redaction(entity, self.context.redaction_id_for(redaction.mode))

    def _fail_region(self, region: Region) -> None:
        self.scheduler.mark_failed(region)
        self.context.summary.region_failed = True

    def _mark_succeeded(self, batch: CandidateBatch) -> None:
        self.logger.debug("RB: marking entities succeeded %s", batch.describe())
        self._log_ids(logging.DEBUG, batch)
        self.context.summary.record_batch_success(batch)
        for kind in EntityKind:
            self.candidates.mark_processed(kind, batch.ids_for(kind))

    def _mark_failed(self, batch: CandidateBatch) -> None:
        self.logger.error("RB: marking entities as failed %s", batch.describe())
        self._log_ids(logging.ERROR, batch)
        self.context.summary.record_batch_failure(batch)
        for kind in EntityKind:
            self.candidates.mark_failed(kind, batch.ids_for(kind))

    def _log_ids(self, level: int, batch: CandidateBatch) -> None:
        for kind in EntityKind:
            ids = sorted(batch.ids_for(kind))
            self.logger.log(level, "RB: %ss: %s", kind.value, ",".join(str(value) for value in ids))

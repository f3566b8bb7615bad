"""Redact a long run of versions of a single relation.

Some relations carry hundreds of versions that all need the same redaction;
walking them through the region loop would take days, so this tool issues the
redactions directly.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .cli import build_remote
from .config import load_profile
from .errors import RedactionFailedError
from .logging_utils import configure_run_logging
from .models import EntityKind, EntityRef
from .remote import RemoteEditService

logger = logging.getLogger(__name__)


def redact_versions(
    remote: RemoteEditService,
    relation_id: int,
    from_version: int,
    to_version: int,
    redaction_id: int,
) -> int:
    """Redact versions ``[from_version, to_version)``; the first failure stops the walk."""
    count = 0
    for version in range(from_version, to_version):
        entity = EntityRef(kind=EntityKind.RELATION, id=relation_id, version=version)
        logger.info("RB: redaction for relation %s v%s hidden", relation_id, version)
        remote.apply_redaction(entity, redaction_id)
        count += 1
    return count


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Special mega-relation redaction.")
    parser.add_argument("--config", default="bot.yaml", help="Path to the bot profile YAML")
    parser.add_argument("--relation-id", type=int, required=True)
    parser.add_argument("--from-version", type=int, required=True)
    parser.add_argument("--to-version", type=int, required=True, help="Exclusive; the current version stays visible")
    parser.add_argument("--redaction-id", type=int, default=1)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)
    if args.from_version < 1 or args.to_version <= args.from_version:
        parser.error("--from-version must be >= 1 and below --to-version")
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    profile = load_profile(Path(args.config))
    configure_run_logging(profile.log_dir, verbose=args.verbose)
    remote = build_remote(profile)
    try:
        count = redact_versions(remote, args.relation_id, args.from_version, args.to_version, args.redaction_id)
    except RedactionFailedError as exc:
        print(f"Failed to redact element: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    logger.info("RB: redacted %d versions of relation %s", count, args.relation_id)


if __name__ == "__main__":
    main()

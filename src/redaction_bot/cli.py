"""CLI for running the redaction bot against a live database."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .compiler import load_change_compiler
from .config import BotProfile, load_profile
from .context import RunContext, RunOptions
from .errors import FatalRunError
from .logging_utils import configure_run_logging
from .remote import RemoteEditService
from .runner import RedactionBotRunner
from .source import open_source_snapshot
from .tracker import TrackerStore

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the redaction bot on a standard rails port database.",
    )
    parser.add_argument("--config", default="bot.yaml", help="Path to the bot profile YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Output information about the actions being taken")
    parser.add_argument(
        "-i",
        "--ignore-regions",
        action="store_true",
        help="Ignore the list of regions, and just process the candidates directly",
    )
    parser.add_argument("--redaction-hidden", type=int, default=1, help="Redaction id for hidden redactions")
    parser.add_argument("--redaction-visible", type=int, default=2, help="Redaction id for visible redactions")
    parser.add_argument(
        "-n",
        "--no-action",
        action="store_true",
        help="Read and compile everything, but do not commit any change",
    )
    return parser.parse_args(argv)


def build_remote(profile: BotProfile) -> RemoteEditService:
    return RemoteEditService(
        api_site=profile.api_site,
        access_token=profile.access_token,
        api_prefix=profile.api_prefix,
        timeout_seconds=profile.timeout_seconds,
        max_map_attempts=profile.max_map_attempts,
        throttle_backoff_seconds=profile.throttle_backoff_seconds,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    profile = load_profile(Path(args.config))
    configure_run_logging(profile.log_dir, verbose=args.verbose)
    if not profile.change_compiler:
        raise SystemExit("change_compiler must be set in the bot profile")
    options = RunOptions(
        dry_run=args.no_action,
        verbose=args.verbose,
        ignore_regions=args.ignore_regions,
        redaction_id_hidden=args.redaction_hidden,
        redaction_id_visible=args.redaction_visible,
    )
    context = RunContext(profile=profile, options=options)
    compiler = load_change_compiler(profile.change_compiler)
    tracker = TrackerStore(profile.tracker_dsn)
    remote = build_remote(profile)
    logger.debug("RB: connecting to the database")
    try:
        with open_source_snapshot(profile.source_dsn) as snapshot:
            runner = RedactionBotRunner(
                context,
                tracker=tracker,
                remote=remote,
                compiler=compiler,
                snapshot=snapshot,
            )
            exit_code = runner.run()
    except FatalRunError as exc:
        logger.error("RB: run aborted: %s", exc)
        print(f"Run aborted: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()

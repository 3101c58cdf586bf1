"""Command-line entry point.

Walks a source tree, re-encodes videos to AV1 with ffmpeg (hardware encoder
first, CPU encoder as fallback) and copies every other file verbatim.

Exit codes: 0 on success (or when --force is declined), 1 when any item
failed or the run could not start, 2 on invalid arguments, 130 on interrupt.
"""

import argparse
import logging
import signal
import sys
import time
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from transav1.batch.discovery import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS
from transav1.batch.driver import BatchDriver, BatchReport
from transav1.batch.maintenance import force_clear_destination, remove_restart_files
from transav1.config import Settings, get_settings
from transav1.execution.command import resolve_ffmpeg
from transav1.execution.engine import ExecutionEngine
from transav1.execution.priority import PriorityLevel
from transav1.logging_setup import add_log_file, setup_logging
from transav1.models.errors import TransAV1Error
from transav1.models.item import ProcessingMode
from transav1.processing.state_machine import ItemProcessor
from transav1.storage.scratch import ScratchArea

logger = logging.getLogger("transav1.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transav1",
        description=(
            "Convert every video under a directory to AV1 and copy all other files. "
            f"Videos ({', '.join(sorted(VIDEO_EXTENSIONS))}) are encoded with the "
            "hardware encoder first and retried with the CPU encoder on failure "
            "(not on timeout); audio is converted to AAC. Images "
            f"({', '.join(sorted(IMAGE_EXTENSIONS))}) and other files are copied as-is."
        ),
    )
    parser.add_argument(
        "-s", "--source", required=True, help="source directory (or one video file)"
    )
    parser.add_argument("-o", "--output", required=True, help="output directory")
    parser.add_argument("--ffmpeg-dir", help="directory containing ffmpeg (default: search PATH)")
    parser.add_argument(
        "--priority",
        choices=[p.value for p in PriorityLevel],
        type=str.lower,
        help="encoder process priority (default: idle)",
    )
    parser.add_argument("--hwenc", help="primary (hardware) encoder name (default: av1_nvenc)")
    parser.add_argument(
        "--cpuenc", help="fallback (CPU) encoder name, empty to disable (default: libsvtav1)"
    )
    parser.add_argument(
        "--hwopt",
        help='extra ffmpeg options for the primary encoder (default: "-cq 25 -preset p5")',
    )
    parser.add_argument(
        "--cpuopt",
        help='extra ffmpeg options for the fallback encoder (default: "-crf 28 -preset 7")',
    )
    parser.add_argument(
        "--timeout", type=int, help="per-encode timeout in seconds, 0 disables (default: 7200)"
    )
    parser.add_argument(
        "--quick",
        action="store_true",
        default=None,
        help="direct mode: rename the source in place instead of copying it to scratch",
    )
    parser.add_argument(
        "--log", action="store_true", default=None, help="also write a log file into the output dir"
    )
    parser.add_argument("--debug", action="store_true", default=None, help="verbose logging")
    parser.add_argument(
        "--restart",
        action="store_true",
        help="delete failure markers and zero-byte videos in the output dir before starting",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="delete the output dir entirely (after confirmation) before starting",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Settings with command-line values overriding environment defaults."""
    overrides = {
        "ffmpeg_dir": args.ffmpeg_dir,
        "priority": args.priority,
        "primary_encoder": args.hwenc,
        "fallback_encoder": args.cpuenc,
        "primary_options": args.hwopt,
        "fallback_options": args.cpuopt,
        "timeout_seconds": args.timeout,
        "debug": args.debug,
        "log_to_file": args.log,
    }
    if args.quick:
        overrides["processing_mode"] = ProcessingMode.DIRECT
    return get_settings(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    started_at = datetime.now()
    started = time.monotonic()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValidationError as e:
        parser.error(f"invalid settings:\n{e}")

    source = Path(args.source).expanduser().absolute()
    dest = Path(args.output).expanduser().absolute()
    setup_logging(settings.debug)

    logger.info("Source: %s", source)
    logger.info("Output: %s", dest)
    if source == dest:
        logger.error("Error: source and output are the same directory.")
        return 1

    previous_handler = signal.signal(signal.SIGTERM, _terminate)
    try:
        report = _run(settings, source, dest, args.restart, args.force, started_at)
    except TransAV1Error as e:
        logger.error("Error: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted; scratch files removed.")
        return 130
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    if report is None:
        return 0
    logger.info("Total processing time: %ds", round(time.monotonic() - started))
    logger.info(
        "Published: %d, skipped: %d, failed: %d, copied: %d",
        report.published,
        report.skipped,
        report.failed,
        report.copied,
    )
    if not report.ok:
        for line in report.summary(settings.error_summary_limit).lines():
            logger.info(line)
        return 1
    logger.info("All processing completed successfully.")
    return 0


def _run(
    settings: Settings,
    source: Path,
    dest: Path,
    restart: bool,
    force: bool,
    started_at: datetime,
) -> BatchReport | None:
    ffmpeg = resolve_ffmpeg(settings.ffmpeg_dir)
    logger.info("Using ffmpeg: %s", ffmpeg)

    if not source.exists():
        raise TransAV1Error(f"Source '{source}' does not exist", component="cli")
    single_file = not source.is_dir()

    if dest.exists() and not dest.is_dir():
        raise TransAV1Error(f"Output '{dest}' is not a directory", component="cli")
    if not dest.exists():
        if single_file:
            raise TransAV1Error(
                f"Output directory '{dest}' must exist in single-file mode", component="cli"
            )
        logger.info("Output directory '%s' does not exist; it will be created.", dest)

    if force and not force_clear_destination(dest):
        return None
    try:
        dest.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TransAV1Error(f"Cannot create output directory {dest}: {e}", component="cli")
    if settings.log_to_file:
        add_log_file(dest, started_at, settings.debug)
    if restart:
        remove_restart_files(dest)

    with ScratchArea(prefix=settings.scratch_prefix) as scratch:
        engine = ExecutionEngine(settings, ffmpeg)
        driver = BatchDriver(settings, ItemProcessor(settings, engine, scratch))
        if single_file:
            return driver.run_single(source, dest)
        return driver.run_directory(source, dest)


def _terminate(signum, frame) -> None:
    # Unwind normally so the running encoder is killed and scratch is removed.
    raise KeyboardInterrupt(f"signal {signum}")


if __name__ == "__main__":
    sys.exit(main())

"""Batch driver — feeds items to the state machine and aggregates errors."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from transav1.batch.copier import copy_verbatim
from transav1.batch.discovery import (
    copy_output_path,
    is_video,
    scan_source,
    video_output_path,
)
from transav1.config import Settings
from transav1.models.errors import DiscoveryError, ErrorSummary, TransAV1Error
from transav1.models.item import ItemStage, ProcessingItem
from transav1.processing.state_machine import ItemProcessor

logger = logging.getLogger(__name__)


class BatchReport(BaseModel):
    """Counts and error messages of one run."""

    published: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    copied: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self, limit: int = 20) -> ErrorSummary:
        return ErrorSummary(errors=self.errors, limit=limit)


class BatchDriver:
    """Processes a source tree (or one file) sequentially."""

    def __init__(self, settings: Settings, processor: ItemProcessor):
        self.settings = settings
        self.processor = processor

    def run_directory(self, source_root: Path, dest_root: Path) -> BatchReport:
        """Copy non-video files, then encode every video under ``source_root``."""
        report = BatchReport()
        logger.info("--- Directory mode started ---")
        inventory = scan_source(source_root)

        logger.info("--- Image copy started ---")
        self._copy_all(inventory.images, source_root, dest_root, report, "image")
        logger.info("--- Other file copy started ---")
        self._copy_all(inventory.others, source_root, dest_root, report, "other file")

        logger.info("--- Video encoding started ---")
        total = len(inventory.videos)
        if not total:
            logger.info("No video files to encode.")
        for index, video in enumerate(inventory.videos, start=1):
            logger.info("--- Video encode (%d/%d): %s ---", index, total, video.name)
            try:
                output = video_output_path(
                    video, source_root, dest_root, self.settings.output_suffix
                )
            except DiscoveryError as e:
                logger.error("Error: %s", e)
                report.errors.append(str(e))
                report.failed += 1
                continue
            self._process_one(video, output, report)
        logger.info("--- Directory mode finished ---")
        return report

    def run_single(self, source_file: Path, dest_root: Path) -> BatchReport:
        """Encode one video file into ``dest_root``."""
        if not is_video(source_file):
            raise DiscoveryError(
                f"Input file '{source_file}' is not a supported video file",
                details={"source": str(source_file)},
            )
        if not dest_root.is_dir():
            raise DiscoveryError(
                f"Output directory '{dest_root}' must exist in single-file mode",
                details={"dest": str(dest_root)},
            )
        report = BatchReport()
        logger.info("--- Single file mode started ---")
        output = video_output_path(
            source_file, source_file.parent, dest_root, self.settings.output_suffix
        )
        logger.info("Target: %s -> %s", source_file, output)
        self._process_one(source_file, output, report)
        logger.info("--- Single file mode finished ---")
        return report

    def _process_one(self, source: Path, output: Path, report: BatchReport) -> None:
        item = ProcessingItem(source_path=source, final_output_path=output)
        try:
            outcome = self.processor.process(item)
        except TransAV1Error as e:
            if e.component != "processing":
                logger.error("Error: %s", e)
            report.errors.append(f"{source.name}: {e}")
            report.failed += 1
            return
        if outcome == ItemStage.SKIPPED:
            report.skipped += 1
        else:
            report.published += 1

    def _copy_all(
        self, files: list[Path], source_root: Path, dest_root: Path, report: BatchReport, what: str
    ) -> None:
        if not files:
            logger.info("No %s files to copy.", what)
            return
        logger.info("Copying %d %s file(s)...", len(files), what)
        for path in files:
            try:
                destination = copy_output_path(path, source_root, dest_root)
                if copy_verbatim(path, destination):
                    report.copied += 1
            except TransAV1Error as e:
                message = f"{what} copy failed ({path.name}): {e}"
                logger.error("Error: %s", message)
                report.errors.append(message)

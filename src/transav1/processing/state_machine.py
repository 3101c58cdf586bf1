"""Item processing state machine — one video through encode, fallback and publish.

Each handler performs one state's work and returns the next ``ItemStage``;
``ItemProcessor.process`` drives the loop until a terminal stage is reached.
"""

import logging
import os
from collections.abc import Callable

from transav1.config import Settings
from transav1.execution.engine import ExecutionEngine
from transav1.models.encode import EncodeAttempt, EncodeResult
from transav1.models.errors import FilesystemError, ProcessingError
from transav1.models.item import ItemStage, ItemState, ProcessingItem, ProcessingMode
from transav1.processing.markers import FailureRecorder
from transav1.storage.files import copy_file, file_exists, move_file, remove_file
from transav1.storage.scratch import ScratchArea

logger = logging.getLogger(__name__)


class ItemProcessor:
    """Runs ProcessingItems through the per-item state machine."""

    def __init__(
        self,
        settings: Settings,
        engine: ExecutionEngine,
        scratch: ScratchArea,
        recorder: FailureRecorder | None = None,
    ):
        self.settings = settings
        self.engine = engine
        self.scratch = scratch
        self.recorder = recorder or FailureRecorder(settings)
        self.primary = EncodeAttempt(
            encoder_id=settings.primary_encoder,
            encoder_options=settings.primary_options,
            deadline=settings.deadline,
        )
        self.fallback = None
        if settings.has_fallback:
            self.fallback = EncodeAttempt(
                encoder_id=settings.fallback_encoder,
                encoder_options=settings.fallback_options,
                deadline=settings.deadline,
            )
        self._handlers: dict[ItemStage, Callable[[ItemState], ItemStage]] = {
            ItemStage.PRECHECK: self._precheck,
            ItemStage.MODE_SELECT: self._mode_select,
            ItemStage.PRIMARY_ATTEMPT: self._primary_attempt,
            ItemStage.FALLBACK_ATTEMPT: self._fallback_attempt,
            ItemStage.PUBLISH: self._publish,
            ItemStage.FAIL: self._fail,
        }

    def process(self, item: ProcessingItem) -> ItemStage:
        """Process one item.

        Returns ``ItemStage.SKIPPED`` or ``ItemStage.PUBLISHED``. Raises
        ``ProcessingError`` after a terminal encode failure (marker written,
        filesystem restored) and ``FilesystemError`` when mode setup or
        publish fails (rename rolled back, no marker).
        """
        logger.info("Processing started: %s", item.source_path.name)
        state = ItemState(item=item, mode=self.settings.processing_mode)
        try:
            while not state.done:
                state.stage = self._handlers[state.stage](state)
        except BaseException:
            self._restore(state)
            raise
        finally:
            self._release_scratch(state)

        if state.stage == ItemStage.FAILED:
            raise self._error(state)
        return state.stage

    # --- states -----------------------------------------------------------

    def _precheck(self, state: ItemState) -> ItemStage:
        output = state.item.final_output_path
        if file_exists(output):
            try:
                size = output.stat().st_size
            except OSError as e:
                raise FilesystemError(f"Cannot stat existing output {output}: {e}")
            if size > 0:
                logger.info("Skipped (exists): %s", output.name)
                state.skip_reason = "output exists"
                return ItemStage.SKIPPED
            logger.info("Removing zero-byte output left by an interrupted run: %s", output)
            if not remove_file(output, "zero-byte output") and output.exists():
                raise FilesystemError(f"Cannot remove zero-byte output {output}")

        markers = self.recorder.existing_markers(output)
        if markers:
            logger.info(
                "Skipped (failure marker %s present; run with --restart to retry): %s",
                markers[0].name,
                state.item.source_path.name,
            )
            state.skip_reason = f"marker {markers[0].name}"
            return ItemStage.SKIPPED
        return ItemStage.MODE_SELECT

    def _mode_select(self, state: ItemState) -> ItemStage:
        item = state.item
        output_dir = item.final_output_path.parent
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create output directory {output_dir}: {e}")

        if state.mode == ProcessingMode.DIRECT:
            renamed = item.in_progress_source_path
            logger.info(
                "Direct mode: renaming source for in-place encode: %s -> %s",
                item.source_path.name,
                renamed.name,
            )
            try:
                os.rename(item.source_path, renamed)
            except OSError as e:
                raise FilesystemError(
                    f"Direct mode source rename failed ({item.source_path} -> {renamed}): {e}"
                )
            state.source_renamed = True
            state.encoder_input = renamed
            state.encoder_output = item.in_progress_output_path
        else:
            state.scratch_id, item_dir = self.scratch.create_item_dir()
            item.staging_input_path = item_dir / item.source_path.name
            item.staging_output_path = item_dir / item.final_output_path.name
            logger.info(
                "Staged mode: copying to scratch: %s -> %s",
                item.source_path.name,
                item.staging_input_path,
            )
            copy_file(item.source_path, item.staging_input_path)
            state.encoder_input = item.staging_input_path
            state.encoder_output = item.staging_output_path
        return ItemStage.PRIMARY_ATTEMPT

    def _primary_attempt(self, state: ItemState) -> ItemStage:
        result = self._attempt(state, self.primary, "primary")
        if result.ok:
            return ItemStage.PUBLISH
        if result.timed_out:
            logger.info("Primary encoder timed out; not retrying with a fallback encoder.")
            return ItemStage.FAIL
        if self.fallback is None:
            logger.info("No fallback encoder configured; not retrying.")
            return ItemStage.FAIL
        remove_file(state.encoder_output, "partial output")
        logger.info("Retrying with fallback encoder (%s)...", self.fallback.encoder_id)
        return ItemStage.FALLBACK_ATTEMPT

    def _fallback_attempt(self, state: ItemState) -> ItemStage:
        result = self._attempt(state, self.fallback, "fallback")
        return ItemStage.PUBLISH if result.ok else ItemStage.FAIL

    def _publish(self, state: ItemState) -> ItemStage:
        item = state.item
        final = item.final_output_path
        if state.mode == ProcessingMode.STAGED:
            if file_exists(final):
                logger.warning(
                    "Destination %s appeared during the encode; discarding the new output.", final
                )
                remove_file(state.encoder_output, "scratch output")
                return ItemStage.PUBLISHED
            logger.debug("Moving scratch output into place: %s -> %s", state.encoder_output, final)
            move_file(state.encoder_output, final)
        else:
            try:
                os.replace(state.encoder_output, final)
            except OSError as e:
                raise FilesystemError(
                    f"Cannot publish {state.encoder_output} as {final}: {e}",
                    details={"output": str(final)},
                )
            self._rename_source_back(state)
        logger.info("Processing complete: %s", final.name)
        return ItemStage.PUBLISHED

    def _fail(self, state: ItemState) -> ItemStage:
        item = state.item
        result = state.last_result
        marker = self.recorder.build_marker(item.final_output_path, result, result.encoder_options)
        self.recorder.record(marker)

        logger.error("Error: %s", result.error_text or result.exit_class.value)
        logger.error("This file failed to convert.")
        logger.error("  Source directory: %s", item.source_path.parent)
        logger.error("  Source file name: %s", item.source_path.name)
        self._restore(state)
        return ItemStage.FAILED

    # --- helpers ----------------------------------------------------------

    def _attempt(self, state: ItemState, attempt: EncodeAttempt, label: str) -> EncodeResult:
        logger.info("Trying %s encoder (%s)...", label, attempt.encoder_id)
        result = self.engine.run_attempt(
            attempt, state.encoder_input, state.encoder_output, self.settings.priority
        )
        state.attempts.append(result)
        if result.ok:
            logger.info("Encode succeeded (%s)", attempt.encoder_id)
        else:
            logger.warning(
                "Encode failed (%s, ExitCode: %d, TimedOut: %s)",
                attempt.encoder_id,
                result.exit_code,
                result.timed_out,
            )
        return result

    def _restore(self, state: ItemState) -> None:
        """Put the filesystem back to its pre-attempt shape. Never raises."""
        if state.mode == ProcessingMode.DIRECT:
            self._rename_source_back(state)
            output = state.encoder_output
            if output is not None and output.exists():
                remove_file(output, "partial output")
        elif state.encoder_output is not None and state.encoder_output.exists():
            remove_file(state.encoder_output, "scratch output")

    def _rename_source_back(self, state: ItemState) -> None:
        if not state.source_renamed:
            return
        item = state.item
        renamed = item.in_progress_source_path
        if not renamed.exists():
            logger.debug("Renamed source %s not found; skipping rename back", renamed)
            return
        try:
            os.rename(renamed, item.source_path)
        except OSError as e:
            logger.warning(
                "Direct mode: failed to rename source back (%s -> %s): %s",
                renamed,
                item.source_path,
                e,
            )
            logger.warning("  Please rename '%s' to '%s' manually.", renamed, item.source_path)
            return
        state.source_renamed = False

    def _release_scratch(self, state: ItemState) -> None:
        if state.scratch_id is not None:
            self.scratch.cleanup_item(state.scratch_id)
            state.scratch_id = None

    def _error(self, state: ItemState) -> ProcessingError:
        result = state.last_result
        return ProcessingError(
            encoder_id=result.encoder_id,
            exit_class=result.exit_class,
            exit_code=result.exit_code,
            diagnostic_text=result.diagnostic_text,
            details={
                "source": str(state.item.source_path),
                "output": str(state.item.final_output_path),
                "attempts": len(state.attempts),
            },
        )

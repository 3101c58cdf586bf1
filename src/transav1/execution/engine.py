"""Execution engine — runs one ffmpeg encode under supervision."""

import logging
import shlex
import shutil
import subprocess
import threading
from pathlib import Path

from transav1.config import Settings
from transav1.execution.command import FFmpegCommandBuilder
from transav1.execution.output import FFmpegOutputMonitor
from transav1.execution.priority import PriorityAdapter, PriorityLevel, PriorityStrategy
from transav1.models.encode import (
    EXIT_CODE_LAUNCH_ERROR,
    EXIT_CODE_TIMED_OUT,
    EncodeAttempt,
    EncodeResult,
    ExitClass,
)

logger = logging.getLogger(__name__)


class ExecutionEngine:
    """Spawns the encoder, enforces the deadline and classifies the outcome.

    Encode failures come back as ``EncodeResult`` data; retry policy belongs
    to the caller.
    """

    def __init__(
        self,
        settings: Settings,
        ffmpeg_path: str | Path,
        priority_adapter: PriorityAdapter | None = None,
    ):
        self.settings = settings
        self.builder = FFmpegCommandBuilder(ffmpeg_path, debug=settings.debug)
        self.priority_adapter = priority_adapter or PriorityAdapter(
            delay_seconds=settings.priority_delay_seconds
        )

    def run(
        self,
        input_path: Path,
        output_path: Path,
        priority: PriorityLevel | str,
        encoder_id: str,
        encoder_options: str = "",
        deadline: float | None = None,
    ) -> EncodeResult:
        """Run one encode and return its classified result.

        ``input_path`` and ``output_path`` must be absolute and the output's
        parent directory must exist.
        """
        # Decided before spawning: a nice prefix starts even when ffmpeg is missing.
        if shutil.which(str(self.builder.ffmpeg_path)) is None:
            reason = f"{self.builder.ffmpeg_path} is missing or not executable"
            logger.error("ffmpeg (%s) failed to start: %s", encoder_id, reason)
            return self._launch_error(encoder_id, encoder_options, reason)

        cmd = self.priority_adapter.launch_prefix(priority)
        cmd.extend(self.builder.build(input_path, output_path, encoder_id, encoder_options))

        logger.info("ffmpeg started (%s): %s -> %s", encoder_id, input_path.name, output_path.name)
        logger.debug("Command (%s): %s", encoder_id, shlex.join(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=self._creation_flags(),
            )
        except (OSError, ValueError) as e:
            logger.error("ffmpeg (%s) failed to start: %s", encoder_id, e)
            return self._launch_error(encoder_id, encoder_options, str(e))

        monitor = FFmpegOutputMonitor(encoder_id, logger, debug=self.settings.debug)
        stream_errors: list[str] = []
        drains = [
            threading.Thread(
                target=_drain,
                args=(stream, name, monitor, stream_errors),
                name=f"ffmpeg-{name}-{process.pid}",
                daemon=True,
            )
            for name, stream in (("stdout", process.stdout), ("stderr", process.stderr))
        ]
        for drain in drains:
            drain.start()

        self.priority_adapter.apply(process, priority)

        timed_out = False
        try:
            process.wait(timeout=deadline)
        except subprocess.TimeoutExpired:
            timed_out = True
            logger.warning("ffmpeg (%s) exceeded its %.0fs deadline; killing", encoder_id, deadline)
            _kill(process)
            process.wait()
        except BaseException:
            # Interrupted while waiting: never leave the encoder running.
            _kill(process)
            process.wait()
            raise
        finally:
            for drain in drains:
                drain.join()
            for stream in (process.stdout, process.stderr):
                if stream is not None:
                    stream.close()

        return self._classify(
            encoder_id,
            encoder_options,
            process.returncode,
            timed_out,
            monitor,
            stream_errors,
            deadline,
        )

    def run_attempt(
        self,
        attempt: EncodeAttempt,
        input_path: Path,
        output_path: Path,
        priority: PriorityLevel | str,
    ) -> EncodeResult:
        return self.run(
            input_path,
            output_path,
            priority,
            attempt.encoder_id,
            attempt.encoder_options,
            attempt.deadline,
        )

    def _classify(
        self,
        encoder_id: str,
        encoder_options: str,
        returncode: int | None,
        timed_out: bool,
        monitor: FFmpegOutputMonitor,
        stream_errors: list[str],
        deadline: float | None,
    ) -> EncodeResult:
        output = monitor.text
        for err in stream_errors:
            logger.warning("ffmpeg (%s) output stream error: %s", encoder_id, err)

        if timed_out:
            return EncodeResult(
                encoder_id=encoder_id,
                encoder_options=encoder_options,
                exit_class=ExitClass.TIMED_OUT,
                exit_code=EXIT_CODE_TIMED_OUT,
                captured_output=output,
                error_text=f"ffmpeg ({encoder_id}) timed out ({deadline:.0f}s)",
                stream_errors=stream_errors,
            )

        if returncode != 0:
            exit_class = ExitClass.STREAM_ERROR if stream_errors else ExitClass.NONZERO_EXIT
            logger.error("ffmpeg (%s) failed (ExitCode: %s)", encoder_id, returncode)
            return EncodeResult(
                encoder_id=encoder_id,
                encoder_options=encoder_options,
                exit_class=exit_class,
                exit_code=returncode,
                captured_output=output,
                error_text=f"ffmpeg ({encoder_id}) failed (ExitCode: {returncode})",
                stream_errors=stream_errors,
            )

        logger.debug("ffmpeg (%s) finished (ExitCode: 0)", encoder_id)
        if self.settings.debug and output:
            logger.debug(
                "ffmpeg (%s) output:\n--- ffmpeg output ---\n%s\n--- end of output ---",
                encoder_id,
                output.strip(),
            )
        return EncodeResult(
            encoder_id=encoder_id,
            encoder_options=encoder_options,
            exit_class=ExitClass.SUCCESS,
            exit_code=0,
            captured_output=output,
            stream_errors=stream_errors,
        )

    def _launch_error(self, encoder_id: str, encoder_options: str, reason: str) -> EncodeResult:
        return EncodeResult(
            encoder_id=encoder_id,
            encoder_options=encoder_options,
            exit_class=ExitClass.LAUNCH_ERROR,
            exit_code=EXIT_CODE_LAUNCH_ERROR,
            error_text=f"ffmpeg ({encoder_id}) failed to start: {reason}",
        )

    def _creation_flags(self) -> int:
        if self.priority_adapter.strategy == PriorityStrategy.PRIORITY_CLASS:
            # No console window for the encoder.
            return getattr(subprocess, "CREATE_NO_WINDOW", 0)
        return 0


def _drain(stream, name: str, monitor: FFmpegOutputMonitor, errors: list[str]) -> None:
    try:
        for line in stream:
            monitor.feed(name, line)
    except (OSError, ValueError) as e:
        errors.append(f"{name}: {e}")


def _kill(process: subprocess.Popen) -> None:
    try:
        process.kill()
    except OSError as e:
        # Already gone.
        logger.debug("Kill of PID %d ignored: %s", process.pid, e)

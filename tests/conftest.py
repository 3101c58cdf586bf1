"""Shared test fixtures and a scripted stand-in for the execution engine."""

import logging
import sys
from pathlib import Path

import pytest

from transav1.config import Settings
from transav1.models.encode import (
    EXIT_CODE_LAUNCH_ERROR,
    EXIT_CODE_TIMED_OUT,
    EncodeResult,
    ExitClass,
)
from transav1.storage.scratch import ScratchArea

SOURCE_BYTES = b"\x00\x00\x00\x18ftypmp42 fake movie payload"


def make_settings(**overrides) -> Settings:
    """Settings isolated from any .env file in the working directory."""
    return Settings(_env_file=None, **overrides)


class ScriptedEngine:
    """Stands in for ExecutionEngine, replaying a fixed list of outcomes.

    Successful runs write an "encoded" copy of the input to the output path;
    failed runs leave a partial output behind, like a crashed encoder would.
    """

    def __init__(self, outcomes: list[ExitClass | tuple[ExitClass, int]]):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    def run_attempt(self, attempt, input_path: Path, output_path: Path, priority) -> EncodeResult:
        self.calls.append(
            {
                "encoder_id": attempt.encoder_id,
                "encoder_options": attempt.encoder_options,
                "deadline": attempt.deadline,
                "input": input_path,
                "output": output_path,
                "priority": priority,
                "input_exists": input_path.exists(),
            }
        )
        outcome = self.outcomes.pop(0)
        exit_class, code = outcome if isinstance(outcome, tuple) else (outcome, None)

        if exit_class == ExitClass.SUCCESS:
            output_path.write_bytes(b"encoded:" + input_path.read_bytes())
            code = 0
        elif exit_class == ExitClass.LAUNCH_ERROR:
            code = EXIT_CODE_LAUNCH_ERROR
        else:
            output_path.write_bytes(b"partial")
            if exit_class == ExitClass.TIMED_OUT:
                code = EXIT_CODE_TIMED_OUT
            elif code is None:
                code = 1

        return EncodeResult(
            encoder_id=attempt.encoder_id,
            encoder_options=attempt.encoder_options,
            exit_class=exit_class,
            exit_code=code,
            captured_output="" if exit_class == ExitClass.LAUNCH_ERROR else "Error: simulated\n",
            error_text=f"ffmpeg ({attempt.encoder_id}) {exit_class.value}",
        )

    @property
    def encoders_called(self) -> list[str]:
        return [c["encoder_id"] for c in self.calls]


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logging() so caplog keeps seeing records."""
    yield
    package_logger = logging.getLogger("transav1")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def settings():
    return make_settings(primary_encoder="enc_hw", fallback_encoder="enc_cpu")


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def scripted_engine():
    return ScriptedEngine


@pytest.fixture
def scratch(tmp_path):
    with ScratchArea(base_dir=tmp_path / "scratch") as area:
        yield area


@pytest.fixture
def source_tree(tmp_path):
    """A source directory holding one video, and an empty destination."""
    src = tmp_path / "src"
    dst = tmp_path / "dst"
    src.mkdir()
    dst.mkdir()
    (src / "movie.mp4").write_bytes(SOURCE_BYTES)
    return src, dst


FAKE_FFMPEG = """#!{python}
import os
import shutil
import sys
import time

args = sys.argv[1:]
encoder = args[args.index("-c:v") + 1]
src = args[args.index("-i") + 1]
out = args[-1]

log = os.environ.get("FAKE_FFMPEG_LOG")
if log:
    with open(log, "a") as f:
        f.write(" ".join(args) + "\\n")

print("frame=   10 fps=0.0 time=00:00:01.00 bitrate=N/A", flush=True)
if "broken" in encoder:
    sys.stderr.write("Error initializing output stream for " + encoder + "\\n")
    sys.exit(1)
if "slow" in encoder:
    with open(out, "wb") as f:
        f.write(b"partial")
    time.sleep(60)
    sys.exit(0)
shutil.copyfile(src, out)
sys.exit(0)
"""


@pytest.fixture
def fake_ffmpeg(tmp_path, monkeypatch):
    """An executable that behaves like ffmpeg according to the encoder name.

    ``*broken*`` exits 1, ``*slow*`` hangs, anything else copies input to output.
    Every invocation is appended to the file returned as the second element.
    """
    tool_dir = tmp_path / "bin"
    tool_dir.mkdir()
    tool = tool_dir / "ffmpeg"
    tool.write_text(FAKE_FFMPEG.format(python=sys.executable))
    tool.chmod(0o755)
    log = tmp_path / "ffmpeg_calls.log"
    monkeypatch.setenv("FAKE_FFMPEG_LOG", str(log))
    return tool, log

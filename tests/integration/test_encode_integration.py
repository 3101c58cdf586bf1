"""Integration tests running a real subprocess in place of ffmpeg."""

import sys
import time
from pathlib import Path

import pytest

from transav1.cli import main
from transav1.execution.engine import ExecutionEngine
from transav1.models.encode import EXIT_CODE_LAUNCH_ERROR, EXIT_CODE_TIMED_OUT, ExitClass

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="fake ffmpeg is a shebang script"),
]


def _calls(log: Path) -> list[str]:
    if not log.exists():
        return []
    return [line.split(" -c:v ")[1].split()[0] for line in log.read_text().splitlines()]


class TestExecutionEngine:
    @pytest.fixture
    def engine(self, settings_factory, fake_ffmpeg):
        tool, _log = fake_ffmpeg
        conf = settings_factory(priority="belownormal")
        return ExecutionEngine(conf, tool)

    @pytest.fixture
    def clip(self, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"movie bytes")
        return path

    def test_success(self, engine, clip, tmp_path):
        out = tmp_path / "out.mp4"
        result = engine.run(clip, out, "belownormal", "libsvtav1", "-crf 28 -preset 7")
        assert result.exit_class == ExitClass.SUCCESS
        assert out.read_bytes() == b"movie bytes"
        assert "time=00:00:01.00" in result.captured_output

    def test_nonzero_exit_captures_stderr(self, engine, clip, tmp_path):
        result = engine.run(clip, tmp_path / "out.mp4", "belownormal", "broken_nvenc")
        assert result.exit_class == ExitClass.NONZERO_EXIT
        assert result.exit_code == 1
        assert "Error initializing output stream for broken_nvenc" in result.captured_output

    def test_timeout_kills_encoder(self, engine, clip, tmp_path):
        started = time.monotonic()
        result = engine.run(clip, tmp_path / "out.mp4", "belownormal", "slow_enc", deadline=1.0)
        assert time.monotonic() - started < 30
        assert result.exit_class == ExitClass.TIMED_OUT
        assert result.exit_code == EXIT_CODE_TIMED_OUT

    def test_missing_binary(self, settings_factory, clip, tmp_path):
        engine = ExecutionEngine(settings_factory(priority="normal"), tmp_path / "no-ffmpeg")
        result = engine.run(clip, tmp_path / "out.mp4", "normal", "libsvtav1")
        assert result.exit_class == ExitClass.LAUNCH_ERROR
        assert result.exit_code == EXIT_CODE_LAUNCH_ERROR
        assert result.captured_output == ""
        assert not (tmp_path / "out.mp4").exists()


class TestCommandLine:
    @pytest.fixture
    def library(self, tmp_path):
        src = tmp_path / "library"
        (src / "trips").mkdir(parents=True)
        (src / "trips" / "beach.mov").write_bytes(b"beach")
        (src / "trips" / "beach.jpg").write_bytes(b"jpeg")
        (src / "notes.txt").write_text("notes")
        return src

    def _args(self, library, dest, tool, *extra):
        return [
            "-s", str(library),
            "-o", str(dest),
            "--ffmpeg-dir", str(tool.parent),
            "--priority", "belownormal",
            *extra,
        ]

    def test_primary_success(self, library, tmp_path, fake_ffmpeg):
        tool, log = fake_ffmpeg
        dest = tmp_path / "converted"
        assert main(self._args(library, dest, tool, "--hwenc", "good_nvenc")) == 0
        assert (dest / "trips" / "beach_AV1.mp4").read_bytes() == b"beach"
        assert (dest / "trips" / "beach.jpg").read_bytes() == b"jpeg"
        assert (dest / "notes.txt").read_text() == "notes"
        assert _calls(log) == ["good_nvenc"]

    def test_fallback_after_primary_failure(self, library, tmp_path, fake_ffmpeg):
        tool, log = fake_ffmpeg
        dest = tmp_path / "converted"
        code = main(self._args(library, dest, tool, "--hwenc", "broken_nvenc"))
        assert code == 0
        assert _calls(log) == ["broken_nvenc", "libsvtav1"]
        assert (dest / "trips" / "beach_AV1.mp4").exists()
        assert not list(dest.rglob("*.failed"))

    def test_both_fail_then_restart(self, library, tmp_path, fake_ffmpeg):
        tool, log = fake_ffmpeg
        dest = tmp_path / "converted"
        failing = ("--hwenc", "broken_nvenc", "--cpuenc", "broken_svt")
        assert main(self._args(library, dest, tool, *failing)) == 1
        marker = dest / "trips" / "beach_AV1.mp4.failed"
        assert "broken_svt" in marker.read_text()
        assert not (dest / "trips" / "beach_AV1.mp4").exists()

        # Second run skips the marked item.
        assert main(self._args(library, dest, tool, *failing)) == 0
        assert len(_calls(log)) == 2

        assert main(self._args(library, dest, tool, "--restart")) == 0
        assert not marker.exists()
        assert (dest / "trips" / "beach_AV1.mp4").exists()

    def test_timeout_writes_timeout_marker(self, library, tmp_path, fake_ffmpeg):
        tool, log = fake_ffmpeg
        dest = tmp_path / "converted"
        code = main(self._args(library, dest, tool, "--hwenc", "slow_nvenc", "--timeout", "1"))
        assert code == 1
        assert _calls(log) == ["slow_nvenc"]
        assert (dest / "trips" / "beach_AV1.mp4.timeout").exists()

    def test_quick_mode_restores_source_name(self, library, tmp_path, fake_ffmpeg):
        tool, _log = fake_ffmpeg
        dest = tmp_path / "converted"
        assert main(self._args(library, dest, tool, "--quick", "--log")) == 0
        assert (library / "trips" / "beach.mov").read_bytes() == b"beach"
        assert not list(library.rglob("*.processing"))
        assert (dest / "trips" / "beach_AV1.mp4").exists()
        assert len(list(dest.glob("TransAV1_Log_*.log"))) == 1

    def test_single_file(self, library, tmp_path, fake_ffmpeg):
        tool, _log = fake_ffmpeg
        dest = tmp_path / "single"
        dest.mkdir()
        assert main(self._args(library / "trips" / "beach.mov", dest, tool)) == 0
        assert (dest / "beach_AV1.mp4").exists()
        assert not (dest / "beach.jpg").exists()

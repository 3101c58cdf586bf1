"""Tests for the failure recorder."""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from transav1.models.encode import EncodeResult, ExitClass
from transav1.models.marker import MarkerKind
from transav1.processing.markers import FailureRecorder, is_marker_file, marker_for


@pytest.fixture
def recorder(settings):
    return FailureRecorder(settings)


def _result(exit_class=ExitClass.NONZERO_EXIT, code=1, output="Error: bad\n"):
    return EncodeResult(
        encoder_id="enc_cpu",
        encoder_options="-crf 28",
        exit_class=exit_class,
        exit_code=code,
        captured_output=output,
        error_text=f"ffmpeg (enc_cpu) failed (ExitCode: {code})",
    )


class TestFailureRecorder:
    def test_record_writes_sidecar(self, recorder, tmp_path):
        output = tmp_path / "movie_AV1.mp4"
        marker = recorder.build_marker(output, _result(), "-crf 28")
        path = recorder.record(marker)
        assert path == tmp_path / "movie_AV1.mp4.failed"
        content = path.read_text(encoding="utf-8")
        assert content.startswith('Encoder: enc_cpu, Options: "-crf 28", ExitClass: nonzero_exit')
        assert "ExitCode: 1" in content

    def test_timeout_marker_kind(self, recorder, tmp_path):
        result = _result(ExitClass.TIMED_OUT, -2)
        marker = recorder.build_marker(tmp_path / "a.mp4", result, "")
        assert marker.kind == MarkerKind.TIMEOUT
        assert "TimedOut: True" in marker.content()

    def test_content_bounded_by_settings(self, settings_factory, tmp_path):
        recorder = FailureRecorder(settings_factory(marker_max_length=50))
        marker = recorder.build_marker(tmp_path / "a.mp4", _result(output="x" * 500), "")
        assert len(recorder.record(marker).read_text(encoding="utf-8")) == 53

    def test_creates_parent(self, recorder, tmp_path):
        output = tmp_path / "nested" / "dir" / "a.mp4"
        assert recorder.record(recorder.build_marker(output, _result(), "")).exists()

    def test_write_failure_is_warning(self, recorder, tmp_path, caplog):
        marker = recorder.build_marker(tmp_path / "a.mp4", _result(), "")
        with patch.object(Path, "write_text", side_effect=PermissionError("denied")):
            with caplog.at_level(logging.WARNING):
                assert recorder.record(marker) is None
        assert "Failed to write failure marker" in caplog.text

    def test_existing_markers(self, recorder, tmp_path):
        output = tmp_path / "a.mp4"
        assert recorder.existing_markers(output) == []
        (tmp_path / "a.mp4.unreadable").write_text("")
        assert recorder.existing_markers(output) == [tmp_path / "a.mp4.unreadable"]

    def test_existing_markers_ignore_suffix_case(self, recorder, tmp_path):
        output = tmp_path / "a.mp4"
        (tmp_path / "a.mp4.TIMEOUT").write_text("")
        (tmp_path / "b.mp4.failed").write_text("")
        (tmp_path / "a.mp4").write_bytes(b"")
        assert recorder.existing_markers(output) == [tmp_path / "a.mp4.TIMEOUT"]

    def test_existing_markers_missing_directory(self, recorder, tmp_path):
        assert recorder.existing_markers(tmp_path / "missing" / "a.mp4") == []


class TestIsMarkerFile:
    @pytest.mark.parametrize("name", ["a.mp4.failed", "a.mp4.TIMEOUT", "x.error", "y.unreadable"])
    def test_marker(self, name):
        assert is_marker_file(Path(name))

    @pytest.mark.parametrize("name", ["a.mp4", "failed", ".failed", "a.mp4.processing"])
    def test_not_marker(self, name):
        assert not is_marker_file(Path(name))

    def test_marker_for_keeps_output_name(self):
        assert marker_for(Path("/out/Movie_AV1.mp4.Failed")) == Path("/out/Movie_AV1.mp4")
        assert marker_for(Path("/out/Movie_AV1.mp4")) is None

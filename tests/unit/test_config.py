"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from transav1.config import get_settings
from transav1.execution.priority import PriorityLevel
from transav1.models.item import ProcessingMode


class TestSettings:
    def test_defaults(self, settings_factory):
        s = settings_factory()
        assert s.priority == PriorityLevel.IDLE
        assert s.primary_encoder == "av1_nvenc"
        assert s.primary_options == "-cq 25 -preset p5"
        assert s.fallback_encoder == "libsvtav1"
        assert s.fallback_options == "-crf 28 -preset 7"
        assert s.timeout_seconds == 7200
        assert s.deadline == 7200.0
        assert s.processing_mode == ProcessingMode.STAGED
        assert s.output_suffix == "_AV1.mp4"
        assert s.marker_max_length == 200
        assert s.has_fallback

    @pytest.mark.parametrize("raw", ["BelowNormal", " belownormal ", "BELOWNORMAL"])
    def test_priority_case_insensitive(self, settings_factory, raw):
        assert settings_factory(priority=raw).priority == PriorityLevel.BELOW_NORMAL

    def test_invalid_priority(self, settings_factory):
        with pytest.raises(ValidationError):
            settings_factory(priority="realtime")

    def test_zero_timeout_is_unbounded(self, settings_factory):
        assert settings_factory(timeout_seconds=0).deadline is None

    def test_negative_timeout_rejected(self, settings_factory):
        with pytest.raises(ValidationError):
            settings_factory(timeout_seconds=-1)

    def test_empty_fallback_disables_it(self, settings_factory):
        s = settings_factory(fallback_encoder="")
        assert not s.has_fallback

    def test_lone_fallback_promoted(self, settings_factory):
        s = settings_factory(primary_encoder="", fallback_encoder="libaom-av1")
        assert s.primary_encoder == "libaom-av1"
        assert s.primary_options == "-crf 28 -preset 7"
        assert not s.has_fallback

    def test_no_encoder_rejected(self, settings_factory):
        with pytest.raises(ValidationError, match="at least one"):
            settings_factory(primary_encoder=" ", fallback_encoder="")

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("TRANSAV1_PRIMARY_ENCODER", "av1_qsv")
        monkeypatch.setenv("TRANSAV1_TIMEOUT_SECONDS", "30")
        s = get_settings(_env_file=None)
        assert s.primary_encoder == "av1_qsv"
        assert s.timeout_seconds == 30

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("TRANSAV1_PRIMARY_ENCODER", "av1_qsv")
        s = get_settings(_env_file=None, primary_encoder="av1_amf")
        assert s.primary_encoder == "av1_amf"

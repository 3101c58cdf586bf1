"""Failure marker model."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from transav1.models.encode import ExitClass

TRUNCATION_INDICATOR = "..."


class MarkerKind(StrEnum):
    """Sidecar suffixes recording a terminal failure."""

    FAILED = ".failed"
    TIMEOUT = ".timeout"
    ERROR = ".error"
    UNREADABLE = ".unreadable"

    @classmethod
    def for_exit_class(cls, exit_class: ExitClass) -> "MarkerKind":
        if exit_class == ExitClass.TIMED_OUT:
            return cls.TIMEOUT
        if exit_class == ExitClass.NONZERO_EXIT:
            return cls.FAILED
        return cls.ERROR


MARKER_SUFFIXES = tuple(kind.value for kind in MarkerKind)


class FailureMarker(BaseModel):
    """A marker file to be written next to a would-be output."""

    output_path: Path
    kind: MarkerKind
    encoder_id: str
    encoder_options: str = ""
    exit_class: ExitClass
    exit_code: int
    diagnostic_text: str = ""
    max_length: int = Field(default=200, ge=1)

    @property
    def path(self) -> Path:
        return marker_path(self.output_path, self.kind)

    def content(self) -> str:
        """Marker body, truncated to max_length plus the truncation indicator."""
        text = (
            f'Encoder: {self.encoder_id}, Options: "{self.encoder_options}", '
            f"ExitClass: {self.exit_class.value}, ExitCode: {self.exit_code}, "
            f"TimedOut: {self.exit_class == ExitClass.TIMED_OUT}, "
            f"Error: {self.diagnostic_text}"
        )
        return truncate(text, self.max_length)


def marker_path(output_path: Path, kind: MarkerKind) -> Path:
    return output_path.with_name(output_path.name + kind.value)


def truncate(text: str, max_length: int) -> str:
    if len(text) > max_length:
        return text[:max_length] + TRUNCATION_INDICATOR
    return text

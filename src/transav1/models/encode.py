"""Encode attempt and result data models."""

from enum import StrEnum

from pydantic import BaseModel, Field

# Reserved exit codes for outcomes without a real process status.
EXIT_CODE_UNSET = -1
EXIT_CODE_TIMED_OUT = -2
EXIT_CODE_LAUNCH_ERROR = -3


class ExitClass(StrEnum):
    """Classification of one encoder run."""

    SUCCESS = "success"
    NONZERO_EXIT = "nonzero_exit"
    TIMED_OUT = "timed_out"
    LAUNCH_ERROR = "launch_error"
    STREAM_ERROR = "stream_error"


class EncodeAttempt(BaseModel):
    """One invocation of the execution engine."""

    encoder_id: str = Field(..., min_length=1)
    encoder_options: str = Field(default="")
    deadline: float | None = Field(default=None, gt=0, description="Seconds; None is unbounded")


class EncodeResult(BaseModel):
    """Outcome of an EncodeAttempt."""

    encoder_id: str
    encoder_options: str = Field(default="")
    exit_class: ExitClass
    exit_code: int = Field(default=EXIT_CODE_UNSET)
    captured_output: str = Field(default="")
    error_text: str = Field(default="", description="Launch or stream failure description")
    stream_errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_class == ExitClass.SUCCESS

    @property
    def timed_out(self) -> bool:
        return self.exit_class == ExitClass.TIMED_OUT

    @property
    def diagnostic_text(self) -> str:
        """Human-readable failure detail: error text plus captured output."""
        parts = [p.strip() for p in (self.error_text, self.captured_output) if p.strip()]
        return "\n".join(parts)

"""Error hierarchy and error summary models."""

from pydantic import BaseModel, Field

from transav1.models.encode import ExitClass


class TransAV1Error(Exception):
    """Base error for all transav1 errors."""

    def __init__(self, message: str, component: str = "", details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.details = details or {}


class ConfigurationError(TransAV1Error):
    """Invalid settings or missing external tools."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="configuration", details=details)


class DiscoveryError(TransAV1Error):
    """Errors while walking the source tree or mapping output paths."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="discovery", details=details)


class FilesystemError(TransAV1Error):
    """Rename, copy, or mkdir failures during mode setup or publish."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="filesystem", details=details)


class ProcessingError(TransAV1Error):
    """Terminal encode failure of one item.

    The structured fields are kept apart from the message so callers can
    branch on them; ``str()`` renders them for display.
    """

    def __init__(
        self,
        encoder_id: str,
        exit_class: ExitClass,
        exit_code: int,
        diagnostic_text: str = "",
        details: dict | None = None,
    ):
        self.encoder_id = encoder_id
        self.exit_class = exit_class
        self.exit_code = exit_code
        self.diagnostic_text = diagnostic_text
        super().__init__(self._render(), component="processing", details=details)

    @property
    def timed_out(self) -> bool:
        return self.exit_class == ExitClass.TIMED_OUT

    def _render(self) -> str:
        text = (
            f"ffmpeg ({self.encoder_id}) {self.exit_class.value} "
            f"(ExitCode: {self.exit_code}, TimedOut: {self.timed_out})"
        )
        if self.diagnostic_text:
            text += f": {self.diagnostic_text.strip()}"
        return text


class ErrorSummary(BaseModel):
    """Bounded end-of-run error report."""

    errors: list[str] = Field(default_factory=list)
    limit: int = Field(default=20, ge=1)

    @property
    def total(self) -> int:
        return len(self.errors)

    @property
    def hidden(self) -> int:
        return max(0, self.total - self.limit)

    def lines(self) -> list[str]:
        """Render the summary as log lines."""
        if not self.errors:
            return []
        out = [f"--- {self.total} error(s) occurred during processing ---"]
        for i, err in enumerate(self.errors[: self.limit], start=1):
            out.append(f"  [{i}] {err}")
        if self.hidden:
            out.append(f"  ...and {self.hidden} more error(s) (see the log)")
        return out

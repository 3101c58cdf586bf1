"""Processing item and per-item state models."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from transav1.models.encode import EncodeResult


class ProcessingMode(StrEnum):
    """How an item's input is exposed to the encoder."""

    STAGED = "staged"
    DIRECT = "direct"


class ItemStage(StrEnum):
    """States of the per-item state machine."""

    PRECHECK = "precheck"
    MODE_SELECT = "mode_select"
    PRIMARY_ATTEMPT = "primary_attempt"
    FALLBACK_ATTEMPT = "fallback_attempt"
    PUBLISH = "publish"
    FAIL = "fail"
    SKIPPED = "skipped"
    PUBLISHED = "published"
    FAILED = "failed"


TERMINAL_STAGES = frozenset({ItemStage.SKIPPED, ItemStage.PUBLISHED, ItemStage.FAILED})


IN_PROGRESS_SOURCE_SUFFIX = ".processing"
IN_PROGRESS_OUTPUT_TAG = ".inprogress"


class ProcessingItem(BaseModel):
    """One unit of work handed to the state machine by the batch driver."""

    source_path: Path
    final_output_path: Path
    staging_input_path: Path | None = None
    staging_output_path: Path | None = None

    @property
    def in_progress_source_path(self) -> Path:
        """Temporary in-place name of the source while a direct-mode encode runs."""
        return self.source_path.with_name(self.source_path.name + IN_PROGRESS_SOURCE_SUFFIX)

    @property
    def in_progress_output_path(self) -> Path:
        """Sibling of the final output written by direct-mode encodes.

        Keeps the container extension so the encoder still picks the right muxer.
        """
        final = self.final_output_path
        return final.with_name(f".{final.stem}{IN_PROGRESS_OUTPUT_TAG}{final.suffix}")


class ItemState(BaseModel):
    """Mutable progress record of one item through the state machine."""

    item: ProcessingItem
    mode: ProcessingMode = ProcessingMode.STAGED
    stage: ItemStage = ItemStage.PRECHECK
    encoder_input: Path | None = None
    encoder_output: Path | None = None
    source_renamed: bool = False
    scratch_id: str | None = None
    attempts: list[EncodeResult] = Field(default_factory=list)
    skip_reason: str = ""

    @property
    def last_result(self) -> EncodeResult | None:
        return self.attempts[-1] if self.attempts else None

    @property
    def done(self) -> bool:
        return self.stage in TERMINAL_STAGES


def is_in_progress_output(path: Path) -> bool:
    """True for a direct-mode output left behind by an interrupted run."""
    name = path.name
    return name.startswith(".") and IN_PROGRESS_OUTPUT_TAG + "." in name


def original_source_path(path: Path) -> Path | None:
    """The source a direct-mode ``.processing`` rename came from, if ``path`` is one."""
    if path.name.endswith(IN_PROGRESS_SOURCE_SUFFIX) and path.name != IN_PROGRESS_SOURCE_SUFFIX:
        return path.with_name(path.name[: -len(IN_PROGRESS_SOURCE_SUFFIX)])
    return None

"""Application configuration using Pydantic BaseSettings."""

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from transav1.execution.priority import PriorityLevel
from transav1.models.item import ProcessingMode


class Settings(BaseSettings):
    """Conversion settings loaded from environment variables and CLI overrides."""

    model_config = {"env_prefix": "TRANSAV1_", "env_file": ".env", "extra": "ignore"}

    # Encoder binary
    ffmpeg_dir: Path | None = None

    # Scheduling
    priority: PriorityLevel = PriorityLevel.IDLE
    priority_delay_seconds: float = 0.15

    # Encoders
    primary_encoder: str = "av1_nvenc"
    primary_options: str = "-cq 25 -preset p5"
    fallback_encoder: str = "libsvtav1"
    fallback_options: str = "-crf 28 -preset 7"
    timeout_seconds: int = 7200

    # Processing
    processing_mode: ProcessingMode = ProcessingMode.STAGED
    output_suffix: str = "_AV1.mp4"
    scratch_prefix: str = "transav1_"

    # Reporting
    debug: bool = False
    log_to_file: bool = False
    marker_max_length: int = 200
    error_summary_limit: int = 20

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def non_negative_timeout(cls, v: int) -> int:
        if v < 0:
            raise ValueError("timeout_seconds must be >= 0 (0 disables the timeout)")
        return v

    @model_validator(mode="after")
    def require_an_encoder(self) -> "Settings":
        self.primary_encoder = self.primary_encoder.strip()
        self.fallback_encoder = self.fallback_encoder.strip()
        if not self.primary_encoder and not self.fallback_encoder:
            raise ValueError("at least one of primary_encoder / fallback_encoder must be set")
        # A lone fallback encoder becomes the only attempt.
        if not self.primary_encoder:
            self.primary_encoder = self.fallback_encoder
            self.primary_options = self.fallback_options
            self.fallback_encoder = ""
            self.fallback_options = ""
        return self

    @property
    def deadline(self) -> float | None:
        """Per-attempt deadline in seconds, or None when unbounded."""
        if self.timeout_seconds <= 0:
            return None
        return float(self.timeout_seconds)

    @property
    def has_fallback(self) -> bool:
        return bool(self.fallback_encoder)


def get_settings(**overrides) -> Settings:
    """Build the run's settings; explicit overrides win over the environment."""
    return Settings(**overrides)

"""FFmpeg command construction and tool discovery."""

import platform
import shutil
from pathlib import Path

from transav1.models.errors import ConfigurationError

AUDIO_CODEC = "aac"


class FFmpegCommandBuilder:
    """Builds the fixed encoder argument skeleton."""

    def __init__(self, ffmpeg_path: str | Path, debug: bool = False):
        self.ffmpeg_path = str(ffmpeg_path)
        self.debug = debug

    def build(
        self,
        input_path: Path,
        output_path: Path,
        encoder_id: str,
        encoder_options: str = "",
    ) -> list[str]:
        """Build ``ffmpeg`` argv for one encode, binary included."""
        cmd = [
            self.ffmpeg_path,
            "-hide_banner",
            "-stats" if self.debug else "-nostats",
            "-i",
            str(input_path),
            "-c:v",
            encoder_id,
            "-c:a",
            AUDIO_CODEC,
            "-y",
        ]
        cmd.extend(tokenize_options(encoder_options))
        cmd.extend(["-loglevel", "error" if self.debug else "fatal"])
        cmd.append(str(output_path))
        return cmd


def tokenize_options(options: str) -> list[str]:
    """Split an option string on whitespace.

    There is no quoting support: ``-metadata title="a b"`` becomes three
    tokens. Option values containing spaces cannot be expressed.
    """
    return options.split()


def resolve_ffmpeg(ffmpeg_dir: Path | None = None, system: str | None = None) -> Path:
    """Locate ffmpeg in ``ffmpeg_dir`` first, then on PATH."""
    base = "ffmpeg.exe" if (system or platform.system()) == "Windows" else "ffmpeg"
    if ffmpeg_dir is not None:
        found = shutil.which(str(Path(ffmpeg_dir) / base))
        if found:
            return Path(found).resolve()
    found = shutil.which(base)
    if found:
        return Path(found)
    searched = f"{Path(ffmpeg_dir) / base} or PATH" if ffmpeg_dir is not None else "PATH"
    raise ConfigurationError(
        f"ffmpeg not found ({searched}). Please install FFmpeg.",
        details={"command": base, "ffmpeg_dir": str(ffmpeg_dir) if ffmpeg_dir else None},
    )

"""Process priority adapter — maps a logical priority level to OS scheduling.

Windows changes the priority class of the live process after it has started;
Linux and macOS prefix the command with ``nice`` so the value is in place at
spawn. Priority is best-effort everywhere: failures are logged as warnings.
"""

import logging
import platform
import shutil
import time
from enum import StrEnum

import psutil

logger = logging.getLogger(__name__)


class PriorityLevel(StrEnum):
    """Ordered scheduling levels, lowest first."""

    IDLE = "idle"
    BELOW_NORMAL = "belownormal"
    NORMAL = "normal"
    ABOVE_NORMAL = "abovenormal"


class PriorityStrategy(StrEnum):
    PRIORITY_CLASS = "priority_class"
    NICE = "nice"
    UNSUPPORTED = "unsupported"


NICE_VALUES: dict[PriorityLevel, int] = {
    PriorityLevel.IDLE: 19,
    PriorityLevel.BELOW_NORMAL: 10,
    PriorityLevel.NORMAL: 0,
    # Lower values usually need root.
    PriorityLevel.ABOVE_NORMAL: -5,
}

# Names of the psutil constants; they only exist on Windows builds of psutil.
WINDOWS_PRIORITY_CLASSES: dict[PriorityLevel, str] = {
    PriorityLevel.IDLE: "IDLE_PRIORITY_CLASS",
    PriorityLevel.BELOW_NORMAL: "BELOW_NORMAL_PRIORITY_CLASS",
    PriorityLevel.NORMAL: "NORMAL_PRIORITY_CLASS",
    PriorityLevel.ABOVE_NORMAL: "ABOVE_NORMAL_PRIORITY_CLASS",
}

_NICE_PLATFORMS = {"Linux", "Darwin"}


class PriorityAdapter:
    """Applies a PriorityLevel to encoder processes on the current platform."""

    def __init__(self, system: str | None = None, delay_seconds: float = 0.15):
        self.system = system or platform.system()
        self.delay_seconds = delay_seconds
        if self.system == "Windows":
            self.strategy = PriorityStrategy.PRIORITY_CLASS
        elif self.system in _NICE_PLATFORMS:
            self.strategy = PriorityStrategy.NICE
        else:
            self.strategy = PriorityStrategy.UNSUPPORTED

    def launch_prefix(self, level: PriorityLevel | str) -> list[str]:
        """Command prefix that establishes priority at spawn time.

        Empty unless the platform uses a niceness launcher.
        """
        if self.strategy == PriorityStrategy.UNSUPPORTED:
            logger.warning(
                "Unsupported platform (%s); process priority control is skipped", self.system
            )
            return []
        if self.strategy != PriorityStrategy.NICE:
            return []
        parsed = _parse_level(level)
        if parsed is None:
            return []
        nice = shutil.which("nice")
        if nice is None:
            logger.warning("'nice' not found on PATH; running the encoder at default priority")
            return []
        return [nice, "-n", str(NICE_VALUES[parsed])]

    def apply(self, process, level: PriorityLevel | str) -> None:
        """Set the priority class of a started process (Windows only).

        The short sleep before the call lets the child finish initializing.
        It narrows the startup race but guarantees nothing; a process that
        exits or is still initializing after the delay just keeps its
        default priority.
        """
        if self.strategy != PriorityStrategy.PRIORITY_CLASS:
            return
        parsed = _parse_level(level)
        if parsed is None:
            return
        class_name = WINDOWS_PRIORITY_CLASSES[parsed]
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        try:
            priority_class = getattr(psutil, class_name)
            psutil.Process(process.pid).nice(priority_class)
        except psutil.AccessDenied:
            logger.warning(
                "Setting priority %s on PID %d was denied; insufficient privileges?",
                parsed.value,
                process.pid,
            )
            return
        except (psutil.Error, AttributeError, OSError) as e:
            logger.warning("Setting priority %s on PID %d failed: %s", parsed.value, process.pid, e)
            return
        logger.debug("Priority of PID %d set to %s (%s)", process.pid, parsed.value, class_name)


def _parse_level(level: PriorityLevel | str) -> PriorityLevel | None:
    try:
        return PriorityLevel(str(level).strip().lower())
    except ValueError:
        logger.warning(
            "Invalid priority %r (expected one of: %s); using default priority",
            level,
            ", ".join(p.value for p in PriorityLevel),
        )
        return None

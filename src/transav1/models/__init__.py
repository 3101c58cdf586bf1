"""Data models for transav1."""

from transav1.models.encode import EncodeAttempt, EncodeResult, ExitClass
from transav1.models.errors import (
    ConfigurationError,
    DiscoveryError,
    ErrorSummary,
    FilesystemError,
    ProcessingError,
    TransAV1Error,
)
from transav1.models.item import (
    ItemStage,
    ItemState,
    ProcessingItem,
    ProcessingMode,
)
from transav1.models.marker import MARKER_SUFFIXES, FailureMarker, MarkerKind

__all__ = [
    "MARKER_SUFFIXES",
    "ConfigurationError",
    "DiscoveryError",
    "EncodeAttempt",
    "EncodeResult",
    "ErrorSummary",
    "ExitClass",
    "FailureMarker",
    "FilesystemError",
    "ItemStage",
    "ItemState",
    "MarkerKind",
    "ProcessingError",
    "ProcessingItem",
    "ProcessingMode",
    "TransAV1Error",
]

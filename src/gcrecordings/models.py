"""
Value objects passed between pipeline stages
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

AVAILABLE = "AVAILABLE"

# The batch export always produces this container; conversion happens afterwards
EXPORT_FORMAT = "OGG"
EXPORT_EXTENSION = ".ogg"

FINAL_FORMATS = ("OGG", "WAV", "MP3")

ExportStatus = Literal["completed", "no_conversations", "no_recordings", "empty_batch"]


def _safe_component(value: str) -> str:
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value)


@dataclass(frozen=True)
class RecordingDescriptor:
    """Reference to one recording of a conversation, without its bytes."""

    conversation_id: str
    recording_id: str
    file_state: str | None = None

    @property
    def is_available(self) -> bool:
        return self.file_state == AVAILABLE


@dataclass(frozen=True)
class BatchJobHandle:
    """Identifier of a submitted batch export job."""

    batch_id: str
    expected_count: int


@dataclass(frozen=True)
class BatchResultItem:
    """One entry of a batch export status response.

    An item is finalized once the platform sets either ``result_url`` or
    ``error_msg``; until then it is pending.
    """

    conversation_id: str
    recording_id: str
    result_url: str | None = None
    error_msg: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> BatchResultItem:
        return cls(
            conversation_id=str(data.get("conversationId") or ""),
            recording_id=str(data.get("recordingId") or ""),
            result_url=data.get("resultUrl") or None,
            error_msg=data.get("errorMsg") or None,
        )

    @property
    def is_success(self) -> bool:
        return bool(self.result_url)

    @property
    def is_error(self) -> bool:
        return bool(self.error_msg)

    @property
    def is_finalized(self) -> bool:
        return self.is_success or self.is_error

    @property
    def file_stem(self) -> str:
        """Deterministic, filesystem-safe name derived from the identifiers."""
        return f"{_safe_component(self.conversation_id)}_{_safe_component(self.recording_id)}"

    @property
    def label(self) -> str:
        return f"{self.conversation_id}_{self.recording_id}"


@dataclass(frozen=True)
class DownloadedFile:
    """A recording persisted to disk."""

    item: BatchResultItem
    path: Path
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / 1024 / 1024


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one pipeline run."""

    status: ExportStatus
    output_dir: Path | None = None
    downloaded: tuple[DownloadedFile, ...] = ()
    export_errors: tuple[BatchResultItem, ...] = ()
    download_failures: tuple[BatchResultItem, ...] = ()
    transcoded: bool = False

    @property
    def success_count(self) -> int:
        return len(self.downloaded)

    @property
    def error_count(self) -> int:
        return len(self.export_errors) + len(self.download_failures)

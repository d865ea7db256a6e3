"""
Download task model with state machine support.

A DownloadTask exists only while one media body is streamed into its sink.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sink import MediaSink


class DownloadState(StrEnum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidStateTransitionError(Exception):
    """Raised when attempting an invalid state transition."""

    pass


STATE_TRANSITIONS = {
    DownloadState.PENDING: {
        DownloadState.DOWNLOADING,
        DownloadState.FAILED,
    },
    DownloadState.DOWNLOADING: {
        DownloadState.COMPLETED,
        DownloadState.FAILED,
    },
    DownloadState.COMPLETED: set(),
    DownloadState.FAILED: set(),
}


@dataclass
class DownloadTask:
    source_url: str
    referer: str
    sink: MediaSink

    state: DownloadState = DownloadState.PENDING
    error_message: Optional[str] = None

    # Progress
    bytes_written: int = 0
    drain_count: int = 0

    # Timestamps
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    def update_state(self, new_state: DownloadState) -> None:
        """Update the state of the task."""
        if new_state not in STATE_TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(
                f"Invalid state transition from {self.state} to {new_state}"
            )

        self.state = new_state
        now = datetime.now().isoformat()
        if new_state == DownloadState.DOWNLOADING:
            self.started_at = now
        elif new_state in (DownloadState.COMPLETED, DownloadState.FAILED):
            self.completed_at = now

    def mark_failed(self, error_message: str) -> None:
        """Mark the task as failed with an error message."""
        self.error_message = error_message
        self.update_state(DownloadState.FAILED)

    @property
    def is_finished(self) -> bool:
        return self.state in (DownloadState.COMPLETED, DownloadState.FAILED)

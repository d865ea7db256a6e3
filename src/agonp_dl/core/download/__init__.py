"""
Download module for streaming resolved media.

- MediaSink: buffered destination with drain-based flow control
- FileSink / BytesSink: file and in-memory sinks
- DownloadTask: state machine of one streamed body
- AuthenticatedDownloader: streams a URL through the logged-in Session

Usage:
    from agonp_dl.core.download import AuthenticatedDownloader, FileSink

    downloader = AuthenticatedDownloader(session)
    task = await downloader.download(
        media_url,
        referer_url="https://agonp.jp/episodes/view/22",
        sink=FileSink("rec.agonp/title.ep22.mp4"),
        on_drain=lambda task: print(task.bytes_written),
    )
"""

from .downloader import DEFAULT_CHUNK_SIZE, AuthenticatedDownloader
from .sink import DEFAULT_HIGH_WATER_MARK, BytesSink, FileSink, MediaSink
from .task import DownloadState, DownloadTask, InvalidStateTransitionError

__all__ = [
    # Task model
    "DownloadTask",
    "DownloadState",
    "InvalidStateTransitionError",
    # Sinks
    "MediaSink",
    "FileSink",
    "BytesSink",
    "DEFAULT_HIGH_WATER_MARK",
    # Downloader
    "AuthenticatedDownloader",
    "DEFAULT_CHUNK_SIZE",
]

"""
Authenticated streaming download.

The media URL is only served to the logged-in session that primed its
media state, with the episode page as Referer.
"""

from typing import Callable, Optional

from ...errors import AgonpError, SinkError
from ...logger import logger
from ..session import RequestDescriptor, Session
from .sink import MediaSink
from .task import DownloadState, DownloadTask

DEFAULT_CHUNK_SIZE = 64 * 1024

DrainCallback = Callable[[DownloadTask], None]


class AuthenticatedDownloader:
    def __init__(self, session: Session, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._session = session
        self._chunk_size = chunk_size

    async def download(
        self,
        media_url: str,
        referer_url: str,
        sink: MediaSink,
        on_drain: Optional[DrainCallback] = None,
    ) -> DownloadTask:
        """Stream ``media_url`` into ``sink``.

        ``on_drain`` is called every time the sink had to be drained
        because its buffer was full, i.e. once per backpressure cycle.

        Returns:
            The finished task with ``state == COMPLETED``.

        Raises:
            HttpError / TransportError: Request failed.
            SinkError: Writing or closing the sink failed.

        Whatever the error, the task is marked FAILED and the sink closed
        before it propagates.
        """
        task = DownloadTask(source_url=media_url, referer=referer_url, sink=sink)
        task.update_state(DownloadState.DOWNLOADING)
        logger.debug(f"Downloading {media_url} (referer {referer_url})")

        try:
            async with self._session.stream(
                RequestDescriptor(url=media_url, headers={"Referer": referer_url})
            ) as response:
                async for chunk in response.content.iter_chunked(self._chunk_size):
                    task.bytes_written += len(chunk)
                    if not sink.write(chunk):
                        await sink.drain()
                        task.drain_count += 1
                        if on_drain is not None:
                            on_drain(task)
            await sink.close()
        except AgonpError as e:
            await self._abort(task, str(e))
            raise
        except OSError as e:
            await self._abort(task, str(e))
            raise SinkError(f"Failed to write media to sink: {e}") from e
        except BaseException as e:
            # Callback errors and cancellation still release the sink
            await self._abort(task, repr(e))
            raise

        task.update_state(DownloadState.COMPLETED)
        logger.debug(
            f"Downloaded {task.bytes_written} bytes in {task.drain_count} drain cycle(s)"
        )
        return task

    async def _abort(self, task: DownloadTask, message: str) -> None:
        task.mark_failed(message)
        try:
            await task.sink.close()
        except OSError as e:
            logger.warning(f"Failed to close sink after error: {e}")

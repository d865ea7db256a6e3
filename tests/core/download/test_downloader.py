"""Tests for AuthenticatedDownloader streaming and flow control."""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from agonp_dl.core.download import (
    AuthenticatedDownloader,
    BytesSink,
    DownloadState,
    FileSink,
)
from agonp_dl.core.download.sink import MediaSink
from agonp_dl.errors import HttpError, SinkError, TransportError


class FailingSink(MediaSink):
    """Sink whose destination breaks on the first flush."""

    def __init__(self):
        super().__init__(high_water_mark=512)
        self.released = False

    async def _flush(self, data: bytes) -> None:
        raise OSError(28, "No space left on device")

    async def _release(self) -> None:
        self.released = True


@pytest.fixture
async def primed(client, credentials):
    """Logged-in client with episode 22 primed and its media URL."""
    await client.login(credentials)
    media_url = await client.get_media_url("22")
    await client.prepare_media_request("21", "22")
    return client, media_url


class TestDownload:
    def test_invalid_chunk_size(self, session):
        with pytest.raises(ValueError):
            AuthenticatedDownloader(session, chunk_size=0)

    async def test_streams_body_with_drain_notifications(self, site, primed):
        client, media_url = primed
        sink = BytesSink(high_water_mark=4096)
        drains = []

        task = await client.download(
            media_url,
            referer_url=client.urls.episode_view("22"),
            sink=sink,
            on_drain=lambda t: drains.append(t.bytes_written),
        )

        assert sink.data == site.media["22"]
        assert sink.closed is True
        assert task.state == DownloadState.COMPLETED
        assert task.bytes_written == len(site.media["22"])
        assert task.drain_count == len(drains)
        assert len(drains) >= 1
        assert drains == sorted(drains)
        assert site.headers["media"][-1]["Referer"] == client.urls.episode_view("22")

    async def test_no_drain_when_buffer_never_fills(self, site, primed):
        client, media_url = primed
        sink = BytesSink(high_water_mark=10 * len(site.media["22"]))
        drains = []

        task = await client.download(
            media_url, client.urls.episode_view("22"), sink, drains.append
        )

        assert drains == []
        assert task.drain_count == 0
        assert sink.data == site.media["22"]

    async def test_unprimed_episode_is_rejected(self, site, client, credentials):
        await client.login(credentials)
        media_url = await client.get_media_url("22")
        sink = BytesSink()

        with pytest.raises(HttpError) as exc_info:
            await client.download(media_url, client.urls.episode_view("22"), sink)
        assert exc_info.value.status == 403
        assert sink.closed is True

    async def test_wrong_referer_is_rejected(self, primed):
        client, media_url = primed
        with pytest.raises(HttpError):
            await client.download(media_url, client.urls.mypage, BytesSink())

    async def test_sink_failure_is_reported(self, primed):
        client, media_url = primed
        sink = FailingSink()

        with pytest.raises(SinkError, match="No space left on device"):
            await client.download(media_url, client.urls.episode_view("22"), sink)
        assert sink.closed is True
        assert sink.released is True

    async def test_writes_file(self, site, primed, tmp_path):
        client, media_url = primed
        path = tmp_path / "episode.mp4"
        await client.download(
            media_url, client.urls.episode_view("22"), FileSink(path, high_water_mark=2048)
        )
        assert path.read_bytes() == site.media["22"]

    async def test_callback_error_closes_sink(self, primed):
        client, media_url = primed
        sink = BytesSink(high_water_mark=1024)
        seen = []

        def on_drain(task):
            seen.append(task)
            raise RuntimeError("progress display broke")

        with pytest.raises(RuntimeError, match="progress display broke"):
            await client.download(
                media_url, client.urls.episode_view("22"), sink, on_drain
            )

        assert sink.closed is True
        assert seen[0].state == DownloadState.FAILED
        assert "progress display broke" in seen[0].error_message


async def _truncated_media(request: web.Request) -> web.StreamResponse:
    response = web.StreamResponse(headers={"Content-Length": "100000"})
    await response.prepare(request)
    await response.write(b"\x00" * 5000)
    request.transport.close()
    return response


@pytest.fixture
async def truncating_server():
    app = web.Application()
    app.router.add_get("/media/{name}", _truncated_media)
    server = TestServer(app)
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}"
    finally:
        await server.close()


class TestConnectionLoss:
    async def test_short_body_raises_transport_error(self, session, truncating_server):
        downloader = AuthenticatedDownloader(session, chunk_size=1024)
        sink = BytesSink(high_water_mark=2048)
        seen = []

        with pytest.raises(TransportError):
            await downloader.download(
                f"{truncating_server}/media/22.mp4",
                f"{truncating_server}/episodes/view/22",
                sink,
                seen.append,
            )

        assert sink.closed is True
        assert seen
        assert seen[-1].state == DownloadState.FAILED
        assert seen[-1].bytes_written < 100000

from pathlib import Path
from typing import Optional, Union

from .core.client import AgonpClient
from .core.download import FileSink
from .core.download.downloader import DrainCallback
from .core.download.sink import DEFAULT_HIGH_WATER_MARK
from .core.model import Credentials, EpisodeInfo
from .core.utils import ensure_positive_id, sanitize_filename
from .errors import SinkError
from .logger import logger


def output_filename(info: EpisodeInfo) -> str:
    """``<title>.ep<episode_id>.<format>`` with unsafe characters replaced."""
    return f"{sanitize_filename(info.title)}.ep{info.episode_id}.{info.media_format}"


async def download_episode(
    client: AgonpClient,
    credentials: Credentials,
    episode_id: Union[str, int],
    output_dir: Union[str, Path],
    media_size: str = "small",
    on_drain: Optional[DrainCallback] = None,
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
) -> Path:
    """Log in, resolve and download one episode.

    Steps run strictly in order and the first failure aborts the rest:
    login, episode info, media URL, media-state priming, download.

    Args:
        client: Open AgonpClient
        credentials: Account used when the session is not logged in yet
        episode_id: Episode to download
        output_dir: Directory receiving the file, created if missing
        media_size: Size variant requested from the media-url API
        on_drain: Progress callback, called once per sink drain
        high_water_mark: Sink buffer size in bytes

    Returns:
        Path of the written file.
    """
    episode_id = ensure_positive_id("episode_id", episode_id)

    logger.info("Checking login state...")
    await client.login_if_not_logged_in(credentials)

    logger.info(f"Fetching episode info for {episode_id}...")
    info = await client.get_episode_info(episode_id)
    logger.info(f"Episode: {info.title} (program {info.program_id}, {info.media_format})")

    logger.info("Resolving media URL...")
    media_url = await client.get_media_url(episode_id, info.media_format, media_size)

    logger.info("Preparing media request...")
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SinkError(f"Cannot create output directory {output_dir}: {e}") from e
    await client.prepare_media_request(info.program_id, episode_id)

    output_path = output_dir / output_filename(info)
    logger.info(f"Downloading to {output_path}")
    task = await client.download(
        media_url,
        referer_url=client.urls.episode_view(episode_id),
        sink=FileSink(output_path, high_water_mark=high_water_mark),
        on_drain=on_drain,
    )
    logger.info(f"Download finished: {task.bytes_written} bytes")
    return output_path

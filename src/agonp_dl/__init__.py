import argparse
import asyncio
import sys
from typing import Optional, Sequence

from .config import load_config
from .core.client import AgonpClient
from .core.download import DownloadTask
from .errors import AgonpError
from .logger import configure_logger, logger
from .worker import download_episode

_SPINNER = ("＼", "│", "／", "─")


class Spinner:
    """Terminal progress indicator, one frame per sink drain."""

    def __init__(self, stream=None):
        self._stream = stream or sys.stdout
        self._count = 0

    def __call__(self, task: DownloadTask) -> None:
        self._count += 1
        frame = _SPINNER[self._count % len(_SPINNER)]
        self._stream.write(f"{frame} {task.bytes_written / 1024 / 1024:.1f} MiB\r")
        self._stream.flush()

    def finish(self) -> None:
        self._stream.write("\n")
        self._stream.flush()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agonp-dl",
        description="Download an AG-ON Premium episode with your account.",
    )
    parser.add_argument("episode_id", help="Numeric episode id, e.g. 22")
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config.toml (default: $CONFIG_PATH or ./config.toml)",
    )
    parser.add_argument(
        "-o", "--output-dir", default=None, help="Override [download] output_dir"
    )
    parser.add_argument(
        "-s", "--size", default=None, help="Override [download] media_size"
    )
    return parser


async def run(argv: Optional[Sequence[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    config = load_config(args.config)

    configure_logger(
        console_level=config.log.level,
        file_level=config.log.file_level,
        rotation=config.log.rotation,
        retention=config.log.retention,
        log_name="agonp_dl",
        log_dir=config.log.dir,
    )

    if not config.validate():
        logger.error("Configuration validation failed. Exiting.")
        return 1

    output_dir = args.output_dir or config.download.output_dir
    media_size = args.size or config.download.media_size
    spinner = Spinner()

    try:
        async with AgonpClient.from_config(
            config.site, chunk_size=config.download.chunk_size
        ) as client:
            path = await download_episode(
                client,
                config.credentials,
                args.episode_id,
                output_dir,
                media_size=media_size,
                on_drain=spinner,
                high_water_mark=config.download.high_water_mark,
            )
    except AgonpError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        spinner.finish()

    logger.info(f"Saved {path}")
    return 0


def main() -> None:
    try:
        sys.exit(asyncio.run(run()))
    except KeyboardInterrupt:
        sys.exit(130)

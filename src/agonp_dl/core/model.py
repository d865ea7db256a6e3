from dataclasses import dataclass, field
from enum import StrEnum


class MediaFormat(StrEnum):
    MP3 = "mp3"
    MP4 = "mp4"


@dataclass(frozen=True)
class Credentials:
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class EpisodeInfo:
    """
    Metadata scraped from an episode view page.

    Ids are kept as the decimal strings found on the page.
    """

    title: str
    program_id: str
    episode_id: str
    media_format: MediaFormat = MediaFormat.MP4


@dataclass(frozen=True)
class CsrfToken:
    value: str
    source_url: str

    def __str__(self) -> str:
        return self.value

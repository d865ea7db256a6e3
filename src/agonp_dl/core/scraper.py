import re
from dataclasses import dataclass
from typing import Union

from bs4 import BeautifulSoup

from ..errors import ParseError, SiteError
from ..logger import logger
from .model import EpisodeInfo
from .session import Session
from .site import ERROR_PAGE_TITLE, SiteUrls
from .utils import ensure_positive_id, normalize_media_format

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

# Assignments inside the player setup script of the episode page
_PROGRAM_ID_RE = re.compile(r"\s+program_id\s+:\s+([1-9]+\d*)")
_MEDIA_MODE_RE = re.compile(r'\s+media_mode\s+:\s+"(.*?)"')


@dataclass(frozen=True)
class EmbeddedMetadata:
    program_id: str
    media_format: str


def normalize_title(raw: str) -> str:
    """Turn line breaks into spaces and collapse whitespace.

    Examples:
        '\\n  第22回<br>特別編  ' -> '第22回 特別編'
    """
    text = _BR_RE.sub(" ", raw or "")
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_error_message(soup: BeautifulSoup) -> str:
    """Collect the text of the paragraphs in the site's error panel."""
    return "".join(p.get_text() for p in soup.select(".panel-body > p")).strip()


def extract_embedded_metadata(html: str) -> EmbeddedMetadata:
    """Pull ``program_id`` and ``media_mode`` out of the raw page source.

    Raises:
        ParseError: ``regexNotMatch`` when either assignment is missing,
            which means the site changed its player script.
    """
    program_match = _PROGRAM_ID_RE.search(html)
    if not program_match:
        raise ParseError("regexNotMatch")

    media_match = _MEDIA_MODE_RE.search(html)
    if not media_match:
        raise ParseError("regexNotMatch")

    return EmbeddedMetadata(
        program_id=program_match.group(1),
        media_format=media_match.group(1),
    )


def parse_episode_page(html: str, episode_id: str) -> EpisodeInfo:
    """Build EpisodeInfo from an episode view page.

    Raises:
        SiteError: The page is the site's error page.
        ParseError: The embedded player assignments are missing.
    """
    soup = BeautifulSoup(html, "lxml")
    title = normalize_title(soup.title.get_text(" ") if soup.title else "")

    if title == ERROR_PAGE_TITLE:
        raise SiteError(extract_error_message(soup))

    metadata = extract_embedded_metadata(html)
    return EpisodeInfo(
        title=title,
        program_id=metadata.program_id,
        episode_id=episode_id,
        media_format=normalize_media_format(metadata.media_format),
    )


class EpisodeInfoExtractor:
    def __init__(self, session: Session, urls: SiteUrls):
        self._session = session
        self._urls = urls

    async def get_episode_info(self, episode_id: Union[str, int]) -> EpisodeInfo:
        """Fetch an episode view page and scrape its metadata."""
        episode_id = ensure_positive_id("episode_id", episode_id)

        response = await self._session.request(self._urls.episode_view(episode_id))
        info = parse_episode_page(response.text(), episode_id)
        logger.debug(f"Episode {episode_id}: {info}")
        return info

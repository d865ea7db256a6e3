from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Union

from ..logger import logger
from .auth import Authenticator
from .csrf import CsrfTokenCache
from .download import AuthenticatedDownloader, DownloadTask, MediaSink
from .download.downloader import DEFAULT_CHUNK_SIZE, DrainCallback
from .model import Credentials, CsrfToken, EpisodeInfo, MediaFormat
from .resolver import MediaResolver
from .scraper import EpisodeInfoExtractor
from .session import Session
from .site import SiteUrls

if TYPE_CHECKING:
    from ..config import SiteConfig


class AgonpClient:
    """
    Facade over one Session and the components that share it.

    Usage:
        async with AgonpClient() as client:
            await client.login_if_not_logged_in(credentials)
            info = await client.get_episode_info("22")
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        urls: Optional[SiteUrls] = None,
        sentinel_program_id: int = 21,
        sentinel_episode_id: int = 22,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.session = session or Session()
        self.urls = urls or SiteUrls()

        self.auth = Authenticator(self.session, self.urls)
        self.episodes = EpisodeInfoExtractor(self.session, self.urls)
        self.csrf = CsrfTokenCache(
            self.session,
            self.urls,
            sentinel_program_id=sentinel_program_id,
            sentinel_episode_id=sentinel_episode_id,
        )
        self.resolver = MediaResolver(self.session, self.urls, self.csrf)
        self.downloader = AuthenticatedDownloader(self.session, chunk_size=chunk_size)

    @classmethod
    def from_config(
        cls, site: SiteConfig, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> "AgonpClient":
        logger.debug(f"Creating client for {site.base_url}")
        return cls(
            session=Session(
                user_agent=site.user_agent,
                connect_timeout=site.connect_timeout,
                read_timeout=site.read_timeout,
            ),
            urls=SiteUrls(site.base_url),
            sentinel_program_id=site.csrf_program_id,
            sentinel_episode_id=site.csrf_episode_id,
            chunk_size=chunk_size,
        )

    async def __aenter__(self) -> "AgonpClient":
        await self.session.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.session.close()

    def find_cookie(self, url: str, name: str) -> Optional[str]:
        return self.session.find_cookie(url, name)

    async def login(self, credentials: Credentials) -> None:
        await self.auth.login(credentials)

    async def login_if_not_logged_in(self, credentials: Credentials) -> bool:
        return await self.auth.login_if_not_logged_in(credentials)

    async def get_episode_info(self, episode_id: Union[str, int]) -> EpisodeInfo:
        return await self.episodes.get_episode_info(episode_id)

    async def get_csrf_token(self, force_refresh: bool = False) -> CsrfToken:
        return await self.csrf.get_csrf_token(force_refresh)

    async def get_media_url(
        self,
        episode_id: Union[str, int],
        media_format: Union[str, MediaFormat] = MediaFormat.MP4,
        size: str = "small",
    ) -> str:
        return await self.resolver.get_media_url(episode_id, media_format, size)

    async def get_media_state(
        self,
        token: Union[CsrfToken, str, None],
        program_id: Union[str, int],
        episode_id: Union[str, int],
        media_format: Union[str, MediaFormat] = MediaFormat.MP4,
    ) -> str:
        return await self.resolver.get_media_state(
            token, program_id, episode_id, media_format
        )

    async def prepare_media_request(
        self,
        program_id: Optional[Union[str, int]] = None,
        episode_id: Optional[Union[str, int]] = None,
    ) -> str:
        return await self.resolver.prepare_media_request(program_id, episode_id)

    async def download(
        self,
        media_url: str,
        referer_url: str,
        sink: MediaSink,
        on_drain: Optional[DrainCallback] = None,
    ) -> DownloadTask:
        return await self.downloader.download(media_url, referer_url, sink, on_drain)

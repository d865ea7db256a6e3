from ..errors import AuthError
from ..logger import logger
from .model import CsrfToken, MediaFormat
from .session import RequestDescriptor, Session
from .site import CSRF_COOKIE_NAME, SiteUrls


class CsrfTokenCache:
    """
    Anti-forgery token for the media-state API.

    The token lives only in the session's cookie jar. A fresh one is issued
    by the server as a side effect of any media-state POST, so a refresh
    posts a throwaway request for a known episode and then re-reads the
    cookie. Staleness is only discovered by a failing downstream call.
    """

    def __init__(
        self,
        session: Session,
        urls: SiteUrls,
        sentinel_program_id: int = 21,
        sentinel_episode_id: int = 22,
    ):
        self._session = session
        self._urls = urls
        self.sentinel_program_id = sentinel_program_id
        self.sentinel_episode_id = sentinel_episode_id

    def _cached(self) -> str | None:
        return self._session.find_cookie(self._urls.media_state_api, CSRF_COOKIE_NAME)

    async def get_csrf_token(self, force_refresh: bool = False) -> CsrfToken:
        """Return the cached token, or provoke the server into issuing one.

        Raises:
            AuthError: ``tokenRequestFailed`` if no cookie was set.
        """
        source_url = self._urls.media_state_api
        value = self._cached()
        if value and not force_refresh:
            return CsrfToken(value=value, source_url=source_url)

        logger.debug(f"Requesting fresh {CSRF_COOKIE_NAME} (forced={force_refresh})")
        await self._session.request(
            RequestDescriptor(
                url=source_url,
                method="POST",
                form={
                    "format": MediaFormat.MP4,
                    "program_id": self.sentinel_program_id,
                    "episode_id": self.sentinel_episode_id,
                    "time": -1,
                    CSRF_COOKIE_NAME: "",
                },
            )
        )

        value = self._cached()
        if not value:
            raise AuthError("tokenRequestFailed")
        return CsrfToken(value=value, source_url=source_url)

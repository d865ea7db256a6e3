import json
from typing import Any, Dict, Optional, Union

from ..errors import ApiError, ParseError
from ..logger import logger
from .csrf import CsrfTokenCache
from .model import CsrfToken, MediaFormat
from .session import RequestDescriptor, Session, SessionResponse
from .site import CSRF_COOKIE_NAME, SiteUrls
from .utils import ensure_positive_id, normalize_media_format

# The media-state API wants a playback position; -1 means "not started"
_MEDIA_STATE_TIME = -1


def parse_api_data(response: SessionResponse) -> Dict[str, Any]:
    """Decode a ``{"data": {...}}`` API response and check its success flag.

    Raises:
        ParseError: Body is not JSON or has no ``data`` object.
        ApiError: ``data.success`` is not ``true``.
    """
    try:
        payload = json.loads(response.text())
    except ValueError as e:
        raise ParseError("invalid JSON") from e

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise ParseError("unexpected API payload: missing 'data' object")

    if data.get("success") is not True:
        raise ApiError(data.get("error"))
    return data


class MediaResolver:
    """
    Resolve the playable URL of an episode and prime its server-side state.

    The site only serves the media URL after a successful media-state call
    for the same episode, so a download needs both ``get_media_url`` and
    ``prepare_media_request``.
    """

    def __init__(
        self,
        session: Session,
        urls: SiteUrls,
        csrf: CsrfTokenCache,
    ):
        self._session = session
        self._urls = urls
        self._csrf = csrf

    async def get_media_url(
        self,
        episode_id: Union[str, int],
        media_format: Union[str, MediaFormat] = MediaFormat.MP4,
        size: str = "small",
    ) -> str:
        episode_id = ensure_positive_id("episode_id", episode_id)
        media_format = normalize_media_format(media_format)

        response = await self._session.request(
            RequestDescriptor(
                url=self._urls.media_url_api,
                params={
                    "episode_id": episode_id,
                    "format": media_format,
                    "size": size,
                },
            )
        )
        data = parse_api_data(response)

        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise ParseError("unexpected API payload: missing 'url'")
        logger.debug(f"Media URL for episode {episode_id}: {url}")
        return url

    async def get_media_state(
        self,
        token: Union[CsrfToken, str, None],
        program_id: Union[str, int],
        episode_id: Union[str, int],
        media_format: Union[str, MediaFormat] = MediaFormat.MP4,
    ) -> str:
        program_id = ensure_positive_id("program_id", program_id)
        episode_id = ensure_positive_id("episode_id", episode_id)
        media_format = normalize_media_format(media_format)

        if token is None:
            token = await self._csrf.get_csrf_token()

        response = await self._session.request(
            RequestDescriptor(
                url=self._urls.media_state_api,
                method="POST",
                form={
                    "format": media_format,
                    "program_id": program_id,
                    "episode_id": episode_id,
                    "time": _MEDIA_STATE_TIME,
                    CSRF_COOKIE_NAME: str(token),
                },
            )
        )
        data = parse_api_data(response)

        result = data.get("result")
        state = result.get("state") if isinstance(result, dict) else None
        if state is None:
            raise ParseError("unexpected API payload: missing 'result.state'")
        return state

    async def prepare_media_request(
        self,
        program_id: Optional[Union[str, int]] = None,
        episode_id: Optional[Union[str, int]] = None,
    ) -> str:
        """Prime the media state of an episode.

        Called without arguments it primes the CSRF sentinel episode, which
        is only useful as a self-test of the login and token flow.
        """
        if program_id is None and episode_id is None:
            program_id = self._csrf.sentinel_program_id
            episode_id = self._csrf.sentinel_episode_id
        else:
            program_id = ensure_positive_id("program_id", program_id)
            episode_id = ensure_positive_id("episode_id", episode_id)

        state = await self.get_media_state(None, program_id, episode_id)
        logger.debug(f"Media state for {program_id}/{episode_id}: {state}")
        return state

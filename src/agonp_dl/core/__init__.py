"""Site client components: session, login, scraping, media resolution and download."""

from .auth import Authenticator
from .client import AgonpClient
from .csrf import CsrfTokenCache
from .model import Credentials, CsrfToken, EpisodeInfo, MediaFormat
from .resolver import MediaResolver
from .scraper import EpisodeInfoExtractor
from .session import RequestDescriptor, Session, SessionResponse
from .site import SiteUrls

__all__ = [
    "AgonpClient",
    "Authenticator",
    "CsrfTokenCache",
    "Credentials",
    "CsrfToken",
    "EpisodeInfo",
    "EpisodeInfoExtractor",
    "MediaFormat",
    "MediaResolver",
    "RequestDescriptor",
    "Session",
    "SessionResponse",
    "SiteUrls",
]

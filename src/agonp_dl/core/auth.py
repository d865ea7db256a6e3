from ..errors import AuthError
from ..logger import logger
from .model import Credentials
from .session import RequestDescriptor, Session
from .site import LOGIN_SUBMIT_MARKER, SiteUrls


class Authenticator:
    """
    Cookie login for the site.

    The site never answers a rejected login with an error status; it sends
    the browser back to the login form. Both checks here therefore look at
    the final URL after redirects.
    """

    def __init__(self, session: Session, urls: SiteUrls):
        self._session = session
        self._urls = urls

    async def login(self, credentials: Credentials) -> None:
        """Post the login form.

        Raises:
            AuthError: ``loginFailed`` when the site lands on the login page again.
        """
        logger.debug(f"Posting login form to {self._urls.login}")
        response = await self._session.request(
            RequestDescriptor(
                url=self._urls.login,
                method="POST",
                form={
                    "email": credentials.email,
                    "password": credentials.password,
                    "submit": LOGIN_SUBMIT_MARKER,
                },
                follow_redirects=True,
            )
        )
        if self._urls.login in response.url:
            raise AuthError("loginFailed")
        logger.info("Login succeeded")

    async def login_if_not_logged_in(self, credentials: Credentials) -> bool:
        """Probe the account home page and log in only when redirected away.

        Returns:
            True if a login was performed, False if the session was already
            authenticated.
        """
        response = await self._session.request(self._urls.mypage)
        if self._urls.mypage in response.url:
            logger.info("Session already authenticated")
            return False

        logger.debug(f"Account home redirected to {response.url}, logging in")
        await self.login(credentials)
        return True

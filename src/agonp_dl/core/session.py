"""
Cookie-backed HTTP session.

This module provides the Session class which owns the cookie jar for one
program run. Every site component issues its requests through the same
Session so that login cookies and the CSRF cookie are shared.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Optional, Union

import aiohttp
from yarl import URL

from ..errors import HttpError, TransportError
from ..logger import logger


@dataclass(frozen=True)
class RequestDescriptor:
    url: str
    method: str = "GET"
    form: Optional[Mapping[str, Any]] = None
    params: Optional[Mapping[str, Any]] = None
    headers: Optional[Mapping[str, str]] = None
    follow_redirects: bool = True

    @classmethod
    def of(cls, target: Union[str, "RequestDescriptor"]) -> "RequestDescriptor":
        """Resolve a bare URL (plain GET) or a full descriptor."""
        if isinstance(target, RequestDescriptor):
            return target
        return cls(url=target)

    def request_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"allow_redirects": self.follow_redirects}
        if self.form is not None:
            kwargs["data"] = {k: str(v) for k, v in self.form.items()}
        if self.params is not None:
            kwargs["params"] = {k: str(v) for k, v in self.params.items()}
        if self.headers:
            kwargs["headers"] = dict(self.headers)
        return kwargs


@dataclass
class SessionResponse:
    """Snapshot of a finished response; ``url`` is the final URL after redirects."""

    status: int
    reason: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    @classmethod
    def from_client_response(
        cls, response: aiohttp.ClientResponse, body: bytes = b""
    ) -> "SessionResponse":
        return cls(
            status=response.status,
            reason=response.reason or "",
            url=str(response.url),
            headers=dict(response.headers),
            body=body,
        )


class Session:
    """
    HTTP context carrying accumulated cookies and a fixed User-Agent.

    Use as an async context manager::

        async with Session(user_agent=ua) as session:
            response = await session.request("https://agonp.jp/mypage")
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        connect_timeout: Optional[float] = 30.0,
        read_timeout: Optional[float] = None,
        cookie_jar: Optional[aiohttp.CookieJar] = None,
        unsafe_cookies: bool = False,
    ):
        self.user_agent = user_agent
        self._timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=connect_timeout,
            sock_read=read_timeout,
        )
        self._cookie_jar = cookie_jar
        self._unsafe_cookies = unsafe_cookies
        self._client: Optional[aiohttp.ClientSession] = None
        self.last_response: Optional[SessionResponse] = None

    async def __aenter__(self) -> "Session":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> None:
        if self._client is not None:
            return
        if self._cookie_jar is None:
            self._cookie_jar = aiohttp.CookieJar(unsafe=self._unsafe_cookies)
        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        self._client = aiohttp.ClientSession(
            cookie_jar=self._cookie_jar,
            headers=headers,
            timeout=self._timeout,
            trust_env=True,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @property
    def cookie_jar(self) -> Optional[aiohttp.CookieJar]:
        return self._cookie_jar

    def _require_client(self) -> aiohttp.ClientSession:
        if self._client is None:
            raise RuntimeError("Session is not open; use 'async with Session()'")
        return self._client

    def _check_status(self, descriptor: RequestDescriptor, snapshot: SessionResponse):
        if snapshot.status != 200:
            message = f"status: {snapshot.status} {snapshot.reason}"
            logger.debug(f"{descriptor.method} {descriptor.url} -> {message}")
            raise HttpError(snapshot.status, message, snapshot)

    async def request(
        self, target: Union[str, RequestDescriptor]
    ) -> SessionResponse:
        """Issue a request and read the whole body.

        Raises:
            HttpError: Final status is not 200. ``error.response`` holds the
                snapshot, including the final URL.
            TransportError: Connection, DNS or timeout failure.
        """
        descriptor = RequestDescriptor.of(target)
        client = self._require_client()
        logger.debug(f"{descriptor.method} {descriptor.url}")

        try:
            async with client.request(
                descriptor.method, descriptor.url, **descriptor.request_kwargs()
            ) as response:
                body = await response.read()
                snapshot = SessionResponse.from_client_response(response, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"{descriptor.method} {descriptor.url} failed: {e!r}"
            ) from e

        self.last_response = snapshot
        self._check_status(descriptor, snapshot)
        return snapshot

    @asynccontextmanager
    async def stream(
        self, target: Union[str, RequestDescriptor]
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """Open a response for incremental reading of its body.

        The same status rules as ``request`` apply before anything is
        yielded. Transport failures while the caller reads the body are
        raised as TransportError as well.
        """
        descriptor = RequestDescriptor.of(target)
        client = self._require_client()
        logger.debug(f"{descriptor.method} {descriptor.url} (stream)")

        try:
            async with client.request(
                descriptor.method, descriptor.url, **descriptor.request_kwargs()
            ) as response:
                snapshot = SessionResponse.from_client_response(response)
                self.last_response = snapshot
                if response.status != 200:
                    snapshot.body = await response.read()
                self._check_status(descriptor, snapshot)
                yield response
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(
                f"{descriptor.method} {descriptor.url} failed: {e!r}"
            ) from e

    def find_cookie(self, url: str, name: str) -> Optional[str]:
        """Look up a cookie that would be sent to ``url``. No network call."""
        if self._cookie_jar is None:
            return None
        morsel = self._cookie_jar.filter_cookies(URL(url)).get(name)
        return morsel.value if morsel is not None else None

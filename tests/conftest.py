"""Shared test helpers and fixtures.

``FakeAgonpSite`` is a small aiohttp.web application that mimics the parts
of the site the client talks to: cookie login with redirects, episode pages
with the embedded player script, both JSON APIs with the rotating
``fuel_csrf_token`` cookie, and a media endpoint that only serves primed,
correctly referred requests.
"""

import json
from collections import Counter

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from agonp_dl.core.client import AgonpClient
from agonp_dl.core.model import Credentials
from agonp_dl.core.session import Session
from agonp_dl.core.site import SiteUrls

EMAIL = "listener@example.com"
PASSWORD = "s3cret"
LOGIN_COOKIE = "agonp_session"


def make_episode_page(
    title: str = "\n    第22回  放送\n  ",
    program_id: str | None = "21",
    media_mode: str | None = "mp4",
) -> str:
    """Build an episode view page with the player setup script."""
    lines = ["var player = {"]
    if program_id is not None:
        lines.append(f"    program_id : {program_id},")
    lines.append("    episode_id : 22,")
    if media_mode is not None:
        lines.append(f'    media_mode : "{media_mode}",')
    lines.append("};")
    script = "\n".join(lines)
    return (
        "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\">"
        f"<title>{title}</title></head>\n"
        f"<body><div id=\"player\"></div>\n<script>\n{script}\n</script>\n"
        "</body></html>"
    )


def make_error_page(message: str = "このエピソードは存在しません。") -> str:
    return (
        "<!DOCTYPE html>\n<html><head><title>\n  エラー\n</title></head>\n"
        "<body><div class=\"panel panel-danger\"><div class=\"panel-body\">"
        f"<p>{message}</p></div></div></body></html>"
    )


class FakeAgonpSite:
    EMAIL = EMAIL
    PASSWORD = PASSWORD
    LOGIN_COOKIE = LOGIN_COOKIE

    def __init__(self):
        self.base_url = ""
        self.hits: Counter[str] = Counter()
        self.calls: list[str] = []
        self.forms: dict[str, list[dict[str, str]]] = {}
        self.params: dict[str, list[dict[str, str]]] = {}
        self.headers: dict[str, list[dict[str, str]]] = {}

        self.episodes: dict[str, str] = {"22": make_episode_page()}
        self.media: dict[str, bytes] = {"22": bytes(range(256)) * 80}
        self.prepared: set[str] = set()

        self.csrf_token: str | None = None
        self._token_seq = 0
        self.issue_csrf_cookie = True

        # Raw bodies replacing the normal API responses when set
        self.media_url_body: str | None = None
        self.media_state_body: str | None = None

    # -- helpers -----------------------------------------------------------

    def _record(self, name: str, request: web.Request) -> None:
        self.hits[name] += 1
        self.calls.append(name)
        self.params.setdefault(name, []).append(dict(request.query))
        self.headers.setdefault(name, []).append(dict(request.headers))

    @staticmethod
    def _logged_in(request: web.Request) -> bool:
        return request.cookies.get(LOGIN_COOKIE) == "valid"

    @staticmethod
    def _redirect(location: str) -> web.Response:
        return web.Response(status=302, headers={"Location": location})

    @staticmethod
    def _json(data: dict) -> web.Response:
        return web.Response(text=json.dumps({"data": data}), content_type="application/json")

    def _rotate_token(self) -> str:
        self._token_seq += 1
        self.csrf_token = f"token-{self._token_seq}"
        return self.csrf_token

    # -- handlers ----------------------------------------------------------

    async def mypage(self, request: web.Request) -> web.Response:
        self._record("mypage", request)
        if not self._logged_in(request):
            return self._redirect("/auth/login")
        return web.Response(text="<html><title>マイページ</title></html>", content_type="text/html")

    async def login_page(self, request: web.Request) -> web.Response:
        self._record("login_page", request)
        return web.Response(text="<html><form method=post></form></html>", content_type="text/html")

    async def login_post(self, request: web.Request) -> web.Response:
        self._record("login_post", request)
        form = dict(await request.post())
        self.forms.setdefault("login_post", []).append(form)
        if form.get("email") == EMAIL and form.get("password") == PASSWORD:
            response = self._redirect("/mypage")
            response.set_cookie(LOGIN_COOKIE, "valid")
            return response
        return self._redirect("/auth/login")

    async def echo(self, request: web.Request) -> web.Response:
        self._record("echo", request)
        return web.json_response({"headers": dict(request.headers)})

    async def episode_view(self, request: web.Request) -> web.Response:
        self._record("episode_view", request)
        html = self.episodes.get(request.match_info["episode_id"], make_error_page())
        return web.Response(text=html, content_type="text/html")

    async def media_url_api(self, request: web.Request) -> web.Response:
        self._record("media_url", request)
        if self.media_url_body is not None:
            return web.Response(text=self.media_url_body, content_type="application/json")
        if not self._logged_in(request):
            return self._json({"success": False, "error": "login required"})
        episode_id = request.query.get("episode_id", "")
        media_format = request.query.get("format", "mp4")
        return self._json(
            {"success": True, "url": f"{self.base_url}/media/{episode_id}.{media_format}"}
        )

    async def media_state_api(self, request: web.Request) -> web.Response:
        self._record("media_state", request)
        form = dict(await request.post())
        self.forms.setdefault("media_state", []).append(form)
        if self.media_state_body is not None:
            return web.Response(text=self.media_state_body, content_type="application/json")

        token = form.get("fuel_csrf_token", "")
        if token and token == self.csrf_token and self._logged_in(request):
            episode_id = form.get("episode_id", "")
            self.prepared.add(episode_id)
            return self._json({"success": True, "result": {"state": f"state-{episode_id}"}})

        response = self._json({"success": False, "error": "invalid csrf token"})
        new_token = self._rotate_token()
        if self.issue_csrf_cookie:
            response.set_cookie("fuel_csrf_token", new_token)
        return response

    async def media_file(self, request: web.Request) -> web.StreamResponse:
        self._record("media", request)
        episode_id = request.match_info["name"].split(".")[0]
        expected_referer = f"{self.base_url}/episodes/view/{episode_id}"
        if (
            not self._logged_in(request)
            or request.headers.get("Referer") != expected_referer
            or episode_id not in self.prepared
        ):
            return web.Response(status=403, text="Forbidden")
        return web.Response(
            body=self.media[episode_id], content_type="application/octet-stream"
        )

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/mypage", self.mypage)
        app.router.add_get("/auth/login", self.login_page)
        app.router.add_post("/auth/login", self.login_post)
        app.router.add_get("/echo", self.echo)
        app.router.add_get("/episodes/view/{episode_id}", self.episode_view)
        app.router.add_get("/api/v1/episodes/media_url.json", self.media_url_api)
        app.router.add_post(
            "/api/v1/programs/episodes/view.json", self.media_state_api
        )
        app.router.add_get("/media/{name}", self.media_file)
        return app


@pytest.fixture
async def site():
    fake = FakeAgonpSite()
    server = TestServer(fake.build_app())
    await server.start_server()
    fake.base_url = f"http://{server.host}:{server.port}"
    try:
        yield fake
    finally:
        await server.close()


@pytest.fixture
def urls(site) -> SiteUrls:
    return SiteUrls(site.base_url)


@pytest.fixture
async def session():
    # The fake site runs on 127.0.0.1; aiohttp only keeps IP cookies when unsafe
    async with Session(user_agent="agonp-dl-tests", unsafe_cookies=True) as s:
        yield s


@pytest.fixture
async def client(site):
    async with AgonpClient(
        session=Session(user_agent="agonp-dl-tests", unsafe_cookies=True),
        urls=SiteUrls(site.base_url),
        chunk_size=1024,
    ) as c:
        yield c


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(email=EMAIL, password=PASSWORD)

from dataclasses import dataclass

CSRF_COOKIE_NAME = "fuel_csrf_token"

# <title> of the page the site renders for any episode-level failure
ERROR_PAGE_TITLE = "エラー"

# Value of the login form's submit button
LOGIN_SUBMIT_MARKER = "ログイン"


@dataclass(frozen=True)
class SiteUrls:
    """Endpoint URLs of the site, derived from its base URL."""

    base_url: str = "https://agonp.jp"

    def __post_init__(self):
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def mypage(self) -> str:
        return f"{self.base_url}/mypage"

    @property
    def login(self) -> str:
        return f"{self.base_url}/auth/login"

    @property
    def media_url_api(self) -> str:
        return f"{self.base_url}/api/v1/episodes/media_url.json"

    @property
    def media_state_api(self) -> str:
        return f"{self.base_url}/api/v1/programs/episodes/view.json"

    def episode_view(self, episode_id: str) -> str:
        return f"{self.base_url}/episodes/view/{episode_id}"

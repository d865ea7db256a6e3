"""
Configuration management module.
TOML file loaded into Pydantic models.
"""

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from tomlkit import dumps as toml_dumps

from .core.model import Credentials
from .logger import logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/56.0.2924.87 Safari/537.36"
)


class SiteConfig(BaseModel):
    base_url: str = "https://agonp.jp"
    user_agent: str = DEFAULT_USER_AGENT
    # Ids posted only to provoke a fresh fuel_csrf_token cookie
    csrf_program_id: int = Field(default=21, gt=0)
    csrf_episode_id: int = Field(default=22, gt=0)
    connect_timeout: float = 30.0
    read_timeout: Optional[float] = None  # Per-socket-read timeout, None disables


class AccountConfig(BaseModel):
    email: str = ""
    password: str = ""


class DownloadConfig(BaseModel):
    output_dir: str = "rec.agonp"
    media_size: str = "small"
    chunk_size: int = Field(default=64 * 1024, gt=0)
    high_water_mark: int = Field(default=1024 * 1024, gt=0)


class LogConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"  # Console log level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    file_level: str = "DEBUG"  # File log level
    rotation: str = (
        "00:00"  # Log rotation time (e.g., "00:00" for midnight, "500 MB" for size-based)
    )
    retention: str = "1 week"  # How long to keep old logs
    dir: str = "logs"  # Log directory, relative to the working directory


class ProxyConfig(BaseModel):
    """Configuration for proxy settings."""

    http: str = ""  # HTTP proxy URL (e.g., "http://127.0.0.1:7890")
    https: str = ""  # HTTPS proxy URL (e.g., "http://127.0.0.1:7890")


class UserConfig(BaseModel):
    site: SiteConfig = SiteConfig()
    account: AccountConfig = AccountConfig()
    download: DownloadConfig = DownloadConfig()
    log: LogConfig = LogConfig()
    proxy: ProxyConfig = ProxyConfig()


class ConfigManager:
    """
    Loads ``config.toml`` once per run.

    A missing file is created with defaults so the user has a template to
    fill in. Call ``reload()`` to pick up edits made after construction.
    """

    def __init__(self, config_path: str = "config.toml"):
        self.config_path = Path(os.getcwd()) / config_path
        self._config: UserConfig = UserConfig()

        self.reload()

    def _set_proxy_env(self) -> None:
        """Set proxy environment variables from configuration."""
        if self._config.proxy.http:
            os.environ["HTTP_PROXY"] = self._config.proxy.http
            logger.info(f"Set HTTP_PROXY to {self._config.proxy.http}")

        if self._config.proxy.https:
            os.environ["HTTPS_PROXY"] = self._config.proxy.https
            logger.info(f"Set HTTPS_PROXY to {self._config.proxy.https}")

    def reload(self) -> None:
        """Read the file again; a broken file leaves the previous values in place."""
        if not self.config_path.exists():
            logger.info(f"Creating default configuration at {self.config_path}")
            self.save()
            return

        try:
            raw = tomllib.loads(self.config_path.read_text(encoding="utf-8"))
            self._config = UserConfig.model_validate(raw)
        except (OSError, tomllib.TOMLDecodeError, PydanticValidationError) as e:
            logger.error(f"Failed to load configuration {self.config_path}: {e}")
            return

        self._set_proxy_env()

    @property
    def data(self) -> UserConfig:
        return self._config

    def save(self) -> None:
        """Write the current values, leaving out unset optional fields."""
        payload = self._config.model_dump(exclude_none=True)
        try:
            self.config_path.write_text(toml_dumps(payload), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")

    def validate(self) -> bool:
        """
        Validate configuration before a download run.

        - site.base_url must be an http(s) URL
        - account.email and account.password are required for login
        - download.output_dir must not be empty

        Returns:
            True if all required configuration is valid, False otherwise.
        """
        errors: list[str] = []

        if not self.site.base_url.startswith(("http://", "https://")):
            errors.append(
                f"Site base URL '{self.site.base_url}' is not an http(s) URL "
                "in [site] base_url."
            )

        if not self.account.email:
            errors.append("Account email is not configured in [account] email.")

        if not self.account.password:
            errors.append(
                "Account password is not configured in [account] password. "
                "Login will fail without it."
            )

        if not self.download.output_dir:
            errors.append("Output directory is empty in [download] output_dir.")

        for e in errors:
            logger.error(f"Config Error: {e}")

        return len(errors) == 0

    @property
    def site(self) -> SiteConfig:
        return self.data.site

    @property
    def account(self) -> AccountConfig:
        return self.data.account

    @property
    def download(self) -> DownloadConfig:
        return self.data.download

    @property
    def log(self) -> LogConfig:
        return self.data.log

    @property
    def proxy(self) -> ProxyConfig:
        return self.data.proxy

    @property
    def credentials(self) -> Credentials:
        return Credentials(email=self.account.email, password=self.account.password)


def load_config(config_path: Optional[str] = None) -> ConfigManager:
    """Build a ConfigManager from an explicit path, ``CONFIG_PATH`` or the default."""
    if config_path:
        return ConfigManager(config_path)
    if os.environ.get("CONFIG_PATH"):
        return ConfigManager(os.environ["CONFIG_PATH"])
    return ConfigManager()

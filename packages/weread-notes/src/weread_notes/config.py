"""Configuration management for weread-notes.

Handles loading and saving configuration from ~/.weread-notes/config.toml
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli_w


CONFIG_DIR = Path.home() / ".weread-notes"
CONFIG_FILE = CONFIG_DIR / "config.toml"
COOKIE_ENV_VAR = "WEREAD_COOKIE"

DEFAULT_BASE_URL = "https://i.weread.qq.com"


def parse_cookie_string(cookie: str) -> dict[str, str]:
    """Parse a raw `Cookie:` header value into a name -> value mapping.

    Example:
        >>> parse_cookie_string("wr_vid=123; wr_skey=abc")
        {'wr_vid': '123', 'wr_skey': 'abc'}
    """
    cookies = {}
    for part in cookie.split(";"):
        name, sep, value = part.strip().partition("=")
        if not sep or not name:
            continue
        cookies[name.strip()] = value.strip()
    return cookies


@dataclass
class HttpConfig:
    """Remote service connection settings."""

    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = 5.0  # seconds
    read_timeout: float = 30.0  # seconds

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


@dataclass
class RetryConfig:
    """Retry behavior for idempotent (GET) requests."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0


@dataclass
class ExportConfig:
    """Notebook export behavior."""

    include_empty_chapters: bool = False
    skip_malformed: bool = False


@dataclass
class WeReadConfig:
    """Complete weread-notes configuration."""

    http: HttpConfig = field(default_factory=HttpConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    cookies: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "WeReadConfig":
        """Load configuration from TOML file.

        Args:
            config_path: Path to config file. Defaults to ~/.weread-notes/config.toml

        Returns:
            WeReadConfig with values from file, or defaults if file doesn't exist
        """
        path = config_path or CONFIG_FILE
        config = cls()
        if path.exists():
            with open(path, "rb") as f:
                data = tomllib.load(f)
            config = cls.from_dict(data)

        env_cookie = os.environ.get(COOKIE_ENV_VAR)
        if env_cookie:
            config.cookies = parse_cookie_string(env_cookie)

        return config

    @classmethod
    def from_dict(cls, data: dict) -> "WeReadConfig":
        config = cls()

        if "http" in data:
            http_data = data["http"]
            config.http = HttpConfig(
                base_url=http_data.get("base_url", DEFAULT_BASE_URL),
                connect_timeout=http_data.get("connect_timeout", 5.0),
                read_timeout=http_data.get("read_timeout", 30.0),
            )

        if "retry" in data:
            retry_data = data["retry"]
            config.retry = RetryConfig(
                max_attempts=retry_data.get("max_attempts", 3),
                initial_delay=retry_data.get("initial_delay", 1.0),
                max_delay=retry_data.get("max_delay", 30.0),
                backoff_factor=retry_data.get("backoff_factor", 2.0),
            )

        if "export" in data:
            export_data = data["export"]
            config.export = ExportConfig(
                include_empty_chapters=export_data.get("include_empty_chapters", False),
                skip_malformed=export_data.get("skip_malformed", False),
            )

        # A [cookies] table wins over a raw cookie string
        if "cookies" in data:
            if not isinstance(data["cookies"], dict):
                raise ValueError("'cookies' must be a table of name = value pairs")
            config.cookies = {str(k): str(v) for k, v in data["cookies"].items()}
        elif "cookie" in data:
            if not isinstance(data["cookie"], str):
                raise ValueError("'cookie' must be a Cookie header string")
            config.cookies = parse_cookie_string(data["cookie"])

        return config

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        The file holds session cookies, so it is only readable by its owner.

        Args:
            config_path: Path to config file. Defaults to ~/.weread-notes/config.toml
        """
        path = config_path or CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "http": {
                "base_url": self.http.base_url,
                "connect_timeout": self.http.connect_timeout,
                "read_timeout": self.http.read_timeout,
            },
            "retry": {
                "max_attempts": self.retry.max_attempts,
                "initial_delay": self.retry.initial_delay,
                "max_delay": self.retry.max_delay,
                "backoff_factor": self.retry.backoff_factor,
            },
            "export": {
                "include_empty_chapters": self.export.include_empty_chapters,
                "skip_malformed": self.export.skip_malformed,
            },
            "cookies": dict(self.cookies),
        }

        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            tomli_w.dump(data, f)
        # O_CREAT leaves the mode of an existing file alone
        os.chmod(path, 0o600)

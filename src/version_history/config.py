"""
Configuration system for version history queries.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from ..shared_utilities import get_logger

CONFIG_FILE = Path(__file__).parent / "sources.json"

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_HISTORY_DIR = "history"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148"
)

# Used when sources.json is missing or unreadable
DEFAULT_ENDPOINTS: dict[str, dict[str, str]] = {
    "i4": {
        "search": (
            "https://search-app-m.i4.cn/getAppList.xhtml?keyword=&model=iPhone"
            "&osversion=14.3&toolversion=100&pagesize=100&pageno=1"
        ),
        "detail": "https://app4.i4.cn/appinfo.xhtml?appid={item_id}&from=1",
    },
    "bilin": {"history": "https://apis.bilin.eu.org/history/{app_id}"},
    "timbrd": {
        "history": "https://api.timbrd.com/apple/app-version/index.php?id={app_id}"
    },
    "agzy": {"history": "https://app.agzy.cn/searchVersion?appid={app_id}"},
    "apple": {"lookup": "https://itunes.apple.com/lookup?id={app_id}"},
}


def _parse_timeout(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(
            f"IPA_HISTORY_TIMEOUT must be a number of seconds, got {raw!r}"
        ) from None
    if not value > 0:
        raise ValueError(f"IPA_HISTORY_TIMEOUT must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class HistoryConfig:
    """Runtime settings shared by every source of one query."""

    history_dir: str = DEFAULT_HISTORY_DIR
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    verify_tls: bool = True
    max_workers: int = 5

    @classmethod
    def from_env(cls, **overrides) -> "HistoryConfig":
        """
        Build a configuration from environment variables.

        Recognised variables: IPA_HISTORY_DIR, IPA_HISTORY_TIMEOUT,
        IPA_HISTORY_VERIFY_TLS. Keyword overrides that are not None win.

        Raises:
            ValueError: If IPA_HISTORY_TIMEOUT is not a positive number
        """
        values: dict = {}
        if os.getenv("IPA_HISTORY_DIR"):
            values["history_dir"] = os.environ["IPA_HISTORY_DIR"]
        if os.getenv("IPA_HISTORY_TIMEOUT"):
            values["timeout_seconds"] = _parse_timeout(
                os.environ["IPA_HISTORY_TIMEOUT"]
            )
        if os.getenv("IPA_HISTORY_VERIFY_TLS"):
            values["verify_tls"] = (
                os.environ["IPA_HISTORY_VERIFY_TLS"].lower() != "false"
            )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def request_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json, text/plain, */*",
        }


@dataclass
class SourceConfig:
    """Endpoint templates for one history source."""

    name: str
    endpoints: dict[str, str] = field(default_factory=dict)
    description: str = ""

    def url(self, endpoint: str, **params: str) -> str:
        """Render an endpoint template, e.g. url("history", app_id="123")."""
        return self.endpoints[endpoint].format(**params)


class SourceConfigManager:
    """Loads source endpoint configuration."""

    def __init__(self, config_file: str | None = None):
        """Initialize config manager.

        Args:
            config_file: Path to a JSON configuration file, defaults to the
                bundled sources.json
        """
        self.logger = get_logger(__name__)
        self.config_file = Path(config_file) if config_file else CONFIG_FILE
        self._configs: dict[str, SourceConfig] = {}
        self._load_configs()

    def _load_defaults(self) -> None:
        self._configs = {
            name: SourceConfig(name=name, endpoints=dict(endpoints))
            for name, endpoints in DEFAULT_ENDPOINTS.items()
        }

    def _load_configs(self) -> None:
        """Load configurations from file, falling back to built-in endpoints."""
        if not self.config_file.exists():
            self.logger.warning(f"Config file not found: {self.config_file}")
            self._load_defaults()
            return

        try:
            with open(self.config_file, encoding="utf-8") as f:
                data = json.load(f)

            for name, source_data in data.items():
                self._configs[name] = SourceConfig(
                    name=name,
                    endpoints=dict(source_data["endpoints"]),
                    description=source_data.get("description", ""),
                )
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to load source configs: {e}")
            self._load_defaults()
            return

        # Sources absent from the file keep their built-in endpoints
        for name, endpoints in DEFAULT_ENDPOINTS.items():
            self._configs.setdefault(
                name, SourceConfig(name=name, endpoints=dict(endpoints))
            )

        self.logger.debug(f"Loaded {len(self._configs)} source configurations")

    def get_config(self, name: str) -> SourceConfig:
        """Get configuration for a source."""
        return self._configs[name]

    def get_available_sources(self) -> list[str]:
        """Get list of configured source names."""
        return list(self._configs.keys())

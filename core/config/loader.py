"""
Settings loader

Loads settings.yaml and derives the runtime configuration.
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from core.constants import Defaults, Paths
from core.types import DeploymentMode


@dataclass(frozen=True)
class AppSettings:
    """Application settings (loaded from settings.yaml)

    Immutable so nothing can change the configuration at runtime
    """

    mode: DeploymentMode
    organization_name: str
    currency: str
    slack_webhook_url: str | None
    web_host: str
    web_port: int


class SettingsLoadError(Exception):
    """settings.yaml could not be loaded"""

    pass


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings.yaml

    Args:
        path: settings.yaml path (None -> default path)

    Returns:
        AppSettings instance

    Raises:
        SettingsLoadError: missing file or malformed content
        ValueError: invalid mode
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"settings.yaml not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"Failed to parse settings.yaml: {e}") from e

    if data is None:
        raise SettingsLoadError("settings.yaml is empty")
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml must contain a mapping")

    mode_str = data.get("mode")
    if mode_str is None:
        raise SettingsLoadError("settings.yaml has no 'mode' field")

    try:
        mode = DeploymentMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in DeploymentMode]
        raise ValueError(
            f"Invalid mode: '{mode_str}'. "
            f"Valid values: {valid_modes}"
        ) from e

    organization = data.get("organization") or {}
    notifications = data.get("notifications") or {}
    web = data.get("web") or {}

    try:
        web_port = int(web.get("port", Defaults.WEB_PORT))
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"web.port must be an integer: {web.get('port')!r}") from e

    return AppSettings(
        mode=mode,
        organization_name=organization.get("name", Defaults.ORGANIZATION_NAME),
        currency=organization.get("currency", Defaults.CURRENCY),
        slack_webhook_url=notifications.get("slack_webhook_url") or None,
        web_host=web.get("host", Defaults.WEB_HOST),
        web_port=web_port,
    )


def get_db_path(settings: AppSettings) -> Path:
    """Return the DB path for the deployment mode

    Args:
        settings: AppSettings instance

    Returns:
        DB file path
    """
    if settings.mode == DeploymentMode.PRODUCTION:
        return Paths.PROD_DB
    return Paths.STAGING_DB


class Settings:
    """Application settings (singleton)

    Loads settings.yaml once and exposes derived values
    """

    _instance: "Settings | None" = None
    _settings: AppSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            self._settings = load_settings(settings_path)

    @property
    def mode(self) -> DeploymentMode:
        """Current deployment mode"""
        assert self._settings is not None
        return self._settings.mode

    @property
    def organization_name(self) -> str:
        assert self._settings is not None
        return self._settings.organization_name

    @property
    def currency(self) -> str:
        assert self._settings is not None
        return self._settings.currency

    @property
    def slack_webhook_url(self) -> str | None:
        """Slack incoming webhook (None disables Slack notifications)"""
        assert self._settings is not None
        return self._settings.slack_webhook_url

    @property
    def web_host(self) -> str:
        assert self._settings is not None
        return self._settings.web_host

    @property
    def web_port(self) -> int:
        assert self._settings is not None
        return self._settings.web_port

    @property
    def db_path(self) -> Path:
        """DB path for the current mode"""
        assert self._settings is not None
        return get_db_path(self._settings)

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (tests)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Return the Settings singleton

    Args:
        settings_path: settings.yaml path (None -> default path)

    Returns:
        Settings singleton
    """
    return Settings(settings_path)

"""
Hard-coded constants - fixed values that almost never change

Important: paths must always be pathlib.Path (Windows/Linux cross-platform)
"""

from pathlib import Path


# Project root (two levels above this file: core/constants.py -> treasury/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """Default values"""

    ORGANIZATION_NAME: str = "NCSS"
    CURRENCY: str = "LKR"

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # Dashboard chart window (days)
    DAILY_FLOW_DAYS: int = 30


class Paths:
    """Project paths (pathlib - OS independent)"""

    # Directories
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"

    # Settings file
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB files
    PROD_DB: Path = DATA_DIR / "treasury_prod.db"
    STAGING_DB: Path = DATA_DIR / "treasury_staging.db"


class StoreLimits:
    """SQLite access limits"""

    BUSY_TIMEOUT_MS: int = 30000  # wait for another writer's lock

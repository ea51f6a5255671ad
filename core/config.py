"""Runtime configuration for the mirror sync service.

Settings come from environment variables, optionally loaded from a `.env`
file at the repository root. Nothing here talks to the network; adapters and
the store are built from these dataclasses by `mirror.orchestrator`.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]

env_path = REPO_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)


class ConfigurationError(Exception):
    """Required configuration is missing or malformed."""
    pass


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


@dataclass
class BusinessCentralSettings:
    """Connection settings shared by both Business Central API surfaces.

    Attributes:
        tenant_id: Azure AD tenant ID
        client_id: Application (client) ID used for client credentials
        client_secret: Client secret
        environment: BC environment name (e.g. "production", "sandbox")
        company_id: BC company GUID
        custom_api_path: publisher/group/version of the custom integration API
        page_size: Preferred OData page size (sent as odata.maxpagesize)
    """
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    environment: str = "production"
    company_id: str = ""
    scope: str = "https://api.businesscentral.dynamics.com/.default"
    authority_url: str = "https://login.microsoftonline.com"
    api_base_url: str = "https://api.businesscentral.dynamics.com"
    custom_api_path: str = "tmc/CISSDMIntegration/v1.0"
    page_size: int = 1000
    timeout_seconds: int = 60

    def validate(self) -> None:
        """Raise ConfigurationError when credentials are incomplete."""
        missing = [
            name for name in ("tenant_id", "client_id", "client_secret", "company_id")
            if not getattr(self, name)
        ]
        if missing:
            env_names = ", ".join(f"BC_{name.upper()}" for name in missing)
            raise ConfigurationError(f"Missing Business Central settings: {env_names}")


@dataclass
class SyncSettings:
    """Settings for the sync pipeline, store and schedule."""
    db_path: Path = field(default_factory=lambda: REPO_ROOT / "erp_mirror.db")
    schedule_cron: str = "0 2 * * *"
    schedule_id: str = "erp-mirror-daily-sync"
    task_queue: str = "erp-sync"
    include_custom_customers: bool = False
    lock_stale_minutes: int = 240
    log_level: str = "INFO"
    log_json: bool = False


@dataclass
class TemporalSettings:
    endpoint: Optional[str] = None
    namespace: str = "default"
    api_key: Optional[str] = None
    cert_path: Optional[str] = None


@dataclass
class Settings:
    business_central: BusinessCentralSettings = field(default_factory=BusinessCentralSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    temporal: TemporalSettings = field(default_factory=TemporalSettings)


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    bc = BusinessCentralSettings(
        tenant_id=os.getenv("BC_TENANT_ID", ""),
        client_id=os.getenv("BC_CLIENT_ID", ""),
        client_secret=os.getenv("BC_CLIENT_SECRET", ""),
        environment=os.getenv("BC_ENVIRONMENT", "production"),
        company_id=os.getenv("BC_COMPANY_ID", ""),
        scope=os.getenv("BC_SCOPE", "https://api.businesscentral.dynamics.com/.default"),
        authority_url=os.getenv("BC_AUTHORITY_URL", "https://login.microsoftonline.com"),
        api_base_url=os.getenv("BC_API_BASE_URL", "https://api.businesscentral.dynamics.com"),
        custom_api_path=os.getenv("BC_CUSTOM_API_PATH", "tmc/CISSDMIntegration/v1.0"),
        page_size=_env_int("BC_PAGE_SIZE", 1000),
        timeout_seconds=_env_int("BC_TIMEOUT_SECONDS", 60),
    )

    db_path = os.getenv("MIRROR_DB_PATH")
    sync = SyncSettings(
        db_path=Path(db_path) if db_path else REPO_ROOT / "erp_mirror.db",
        schedule_cron=os.getenv("SYNC_SCHEDULE_CRON", "0 2 * * *"),
        schedule_id=os.getenv("SYNC_SCHEDULE_ID", "erp-mirror-daily-sync"),
        task_queue=os.getenv("SYNC_TASK_QUEUE", "erp-sync"),
        include_custom_customers=_env_bool("SYNC_INCLUDE_CUSTOM_CUSTOMERS"),
        lock_stale_minutes=_env_int("SYNC_LOCK_STALE_MINUTES", 240),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_bool("LOG_JSON"),
    )

    temporal = TemporalSettings(
        endpoint=os.getenv("TEMPORAL_ENDPOINT"),
        namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
        api_key=os.getenv("TEMPORAL_API_KEY"),
        cert_path=os.getenv("TEMPORAL_CERT_PATH"),
    )

    return Settings(business_central=bc, sync=sync, temporal=temporal)

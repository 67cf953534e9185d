"""Application settings using Pydantic."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database settings."""
    url: str = "sqlite+aiosqlite:///./data/bmcsync.db"
    echo: bool = False  # Log SQL statements


class IpmiSettings(BaseSettings):
    """BMC probing and reconciliation settings.

    Interval values are in milliseconds. A status or detail interval of 0
    leaves that pass manual-only (triggered through the API).
    """
    # Log write results for every reconciled node
    debug: bool = False

    # NIC numbers as enumerated by the BMC (1-based)
    baseboard_nic_no_bmc: int = 1
    baseboard_nic_no_pxe: int = 2

    check_all_interval_ms: int = Field(default=60000, gt=0)
    check_status_interval_ms: int = 0
    check_nodes_detail_interval_ms: int = 0

    # Redfish transport
    username: str = "root"
    password: str = "calvin"
    scheme: str = "https"
    verify_ssl: bool = False  # BMCs ship self-signed certs
    request_timeout: float = 10.0


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_prefix="BMCSYNC_",
        env_nested_delimiter="__",
    )

    host: str = "0.0.0.0"
    port: int = 8090
    debug: bool = False

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ipmi: IpmiSettings = Field(default_factory=IpmiSettings)


settings = Settings()

"""Monitor configuration loaded from environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class MonitorConfig(BaseSettings):
    """Monitor configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Portal settings
    portal_url: str = Field(
        default="https://teacher.gedu.org:9003",
        description="Teacher portal base URL (no trailing slash)",
    )
    portal_user: str = Field(
        default="",
        description="Portal username",
    )
    portal_pass: str = Field(
        default="",
        description="Portal password",
    )
    portal_timezone: str = Field(
        default="Asia/Shanghai",
        description="Time zone the portal's schedule and calendar days are in",
    )
    portal_verify_ssl: bool = Field(
        default=True,
        description="Verify the portal's TLS certificate",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to every portal request",
    )

    # Scheduling
    login_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="How often the login task checks whether a login is needed",
    )
    update_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How often the schedule is polled once logged in",
    )
    monitor_day_range: int = Field(
        default=7,
        ge=1,
        description="Number of calendar days from today compared on each poll",
    )
    notify_on_startup: bool = Field(
        default=True,
        description="Report the first poll against the empty startup schedule",
    )

    # Email report
    smtp_host: str = Field(default="", description="SMTP server host")
    smtp_port: int = Field(default=465, description="SMTP server port")
    smtp_user: str = Field(default="", description="SMTP login, also the sender address")
    smtp_pass: str = Field(default="", description="SMTP password")
    smtp_ssl: bool = Field(
        default=True,
        description="Use implicit TLS (SMTP_SSL). If False, STARTTLS is used",
    )
    report_sender_name: str = Field(
        default="Schedule Sentinel",
        description="Display name in the From header",
    )
    report_receivers: list[str] = Field(
        default_factory=list,
        description='Report recipients, JSON list (e.g. ["a@example.com"])',
    )
    report_cc: list[str] = Field(
        default_factory=list,
        description="Report CC recipients, JSON list",
    )
    report_greeting_name: str = Field(
        default="",
        description="Name used in the report greeting line",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: MonitorConfig | None = None


def get_config() -> MonitorConfig:
    """Get the monitor configuration singleton.

    Returns:
        MonitorConfig: Monitor configuration instance
    """
    global _config
    if _config is None:
        _config = MonitorConfig()
    return _config

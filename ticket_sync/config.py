"""Application configuration"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process-level settings.

    The Jira connection (URL, credentials, project, sync direction) is not read from
    the environment; it lives in the stored settings record so admins can edit it
    at runtime (see `ticket_sync.services.settings_store`).
    """

    # Database
    database_url: str = "sqlite:///./ticket_sync.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Outbound HTTP
    # Upper bound for every Jira / helpdesk call so a slow remote never blocks
    # the triggering event indefinitely.
    jira_timeout_seconds: float = 15.0

    # Helpdesk (host application) REST API used for ticket updates, agent lookup
    # and broadcasts. If unset, inbound changes are logged and dropped.
    helpdesk_api_url: str | None = None
    helpdesk_api_token: str | None = None

    # Shared secret Jira must present on webhook deliveries (header X-Webhook-Token
    # or ?token=...). If unset, webhook deliveries are accepted unauthenticated.
    webhook_token: str | None = None

    # Logging
    log_level: str = "INFO"

    # Auth (optional)
    # When enabled, /api/* routes are protected by HTTP Basic auth,
    # except for the Jira webhook and /health.
    auth_enabled: bool = False
    auth_username: str | None = None
    auth_password: str | None = None

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()

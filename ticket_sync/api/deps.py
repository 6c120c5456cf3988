"""Process-wide service wiring for the HTTP layer.

The stores and clients are built once and handed to handlers explicitly; routes
receive them through FastAPI dependencies so tests can override them.
"""

from functools import lru_cache

from ticket_sync.config import settings
from ticket_sync.models.base import SessionLocal
from ticket_sync.services.helpdesk_client import HostCallbacks, build_host_callbacks
from ticket_sync.services.jira_client import JiraClient
from ticket_sync.services.link_store import LinkStore
from ticket_sync.services.outbound_sync import OutboundSyncHandler
from ticket_sync.services.settings_store import SettingsStore
from ticket_sync.services.webhook_handler import WebhookHandler


@lru_cache
def get_settings_store() -> SettingsStore:
    return SettingsStore(SessionLocal)


@lru_cache
def get_link_store() -> LinkStore:
    return LinkStore(SessionLocal)


@lru_cache
def get_host_callbacks() -> HostCallbacks:
    return build_host_callbacks(
        settings.helpdesk_api_url,
        settings.helpdesk_api_token,
        timeout=settings.jira_timeout_seconds,
    )


def get_jira_client() -> JiraClient:
    return JiraClient(get_settings_store())


def get_outbound_handler() -> OutboundSyncHandler:
    return OutboundSyncHandler(
        get_settings_store(), get_link_store(), get_jira_client(), get_host_callbacks()
    )


def get_webhook_handler() -> WebhookHandler:
    return WebhookHandler(get_settings_store(), get_link_store(), get_host_callbacks())

"""Services"""

from ticket_sync.services.helpdesk_client import HelpdeskClient, HostCallbacks
from ticket_sync.services.jira_client import JiraClient
from ticket_sync.services.link_store import Link, LinkStore
from ticket_sync.services.outbound_sync import OutboundSyncHandler
from ticket_sync.services.settings_store import JiraSettings, SettingsStore, SyncDirection
from ticket_sync.services.webhook_handler import WebhookHandler

__all__ = [
    "HelpdeskClient",
    "HostCallbacks",
    "JiraClient",
    "JiraSettings",
    "Link",
    "LinkStore",
    "OutboundSyncHandler",
    "SettingsStore",
    "SyncDirection",
    "WebhookHandler",
]

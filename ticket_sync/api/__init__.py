"""API routes"""

from ticket_sync.api import events, jira, links, settings, webhooks

__all__ = ["settings", "links", "events", "webhooks", "jira"]

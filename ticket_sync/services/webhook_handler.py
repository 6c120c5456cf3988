"""Jira webhook ingestion: apply remote changes to linked helpdesk tickets"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from ticket_sync.services.helpdesk_client import HostCallbacks
from ticket_sync.services.link_store import LinkStore
from ticket_sync.services.settings_store import SettingsStore, SyncDirection
from ticket_sync.services.status_mapping import map_status_from_jira

logger = logging.getLogger(__name__)

ISSUE_UPDATED_EVENTS = {"jira:issue_updated", "issue_updated"}


class WebhookHandler:
    """Applies Jira change notifications to helpdesk tickets.

    Deliveries may be duplicated or arrive out of order. Each changelog item sets
    an absolute value (status / assignee), so re-applying a delivery is harmless.
    """

    def __init__(self, settings_store: SettingsStore, link_store: LinkStore, host: HostCallbacks):
        self.settings_store = settings_store
        self.link_store = link_store
        self.host = host

    @staticmethod
    def _event_type(payload: Mapping[str, Any]) -> str:
        return str(payload.get("webhookEvent") or payload.get("issue_event_type_name") or "")

    @staticmethod
    def _issue_key(payload: Mapping[str, Any]) -> str:
        issue = payload.get("issue") or {}
        if not isinstance(issue, dict):
            return ""
        return str(issue.get("key") or "")

    @staticmethod
    def _changelog_items(payload: Mapping[str, Any]) -> List[Dict[str, Any]]:
        changelog = payload.get("changelog") or {}
        items = changelog.get("items") if isinstance(changelog, dict) else None
        if not isinstance(items, list):
            return []
        return [i for i in items if isinstance(i, dict)]

    def _update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        # Callbacks may return nothing; only an explicit False means the update failed.
        if self.host.update_ticket(ticket_id, fields) is False:
            logger.warning(f"Helpdesk rejected update for ticket {ticket_id}: {fields}")
            return None
        return fields

    def _apply_status(self, ticket_id: str, change: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        jira_status = change.get("toString") or ""
        local_status = map_status_from_jira(jira_status)
        if local_status is None:
            logger.debug(f"No local status mapped for Jira status '{jira_status}'")
            return None
        return self._update(ticket_id, {"status": local_status})

    def _apply_assignee(self, ticket_id: str, change: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        account_id = change.get("to") or ""
        if not account_id or self.host.find_agent_by_remote_user_id is None:
            return None
        agent_id = self.host.find_agent_by_remote_user_id(str(account_id))
        if agent_id is None:
            logger.debug(f"No agent matches Jira account {account_id}")
            return None
        return self._update(ticket_id, {"assignee_id": agent_id})

    def handle(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Process one webhook delivery.

        Returns a summary of what was applied; never raises for sync failures.
        """
        summary: Dict[str, Any] = {"ticket_id": None, "applied": []}
        if not isinstance(payload, Mapping):
            return summary

        if self.settings_store.all().sync_direction == SyncDirection.OUTBOUND_ONLY:
            return summary

        event = self._event_type(payload)
        issue_key = self._issue_key(payload)
        if not issue_key:
            return summary

        ticket_id = self.link_store.find_ticket_for_issue(issue_key)
        if ticket_id is None:
            # Most webhook traffic is for issues that were never linked.
            return summary
        summary["ticket_id"] = ticket_id

        if event not in ISSUE_UPDATED_EVENTS:
            return summary

        for change in self._changelog_items(payload):
            field = change.get("field") or ""
            try:
                if field == "status":
                    applied = self._apply_status(ticket_id, change)
                elif field == "assignee":
                    applied = self._apply_assignee(ticket_id, change)
                else:
                    continue
            except Exception as e:
                logger.error(f"Failed to apply {field} change from {issue_key} to ticket {ticket_id}: {e}")
                continue
            if applied:
                summary["applied"].append(applied)

        if summary["applied"]:
            logger.info(f"Applied {len(summary['applied'])} change(s) from {issue_key} to ticket {ticket_id}")
        return summary

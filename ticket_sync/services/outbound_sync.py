"""Helpdesk -> Jira synchronization (ticket created / status changed)"""

import logging
from typing import Any, Dict, Mapping

from ticket_sync.services.helpdesk_client import HostCallbacks
from ticket_sync.services.jira_client import JiraClient
from ticket_sync.services.link_store import Link, LinkStore, normalize_ticket_id
from ticket_sync.services.settings_store import SettingsStore, SyncDirection
from ticket_sync.services.status_mapping import map_status_to_jira

logger = logging.getLogger(__name__)

ISSUE_CREATED_EVENT = "jira.issue.created"


class OutboundSyncHandler:
    """Reacts to helpdesk events and pushes them to Jira.

    Event handlers never raise: a ticket must be created / moved in the helpdesk
    whatever happens on the Jira side.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        link_store: LinkStore,
        jira: JiraClient,
        host: HostCallbacks,
    ):
        self.settings_store = settings_store
        self.link_store = link_store
        self.jira = jira
        self.host = host

    def _broadcast_created(self, ticket_id: str, issue_key: str) -> None:
        if self.host.broadcast is None:
            return
        try:
            self.host.broadcast(
                f"ticket.{ticket_id}",
                ISSUE_CREATED_EVENT,
                {"ticket_id": ticket_id, "jira_issue_key": issue_key},
            )
        except Exception as e:
            logger.warning(f"Broadcast of {ISSUE_CREATED_EVENT} for ticket {ticket_id} failed: {e}")

    def _create_and_link(self, ticket: Mapping[str, Any]) -> Dict[str, Any]:
        ticket_id = normalize_ticket_id(ticket.get("id"))
        result = self.jira.create_issue(ticket)
        issue_key = result.get("key")
        if not issue_key:
            if result.get("ok"):
                return {"ok": False, "error": "Jira did not return an issue key"}
            return result

        if ticket_id:
            link = self.link_store.add(ticket_id, issue_key)
            result["link"] = link.to_dict()
            self._broadcast_created(ticket_id, issue_key)
        else:
            logger.warning(f"Created Jira issue {issue_key} for a ticket without id; not linked")
        return result

    def on_ticket_created(self, ticket: Mapping[str, Any]) -> None:
        """Auto-create a Jira issue for a new ticket when enabled and configured."""
        settings = self.settings_store.all()
        if not settings.auto_create:
            return
        if not settings.is_configured():
            logger.debug("auto_create is on but the Jira connection is not configured")
            return
        if not settings.default_project:
            logger.debug("auto_create is on but no default project is set")
            return

        ticket_id = normalize_ticket_id(ticket.get("id"))
        try:
            result = self._create_and_link(ticket)
        except Exception as e:
            logger.error(f"Auto-create of Jira issue for ticket {ticket_id} failed: {e}")
            return
        if not result.get("ok"):
            logger.warning(f"Auto-create of Jira issue for ticket {ticket_id} failed: {result.get('error')}")

    def on_ticket_status_changed(self, ticket_id: Any, new_status: str, old_status: str = None) -> None:
        """Transition every linked Jira issue to the status mapped from ``new_status``."""
        if self.settings_store.all().sync_direction == SyncDirection.INBOUND_ONLY:
            return

        tid = normalize_ticket_id(ticket_id)
        try:
            links = self.link_store.find_by_ticket(tid)
        except Exception as e:
            logger.error(f"Could not load links for ticket {tid}: {e}")
            return
        if not links:
            return

        jira_status = map_status_to_jira(new_status)
        if jira_status is None:
            logger.debug(f"No Jira status mapped for '{new_status}'; ticket {tid} not synced")
            return

        for link in links:
            try:
                result = self.jira.transition_to_status(link.issue_key, jira_status)
            except Exception as e:
                logger.error(f"Failed to transition {link.issue_key} to '{jira_status}': {e}")
                continue
            if result.get("ok"):
                logger.info(
                    f"Ticket {tid} {old_status or '?'} -> {new_status}: moved {link.issue_key} to '{jira_status}'"
                )
            else:
                logger.warning(f"Could not move {link.issue_key} to '{jira_status}': {result.get('error')}")

    def create_issue_for_ticket(self, ticket: Mapping[str, Any]) -> Dict[str, Any]:
        """Explicit "Create Jira issue" action; ignores auto_create and reports errors."""
        if not normalize_ticket_id(ticket.get("id")):
            return {"ok": False, "error": "Ticket id is required"}
        return self._create_and_link(ticket)

    def link_existing_issue(self, ticket_id: Any, issue_key: str) -> Link:
        """Explicit "Link to Jira" action."""
        return self.link_store.add(ticket_id, issue_key)

    def unlink_issue(self, ticket_id: Any, issue_key: str) -> bool:
        return self.link_store.remove(ticket_id, issue_key)

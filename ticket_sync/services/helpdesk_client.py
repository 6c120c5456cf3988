"""Callbacks into the helpdesk (host application) and their REST implementation"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests

logger = logging.getLogger(__name__)

UpdateTicket = Callable[[str, Dict[str, Any]], Any]
FindAgent = Callable[[str], Optional[str]]
Broadcast = Callable[[str, str, Dict[str, Any]], Any]


@dataclass(frozen=True)
class HostCallbacks:
    """What the sync core may ask of the helpdesk.

    ``find_agent_by_remote_user_id`` and ``broadcast`` are optional; None means the
    host does not offer them.
    """

    update_ticket: UpdateTicket
    find_agent_by_remote_user_id: Optional[FindAgent] = None
    broadcast: Optional[Broadcast] = None


class HelpdeskClient:
    """Helpdesk REST API wrapper backing the host callbacks"""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 15.0):
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def update_ticket(self, ticket_id: str, fields: Mapping[str, Any]) -> bool:
        """Apply a partial update to a ticket"""
        try:
            resp = requests.patch(
                f"{self.base_url}/tickets/{ticket_id}",
                json=dict(fields),
                headers=self._headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to update ticket {ticket_id} with {dict(fields)}: {e}")
            return False
        logger.info(f"Updated ticket {ticket_id}: {dict(fields)}")
        return True

    def find_agent_by_remote_user_id(self, jira_account_id: str) -> Optional[str]:
        """Agent id for a Jira account id, or None"""
        try:
            resp = requests.get(
                f"{self.base_url}/agents",
                params={"jira_account_id": jira_account_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to look up agent for Jira account {jira_account_id}: {e}")
            return None

        if isinstance(data, dict):
            data = data.get("data") or data.get("agents") or []
        if not isinstance(data, list) or not data:
            return None
        agent_id = (data[0] or {}).get("id")
        return str(agent_id) if agent_id is not None else None

    def broadcast(self, channel: str, event: str, payload: Mapping[str, Any]) -> None:
        """Best-effort realtime notification"""
        try:
            resp = requests.post(
                f"{self.base_url}/broadcasts",
                json={"channel": channel, "event": event, "payload": dict(payload)},
                headers=self._headers(),
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Broadcast {event} on {channel} failed: {e}")

    def callbacks(self) -> HostCallbacks:
        return HostCallbacks(
            update_ticket=self.update_ticket,
            find_agent_by_remote_user_id=self.find_agent_by_remote_user_id,
            broadcast=self.broadcast,
        )


def _drop_update(ticket_id: str, fields: Dict[str, Any]) -> bool:
    logger.warning(
        f"HELPDESK_API_URL is not configured; dropping update for ticket {ticket_id}: {fields}"
    )
    return False


def build_host_callbacks(
    base_url: Optional[str], token: Optional[str] = None, timeout: float = 15.0
) -> HostCallbacks:
    """Host callbacks for the configured helpdesk, or a logging no-op when unset."""
    if not base_url:
        return HostCallbacks(update_ticket=_drop_update)
    return HelpdeskClient(base_url, token, timeout=timeout).callbacks()

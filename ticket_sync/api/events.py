"""Helpdesk event endpoints.

The helpdesk posts its ticket events here. Event endpoints always accept: sync
problems are logged, never reported back to the ticket workflow.
"""
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from ticket_sync.api.deps import get_outbound_handler
from ticket_sync.security import require_basic_auth
from ticket_sync.services.jira_client import NO_PROJECT_ERROR, NOT_CONFIGURED_ERROR
from ticket_sync.services.outbound_sync import OutboundSyncHandler

router = APIRouter(tags=["events"], dependencies=[Depends(require_basic_auth)])


class TicketPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    subject: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class TicketStatusChanged(BaseModel):
    ticket_id: Union[int, str]
    new_status: str
    old_status: Optional[str] = None


def _ticket_dict(ticket: TicketPayload) -> Dict[str, Any]:
    return ticket.model_dump(exclude_none=True)


@router.post("/api/events/ticket-created", status_code=202)
def ticket_created(ticket: TicketPayload, handler: OutboundSyncHandler = Depends(get_outbound_handler)):
    """ticket.created"""
    handler.on_ticket_created(_ticket_dict(ticket))
    return {"accepted": True}


@router.post("/api/events/ticket-status-changed", status_code=202)
def ticket_status_changed(
    event: TicketStatusChanged, handler: OutboundSyncHandler = Depends(get_outbound_handler)
):
    """ticket.status.changed"""
    handler.on_ticket_status_changed(event.ticket_id, event.new_status, event.old_status)
    return {"accepted": True}


@router.post("/api/tickets/{ticket_id}/jira-issue")
def create_jira_issue(
    ticket_id: str,
    ticket: Dict[str, Any] = Body(default={}),
    handler: OutboundSyncHandler = Depends(get_outbound_handler),
):
    """Create a Jira issue for a ticket and link it"""
    result = handler.create_issue_for_ticket({**ticket, "id": ticket_id})
    if not result.get("ok"):
        error = result.get("error") or "Jira issue creation failed"
        status_code = 400 if error in (NOT_CONFIGURED_ERROR, NO_PROJECT_ERROR) else 502
        raise HTTPException(status_code=status_code, detail=error)
    return {"key": result.get("key"), "link": result.get("link")}

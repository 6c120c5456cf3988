"""Ticket <-> Jira issue link endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ticket_sync.api.deps import get_link_store, get_outbound_handler
from ticket_sync.security import require_basic_auth
from ticket_sync.services.link_store import LinkStore, normalize_issue_key
from ticket_sync.services.outbound_sync import OutboundSyncHandler

router = APIRouter(prefix="/api/links", tags=["links"], dependencies=[Depends(require_basic_auth)])


class LinkCreate(BaseModel):
    ticket_id: str
    issue_key: str


class LinkResponse(BaseModel):
    ticket_id: str
    issue_key: str
    linked_at: str


@router.get("/", response_model=List[LinkResponse])
def list_links(ticket_id: Optional[str] = None, links: LinkStore = Depends(get_link_store)):
    """List links, optionally for one ticket"""
    found = links.find_by_ticket(ticket_id) if ticket_id else links.list_all()
    return [link.to_dict() for link in found]


@router.post("/", response_model=LinkResponse)
def create_link(link: LinkCreate, handler: OutboundSyncHandler = Depends(get_outbound_handler)):
    """Link a ticket to an existing Jira issue (idempotent)"""
    issue_key = normalize_issue_key(link.issue_key)
    if not link.ticket_id.strip() or not issue_key:
        raise HTTPException(status_code=400, detail="ticket_id and issue_key are required")
    return handler.link_existing_issue(link.ticket_id, issue_key).to_dict()


@router.delete("/")
def delete_link(
    ticket_id: str,
    issue_key: str,
    handler: OutboundSyncHandler = Depends(get_outbound_handler),
):
    """Remove a link"""
    if not handler.unlink_issue(ticket_id, normalize_issue_key(issue_key)):
        raise HTTPException(status_code=404, detail="Link not found")
    return {"message": "Link removed successfully"}


@router.get("/issues/{issue_key}")
def get_ticket_for_issue(issue_key: str, links: LinkStore = Depends(get_link_store)):
    """Ticket linked to a Jira issue"""
    issue_key = normalize_issue_key(issue_key)
    ticket_id = links.find_ticket_for_issue(issue_key)
    if ticket_id is None:
        raise HTTPException(status_code=404, detail="No ticket linked to this issue")
    return {"ticket_id": ticket_id, "issue_key": issue_key}

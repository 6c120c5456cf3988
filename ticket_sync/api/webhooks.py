"""Jira webhook endpoint"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ticket_sync.api.deps import get_webhook_handler
from ticket_sync.security import verify_webhook_token
from ticket_sync.services.webhook_handler import WebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/jira", dependencies=[Depends(verify_webhook_token)])
def jira_webhook(
    payload: Dict[str, Any] = Body(...),
    handler: WebhookHandler = Depends(get_webhook_handler),
):
    """Receive a Jira webhook delivery.

    Every JSON object is acknowledged with 200, including events we ignore, so Jira
    does not keep redelivering them.
    """
    try:
        summary = handler.handle(payload)
    except Exception as e:
        logger.error(f"Webhook processing failed: {e}")
        summary = {"ticket_id": None, "applied": []}
    return {"received": True, **summary}

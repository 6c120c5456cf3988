"""Integration settings endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ticket_sync.api.deps import get_jira_client, get_settings_store
from ticket_sync.security import require_basic_auth
from ticket_sync.services.jira_client import JiraClient
from ticket_sync.services.settings_store import MASKED_TOKEN, FieldMapping, SettingsStore, SyncDirection

router = APIRouter(prefix="/api/settings", tags=["settings"], dependencies=[Depends(require_basic_auth)])


class SettingsUpdate(BaseModel):
    jira_url: Optional[str] = None
    api_email: Optional[str] = None
    # Omit, or send the masked value back, to keep the stored token; "" clears it.
    api_token: Optional[str] = None
    default_project: Optional[str] = None
    default_issue_type: Optional[str] = None
    auto_create: Optional[bool] = None
    sync_direction: Optional[SyncDirection] = None
    field_mapping: Optional[List[FieldMapping]] = None


@router.get("/")
def get_settings(store: SettingsStore = Depends(get_settings_store)):
    """Current settings (API token masked)"""
    return store.all().public_dict()


@router.put("/")
def update_settings(update: SettingsUpdate, store: SettingsStore = Depends(get_settings_store)):
    """Save settings; omitted fields keep their stored value"""
    values = update.model_dump(exclude_none=True, mode="json")
    if values.get("api_token") == MASKED_TOKEN:
        del values["api_token"]
    return store.save(values).public_dict()


@router.post("/test-connection")
def test_connection(jira: JiraClient = Depends(get_jira_client)):
    """Check the stored Jira credentials"""
    return jira.test_connection()

"""Jira lookup endpoints used by the link panel"""
from fastapi import APIRouter, Depends, HTTPException

from ticket_sync.api.deps import get_jira_client
from ticket_sync.security import require_basic_auth
from ticket_sync.services.jira_client import NOT_CONFIGURED_ERROR, JiraClient

router = APIRouter(prefix="/api/jira", tags=["jira"], dependencies=[Depends(require_basic_auth)])


def _unwrap(result: dict) -> dict:
    if not result.get("ok"):
        error = result.get("error") or "Jira request failed"
        if error == NOT_CONFIGURED_ERROR:
            raise HTTPException(status_code=400, detail=error)
        status_code = 404 if result.get("http_code") == 404 else 502
        raise HTTPException(status_code=status_code, detail=error)
    data = dict(result)
    data.pop("ok", None)
    return data


@router.get("/issues/{issue_key}")
def get_issue(issue_key: str, jira: JiraClient = Depends(get_jira_client)):
    """Fetch a Jira issue"""
    return _unwrap(jira.get_issue(issue_key))


@router.get("/search")
def search_issues(jql: str, max_results: int = 10, jira: JiraClient = Depends(get_jira_client)):
    """Search Jira issues with JQL"""
    return _unwrap(jira.search_issues(jql, max_results=max_results))

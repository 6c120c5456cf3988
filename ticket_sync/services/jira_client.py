"""Jira REST API v3 client.

Every call returns a plain dict with an ``ok`` flag instead of raising: on success
the decoded response body is merged in at the top level, on failure ``error``
(and ``http_code`` when the server answered) describe what went wrong.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import requests

from ticket_sync.config import settings as app_settings
from ticket_sync.services.settings_store import SettingsStore
from ticket_sync.services.status_mapping import build_issue_fields

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/3"

NOT_CONFIGURED_ERROR = "Jira connection is not configured."
NO_PROJECT_ERROR = "No default Jira project configured."
TRANSITION_NOT_FOUND = "transition_not_found"


class JiraClient:
    """Wrapper for the Jira operations the sync needs"""

    def __init__(self, settings_store: SettingsStore, timeout: Optional[float] = None):
        self.settings_store = settings_store
        self.timeout = timeout if timeout is not None else app_settings.jira_timeout_seconds

    @staticmethod
    def _error_text(response: requests.Response, data: Any) -> str:
        """Human-readable error from a failed Jira response."""
        if isinstance(data, dict):
            messages = [str(m) for m in data.get("errorMessages") or [] if m]
            if messages:
                return "; ".join(messages)
            # Field-level validation errors, e.g. {"summary": "You must specify a summary"}
            field_errors = data.get("errors")
            if isinstance(field_errors, dict) and field_errors:
                return "; ".join(f"{k}: {v}" for k, v in field_errors.items())
            if data.get("message"):
                return str(data["message"])
        body = (response.text or "").strip()
        return body or f"HTTP {response.status_code}"

    def request(self, method: str, path: str, body: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Send an authenticated request and normalize the result.

        For GET the body is sent as query parameters, for POST/PUT as JSON.
        """
        settings = self.settings_store.all()
        base_url = (settings.jira_url or "").rstrip("/")
        email = settings.api_email or ""
        token = settings.api_token or ""

        if not base_url or not email or not token:
            return {"ok": False, "error": NOT_CONFIGURED_ERROR}

        method = method.upper()
        url = f"{base_url}{path}"
        kwargs: Dict[str, Any] = {
            "auth": (email, token),
            "headers": {"Accept": "application/json", "Content-Type": "application/json"},
            "timeout": self.timeout,
        }
        if method == "GET":
            if body:
                kwargs["params"] = dict(body)
        elif method != "DELETE":
            kwargs["json"] = dict(body or {})

        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Jira request timed out after {self.timeout}s: {method} {path}")
            return {"ok": False, "error": f"Timed out after {self.timeout}s: {method} {path}"}
        except requests.exceptions.RequestException as e:
            logger.error(f"Jira request failed: {method} {path}: {e}")
            return {"ok": False, "error": str(e) or e.__class__.__name__}
        except Exception as e:
            logger.error(f"Jira request raised unexpectedly: {method} {path}: {e}")
            return {"ok": False, "error": str(e) or e.__class__.__name__}

        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None

        if not response.ok:
            error = self._error_text(response, data)
            logger.warning(f"Jira API error {response.status_code} on {method} {path}: {error}")
            return {"ok": False, "error": error, "http_code": response.status_code}

        result: Dict[str, Any] = {"ok": True}
        if isinstance(data, dict):
            result.update(data)
            result["ok"] = True
        return result

    def test_connection(self) -> Dict[str, Any]:
        """Check that the stored credentials can reach Jira."""
        response = self.request("GET", f"{API_PREFIX}/myself")
        if not response.get("ok"):
            return {"success": False, "message": response.get("error") or "Connection failed"}
        return {"success": True, "message": f"Connected as {response.get('displayName') or 'Unknown'}"}

    def create_issue(self, ticket: Mapping[str, Any]) -> Dict[str, Any]:
        """Create a Jira issue from a helpdesk ticket."""
        settings = self.settings_store.all()
        if not settings.default_project:
            return {"ok": False, "error": NO_PROJECT_ERROR}

        fields = build_issue_fields(ticket, settings)
        result = self.request("POST", f"{API_PREFIX}/issue", {"fields": fields})
        if result.get("ok"):
            logger.info(f"Created Jira issue {result.get('key')} in project {settings.default_project}")
        return result

    def get_issue(self, issue_key: str) -> Dict[str, Any]:
        return self.request("GET", f"{API_PREFIX}/issue/{issue_key}")

    def search_issues(self, jql: str, max_results: int = 10) -> Dict[str, Any]:
        """Search issues with JQL."""
        return self.request("GET", f"{API_PREFIX}/search", {"jql": jql, "maxResults": int(max_results)})

    def get_transitions(self, issue_key: str) -> Dict[str, Any]:
        return self.request("GET", f"{API_PREFIX}/issue/{issue_key}/transitions")

    def transition_issue(self, issue_key: str, transition_id: str) -> Dict[str, Any]:
        return self.request(
            "POST",
            f"{API_PREFIX}/issue/{issue_key}/transitions",
            {"transition": {"id": str(transition_id)}},
        )

    def transition_to_status(self, issue_key: str, target_status_name: str) -> Dict[str, Any]:
        """Move an issue to the named status.

        Jira addresses transitions by id, and the valid ids depend on the issue's
        current state, so the list is fetched fresh on every call.
        """
        transitions_response = self.get_transitions(issue_key)
        if not transitions_response.get("ok"):
            return transitions_response

        transitions: List[Dict[str, Any]] = transitions_response.get("transitions") or []
        wanted = (target_status_name or "").casefold()
        for transition in transitions:
            to_name = ((transition or {}).get("to") or {}).get("name") or ""
            if to_name.casefold() == wanted:
                logger.info(
                    f"Transitioning {issue_key} to '{to_name}' via transition {transition.get('id')}"
                )
                return self.transition_issue(issue_key, str(transition.get("id")))

        return {
            "ok": False,
            "error": f"No transition found to status '{target_status_name}'",
            "reason": TRANSITION_NOT_FOUND,
        }

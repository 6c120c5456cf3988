"""Status and field translation between the helpdesk and Jira.

The two status tables are authored independently and are not inverses of each
other: both local ``resolved`` and ``closed`` go to Jira "Done", while "Done"
comes back as ``resolved``.
"""

from typing import Any, Dict, Mapping, Optional

from ticket_sync.services.settings_store import JiraSettings

JIRA_TO_LOCAL_STATUS: Dict[str, str] = {
    "To Do": "open",
    "Open": "open",
    "In Progress": "in_progress",
    "In Review": "in_progress",
    "Done": "resolved",
    "Resolved": "resolved",
    "Closed": "closed",
}

LOCAL_TO_JIRA_STATUS: Dict[str, str] = {
    "open": "To Do",
    "pending": "To Do",
    "in_progress": "In Progress",
    "resolved": "Done",
    "closed": "Done",
}

DEFAULT_SUMMARY = "Helpdesk Ticket"

# Jira fields left out of the create call: status moves via transitions,
# assignee needs a Jira account id rather than a helpdesk agent, and priority
# names are per-instance in Jira, so a helpdesk value is rejected unless it
# happens to match exactly.
_NOT_CREATABLE = {"status", "assignee", "priority"}


def map_status_from_jira(jira_status: Optional[str]) -> Optional[str]:
    """Local status for a Jira status name, or None if unmapped."""
    if not jira_status:
        return None
    return JIRA_TO_LOCAL_STATUS.get(jira_status)


def map_status_to_jira(local_status: Optional[str]) -> Optional[str]:
    """Jira status name for a local status, or None if unmapped."""
    if not local_status:
        return None
    return LOCAL_TO_JIRA_STATUS.get(str(local_status))


def adf_document(text: Optional[str]) -> Dict[str, Any]:
    """Wrap plain text in a single-paragraph Atlassian Document Format doc."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text or ""}],
            }
        ],
    }


def build_issue_fields(ticket: Mapping[str, Any], settings: JiraSettings) -> Dict[str, Any]:
    """Build the ``fields`` object of a Jira create-issue request from a ticket."""
    fields: Dict[str, Any] = {
        "project": {"key": settings.default_project},
        "issuetype": {"name": settings.default_issue_type or "Task"},
    }

    for entry in settings.field_mapping:
        jira_field = entry.jira_field
        if not jira_field or jira_field in _NOT_CREATABLE or jira_field in fields:
            continue
        value = ticket.get(entry.local_field)

        if jira_field == "summary":
            fields["summary"] = str(value) if value else DEFAULT_SUMMARY
        elif jira_field == "description":
            fields["description"] = adf_document(str(value) if value is not None else "")
        elif value is not None:
            fields[jira_field] = value

    # Jira rejects issues without a summary.
    fields.setdefault("summary", str(ticket.get("subject") or DEFAULT_SUMMARY))
    return fields

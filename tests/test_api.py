import logging
import unittest
from unittest.mock import Mock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

logging.disable(logging.CRITICAL)


def _session_factory():
    from ticket_sync.models.base import init_db

    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        from ticket_sync.api import deps
        from ticket_sync.main import app
        from ticket_sync.services.helpdesk_client import HostCallbacks
        from ticket_sync.services.link_store import LinkStore
        from ticket_sync.services.outbound_sync import OutboundSyncHandler
        from ticket_sync.services.settings_store import SettingsStore
        from ticket_sync.services.webhook_handler import WebhookHandler

        factory = _session_factory()
        self.settings_store = SettingsStore(factory)
        self.link_store = LinkStore(factory)
        self.jira = Mock()
        self.host = HostCallbacks(update_ticket=Mock(), find_agent_by_remote_user_id=Mock(return_value=None))

        self.app = app
        app.dependency_overrides = {
            deps.get_settings_store: lambda: self.settings_store,
            deps.get_link_store: lambda: self.link_store,
            deps.get_jira_client: lambda: self.jira,
            deps.get_outbound_handler: lambda: OutboundSyncHandler(
                self.settings_store, self.link_store, self.jira, self.host
            ),
            deps.get_webhook_handler: lambda: WebhookHandler(self.settings_store, self.link_store, self.host),
        }
        self.client = TestClient(app)

    def tearDown(self):
        self.app.dependency_overrides = {}


class HealthTests(ApiTestCase):
    def test_health(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "healthy")


class SettingsApiTests(ApiTestCase):
    def test_update_merges_and_masks_token(self):
        resp = self.client.put(
            "/api/settings/",
            json={"jira_url": "https://acme.atlassian.net", "api_token": "secret", "sync_direction": "bidirectional"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["api_token"], "********")

        # Sending the masked value back keeps the stored token.
        self.client.put("/api/settings/", json={"api_token": "********", "default_project": "PROJ"})
        stored = self.settings_store.reload()
        self.assertEqual(stored.api_token, "secret")
        self.assertEqual(stored.default_project, "PROJ")
        self.assertEqual(stored.sync_direction.value, "bidirectional")

        body = self.client.get("/api/settings/").json()
        self.assertEqual(body["jira_url"], "https://acme.atlassian.net")
        self.assertEqual(body["default_issue_type"], "Task")

    def test_empty_token_clears_stored_token(self):
        self.client.put(
            "/api/settings/",
            json={"jira_url": "https://acme.atlassian.net", "api_email": "a@b.c", "api_token": "secret"},
        )
        resp = self.client.put("/api/settings/", json={"api_token": ""})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["api_token"], "")
        stored = self.settings_store.reload()
        self.assertEqual(stored.api_token, "")
        self.assertFalse(stored.is_configured())

    def test_invalid_direction_rejected(self):
        resp = self.client.put("/api/settings/", json={"sync_direction": "sideways"})
        self.assertEqual(resp.status_code, 422)

    def test_test_connection(self):
        self.jira.test_connection.return_value = {"success": True, "message": "Connected as Bot"}
        resp = self.client.post("/api/settings/test-connection")
        self.assertEqual(resp.json(), {"success": True, "message": "Connected as Bot"})


class LinksApiTests(ApiTestCase):
    def test_link_lifecycle(self):
        resp = self.client.post("/api/links/", json={"ticket_id": "42", "issue_key": "PROJ-5"})
        self.assertEqual(resp.status_code, 200)
        first = resp.json()
        again = self.client.post("/api/links/", json={"ticket_id": "42", "issue_key": "PROJ-5"}).json()
        self.assertEqual(first, again)

        self.client.post("/api/links/", json={"ticket_id": "7", "issue_key": "PROJ-6"})
        self.assertEqual(len(self.client.get("/api/links/").json()), 2)
        self.assertEqual(
            [l["issue_key"] for l in self.client.get("/api/links/", params={"ticket_id": "42"}).json()],
            ["PROJ-5"],
        )
        self.assertEqual(self.client.get("/api/links/issues/PROJ-6").json()["ticket_id"], "7")

        resp = self.client.delete("/api/links/", params={"ticket_id": "42", "issue_key": "PROJ-5"})
        self.assertEqual(resp.status_code, 200)
        resp = self.client.delete("/api/links/", params={"ticket_id": "42", "issue_key": "PROJ-5"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(self.client.get("/api/links/issues/PROJ-5").status_code, 404)

    def test_padded_issue_key_can_be_unlinked(self):
        created = self.client.post("/api/links/", json={"ticket_id": "42", "issue_key": " PROJ-5 "}).json()
        self.assertEqual(created["issue_key"], "PROJ-5")

        self.assertEqual(self.client.get("/api/links/issues/PROJ-5%20").json()["issue_key"], "PROJ-5")
        resp = self.client.delete("/api/links/", params={"ticket_id": "42", "issue_key": " PROJ-5 "})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/links/").json(), [])


class EventsApiTests(ApiTestCase):
    def test_ticket_created_always_accepted(self):
        self.settings_store.save(
            {"jira_url": "https://a.atlassian.net", "api_email": "e", "api_token": "t",
             "default_project": "PROJ", "auto_create": True}
        )
        self.jira.create_issue.return_value = {"ok": False, "error": "boom", "http_code": 500}

        resp = self.client.post("/api/events/ticket-created", json={"id": 42, "subject": "S"})

        self.assertEqual(resp.status_code, 202)
        self.jira.create_issue.assert_called_once()
        self.assertEqual(self.link_store.list_all(), [])

    def test_ticket_created_links_issue(self):
        self.settings_store.save(
            {"jira_url": "https://a.atlassian.net", "api_email": "e", "api_token": "t",
             "default_project": "PROJ", "auto_create": True}
        )
        self.jira.create_issue.return_value = {"ok": True, "key": "PROJ-1"}

        self.client.post("/api/events/ticket-created", json={"id": 42, "subject": "S"})
        self.assertEqual(self.link_store.find_ticket_for_issue("PROJ-1"), "42")

    def test_status_changed_transitions_linked_issue(self):
        self.link_store.add("42", "PROJ-5")
        self.jira.transition_to_status.return_value = {"ok": True}

        resp = self.client.post(
            "/api/events/ticket-status-changed",
            json={"ticket_id": 42, "new_status": "resolved", "old_status": "open"},
        )

        self.assertEqual(resp.status_code, 202)
        self.jira.transition_to_status.assert_called_once_with("PROJ-5", "Done")

    def test_manual_create_reports_errors(self):
        self.jira.create_issue.return_value = {"ok": False, "error": "No default Jira project configured."}
        resp = self.client.post("/api/tickets/3/jira-issue", json={"subject": "S"})
        self.assertEqual(resp.status_code, 400)

        self.jira.create_issue.return_value = {"ok": False, "error": "Internal error", "http_code": 500}
        resp = self.client.post("/api/tickets/3/jira-issue", json={"subject": "S"})
        self.assertEqual(resp.status_code, 502)

        self.jira.create_issue.return_value = {"ok": True, "key": "PROJ-3"}
        resp = self.client.post("/api/tickets/3/jira-issue", json={"subject": "S"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["key"], "PROJ-3")
        self.assertEqual(self.link_store.find_ticket_for_issue("PROJ-3"), "3")


class WebhookApiTests(ApiTestCase):
    PAYLOAD = {
        "webhookEvent": "jira:issue_updated",
        "issue": {"key": "PROJ-5"},
        "changelog": {"items": [{"field": "status", "toString": "Done"}]},
    }

    def test_webhook_end_to_end(self):
        self.settings_store.save({"sync_direction": "bidirectional"})
        self.link_store.add("42", "PROJ-5")

        resp = self.client.post("/api/webhooks/jira", json=self.PAYLOAD)

        self.assertEqual(resp.status_code, 200)
        self.host.update_ticket.assert_called_once_with("42", {"status": "resolved"})
        self.assertEqual(resp.json()["applied"], [{"status": "resolved"}])

    def test_unlinked_issue_acknowledged(self):
        self.settings_store.save({"sync_direction": "bidirectional"})

        resp = self.client.post("/api/webhooks/jira", json=self.PAYLOAD)

        self.assertEqual(resp.status_code, 200)
        self.host.update_ticket.assert_not_called()


class JiraApiTests(ApiTestCase):
    def test_get_issue_proxies_and_maps_errors(self):
        self.jira.get_issue.return_value = {"ok": True, "key": "PROJ-1", "fields": {}}
        resp = self.client.get("/api/jira/issues/PROJ-1")
        self.assertEqual(resp.json(), {"key": "PROJ-1", "fields": {}})

        self.jira.get_issue.return_value = {"ok": False, "error": "Issue does not exist", "http_code": 404}
        self.assertEqual(self.client.get("/api/jira/issues/PROJ-404").status_code, 404)

        self.jira.get_issue.return_value = {"ok": False, "error": "Jira connection is not configured."}
        self.assertEqual(self.client.get("/api/jira/issues/PROJ-1").status_code, 400)

    def test_search(self):
        self.jira.search_issues.return_value = {"ok": True, "issues": [], "total": 0}
        resp = self.client.get("/api/jira/search", params={"jql": "project = PROJ", "max_results": 3})
        self.assertEqual(resp.json()["total"], 0)
        self.jira.search_issues.assert_called_once_with("project = PROJ", max_results=3)


if __name__ == "__main__":
    unittest.main()

import logging
import unittest
from unittest.mock import Mock, patch

import requests

logging.disable(logging.CRITICAL)


def _ok(data=None):
    resp = Mock()
    resp.raise_for_status = Mock()
    resp.json = Mock(return_value=data)
    return resp


class HelpdeskClientTests(unittest.TestCase):
    def test_update_ticket_patches_with_token(self):
        from ticket_sync.services.helpdesk_client import HelpdeskClient

        client = HelpdeskClient("https://desk.example/api/", "secret", timeout=3)
        with patch("ticket_sync.services.helpdesk_client.requests.patch", return_value=_ok()) as patch_:
            self.assertTrue(client.update_ticket("42", {"status": "resolved"}))

        args, kwargs = patch_.call_args
        self.assertEqual(args, ("https://desk.example/api/tickets/42",))
        self.assertEqual(kwargs["json"], {"status": "resolved"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer secret")
        self.assertEqual(kwargs["timeout"], 3)

    def test_update_ticket_failure_returns_false(self):
        from ticket_sync.services.helpdesk_client import HelpdeskClient

        client = HelpdeskClient("https://desk.example/api")
        with patch(
            "ticket_sync.services.helpdesk_client.requests.patch",
            side_effect=requests.exceptions.ConnectionError("down"),
        ):
            self.assertFalse(client.update_ticket("42", {"status": "resolved"}))

    def test_find_agent(self):
        from ticket_sync.services.helpdesk_client import HelpdeskClient

        client = HelpdeskClient("https://desk.example/api")
        with patch(
            "ticket_sync.services.helpdesk_client.requests.get",
            return_value=_ok({"data": [{"id": 9, "name": "Ada"}]}),
        ) as get:
            self.assertEqual(client.find_agent_by_remote_user_id("acc-1"), "9")
        self.assertEqual(get.call_args.kwargs["params"], {"jira_account_id": "acc-1"})
        self.assertNotIn("Authorization", get.call_args.kwargs["headers"])

        with patch("ticket_sync.services.helpdesk_client.requests.get", return_value=_ok([])):
            self.assertIsNone(client.find_agent_by_remote_user_id("acc-2"))

    def test_broadcast_failure_is_swallowed(self):
        from ticket_sync.services.helpdesk_client import HelpdeskClient

        client = HelpdeskClient("https://desk.example/api")
        with patch(
            "ticket_sync.services.helpdesk_client.requests.post",
            side_effect=requests.exceptions.Timeout("slow"),
        ):
            client.broadcast("ticket.1", "jira.issue.created", {"ticket_id": "1"})


class BuildHostCallbacksTests(unittest.TestCase):
    def test_unconfigured_helpdesk_has_only_update(self):
        from ticket_sync.services.helpdesk_client import build_host_callbacks

        host = build_host_callbacks(None)
        self.assertIsNone(host.find_agent_by_remote_user_id)
        self.assertIsNone(host.broadcast)
        self.assertFalse(host.update_ticket("1", {"status": "open"}))

    def test_configured_helpdesk_offers_everything(self):
        from ticket_sync.services.helpdesk_client import build_host_callbacks

        host = build_host_callbacks("https://desk.example/api", "t")
        self.assertIsNotNone(host.find_agent_by_remote_user_id)
        self.assertIsNotNone(host.broadcast)


if __name__ == "__main__":
    unittest.main()

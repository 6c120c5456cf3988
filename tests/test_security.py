import base64
import unittest
from unittest.mock import patch

from fastapi import FastAPI, HTTPException
from fastapi.security import HTTPBasicCredentials
from fastapi.testclient import TestClient


def _settings(**overrides):
    from ticket_sync.config import Settings

    return Settings(**overrides)


class BasicAuthTests(unittest.TestCase):
    def test_disabled_auth_allows_anything(self):
        from ticket_sync.security import require_basic_auth

        with patch("ticket_sync.security.settings", _settings(auth_enabled=False)):
            self.assertIsNone(require_basic_auth(None))

    def test_valid_credentials(self):
        from ticket_sync.security import require_basic_auth

        cfg = _settings(auth_enabled=True, auth_username="user", auth_password="pass")
        with patch("ticket_sync.security.settings", cfg):
            self.assertIsNone(require_basic_auth(HTTPBasicCredentials(username="user", password="pass")))

    def test_invalid_or_missing_credentials(self):
        from ticket_sync.security import require_basic_auth

        cfg = _settings(auth_enabled=True, auth_username="user", auth_password="pass")
        with patch("ticket_sync.security.settings", cfg):
            for creds in (None, HTTPBasicCredentials(username="user", password="nope")):
                with self.assertRaises(HTTPException) as ctx:
                    require_basic_auth(creds)
                self.assertEqual(ctx.exception.status_code, 401)
                self.assertIn("WWW-Authenticate", ctx.exception.headers)


class WebhookTokenTests(unittest.TestCase):
    def setUp(self):
        from fastapi import Depends

        from ticket_sync.security import verify_webhook_token

        app = FastAPI()

        @app.post("/hook", dependencies=[Depends(verify_webhook_token)])
        def hook():
            return {"ok": True}

        self.client = TestClient(app)

    def test_token_not_required_when_unset(self):
        with patch("ticket_sync.security.settings", _settings(webhook_token=None)):
            self.assertEqual(self.client.post("/hook").status_code, 200)

    def test_token_via_header_or_query(self):
        with patch("ticket_sync.security.settings", _settings(webhook_token="s3cret")):
            self.assertEqual(self.client.post("/hook").status_code, 401)
            self.assertEqual(self.client.post("/hook", headers={"X-Webhook-Token": "wrong"}).status_code, 401)
            self.assertEqual(self.client.post("/hook", headers={"X-Webhook-Token": "s3cret"}).status_code, 200)
            self.assertEqual(self.client.post("/hook?token=s3cret").status_code, 200)

    def test_basic_header_is_not_a_webhook_token(self):
        token = base64.b64encode(b"user:s3cret").decode("ascii")
        with patch("ticket_sync.security.settings", _settings(webhook_token="s3cret")):
            resp = self.client.post("/hook", headers={"Authorization": f"Basic {token}"})
        self.assertEqual(resp.status_code, 401)


if __name__ == "__main__":
    unittest.main()

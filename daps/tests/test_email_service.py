"""
Tests for email_service message building and send gating.
"""
import pytest
from unittest.mock import MagicMock

from daps.services import email_service


OFFER = {
    "id": 7,
    "status": "approved",
    "offered": 250.0,
    "exp_desc": "Courtside meet & greet",
    "game_desc": "Celtics vs Lakers - 1/21/2026",
    "athlete": {"name": "Jayson Tatum"},
}


class TestOfferStatusContent:
    def test_each_status_has_distinct_subject_and_body(self):
        messages = {
            status: email_service.build_offer_status_email({**OFFER, "status": status})
            for status in ("pending", "approved", "declined")
        }
        subjects = {parts[0] for parts in messages.values()}
        bodies = {parts[1] for parts in messages.values()}
        assert len(subjects) == 3
        assert len(bodies) == 3
        assert "approved" in messages["approved"][0].lower()
        assert "Jayson Tatum" in messages["declined"][1]

    def test_approved_mentions_amount_and_experience(self):
        subject, text, html = email_service.build_offer_status_email(OFFER)
        assert "$250" in text
        assert "Courtside meet & greet" in html

    def test_falls_back_to_game_description(self):
        _, text, _ = email_service.build_offer_status_email({**OFFER, "exp_desc": None})
        assert "Celtics vs Lakers - 1/21/2026" in text

    def test_unknown_status_builds_nothing(self):
        assert email_service.build_offer_status_email({**OFFER, "status": "archived"}) is None


class TestSendOfferStatusEmail:
    @pytest.mark.asyncio
    async def test_unknown_status_is_not_sent(self, monkeypatch):
        send = MagicMock(return_value=True)
        monkeypatch.setattr(email_service, "_send", send)

        assert await email_service.send_offer_status_email("fan@example.com", {**OFFER, "status": "weird"}) is False
        send.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_recipient_is_not_sent(self, monkeypatch):
        send = MagicMock(return_value=True)
        monkeypatch.setattr(email_service, "_send", send)

        assert await email_service.send_offer_status_email(None, OFFER) is False
        send.assert_not_called()

    @pytest.mark.asyncio
    async def test_known_status_is_sent(self, monkeypatch):
        send = MagicMock(return_value=True)
        monkeypatch.setattr(email_service, "_send", send)

        assert await email_service.send_offer_status_email("fan@example.com", OFFER) is True
        to_email, subject, _text, _html = send.call_args.args
        assert to_email == "fan@example.com"
        assert subject == "Your Daps offer was approved"


class TestTransportGating:
    def test_disabled_email_is_skipped_successfully(self, monkeypatch):
        monkeypatch.setattr(email_service, "ENABLE_EMAIL", False)
        client_cls = MagicMock()
        monkeypatch.setattr(email_service, "SendGridAPIClient", client_cls)

        assert email_service._send("fan@example.com", "Hi", "Hello") is True
        client_cls.assert_not_called()

    def test_missing_api_key_is_skipped_successfully(self, monkeypatch):
        monkeypatch.setattr(email_service, "ENABLE_EMAIL", True)
        monkeypatch.setattr(email_service, "SENDGRID_API_KEY", None)
        client_cls = MagicMock()
        monkeypatch.setattr(email_service, "SendGridAPIClient", client_cls)

        assert email_service._send("fan@example.com", "Hi", "Hello") is True
        client_cls.assert_not_called()

    def test_sendgrid_success_and_failure(self, monkeypatch):
        monkeypatch.setattr(email_service, "ENABLE_EMAIL", True)
        monkeypatch.setattr(email_service, "SENDGRID_API_KEY", "SG.test")
        client = MagicMock()
        client.send.return_value = MagicMock(status_code=202, body="")
        monkeypatch.setattr(email_service, "SendGridAPIClient", MagicMock(return_value=client))

        assert email_service._send("fan@example.com", "Hi", "Hello", "<p>Hello</p>") is True
        client.send.assert_called_once()

        client.send.side_effect = RuntimeError("boom")
        assert email_service._send("fan@example.com", "Hi", "Hello") is False

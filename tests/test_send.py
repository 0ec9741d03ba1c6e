"""
Tests for POST /api/sms/send.

Tests cover:
- Successful and failed dispatches with deterministic dispatchers
- Batch validation (empty, malformed numbers, batch cap)
- Unknown model
- Per-number errors not aborting the batch
"""

import pytest

from conftest import create_command, create_model, use_dispatcher
from tracker_sms.config import settings
from tracker_sms.dispatch import DispatchOutcome
from tracker_sms.storage import SessionLocal
from tracker_sms.models import SmsHistory
from tracker_sms.sending import is_valid_phone


def history_count() -> int:
    with SessionLocal() as db:
        return db.query(SmsHistory).count()


class ExplodingDispatcher:
    """Raises for one number, succeeds for the rest."""

    def __init__(self, bad_phone: str):
        self.bad_phone = bad_phone
        self.calls = []

    async def send(self, phone_number, command, model_name):
        self.calls.append(phone_number)
        if phone_number == self.bad_phone:
            raise RuntimeError("gateway exploded")
        return DispatchOutcome(success=True, details="ok", message_id="msg_1")


class TestSendSuccess:
    """Test the happy path."""

    def test_scenario_tk103_status(self, client, always_sent):
        """Send STATUS123456 to two numbers and find both rows in history."""
        model = create_model(client, "TK103")
        create_command(client, model["id"], "STATUS123456")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999", "+5511888888888"],
            "modelId": model["id"],
            "commandText": "STATUS123456",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"] == {"total": 2, "sent": 2, "failed": 0}
        assert data["message"] == "SMS processing completed. Sent: 2, Failed: 0"
        assert "errors" not in data
        for result in data["results"]:
            assert result["status"] in ("sent", "failed")
            assert "TK103" in result["details"]

        history = client.get("/api/sms/history", params={"modelId": model["id"]}).json()
        assert history["pagination"]["total"] == 2
        assert {row["phone_number"] for row in history["data"]} == {"+5511999999999", "+5511888888888"}

    def test_history_row_contents(self, client, always_sent):
        model = create_model(client, "GT06")

        client.post("/api/sms/send", json={
            "phoneNumbers": [" +55 (11) 99999-9999 "],
            "modelId": model["id"],
            "commandText": " RESET# ",
            "notes": "truck 12",
        })

        row = client.get("/api/sms/history").json()["data"][0]
        assert row["phone_number"] == "+55 (11) 99999-9999"
        assert row["command_text"] == "RESET#"
        assert row["status"] == "sent"
        assert row["status_icon"] == "✅"
        assert row["notes"] == "truck 12"
        assert row["model_name"] == "GT06"
        assert row["response_data"]["success"] is True
        assert row["response_data"]["messageId"].startswith("msg_")
        assert row["response_data"]["cost"] == 0.05

    def test_command_text_need_not_be_registered(self, client, always_sent):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["5511999999999"],
            "modelId": model["id"],
            "commandText": "CUSTOM123",
        })

        assert response.status_code == 200
        assert history_count() == 1


class TestSendFailures:
    """Test dispatch failures and per-number errors."""

    def test_all_dispatches_fail(self, client, always_failed):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999", "+5511888888888"],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["summary"] == {"total": 2, "sent": 0, "failed": 2}
        assert all(r["status"] == "failed" for r in data["results"])

        rows = client.get("/api/sms/history", params={"status": "failed"}).json()
        assert rows["pagination"]["total"] == 2
        assert rows["data"][0]["response_data"]["errorCode"] == "NETWORK_ERROR"

    def test_error_on_one_number_does_not_abort_batch(self, client):
        dispatcher = ExplodingDispatcher(bad_phone="+5511888888888")
        use_dispatcher(dispatcher)
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999", "+5511888888888", "+5511777777777"],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 200
        data = response.json()
        assert dispatcher.calls == ["+5511999999999", "+5511888888888", "+5511777777777"]
        assert data["summary"] == {"total": 3, "sent": 2, "failed": 1}
        assert data["errors"] == [{"phone": "+5511888888888", "error": "gateway exploded"}]
        assert [r["phone"] for r in data["results"]] == ["+5511999999999", "+5511777777777"]
        assert history_count() == 2


class TestSendValidation:
    """Test request validation: nothing is written on rejection."""

    def test_invalid_numbers_reject_whole_batch(self, client, always_sent):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999", "12345", "abc-def-ghij"],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid phone numbers detected"
        assert body["invalidPhones"] == ["12345", "abc-def-ghij"]
        assert history_count() == 0

    @pytest.mark.parametrize("phone", [
        "123456789",
        "1" * 21,
        "+55 11 9999x9999",
        "٠١٢٣٤٥٦٧٨٩٠١",
        "０１２３４５６７８９",
    ])
    def test_malformed_number(self, client, always_sent, phone):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": [phone],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 400
        assert response.json()["invalidPhones"] == [phone]

    def test_empty_phone_list(self, client):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": [],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 400
        assert history_count() == 0

    def test_phone_numbers_must_be_a_list(self, client):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": "+5511999999999",
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 400

    def test_missing_command_text(self, client):
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999"],
            "modelId": model["id"],
        })

        assert response.status_code == 400

    def test_unknown_model(self, client, always_sent):
        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999999"],
            "modelId": 9999,
            "commandText": "RESET123456",
        })

        assert response.status_code == 404
        assert history_count() == 0

    def test_batch_cap(self, client, always_sent, monkeypatch):
        monkeypatch.setattr(settings, "MAX_PHONE_NUMBERS_PER_REQUEST", 2)
        model = create_model(client, "TK103")

        response = client.post("/api/sms/send", json={
            "phoneNumbers": ["+5511999999991", "+5511999999992", "+5511999999993"],
            "modelId": model["id"],
            "commandText": "RESET123456",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Too many phone numbers"
        assert history_count() == 0


class TestPhoneValidation:
    """Unit tests for is_valid_phone."""

    @pytest.mark.parametrize("phone", ["+5511999999999", "(11) 99999-9999", " 5511999999999 "])
    def test_valid(self, phone):
        assert is_valid_phone(phone) is True

    def test_only_ascii_digits(self):
        assert is_valid_phone("٠١٢٣٤٥٦٧٨٩٠١") is False
        assert is_valid_phone("０１２３４５６７８９") is False

from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from safeher.adapters import messaging
from safeher.adapters.messaging import DeliveryResult
from safeher.repositories import db, repository


class FakeGateways:
    """Stands in for Twilio/SMTP; each channel can succeed, fail or raise."""

    def __init__(self) -> None:
        self.sms_mode = "ok"
        self.email_mode = "ok"
        self.sms_calls: List[Tuple[str, str]] = []
        self.email_calls: List[Tuple[str, str, str]] = []

    @staticmethod
    def _result(mode: str, channel: str, count: int) -> DeliveryResult:
        if mode == "raise":
            raise RuntimeError(f"{channel} gateway down")
        if mode == "fail":
            return DeliveryResult(success=False, error=f"{channel} rejected")
        return DeliveryResult(success=True, message_id=f"{channel}-{count}")

    async def send_sms(self, phone: str, body: str, timeout: float = 1.0) -> DeliveryResult:
        self.sms_calls.append((phone, body))
        return self._result(self.sms_mode, "sms", len(self.sms_calls))

    async def send_email(self, to_email: str, subject: str, body: str, timeout: float = 1.0) -> DeliveryResult:
        self.email_calls.append((to_email, subject, body))
        return self._result(self.email_mode, "email", len(self.email_calls))


@pytest.fixture
def database(tmp_path):
    db.configure(f"sqlite:///{tmp_path / 'test.db'}")
    repository.init_db()
    yield
    db.configure()


@pytest.fixture
def gateways(monkeypatch):
    fake = FakeGateways()
    monkeypatch.setattr(messaging, "send_sms", fake.send_sms)
    monkeypatch.setattr(messaging, "send_email", fake.send_email)
    return fake


@pytest.fixture
def client(database, gateways):
    from safeher.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def device(database):
    return repository.create_device(device_id="d1", name="Asha", phone="9999999999")

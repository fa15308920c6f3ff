# test/conftest.py

from typing import Any, Dict, List, Optional

import pytest

from config import Settings
from logic.ledger import Registrant
from services.email_delivery import EmailDeliveryError

ADMIN_TOKEN = "s3cret-token"


class FakeSender:
    """Records sends instead of talking to a provider. Set `fail` to simulate an outage."""

    provider = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    def send(self, to_email: str, to_name: Optional[str], subject: str, html: str) -> Dict[str, Any]:
        if self.fail:
            raise EmailDeliveryError("provider down")
        self.sent.append({"to": to_email, "name": to_name, "subject": subject, "html": html})
        return {}


def make_registrant(email: str, name: str = "Maria", phone: str = "41999990000", city: Optional[str] = None) -> Registrant:
    return Registrant(name=name, email=email, phone=phone, city=city)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        MAX_VAGAS=2,
        ADMIN_TOKEN=ADMIN_TOKEN,
        DATA_DIR=str(tmp_path / "data"),
        AUTOSAVE_ENABLED=False,
        BREVO_API_KEY="",
    )


@pytest.fixture
def fake_sender() -> FakeSender:
    return FakeSender()

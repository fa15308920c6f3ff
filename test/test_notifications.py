# test/test_notifications.py

"""
Tests for the e-mail side of a registration:
services/notification_service.py, services/email_delivery.py and
services/sheets_sync.py.

No real provider is contacted: requests.post and the sender are stubbed.
"""

from typing import Any, Dict

import pytest

import services.email_delivery as email_delivery
import services.sheets_sync as sheets_sync
from config import Settings
from logic.ledger import Confirmed, Waitlisted
from services.email_delivery import (
    BrevoEmailSender,
    EmailDeliveryError,
    SmtpEmailSender,
    build_email_sender,
)
from services.notification_service import NotificationService
from services.sheets_sync import SheetsSync, build_sheets_sync

from conftest import FakeSender, make_registrant


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.reason = "Bad Request" if not self.ok else "OK"
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


# --------- NotificationService ---------


def test_confirmation_email_includes_sequence_and_details(settings):
    sender = FakeSender()
    notifier = NotificationService(sender, settings)
    r = make_registrant("ana@example.com", name="Ana <b>", city="Curitiba")

    result = notifier.notify(r, Confirmed(sequence=7, seats_remaining=3))

    assert result.ok is True
    assert len(sender.sent) == 1
    msg = sender.sent[0]
    assert msg["to"] == "ana@example.com"
    assert "Confirmada" in msg["subject"]
    assert "INSCRIÇÃO #007" in msg["html"]
    assert "Curitiba" in msg["html"]
    # user input is escaped
    assert "Ana &lt;b&gt;" in msg["html"]
    assert "Ana <b>" not in msg["html"]


def test_waitlist_email_includes_position(settings):
    sender = FakeSender()
    notifier = NotificationService(sender, settings)

    result = notifier.notify(make_registrant("w@example.com"), Waitlisted(position=4))

    assert result.ok is True
    assert "Lista de Espera" in sender.sent[0]["subject"]
    assert "POSIÇÃO #4" in sender.sent[0]["html"]


def test_delivery_failure_is_reported_not_raised(settings):
    notifier = NotificationService(FakeSender(fail=True), settings)

    result = notifier.notify(make_registrant("a@example.com"), Confirmed(sequence=1, seats_remaining=0))

    assert result.ok is False
    assert "provider down" in result.error


def test_unexpected_sender_error_is_reported_not_raised(settings):
    class Broken:
        provider = "broken"

        def send(self, *args):
            raise RuntimeError("boom")

    result = NotificationService(Broken(), settings).notify(
        make_registrant("a@example.com"), Waitlisted(position=1)
    )

    assert result.ok is False


def test_disabled_notifier_skips(settings):
    notifier = NotificationService(None, settings)

    result = notifier.notify(make_registrant("a@example.com"), Waitlisted(position=1))

    assert notifier.enabled is False
    assert result.ok is False
    assert result.error == "disabled"


# --------- providers ---------


def test_build_email_sender_selects_provider():
    assert build_email_sender(Settings(EMAIL_PROVIDER="brevo", BREVO_API_KEY="")) is None
    assert isinstance(build_email_sender(Settings(EMAIL_PROVIDER="brevo", BREVO_API_KEY="k")), BrevoEmailSender)

    assert build_email_sender(Settings(EMAIL_PROVIDER="smtp")) is None
    smtp = build_email_sender(
        Settings(EMAIL_PROVIDER="smtp", SMTP_HOST="smtp.example.com", SMTP_USERNAME="u", SMTP_PASSWORD="p")
    )
    assert isinstance(smtp, SmtpEmailSender)

    assert build_email_sender(Settings(EMAIL_PROVIDER="carrier-pigeon", BREVO_API_KEY="k")) is None


def test_brevo_sender_posts_expected_payload(monkeypatch: pytest.MonkeyPatch):
    calls: Dict[str, Any] = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(201, {"messageId": "abc"})

    monkeypatch.setattr(email_delivery.requests, "post", fake_post)

    sender = BrevoEmailSender("key-123", "from@example.com", "Eventos")
    data = sender.send("to@example.com", None, "Oi", "<p>hi</p>")

    assert data == {"messageId": "abc"}
    assert calls["url"] == email_delivery.BREVO_URL
    assert calls["headers"]["api-key"] == "key-123"
    assert calls["json"]["sender"] == {"email": "from@example.com", "name": "Eventos"}
    assert calls["json"]["to"] == [{"email": "to@example.com", "name": "to@example.com"}]
    assert calls["json"]["htmlContent"] == "<p>hi</p>"
    assert calls["timeout"] == email_delivery.REQUEST_TIMEOUT_SECONDS


def test_brevo_sender_raises_on_error_status(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        email_delivery.requests,
        "post",
        lambda *a, **k: FakeResponse(401, {"message": "Key not found"}),
    )

    with pytest.raises(EmailDeliveryError, match="401"):
        BrevoEmailSender("bad", "f@example.com", "x").send("t@example.com", "T", "s", "h")


def test_brevo_sender_wraps_network_errors(monkeypatch: pytest.MonkeyPatch):
    def fake_post(*args, **kwargs):
        raise email_delivery.requests.ConnectionError("no route")

    monkeypatch.setattr(email_delivery.requests, "post", fake_post)

    with pytest.raises(EmailDeliveryError):
        BrevoEmailSender("k", "f@example.com", "x").send("t@example.com", "T", "s", "h")


def test_smtp_sender_uses_starttls_and_login(monkeypatch: pytest.MonkeyPatch):
    events = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            events.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            events.append(("starttls",))

        def login(self, user, password):
            events.append(("login", user, password))

        def send_message(self, msg):
            events.append(("send", msg["To"], msg["Subject"]))

    monkeypatch.setattr(email_delivery.smtplib, "SMTP", FakeSMTP)

    sender = SmtpEmailSender("smtp.example.com", 587, "user", "pw", "from@example.com", "Eventos")
    sender.send("to@example.com", "To", "Assunto", "<p>x</p>")

    assert events == [
        ("connect", "smtp.example.com", 587),
        ("starttls",),
        ("login", "user", "pw"),
        ("send", "to@example.com", "Assunto"),
    ]


# --------- sheets sync ---------


def test_sheets_sync_disabled_without_config():
    assert build_sheets_sync(Settings()) is None
    assert isinstance(build_sheets_sync(Settings(GOOGLE_SHEET_ID="id", GOOGLE_SHEETS_TOKEN="t")), SheetsSync)


def test_sheets_sync_appends_row(monkeypatch: pytest.MonkeyPatch):
    calls: Dict[str, Any] = {}

    def fake_post(url, params=None, json=None, headers=None, timeout=None):
        calls.update(url=url, params=params, json=json, headers=headers)
        return FakeResponse(200, {})

    monkeypatch.setattr(sheets_sync.requests, "post", fake_post)

    sync = SheetsSync("sheet-1", "tok")
    result = sync.append(make_registrant("a@example.com", city="Curitiba"), Confirmed(sequence=3, seats_remaining=1))

    assert result.ok is True
    assert "sheet-1" in calls["url"]
    assert calls["headers"]["Authorization"] == "Bearer tok"
    row = calls["json"]["values"][0]
    assert row[1:5] == ["Confirmada", "3", "Maria", "a@example.com"]
    assert row[6] == "Curitiba"


def test_sheets_sync_failure_is_reported_not_raised(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sheets_sync.requests, "post", lambda *a, **k: FakeResponse(403, {}))

    result = SheetsSync("sheet-1", "tok").append(make_registrant("a@example.com"), Waitlisted(position=1))

    assert result.ok is False
    assert result.error == "HTTP 403"

# test/test_registration_service.py

"""
Tests for services/registration_service.py and services/autosave.py

The service glues ledger, store and notifier together. What matters
here is ordering and isolation: the flush happens before follow-ups are
scheduled, and neither a failed save nor a failed e-mail undoes or
fails a registration.
"""

import threading

import pytest

from logic.errors import DuplicateEmailError, NotFoundError
from logic.ledger import Confirmed, Ledger, Waitlisted
from services.autosave import AutosaveTimer
from services.notification_service import NotificationService
from services.registration_service import (
    RegistrationService,
    build_registration_service,
    load_ledger,
)
from services.registration_store import RegistrationStore

from conftest import FakeSender, make_registrant


def _service(tmp_path, settings, sender=None, capacity=2):
    store = RegistrationStore(str(tmp_path / "data"))
    notifier = NotificationService(sender if sender is not None else FakeSender(), settings)
    return RegistrationService(Ledger(capacity=capacity), store, notifier)


def test_register_persists_before_notifying(tmp_path, settings):
    service = _service(tmp_path, settings)
    seen = []

    def schedule(fn, *args):
        # by the time follow-ups are scheduled the snapshot is on disk
        seen.append(service.store.load().confirmed[0].email)
        fn(*args)

    outcome = service.register(make_registrant("a@example.com"), schedule=schedule)

    assert outcome == Confirmed(sequence=1, seats_remaining=1)
    assert seen == ["a@example.com"]
    assert service.notifier.sender.sent[0]["to"] == "a@example.com"


def test_register_waitlisted_sends_waitlist_email(tmp_path, settings):
    service = _service(tmp_path, settings, capacity=0)

    outcome = service.register(make_registrant("w@example.com"))

    assert outcome == Waitlisted(position=1)
    assert "POSIÇÃO #1" in service.notifier.sender.sent[0]["html"]


def test_notification_failure_does_not_fail_registration(tmp_path, settings):
    service = _service(tmp_path, settings, sender=FakeSender(fail=True))

    outcome = service.register(make_registrant("a@example.com"))

    assert isinstance(outcome, Confirmed)
    assert service.status().total_confirmed == 1


def test_save_failure_keeps_registration_in_memory(tmp_path, settings, monkeypatch: pytest.MonkeyPatch):
    service = _service(tmp_path, settings)
    monkeypatch.setattr(service.store, "save", lambda ledger: False)

    outcome = service.register(make_registrant("a@example.com"))

    assert isinstance(outcome, Confirmed)
    assert service.status().total_confirmed == 1


def test_duplicate_is_rejected_before_anything_is_scheduled(tmp_path, settings):
    service = _service(tmp_path, settings)
    service.register(make_registrant("a@example.com"))
    scheduled = []

    with pytest.raises(DuplicateEmailError):
        service.register(make_registrant("a@example.com"), schedule=lambda fn, *a: scheduled.append(fn))

    assert scheduled == []


def test_cancel_promotes_and_notifies_promoted(tmp_path, settings):
    sender = FakeSender()
    service = _service(tmp_path, settings, sender=sender)
    for e in ["a", "b", "c"]:
        service.register(make_registrant(f"{e}@example.com"))
    sender.sent.clear()

    promoted = service.cancel("a@example.com")

    assert promoted.email == "c@example.com"
    assert [m["to"] for m in sender.sent] == ["c@example.com"]
    assert "INSCRIÇÃO #002" in sender.sent[0]["html"]

    on_disk = service.store.load()
    assert [r.email for r in on_disk.confirmed] == ["b@example.com", "c@example.com"]
    assert on_disk.waiting == []


def test_cancel_unknown_raises_not_found(tmp_path, settings):
    service = _service(tmp_path, settings)

    with pytest.raises(NotFoundError):
        service.cancel("ghost@example.com")


def test_sheets_sync_is_scheduled_when_configured(tmp_path, settings):
    service = _service(tmp_path, settings)
    appended = []

    class FakeSheets:
        def append(self, registrant, outcome):
            appended.append((registrant.email, outcome))

    service.sheets = FakeSheets()
    service.register(make_registrant("a@example.com"))

    assert appended == [("a@example.com", Confirmed(sequence=1, seats_remaining=1))]


def test_load_ledger_restores_previous_state(tmp_path, settings):
    first = _service(tmp_path, settings)
    for e in ["a", "b", "c"]:
        first.register(make_registrant(f"{e}@example.com"))

    ledger = load_ledger(RegistrationStore(str(tmp_path / "data")), capacity=2)

    confirmed, waiting = ledger.list_all()
    assert [r.email for r in confirmed] == ["a@example.com", "b@example.com"]
    assert [r.email for r in waiting] == ["c@example.com"]


def test_build_registration_service_uses_settings(settings):
    service = build_registration_service(settings)

    assert service.ledger.capacity == settings.MAX_VAGAS
    assert service.notifier.enabled is False  # no BREVO_API_KEY
    assert service.sheets is None
    assert service.store.primary_path.exists()


# --------- autosave ---------


def test_autosave_timer_flushes_periodically():
    flushed = threading.Event()
    calls = []

    def flush():
        calls.append(1)
        flushed.set()
        return True

    timer = AutosaveTimer(flush, interval_seconds=1)
    timer.start()
    try:
        assert flushed.wait(5)
    finally:
        timer.stop()

    assert calls
    assert timer.running is False


def test_autosave_survives_flush_errors():
    attempts = []
    done = threading.Event()

    def flush():
        attempts.append(1)
        if len(attempts) >= 2:
            done.set()
            return True
        raise RuntimeError("disk on fire")

    timer = AutosaveTimer(flush, interval_seconds=1)
    timer.start()
    try:
        assert done.wait(10)
    finally:
        timer.stop()

    assert len(attempts) >= 2

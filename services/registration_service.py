# services/registration_service.py

"""
Registration flow: ledger mutation -> disk flush -> best-effort follow-ups.

The service is built once at startup (see `build_registration_service`)
and handed to request handlers through `app.state`. Follow-up jobs
(e-mail, sheet sync) go through a `schedule` callable, normally
`BackgroundTasks.add_task`, so they run after the response is ready.
"""

import logging
from typing import Callable, List, Optional, Tuple

from config import Settings
from logic.ledger import Admission, Confirmed, Ledger, LedgerStatus, Registrant
from services.email_delivery import build_email_sender
from services.notification_service import NotificationService
from services.registration_store import RegistrationStore
from services.sheets_sync import SheetsSync, build_sheets_sync

logger = logging.getLogger(__name__)

Schedule = Callable[..., None]


def _run_now(fn: Callable, *args) -> None:
    fn(*args)


class RegistrationService:
    def __init__(
        self,
        ledger: Ledger,
        store: RegistrationStore,
        notifier: NotificationService,
        sheets: Optional[SheetsSync] = None,
    ):
        self.ledger = ledger
        self.store = store
        self.notifier = notifier
        self.sheets = sheets

    def flush(self) -> bool:
        ok = self.store.save(self.ledger)
        if not ok:
            logger.error("Registration data NOT persisted; will retry on next change or autosave")
        return ok

    def register(self, candidate: Registrant, schedule: Optional[Schedule] = None) -> Admission:
        """
        Admit a candidate (confirmed or waitlisted) and persist the result.

        Raises:
            ValidationError / DuplicateEmailError from the ledger; nothing
            after the ledger accepted the candidate can fail the call.
        """
        schedule = schedule or _run_now

        outcome = self.ledger.admit(candidate)
        logger.info(f"New registration {candidate.email}: {outcome}")

        self.flush()

        schedule(self.notifier.notify, candidate, outcome)
        if self.sheets is not None:
            schedule(self.sheets.append, candidate, outcome)

        return outcome

    def cancel(self, email: str, schedule: Optional[Schedule] = None) -> Optional[Registrant]:
        """
        Cancel a confirmed registration; the first waitlisted person takes the seat.

        Raises:
            NotFoundError if the e-mail is not confirmed.
        """
        schedule = schedule or _run_now

        promoted = self.ledger.cancel(email)
        logger.info(f"Registration cancelled: {email}")

        self.flush()

        if promoted is not None:
            logger.info(f"Promoted from waitlist: {promoted.email} (#{promoted.sequence})")
            outcome = Confirmed(sequence=promoted.sequence, seats_remaining=self.ledger.status().seats_remaining)
            schedule(self.notifier.notify, promoted, outcome)

        return promoted

    def status(self) -> LedgerStatus:
        return self.ledger.status()

    def list_all(self) -> Tuple[List[Registrant], List[Registrant]]:
        return self.ledger.list_all()


def load_ledger(store: RegistrationStore, capacity: int) -> Ledger:
    result = store.load()
    ledger = Ledger(capacity=capacity, confirmed=result.confirmed, waiting=result.waiting)

    status = ledger.status()
    if status.total_confirmed > capacity:
        logger.warning(
            f"Loaded {status.total_confirmed} confirmed registrations but MAX_VAGAS is {capacity}; "
            "no new seats will be given until the list shrinks"
        )
    logger.info(
        f"Ledger ready from '{result.source}': {status.total_confirmed}/{capacity} confirmed, "
        f"{status.total_waiting} waiting"
    )
    return ledger


def build_registration_service(settings: Settings) -> RegistrationService:
    store = RegistrationStore(settings.DATA_DIR)
    ledger = load_ledger(store, settings.MAX_VAGAS)
    notifier = NotificationService(build_email_sender(settings), settings)
    return RegistrationService(ledger, store, notifier, build_sheets_sync(settings))

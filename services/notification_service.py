# services/notification_service.py

"""
Best-effort registrant notifications.

`notify()` never raises: a failed or disabled delivery comes back as a
NotificationResult with ok=False and a log line. Registration success
never depends on it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from config import Settings
from logic.ledger import Admission, Confirmed, Registrant
from services.email_delivery import EmailDeliveryError
from services.email_templates import format_confirmation_email, format_waitlist_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationResult:
    ok: bool
    error: Optional[str] = None


class NotificationService:
    def __init__(self, sender, settings: Settings):
        self.sender = sender
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.sender is not None

    def notify(self, registrant: Registrant, outcome: Admission) -> NotificationResult:
        if self.sender is None:
            logger.info(f"E-mail disabled; skipping '{outcome.kind}' notification for {registrant.email}")
            return NotificationResult(ok=False, error="disabled")

        if isinstance(outcome, Confirmed):
            msg = format_confirmation_email(registrant, outcome.sequence, self.settings)
        else:
            msg = format_waitlist_email(registrant, outcome.position, self.settings)

        try:
            self.sender.send(registrant.email, registrant.name, msg["subject"], msg["html"])
        except EmailDeliveryError as e:
            logger.warning(f"Failed to send '{outcome.kind}' e-mail to {registrant.email}: {e}")
            return NotificationResult(ok=False, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error sending e-mail to {registrant.email}: {e}")
            return NotificationResult(ok=False, error=str(e))

        logger.info(f"'{outcome.kind}' e-mail sent via {self.sender.provider} to {registrant.email}")
        return NotificationResult(ok=True)

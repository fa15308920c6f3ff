# services/sheets_sync.py

"""
Optional Google Sheets mirror of new registrations.

Appends one row per admission through the Sheets REST `values:append`
endpoint. Disabled unless GOOGLE_SHEET_ID and GOOGLE_SHEETS_TOKEN are set.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from config import Settings
from logic.ledger import Admission, Confirmed, Registrant
from services.notification_service import NotificationResult

logger = logging.getLogger(__name__)

SHEETS_APPEND_URL = "https://sheets.googleapis.com/v4/spreadsheets/{sheet_id}/values/{range}:append"
REQUEST_TIMEOUT_SECONDS = 10


def registrant_row(registrant: Registrant, outcome: Admission) -> List[str]:
    if isinstance(outcome, Confirmed):
        status, slot = "Confirmada", str(outcome.sequence)
    else:
        status, slot = "Lista de Espera", str(outcome.position)
    return [
        registrant.registered_at,
        status,
        slot,
        registrant.name,
        registrant.email,
        registrant.phone,
        registrant.city or "",
        "Sim" if registrant.newsletter else "Não",
    ]


class SheetsSync:
    def __init__(self, sheet_id: str, token: str, sheet_range: str = "Inscricoes!A1"):
        self.sheet_id = sheet_id
        self.token = token
        self.sheet_range = sheet_range

    def append(self, registrant: Registrant, outcome: Admission) -> NotificationResult:
        url = SHEETS_APPEND_URL.format(sheet_id=quote(self.sheet_id), range=quote(self.sheet_range))
        try:
            res = requests.post(
                url,
                params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
                json={"values": [registrant_row(registrant, outcome)]},
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as e:
            logger.warning(f"Sheets sync failed for {registrant.email}: {e}")
            return NotificationResult(ok=False, error=str(e))

        if not res.ok:
            logger.warning(f"Sheets sync failed for {registrant.email}: HTTP {res.status_code}")
            return NotificationResult(ok=False, error=f"HTTP {res.status_code}")

        logger.info(f"Registration of {registrant.email} appended to sheet {self.sheet_id}")
        return NotificationResult(ok=True)


def build_sheets_sync(settings: Settings) -> Optional[SheetsSync]:
    if not settings.sheets_enabled:
        return None
    return SheetsSync(settings.GOOGLE_SHEET_ID, settings.GOOGLE_SHEETS_TOKEN, settings.GOOGLE_SHEETS_RANGE)

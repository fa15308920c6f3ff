"""
logic/ledger.py
The in-memory registration ledger: confirmed seats plus a FIFO waitlist.

One Ledger instance is built at startup and shared by every request.
All reads and writes go through its lock, so the duplicate/capacity
checks and the append they guard happen as one step even though
FastAPI runs sync handlers on a threadpool and autosave has its own
thread.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from logic.errors import DuplicateEmailError, NotFoundError
from logic.validation import validate_registration

DUPLICATE_EMAIL_MESSAGE = "Este e-mail já está cadastrado"
NOT_FOUND_MESSAGE = "Inscrição não encontrada"

SNAPSHOT_VERSION = "1.0"


def utc_iso_z() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Registrant:
    name: str
    email: str
    phone: str
    city: Optional[str] = None
    newsletter: bool = False
    registered_at: str = field(default_factory=utc_iso_z)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    sequence: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire/disk form. Keys match the files written by earlier deployments."""
        d: Dict[str, Any] = {
            "nome": self.name,
            "email": self.email,
            "telefone": self.phone,
            "cidade": self.city,
            "newsletter": self.newsletter,
            "dataInscricao": self.registered_at,
            "timestamp": self.timestamp,
        }
        if self.sequence is not None:
            d["numero"] = self.sequence
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Registrant":
        numero = data.get("numero")
        try:
            sequence = int(numero) if numero is not None else None
        except (TypeError, ValueError):
            sequence = None

        try:
            ts = int(data.get("timestamp") or 0)
        except (TypeError, ValueError):
            ts = 0

        return cls(
            name=str(data.get("nome") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("telefone") or ""),
            city=data.get("cidade") or None,
            newsletter=bool(data.get("newsletter")),
            registered_at=str(data.get("dataInscricao") or ""),
            timestamp=ts,
            sequence=sequence,
        )


@dataclass(frozen=True)
class Confirmed:
    sequence: int
    seats_remaining: int
    kind: str = "confirmada"


@dataclass(frozen=True)
class Waitlisted:
    position: int
    kind: str = "lista_espera"


Admission = Union[Confirmed, Waitlisted]


@dataclass(frozen=True)
class LedgerStatus:
    seats_remaining: int
    total_confirmed: int
    total_waiting: int
    capacity: int


class Ledger:
    def __init__(
        self,
        capacity: int,
        confirmed: Optional[List[Registrant]] = None,
        waiting: Optional[List[Registrant]] = None,
    ):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self.capacity = capacity
        self._confirmed: List[Registrant] = list(confirmed or [])
        self._waiting: List[Registrant] = list(waiting or [])
        self._lock = threading.RLock()

    # --------------------------------------------------
    # Queries
    # --------------------------------------------------

    def _find(self, entries: List[Registrant], email: str) -> int:
        for i, r in enumerate(entries):
            if r.email == email:
                return i
        return -1

    def contains(self, email: str) -> bool:
        with self._lock:
            return self._find(self._confirmed, email) != -1 or self._find(self._waiting, email) != -1

    def _seats_remaining(self) -> int:
        return max(0, self.capacity - len(self._confirmed))

    def status(self) -> LedgerStatus:
        with self._lock:
            return LedgerStatus(
                seats_remaining=self._seats_remaining(),
                total_confirmed=len(self._confirmed),
                total_waiting=len(self._waiting),
                capacity=self.capacity,
            )

    def list_all(self) -> Tuple[List[Registrant], List[Registrant]]:
        with self._lock:
            return list(self._confirmed), list(self._waiting)

    def last_registration_at(self) -> Optional[str]:
        with self._lock:
            return self._confirmed[-1].registered_at if self._confirmed else None

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "inscricoes": [r.to_dict() for r in self._confirmed],
                "listaEspera": [r.to_dict() for r in self._waiting],
                "ultimaAtualizacao": utc_iso_z(),
                "totalInscricoes": len(self._confirmed),
                "totalListaEspera": len(self._waiting),
                "versao": SNAPSHOT_VERSION,
            }

    # --------------------------------------------------
    # Mutations
    # --------------------------------------------------

    def admit(self, candidate: Registrant) -> Admission:
        """
        Confirm the candidate if a seat is free, otherwise append to the waitlist.

        Raises:
            ValidationError if name/email/phone are blank.
            DuplicateEmailError if the e-mail is already confirmed or waiting.
        """
        validate_registration(candidate.name, candidate.email, candidate.phone)

        with self._lock:
            if self.contains(candidate.email):
                raise DuplicateEmailError(DUPLICATE_EMAIL_MESSAGE)

            if len(self._confirmed) < self.capacity:
                candidate.sequence = len(self._confirmed) + 1
                self._confirmed.append(candidate)
                return Confirmed(sequence=candidate.sequence, seats_remaining=self._seats_remaining())

            candidate.sequence = None
            self._waiting.append(candidate)
            return Waitlisted(position=len(self._waiting))

    def cancel(self, email: str) -> Optional[Registrant]:
        """
        Remove a confirmed registrant and promote the head of the waitlist.

        The promoted registrant is appended with sequence len(confirmed)+1;
        the others keep their numbers (no renumbering).

        Returns:
            The promoted registrant, or None if the waitlist was empty.

        Raises:
            NotFoundError if the e-mail is not on the confirmed list.
        """
        with self._lock:
            index = self._find(self._confirmed, email or "")
            if index == -1:
                raise NotFoundError(NOT_FOUND_MESSAGE)

            self._confirmed.pop(index)

            # still over capacity if the file was written under a larger MAX_VAGAS
            if not self._waiting or len(self._confirmed) >= self.capacity:
                return None

            promoted = self._waiting.pop(0)
            promoted.sequence = len(self._confirmed) + 1
            self._confirmed.append(promoted)
            return promoted

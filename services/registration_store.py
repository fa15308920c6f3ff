# services/registration_store.py

"""
JSON file persistence for the registration ledger.

Every save writes the primary file and then a byte-identical backup.
Loading falls back to the backup when the primary is missing or
corrupt, and starts from an empty snapshot when both are unusable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from logic.ledger import Ledger, Registrant

logger = logging.getLogger(__name__)

PRIMARY_FILENAME = "inscricoes.json"
BACKUP_FILENAME = "inscricoes.backup.json"


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or parsed."""


@dataclass
class LoadResult:
    confirmed: List[Registrant] = field(default_factory=list)
    waiting: List[Registrant] = field(default_factory=list)
    source: str = "empty"  # "primary" | "backup" | "empty"
    last_updated: Optional[str] = None


def _registrants(rows: Any, label: str, path: Path) -> List[Registrant]:
    if not isinstance(rows, list):
        if rows is not None:
            logger.warning(f"'{label}' in {path} is not a list; treating as empty")
        return []

    out: List[Registrant] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            logger.warning(f"Skipping malformed entry #{i} in '{label}' of {path}")
            continue
        out.append(Registrant.from_dict(row))
    return out


def _read_snapshot(path: Path) -> LoadResult:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise SnapshotError(f"{path}: {e}") from e

    if not isinstance(data, dict):
        raise SnapshotError(f"{path}: top-level JSON value is not an object")

    return LoadResult(
        confirmed=_registrants(data.get("inscricoes"), "inscricoes", path),
        waiting=_registrants(data.get("listaEspera"), "listaEspera", path),
        last_updated=data.get("ultimaAtualizacao"),
    )


def _write_atomic(path: Path, text: str) -> None:
    """Write via a temp file in the same directory, then os.replace."""
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=".tmp_", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class RegistrationStore:
    def __init__(
        self,
        data_dir: str,
        filename: str = PRIMARY_FILENAME,
        backup_filename: str = BACKUP_FILENAME,
    ):
        self.data_dir = Path(data_dir)
        self.primary_path = self.data_dir / filename
        self.backup_path = self.data_dir / backup_filename
        # one writer at a time; held from snapshot through the backup write
        self._lock = threading.RLock()

    # --------------------------------------------------
    # Load
    # --------------------------------------------------

    def load(self) -> LoadResult:
        """
        Load the last snapshot. Never raises.

        Order:
            1. primary file
            2. backup file (and rewrite the primary from it)
            3. empty state (and write an initial empty snapshot)
        """
        if self.primary_path.exists():
            try:
                result = _read_snapshot(self.primary_path)
                result.source = "primary"
                logger.info(
                    f"Loaded {len(result.confirmed)} confirmed, {len(result.waiting)} waiting "
                    f"from {self.primary_path} (last update: {result.last_updated})"
                )
                return result
            except SnapshotError as e:
                logger.error(f"Primary data file is unreadable: {e}. Trying backup...")
        else:
            logger.warning(f"Primary data file {self.primary_path} not found. Trying backup...")

        if self.backup_path.exists():
            try:
                result = _read_snapshot(self.backup_path)
                result.source = "backup"
                logger.warning(
                    f"Recovered {len(result.confirmed)} confirmed, {len(result.waiting)} waiting "
                    f"from backup {self.backup_path}"
                )
                self._repair_primary()
                return result
            except SnapshotError as e:
                logger.error(f"Backup data file is unreadable: {e}")

        logger.warning("No usable data file found. Starting with an empty registration list.")
        result = LoadResult(source="empty")
        if not self.save(Ledger(capacity=0)):
            logger.error("Could not write the initial empty snapshot")
        return result

    def _repair_primary(self) -> None:
        with self._lock:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                _write_atomic(self.primary_path, self.backup_path.read_text(encoding="utf-8"))
                logger.info(f"Primary data file {self.primary_path} rebuilt from backup")
            except OSError as e:
                logger.error(f"Could not rebuild primary data file from backup: {e}")

    # --------------------------------------------------
    # Save
    # --------------------------------------------------

    def save(self, ledger: Ledger) -> bool:
        """
        Write the ledger snapshot to the primary file, then to the backup.

        Returns:
            True if the primary write succeeded (backup failures are only
            logged), False otherwise. The in-memory ledger is never touched.

        Concurrent saves are serialized, and each one snapshots the ledger
        only once it holds the lock, so the files always end up with the
        latest state rather than whichever writer finished last.
        """
        with self._lock:
            snapshot = ledger.snapshot()
            text = json.dumps(snapshot, ensure_ascii=False, indent=2)

            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                _write_atomic(self.primary_path, text)
            except OSError as e:
                logger.error(
                    f"CRITICAL: failed to save registrations to {self.primary_path}: {e} "
                    f"(confirmed={snapshot['totalInscricoes']}, waiting={snapshot['totalListaEspera']})"
                )
                return False

            logger.info(
                f"Registrations saved to {self.primary_path}: "
                f"{snapshot['totalInscricoes']} confirmed, {snapshot['totalListaEspera']} waiting"
            )

            try:
                _write_atomic(self.backup_path, text)
            except OSError as e:
                logger.warning(f"Could not write backup {self.backup_path}: {e}")

            return True

    # --------------------------------------------------
    # Diagnostics
    # --------------------------------------------------

    def file_info(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "diretorioDados": str(self.data_dir),
            "arquivoPrincipal": str(self.primary_path),
            "arquivoBackup": str(self.backup_path),
            "principalExiste": self.primary_path.exists(),
            "backupExiste": self.backup_path.exists(),
        }

        if info["principalExiste"]:
            try:
                stats = self.primary_path.stat()
                info["tamanhoArquivo"] = stats.st_size
                info["ultimaModificacao"] = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat()
                info["ultimaAtualizacaoNoArquivo"] = _read_snapshot(self.primary_path).last_updated
            except (OSError, SnapshotError) as e:
                info["erroLeitura"] = str(e)

        return info

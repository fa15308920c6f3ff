# services/diagnostics.py

import os
import platform
import sys
import time
from typing import Any, Dict, Optional

from config import Settings
from logic.ledger import utc_iso_z
from services.registration_service import RegistrationService

try:
    import resource
except ImportError:  # not available on Windows
    resource = None  # type: ignore


def _max_rss_mb() -> Optional[float]:
    if resource is None:
        return None
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # kilobytes on Linux, bytes on macOS
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(rss / divisor, 1)


def build_diagnostics(service: RegistrationService, settings: Settings, started_at: float) -> Dict[str, Any]:
    status = service.status()

    return {
        "timestamp": utc_iso_z(),
        "servidor": {
            "porta": settings.PORT,
            "uptime": int(time.time() - started_at),
            "versaoPython": platform.python_version(),
            "plataforma": sys.platform,
            "pid": os.getpid(),
            "memoriaMaxMB": _max_rss_mb(),
        },
        "arquivos": service.store.file_info(),
        "dados": {
            "totalInscricoes": status.total_confirmed,
            "totalListaEspera": status.total_waiting,
            "vagasDisponiveis": status.seats_remaining,
            "ultimaInscricao": service.ledger.last_registration_at(),
        },
        "configuracao": {
            "maxVagas": settings.MAX_VAGAS,
            "provedorEmail": settings.EMAIL_PROVIDER,
            "emailFrom": settings.EMAIL_FROM,
            "emailHabilitado": service.notifier.enabled,
            "temBrevoApiKey": bool(settings.BREVO_API_KEY),
            "temAdminToken": bool(settings.ADMIN_TOKEN),
            "planilhaHabilitada": service.sheets is not None,
            "autosave": settings.AUTOSAVE_ENABLED,
        },
    }

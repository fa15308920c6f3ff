# auth/admin.py

"""
Shared-secret check for the administrative endpoints.

The caller must send `Authorization: Bearer <ADMIN_TOKEN>`, compared
with plain string equality against the configured token. A missing
header, any mismatch, or an unset ADMIN_TOKEN is rejected.
"""

import logging
from typing import Optional

from fastapi import Header, Request

from logic.errors import UnauthorizedError

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Não autorizado"


def is_authorized(authorization: Optional[str], admin_token: str) -> bool:
    if not admin_token or authorization is None:
        return False
    return authorization == f"Bearer {admin_token}"


def require_admin(request: Request, authorization: Optional[str] = Header(default=None)) -> None:
    """FastAPI dependency: raise UnauthorizedError unless the bearer token matches."""
    settings = request.app.state.settings
    if not is_authorized(authorization, settings.ADMIN_TOKEN):
        logger.warning(f"Rejected admin request to {request.url.path}")
        raise UnauthorizedError(UNAUTHORIZED_MESSAGE)

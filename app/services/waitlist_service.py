from __future__ import annotations

import json
import logging

from app.catalog.store import record_role_request
from app.integrations.email import send_role_request_notice
from app.schemas.catalog import RoleRequestCreate, RoleRequestResponse

logger = logging.getLogger(__name__)


def submit_role_request(payload: RoleRequestCreate) -> RoleRequestResponse:
    record_role_request(email=payload.email, role=payload.role)
    try:
        email_sent = send_role_request_notice(email=payload.email, role=payload.role)
    except Exception as exc:  # noqa: BLE001 - do not block the waitlist signup
        logger.exception("Role request email failed: %s", exc)
        email_sent = False
    logger.info(json.dumps({"event": "role_request", "role": payload.role, "email_sent": email_sent}))
    return RoleRequestResponse(ok=True, email_sent=email_sent)

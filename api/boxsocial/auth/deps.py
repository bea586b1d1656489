"""
Identity resolution for member-facing routes.

The studio's auth service issues HS256 bearer tokens carrying the member id
(``sub``) and the box (``tenant_id``). Every route in this service depends on
``get_current_identity``; anything short of a valid token for a member that
exists in the claimed tenant fails closed with ``Unauthenticated``.
"""

import logging
import uuid
from typing import Any

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from boxsocial.auth.security import decode_access_token
from boxsocial.config import DEV_MODE
from boxsocial.deps import Identity, get_db
from boxsocial.errors import Unauthenticated
from boxsocial.services.tenancy import get_member_in_tenant

logger = logging.getLogger(__name__)


def _log_auth_failure(
    reason: str,
    trace_id: str,
    token_prefix: str | None = None,
    payload: dict[str, Any] | None = None,
) -> None:
    log_data = {
        "trace_id": trace_id,
        "reason": reason,
        "token_prefix": token_prefix,
        "token_member_id": payload.get("sub") if payload else None,
        "token_tenant_id": payload.get("tenant_id") if payload else None,
    }
    logger.warning(f"[AUTH_FAILURE] {log_data}")


def _fail(reason: str, trace_id: str, detail: str = "Authentication required") -> Unauthenticated:
    if DEV_MODE:
        return Unauthenticated(f"{detail} ({reason}, trace_id={trace_id})")
    return Unauthenticated(detail)


def _extract_bearer(authorization: str | None, trace_id: str) -> str:
    if not authorization:
        _log_auth_failure("missing_token", trace_id)
        raise _fail("missing_token", trace_id)
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        _log_auth_failure("malformed_token", trace_id)
        raise _fail("malformed_token", trace_id, "Invalid Authorization header")
    return parts[1].strip()


def get_current_identity(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Identity:
    trace_id = str(uuid.uuid4())
    token = _extract_bearer(authorization, trace_id)
    token_prefix = token[:8] + "..." if len(token) > 8 else token

    try:
        payload = decode_access_token(token)
    except Unauthenticated as exc:
        _log_auth_failure(f"token_rejected:{exc.detail}", trace_id, token_prefix)
        raise _fail("token_rejected", trace_id, exc.detail) from exc

    member_id = str(payload.get("sub") or "")
    tenant_id = str(payload.get("tenant_id") or "")
    if not member_id or not tenant_id:
        _log_auth_failure("token_missing_claims", trace_id, token_prefix, payload)
        raise _fail("token_missing_claims", trace_id)

    # The member must still exist in the claimed box.
    if not get_member_in_tenant(db, tenant_id, member_id):
        _log_auth_failure("member_not_found", trace_id, token_prefix, payload)
        raise _fail("member_not_found", trace_id)

    logger.debug(f"[auth] member_id={member_id} tenant_id={tenant_id}")
    return Identity(tenant_id=tenant_id, member_id=member_id)

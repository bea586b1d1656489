from __future__ import annotations

import logging
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select

from ..config import DEFAULT_TENANT_TIMEZONE
from ..errors import NotFound
from ..models import Challenge, Member, Tenant

logger = logging.getLogger(__name__)

MEMBER_COLUMNS = (Member.id, Member.tenant_id, Member.name, Member.gender, Member.photo_url, Member.age)


def get_tenant(db, tenant_id: str) -> dict[str, Any] | None:
    row = db.execute(
        select(Tenant.id, Tenant.slug, Tenant.name, Tenant.timezone).where(Tenant.id == tenant_id)
    ).mappings().first()
    return dict(row) if row else None


def tenant_timezone(db, tenant_id: str) -> ZoneInfo:
    """Reference time zone of the box; week and day boundaries are computed in it."""
    tenant = get_tenant(db, tenant_id)
    name = str((tenant or {}).get("timezone") or "").strip() or DEFAULT_TENANT_TIMEZONE
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("[TENANCY] unknown timezone %r for tenant_id=%s, using %s", name, tenant_id, DEFAULT_TENANT_TIMEZONE)
        return ZoneInfo(DEFAULT_TENANT_TIMEZONE)


def get_member_in_tenant(db, tenant_id: str, member_id: str) -> dict[str, Any] | None:
    row = db.execute(
        select(*MEMBER_COLUMNS).where(Member.id == member_id, Member.tenant_id == tenant_id)
    ).mappings().first()
    return dict(row) if row else None


def require_member_in_tenant(db, tenant_id: str, member_id: str) -> dict[str, Any]:
    member = get_member_in_tenant(db, tenant_id, member_id)
    if not member:
        raise NotFound("Member not found")
    return member


def missing_members(db, tenant_id: str, member_ids: Iterable[str]) -> list[str]:
    """Ids from ``member_ids`` that are not members of the tenant, in input order."""
    wanted = list(dict.fromkeys(str(m) for m in member_ids))
    if not wanted:
        return []
    found = set(
        db.execute(select(Member.id).where(Member.tenant_id == tenant_id, Member.id.in_(wanted))).scalars().all()
    )
    return [m for m in wanted if m not in found]


def members_by_id(db, tenant_id: str, member_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
    ids = list(dict.fromkeys(str(m) for m in member_ids))
    if not ids:
        return {}
    rows = db.execute(
        select(*MEMBER_COLUMNS).where(Member.tenant_id == tenant_id, Member.id.in_(ids))
    ).mappings().all()
    return {str(r["id"]): dict(r) for r in rows}


def get_challenge_in_tenant(db, tenant_id: str, challenge_id: str, *, for_update: bool = False) -> dict[str, Any]:
    """Challenge row scoped to the tenant.

    A challenge that exists in another tenant raises the same ``NotFound`` as
    one that does not exist at all.
    """
    stmt = select(Challenge.__table__).where(Challenge.id == challenge_id, Challenge.tenant_id == tenant_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = db.execute(stmt).mappings().first()
    if not row:
        raise NotFound("Challenge not found")
    return dict(row)

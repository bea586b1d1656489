import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    __tablename__ = "tenant"

    id = Column(String(64), primary_key=True, default=_uuid)
    slug = Column(String(64), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)


class Member(Base):
    """Roster entry. Created and removed by roster management, read-only here."""

    __tablename__ = "member"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(200), nullable=False)
    gender = Column(String(32), nullable=True)
    photo_url = Column(Text, nullable=True)
    age = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (Index("idx_member_tenant_id", "tenant_id"),)


class MatchEdge(Base):
    __tablename__ = "match_edge"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    target_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("actor_id", "target_id", name="uq_match_edge_pair"),
        CheckConstraint("actor_id <> target_id", name="chk_match_edge_no_self"),
        CheckConstraint("status IN ('matched', 'rejected', 'mutual_match')", name="chk_match_edge_status"),
        Index("idx_match_edge_target_id", "target_id"),
    )


class FriendEdge(Base):
    __tablename__ = "friend_edge"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False)
    requester_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    target_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("requester_id", "target_id", name="uq_friend_edge_pair"),
        CheckConstraint("requester_id <> target_id", name="chk_friend_edge_no_self"),
        Index("idx_friend_edge_target_id", "target_id"),
    )


class Challenge(Base):
    __tablename__ = "challenge"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False)
    creator_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    type = Column(String(32), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'active')", name="chk_challenge_status"),
        Index("idx_challenge_tenant_id", "tenant_id"),
    )


class ChallengeParticipant(Base):
    __tablename__ = "challenge_participant"

    id = Column(String(64), primary_key=True, default=_uuid)
    challenge_id = Column(String(64), ForeignKey("challenge.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(16), nullable=False, default="invited")
    response_message = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (
        UniqueConstraint("challenge_id", "participant_id", name="uq_challenge_participant"),
        CheckConstraint("status IN ('invited', 'accepted', 'rejected')", name="chk_challenge_participant_status"),
        Index("idx_challenge_participant_participant_id", "participant_id"),
    )


class ChallengeResult(Base):
    __tablename__ = "challenge_result"

    id = Column(String(64), primary_key=True, default=_uuid)
    challenge_id = Column(String(64), ForeignKey("challenge.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    result_value = Column(Float, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (UniqueConstraint("challenge_id", "participant_id", name="uq_challenge_result"),)


class SocialEvent(Base):
    __tablename__ = "social_event"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), nullable=False)
    actor_id = Column(String(64), nullable=True)
    target_id = Column(String(64), nullable=True)
    event_type = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (Index("idx_social_event_target", "tenant_id", "target_id"),)


# Performance ledger. Written by workout ingestion; this service only reads it.


class WorkoutSession(Base):
    __tablename__ = "workout_session"

    id = Column(String(64), primary_key=True, default=_uuid)
    tenant_id = Column(String(64), ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False)
    date_start = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_workout_session_tenant_start", "tenant_id", "date_start"),)


class SessionParticipant(Base):
    __tablename__ = "session_participant"

    id = Column(String(64), primary_key=True, default=_uuid)
    session_id = Column(String(64), ForeignKey("workout_session.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(String(64), ForeignKey("member.id", ondelete="CASCADE"), nullable=False)
    calories_total = Column(Float, nullable=False, default=0)
    burn_points = Column(Float, nullable=False, default=0)
    vo2_time_seconds = Column(Float, nullable=False, default=0)
    max_hr_reached = Column(Integer, nullable=True)
    trimp_total = Column(Float, nullable=False, default=0)
    epoc_estimated = Column(Float, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("participant_id", "session_id", name="uq_session_participant"),
        Index("idx_session_participant_session_id", "session_id"),
    )

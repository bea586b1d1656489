from dataclasses import dataclass
from typing import Iterator

from sqlalchemy.orm import Session

from . import database


@dataclass(frozen=True)
class Identity:
    tenant_id: str
    member_id: str


def get_db() -> Iterator[Session]:
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def clamp_limit(value: int | None, default: int, maximum: int) -> int:
    if value is None:
        return default
    return max(1, min(int(value), maximum))

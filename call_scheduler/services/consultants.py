"""Consultant lookups used by the public API."""

import logging
import secrets
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ..errors import ValidationError
from ..models import Availability, Consultants

logger = logging.getLogger(__name__)


def generate_public_id() -> str:
    """Unique 8-char public id (collisions are re-rolled by the caller)."""
    return secrets.token_hex(4)


def find_by_public_id(db: Session, public_id: str) -> Optional[Consultants]:
    return db.query(Consultants).filter(Consultants.public_id == public_id).first()


def list_active_consultants(db: Session) -> list[dict]:
    """Active consultants with the weekdays (0 = Sunday) they have a window on."""
    consultants = (
        db.query(Consultants)
        .options(selectinload(Consultants.availability))
        .filter(Consultants.is_active == 1)
        .order_by(Consultants.display_name, Consultants.id)
        .all()
    )
    return [
        {
            "id": c.public_id,
            "name": c.display_name,
            "title": c.title,
            "available_days": sorted(w.day_of_week for w in c.availability),
        }
        for c in consultants
    ]


def get_active_consultant(db: Session, public_id: str) -> Consultants:
    """Resolve a public id to an active consultant or raise ValidationError."""
    consultant = find_by_public_id(db, public_id)
    if consultant is None:
        raise ValidationError("invalid_consultant", "Invalid consultant.")
    if not consultant.is_active:
        raise ValidationError("consultant_inactive", "Consultant is not available.")
    return consultant


def create_consultant(
    db: Session,
    display_name: str,
    title: Optional[str] = None,
    weekly_hours: Optional[dict[int, tuple[str, str]]] = None,
) -> Consultants:
    """
    Create a consultant with an optional weekly availability template.

    weekly_hours maps day_of_week (0 = Sunday) to (start_time, end_time).
    """
    public_id = generate_public_id()
    while find_by_public_id(db, public_id) is not None:
        public_id = generate_public_id()

    consultant = Consultants(public_id=public_id, display_name=display_name, title=title)
    db.add(consultant)
    db.flush()

    for dow, (start, end) in (weekly_hours or {}).items():
        db.add(Availability(
            consultant_id=consultant.id,
            day_of_week=dow,
            start_time=_with_seconds(start),
            end_time=_with_seconds(end),
        ))

    db.commit()
    db.refresh(consultant)

    logger.info(f"Consultant created: id={consultant.id}, public_id={public_id}")
    return consultant


def _with_seconds(time_str: str) -> str:
    return time_str if time_str.count(":") == 2 else f"{time_str}:00"

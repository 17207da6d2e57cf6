from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .db import db_session
from .models import DentistRow, StaffRow

logger = logging.getLogger(__name__)

DENTISTS = ["Dr. Maria Lopez", "Dr. James Chen"]
STAFF = ["Front Desk", "Outreach Coordinator"]


def _has_name(s: Session, model: type[DentistRow] | type[StaffRow], name: str) -> bool:
    # roster names are not unique: a duplicate added by hand must not break the seed
    q = select(model.id).where(func.lower(model.name) == name.lower()).limit(1)
    return s.scalars(q).first() is not None


def seed_base() -> None:
    """
    Minimal roster (idempotent):
    - dentists
    - staff
    """
    with db_session() as s:
        for model, names in ((DentistRow, DENTISTS), (StaffRow, STAFF)):
            for name in names:
                if not _has_name(s, model, name):
                    s.add(model(name=name))
                    logger.info("seeded %s: %s", model.__tablename__, name)

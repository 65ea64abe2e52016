"""Seat inventory operations on a loaded Workshop

These mutate the in-memory objects only; persisting them is up to the caller.
The request flow uses the conditional UPDATEs in WorkshopRepository instead.
"""

import logging
from datetime import date

from ...models import Workshop

logger = logging.getLogger(__name__)


def has_available_spots(workshop: Workshop, session_date: date) -> bool:
    """True if the workshop has a session on exactly this date with a free seat"""
    session = workshop.find_session(session_date)
    return session is not None and session.spots > 0


def reduce_spots(workshop: Workshop, session_date: date, count: int = 1) -> bool:
    """Take `count` seats from the session; all or nothing"""
    session = workshop.find_session(session_date)
    if session is None or session.spots < count:
        return False
    session.spots -= count
    return True


def increase_spots(workshop: Workshop, session_date: date, count: int = 1) -> bool:
    """Give `count` seats back to the session, never beyond its allocation"""
    session = workshop.find_session(session_date)
    if session is None:
        return False

    restored = min(session.spots + count, session.allocated_spots)
    if restored < session.spots + count:
        logger.warning(
            f"⚠️ Session {session_date} of workshop {workshop.id} already at allocation "
            f"({session.allocated_spots}), clamping seat release"
        )
    session.spots = restored
    return True

"""Audit trail of engine actions applied to an event."""

import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from bracket_engine.models.event_log import EventLogEntry

logger = logging.getLogger(__name__)

ACTION_BRACKET_GENERATED = "bracket_generated"
ACTION_KNOCKOUT_GENERATED = "knockout_generated"
ACTION_RESULT_RECORDED = "result_recorded"
ACTION_RESULT_CLEARED = "result_cleared"
ACTION_TEAM_DISQUALIFIED = "team_disqualified"


def log_event(
    session: Session, event_id: int, action: str, payload: Optional[Dict[str, Any]] = None
) -> EventLogEntry:
    """Stage a log entry in the caller's transaction (committed with it)."""
    entry = EventLogEntry(event_id=event_id, action=action, payload=payload)
    session.add(entry)
    logger.info("event=%d action=%s payload=%s", event_id, action, payload)
    return entry


def get_event_log(session: Session, event_id: int) -> List[EventLogEntry]:
    return session.exec(
        select(EventLogEntry).where(EventLogEntry.event_id == event_id).order_by(EventLogEntry.id)
    ).all()

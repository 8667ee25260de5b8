"""Event log model: audit trail of bracket engine actions."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class EventLogEntry(SQLModel, table=True):
    """One engine action applied to an event's graph."""

    __tablename__ = "event_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    action: str  # bracket_generated|knockout_generated|result_recorded|result_cleared|team_disqualified
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

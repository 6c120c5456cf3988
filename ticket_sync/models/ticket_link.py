"""Ticket link model"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from ticket_sync.models.base import Base


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime (the DB stores UTC without tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TicketLink(Base):
    """Association between one helpdesk ticket and one Jira issue"""

    __tablename__ = "ticket_links"
    __table_args__ = (
        UniqueConstraint("ticket_id", "issue_key", name="uq_ticket_links_ticket_issue"),
    )

    # Autoincrement id doubles as insertion order.
    id = Column(Integer, primary_key=True, index=True)

    ticket_id = Column(String, nullable=False, index=True)
    issue_key = Column(String, nullable=False, index=True)  # e.g. "PROJ-123", case-sensitive

    linked_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<TicketLink(ticket_id='{self.ticket_id}', issue_key='{self.issue_key}')>"

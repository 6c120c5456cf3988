"""Durable ticket <-> Jira issue link table"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ticket_sync.models import TicketLink
from ticket_sync.models.ticket_link import utcnow

logger = logging.getLogger(__name__)


def normalize_ticket_id(ticket_id: Any) -> str:
    """Canonical string form of a ticket id (so 42 and "42" compare equal)."""
    if ticket_id is None:
        return ""
    if isinstance(ticket_id, float) and ticket_id.is_integer():
        ticket_id = int(ticket_id)
    return str(ticket_id).strip()


def normalize_issue_key(issue_key: Any) -> str:
    """Issue key with surrounding whitespace removed (case is significant)."""
    return str(issue_key or "").strip()


@dataclass(frozen=True)
class Link:
    ticket_id: str
    issue_key: str
    linked_at: datetime

    @property
    def linked_at_iso(self) -> str:
        dt = self.linked_at
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        return dt.strftime("%Y-%m-%dT%H:%M:%SZ")

    def to_dict(self) -> Dict[str, str]:
        return {
            "ticket_id": self.ticket_id,
            "issue_key": self.issue_key,
            "linked_at": self.linked_at_iso,
        }

    @classmethod
    def from_row(cls, row: TicketLink) -> "Link":
        return cls(ticket_id=str(row.ticket_id), issue_key=row.issue_key, linked_at=row.linked_at)


class LinkStore:
    """Single source of truth for which ticket corresponds to which Jira issue.

    Every operation opens and closes its own session. Writes are serialized with a
    per-store lock; the (ticket_id, issue_key) unique constraint covers writers in
    other processes.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._write_lock = threading.Lock()

    def _query_links(self, *criteria) -> List[Link]:
        db = self._session_factory()
        try:
            query = db.query(TicketLink)
            if criteria:
                query = query.filter(*criteria)
            rows = query.order_by(TicketLink.id.asc()).all()
        except SQLAlchemyError as e:
            # Missing/unreadable table behaves like an empty store.
            logger.warning(f"Could not read ticket links: {e}")
            return []
        finally:
            db.close()
        return [Link.from_row(r) for r in rows if r.ticket_id and r.issue_key]

    def list_all(self) -> List[Link]:
        """All links in insertion order."""
        return self._query_links()

    def find_by_ticket(self, ticket_id: Any) -> List[Link]:
        tid = normalize_ticket_id(ticket_id)
        if not tid:
            return []
        return self._query_links(TicketLink.ticket_id == tid)

    def find_ticket_for_issue(self, issue_key: str) -> Optional[str]:
        """Ticket owning an issue key (exact, case-sensitive match; first link wins)."""
        issue_key = normalize_issue_key(issue_key)
        if not issue_key:
            return None
        links = self._query_links(TicketLink.issue_key == issue_key)
        # SQLite's = is case-sensitive but other dialects' collations may not be.
        for link in links:
            if link.issue_key == issue_key:
                return link.ticket_id
        return None

    def _find_pair(self, db: Session, ticket_id: str, issue_key: str) -> Optional[TicketLink]:
        rows = (
            db.query(TicketLink)
            .filter(TicketLink.ticket_id == ticket_id, TicketLink.issue_key == issue_key)
            .order_by(TicketLink.id.asc())
            .all()
        )
        return next((r for r in rows if r.issue_key == issue_key), None)

    def add(self, ticket_id: Any, issue_key: str) -> Link:
        """Link a ticket to an issue. Adding an existing pair returns it unchanged."""
        tid = normalize_ticket_id(ticket_id)
        issue_key = normalize_issue_key(issue_key)
        if not tid or not issue_key:
            raise ValueError("ticket_id and issue_key are required")

        with self._write_lock:
            db = self._session_factory()
            try:
                existing = self._find_pair(db, tid, issue_key)
                if existing is not None:
                    return Link.from_row(existing)

                row = TicketLink(ticket_id=tid, issue_key=issue_key, linked_at=utcnow())
                db.add(row)
                try:
                    db.commit()
                except IntegrityError:
                    # Another process inserted the same pair first.
                    db.rollback()
                    existing = self._find_pair(db, tid, issue_key)
                    if existing is None:
                        raise
                    return Link.from_row(existing)
                db.refresh(row)
                logger.info(f"Linked ticket {tid} to Jira issue {issue_key}")
                return Link.from_row(row)
            finally:
                db.close()

    def remove(self, ticket_id: Any, issue_key: str) -> bool:
        """Remove every link for exactly this pair. Returns whether anything was removed."""
        tid = normalize_ticket_id(ticket_id)
        issue_key = normalize_issue_key(issue_key)
        if not tid or not issue_key:
            return False

        with self._write_lock:
            db = self._session_factory()
            try:
                rows = (
                    db.query(TicketLink)
                    .filter(TicketLink.ticket_id == tid, TicketLink.issue_key == issue_key)
                    .all()
                )
                rows = [r for r in rows if r.issue_key == issue_key]
                if not rows:
                    return False
                for row in rows:
                    db.delete(row)
                db.commit()
                logger.info(f"Unlinked ticket {tid} from Jira issue {issue_key}")
                return True
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

"""Database models"""

from ticket_sync.models.base import Base
from ticket_sync.models.stored_settings import StoredSettings
from ticket_sync.models.ticket_link import TicketLink

__all__ = [
    "Base",
    "StoredSettings",
    "TicketLink",
]

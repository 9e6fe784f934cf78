"""Assignment-relevant view of a ticket."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.common import TicketPriority


class TicketContext(BaseModel):
    """The subset of a ticket the rule and scoring engines look at."""

    model_config = ConfigDict(from_attributes=True)

    ticket_id: Optional[UUID] = None
    title: str = ""
    description: Optional[str] = None
    priority: TicketPriority = TicketPriority.medium
    category_id: Optional[UUID] = None
    subcategory_id: Optional[UUID] = None
    customer_tier: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def haystack(self) -> str:
        """Lower-cased ``title + description``, the derived keyword text."""
        return f"{self.title} {self.description or ''}".lower()

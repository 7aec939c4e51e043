"""Hand-off of booking notices to the messaging collaborator.

Notices are collected while a transaction runs and delivered only after it
commits. Delivery is best-effort: a failure is logged and never undoes the
booking that produced the notice.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import structlog
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.messages import messages

logger = structlog.get_logger(__name__)

WAITLIST_AUTO_BOOKED_CONTENT = (
    "Great news! A cancelled slot was automatically reassigned to you from the waitlist. "
    "Please review your new appointment details."
)
WAITLIST_SLOT_OPENED_CONTENT = (
    "A previously unavailable appointment slot has opened. You are on the waitlist "
    "and can now try booking an earlier time."
)


@dataclass(frozen=True)
class Notice:
    """One message from a sender user to a receiver user."""

    sender_id: UUID
    receiver_id: UUID
    content: str
    appointment_id: int | None = None


class Notifier(Protocol):
    """Anything that can deliver notices after a commit."""

    async def deliver(self, notices: Iterable[Notice]) -> int:
        """Deliver notices and return how many succeeded."""
        ...


class MessageNotifier:
    """Writes notices into the ``messages`` table read by the chat service."""

    def __init__(self, db: AsyncSession):
        """Initialize notifier with database session."""
        self.db = db

    async def send(self, notice: Notice) -> None:
        """Persist a single notice in its own short transaction."""
        await self.db.execute(
            insert(messages).values(
                sender_id=notice.sender_id,
                receiver_id=notice.receiver_id,
                appointment_id=notice.appointment_id,
                content=notice.content,
            )
        )
        await self.db.commit()

    async def deliver(self, notices: Iterable[Notice]) -> int:
        """
        Deliver each notice independently.

        Args:
            notices: Notices produced by a committed transaction

        Returns:
            Number of notices delivered
        """
        delivered = 0
        for notice in notices:
            try:
                await self.send(notice)
                delivered += 1
            except Exception as e:
                # Log error but don't fail the request
                await self.db.rollback()
                logger.warning(
                    "notification_delivery_failed",
                    receiver_id=str(notice.receiver_id),
                    appointment_id=notice.appointment_id,
                    error=str(e),
                )
        if delivered:
            logger.info("notifications_delivered", count=delivered)
        return delivered

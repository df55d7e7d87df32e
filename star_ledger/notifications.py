"""
Notification sinks. Delivery is fire-and-forget: a sink runs after the ledger
transaction has committed and never takes part in it.
"""
import logging
from typing import Protocol
from uuid import UUID

from .db import Database
from .models import NotificationMessage
from . import tables

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, account_id: UUID, message: NotificationMessage) -> None:
        ...


class DatabaseNotificationSink:
    """Stores notifications in their own short transaction."""

    def __init__(self, database: Database):
        self.database = database

    def notify(self, account_id: UUID, message: NotificationMessage) -> None:
        with self.database.transaction() as session:
            session.add(tables.Notification(
                account_id=account_id,
                title=message.title,
                message=message.message,
                category=message.category.value,
                action_data=message.action_data,
            ))


class LoggingNotificationSink:
    def notify(self, account_id: UUID, message: NotificationMessage) -> None:
        logger.info(f"Notification for {account_id} [{message.category.value}]: {message.message}")

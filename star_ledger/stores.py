"""
Stores used by the ledger. Each one is bound to the session of the
surrounding transaction, so calls made through several stores commit or roll
back together.
"""
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from . import tables
from .models import ContentPricing


class AccountStore:
    def __init__(self, session: Session):
        self.session = session

    def exists(self, account_id: UUID) -> bool:
        return self.session.get(tables.Account, account_id) is not None

    def get(self, account_id: UUID) -> Optional[tables.Account]:
        return self.session.get(tables.Account, account_id)

    def get_star_balance(self, account_id: UUID) -> Optional[int]:
        return self.session.scalar(
            select(tables.Account.star_balance).where(tables.Account.id == account_id).with_for_update()
        )

    def adjust_star_balance(self, account_id: UUID, delta: int) -> bool:
        """Apply ``delta`` unless it would take the balance below zero.

        Returns False when the guard rejected the update.
        """
        stmt = update(tables.Account).where(tables.Account.id == account_id)
        if delta < 0:
            stmt = stmt.where(tables.Account.star_balance >= -delta)
        result = self.session.execute(
            stmt.values(star_balance=tables.Account.star_balance + delta).execution_options(
                synchronize_session=False
            )
        )
        return result.rowcount == 1

    def adjust_wallet_balance(self, account_id: UUID, delta: Decimal, earned: bool = False) -> bool:
        values = {"wallet_balance": tables.Account.wallet_balance + delta}
        if earned:
            values["total_earned"] = tables.Account.total_earned + delta
        result = self.session.execute(
            update(tables.Account)
            .where(tables.Account.id == account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ContentStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, content_id: str) -> Optional[tables.ContentItem]:
        return self.session.get(tables.ContentItem, content_id)

    def get_content_pricing(self, content_id: str) -> Optional[ContentPricing]:
        row = self.session.execute(
            select(
                tables.ContentItem.id,
                tables.ContentItem.kind,
                tables.ContentItem.owner_account_id,
                tables.ContentItem.star_price,
                tables.ContentItem.status,
            ).where(tables.ContentItem.id == content_id)
        ).one_or_none()
        if row is None:
            return None
        return ContentPricing(
            content_id=row.id,
            kind=row.kind,
            owner_account_id=row.owner_account_id,
            star_price=row.star_price or 0,
            status=row.status,
        )

    def increment_view_count(self, content_id: str) -> None:
        self.session.execute(
            update(tables.ContentItem)
            .where(tables.ContentItem.id == content_id)
            .values(view_count=tables.ContentItem.view_count + 1)
            .execution_options(synchronize_session=False)
        )


class ViewRecordStore:
    """One row per (content, viewer); the unique index is the idempotency key."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, content_id: str, viewer_account_id: UUID) -> bool:
        count = self.session.scalar(
            select(func.count())
            .select_from(tables.ContentView)
            .where(
                tables.ContentView.content_id == content_id,
                tables.ContentView.viewer_account_id == viewer_account_id,
            )
        )
        return bool(count)

    def get(self, content_id: str, viewer_account_id: UUID) -> Optional[tables.ContentView]:
        return self.session.scalars(
            select(tables.ContentView).where(
                tables.ContentView.content_id == content_id,
                tables.ContentView.viewer_account_id == viewer_account_id,
            )
        ).one_or_none()

    def insert(self, content_id: str, viewer_account_id: UUID, stars_spent: int) -> tables.ContentView:
        view = tables.ContentView(
            content_id=content_id,
            viewer_account_id=viewer_account_id,
            stars_spent=stars_spent,
        )
        self.session.add(view)
        # surface a unique-index violation here, inside the transaction
        self.session.flush()
        return view

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

MONEY = Numeric(14, 2)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_content_id() -> str:
    return str(uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    display_name = Column(String(120), nullable=False, default="")
    star_balance = Column(Integer, nullable=False, default=0)
    wallet_balance = Column(MONEY, nullable=False, default=0)
    total_earned = Column(MONEY, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        CheckConstraint("star_balance >= 0", name="ck_accounts_star_balance_non_negative"),
        CheckConstraint("wallet_balance >= 0", name="ck_accounts_wallet_balance_non_negative"),
    )


class ContentItem(Base):
    __tablename__ = "content_items"

    id = Column(String(64), primary_key=True, default=_new_content_id)
    kind = Column(String(16), nullable=False)  # story | post
    owner_account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    star_price = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="active")  # active | suspended
    caption = Column(Text, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    suspended_at = Column(DateTime(timezone=True), nullable=True)
    suspension_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("star_price >= 0 AND star_price <= 5", name="ck_content_items_star_price_range"),
        CheckConstraint("status IN ('active', 'suspended')", name="ck_content_items_status"),
        CheckConstraint("kind IN ('story', 'post')", name="ck_content_items_kind"),
    )


class ContentView(Base):
    """Proof that a viewer has unlocked a content item. Written once, never updated."""

    __tablename__ = "content_views"

    id = Column(Uuid, primary_key=True, default=uuid4)
    content_id = Column(String(64), ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False)
    viewer_account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    stars_spent = Column(Integer, nullable=False, default=0)
    viewed_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("content_id", "viewer_account_id", name="uq_content_views_content_viewer"),
        CheckConstraint("stars_spent >= 0", name="ck_content_views_stars_spent_non_negative"),
    )


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    content_id = Column(String(64), ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False)
    owner_account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    viewer_account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False, index=True)
    stars_spent = Column(Integer, nullable=False)
    owner_earn_ngn = Column(MONEY, nullable=False)
    viewer_earn_ngn = Column(MONEY, nullable=False)
    platform_earn_ngn = Column(MONEY, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("content_id", "viewer_account_id", name="uq_ledger_transactions_content_viewer"),
        CheckConstraint("stars_spent > 0", name="ck_ledger_transactions_stars_spent_positive"),
    )


class WalletHistory(Base):
    __tablename__ = "wallet_history"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_type = Column(String(32), nullable=False)
    amount = Column(MONEY, nullable=False)
    currency = Column(String(8), nullable=False, default="NGN")
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    category = Column(String(32), nullable=False)
    action_data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    read_at = Column(DateTime(timezone=True), nullable=True)

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError

from . import tables
from .db import Database
from .models import (
    AccountBalance,
    ContentItem,
    ContentKind,
    ContentPricing,
    ContentStatus,
    CreateAccountRequest,
    CreateContentRequest,
    CreditStarsRequest,
    LedgerHistoryResponse,
    LedgerTransaction,
    Notification,
    NotificationCategory,
    NotificationMessage,
    PlatformRevenue,
    SuspendContentRequest,
    ViewError,
    ViewOutcome,
    ViewRecord,
    WalletEntryType,
    WalletHistoryEntry,
    WalletHistoryResponse,
)
from .notifications import DatabaseNotificationSink, LoggingNotificationSink, NotificationSink
from .retry import RetryConfig, call_with_retry
from .settings import Settings, settings as default_settings
from .split import InvalidStarPriceError, RevenueSplit, compute_split, validate_star_price
from .stores import AccountStore, ContentStore, ViewRecordStore

logger = logging.getLogger(__name__)

TRANSIENT_STORAGE_ERRORS = (OperationalError, IntegrityError)

_EARN_ENTRY_TYPES = {
    # (owner earn, viewer cashback, viewer star fee)
    ContentKind.STORY: (WalletEntryType.STORY_EARN, WalletEntryType.STORY_CASHBACK, WalletEntryType.STORY_VIEW_FEE),
    ContentKind.POST: (WalletEntryType.UPLOAD_EARN, WalletEntryType.VIEW_EARN, WalletEntryType.POST_VIEW_FEE),
}

_NOTIFICATION_CATEGORIES = {
    ContentKind.STORY: (NotificationCategory.STORY_EARN, NotificationCategory.STORY_CASHBACK),
    ContentKind.POST: (NotificationCategory.POST_EARN, NotificationCategory.POST_CASHBACK),
}


def _record_star_movement(session, account_id: UUID, entry_type: WalletEntryType, stars: int, meta: dict) -> None:
    session.add(tables.WalletHistory(
        account_id=account_id,
        entry_type=entry_type.value,
        amount=Decimal(stars),
        currency="STAR",
        meta=meta,
    ))


class LedgerServiceError(Exception):
    pass


class ContentUnavailableError(LedgerServiceError):
    pass


class ContentNotFoundError(ContentUnavailableError):
    pass


class InsufficientStarsError(LedgerServiceError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stars: {required} required, {available} available. Top up your stars to unlock this content."
        )


class AccountNotFoundError(LedgerServiceError):
    pass


class _Charge:
    __slots__ = ("pricing", "viewer_account_id", "split")

    def __init__(self, pricing: ContentPricing, viewer_account_id: UUID, split: RevenueSplit):
        self.pricing = pricing
        self.viewer_account_id = viewer_account_id
        self.split = split


class LedgerService:
    def __init__(
        self,
        database: Optional[Database] = None,
        notifier: Optional[NotificationSink] = None,
        retry_config: Optional[RetryConfig] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        if database is None:
            database = Database(config.database_url, isolation_level=config.isolation_level, echo=config.echo_sql)
            database.create_all()
        self.database = database

        if notifier is None:
            notifier = DatabaseNotificationSink(database) if config.notifications_enabled else LoggingNotificationSink()
        self.notifier = notifier

        self.retry_config = retry_config or RetryConfig(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
            retryable_exceptions=TRANSIENT_STORAGE_ERRORS,
        )

    # Views

    def record_view(self, content_id: str, viewer_account_id: UUID) -> ViewOutcome:
        """Unlock ``content_id`` for the viewer, charging stars at most once.

        Rejections and storage failures come back as an unsuccessful
        ``ViewOutcome``; nothing is written in those cases.
        """
        try:
            outcome, charge = call_with_retry(
                lambda: self._record_view_once(content_id, viewer_account_id),
                self.retry_config,
            )
        except ContentUnavailableError as e:
            logger.info(f"View of {content_id} by {viewer_account_id} rejected: {e}")
            return ViewOutcome(success=False, error=ViewError.CONTENT_UNAVAILABLE, message=str(e))
        except InsufficientStarsError as e:
            logger.info(f"View of {content_id} by {viewer_account_id} rejected: {e}")
            return ViewOutcome(success=False, error=ViewError.INSUFFICIENT_STARS, message=str(e))
        except AccountNotFoundError as e:
            logger.info(f"View of {content_id} by {viewer_account_id} rejected: {e}")
            return ViewOutcome(success=False, error=ViewError.ACCOUNT_NOT_FOUND, message=str(e))
        except TRANSIENT_STORAGE_ERRORS as e:
            logger.error(f"View of {content_id} by {viewer_account_id} failed after retries: {e}")
            return ViewOutcome(
                success=False,
                error=ViewError.STORAGE_FAILURE,
                message="The view could not be recorded. It is safe to retry.",
            )

        if charge is not None:
            self._send_view_notifications(charge)
        return outcome

    def _record_view_once(self, content_id: str, viewer_account_id: UUID) -> tuple[ViewOutcome, Optional[_Charge]]:
        with self.database.transaction() as session:
            contents = ContentStore(session)
            views = ViewRecordStore(session)
            accounts = AccountStore(session)

            pricing = contents.get_content_pricing(content_id)
            if pricing is None:
                raise ContentNotFoundError(f"Content {content_id} not found")
            if not pricing.is_available:
                raise ContentUnavailableError(f"Content {content_id} is suspended")

            if views.exists(content_id, viewer_account_id):
                logger.debug(f"Content {content_id} already viewed by {viewer_account_id}")
                return ViewOutcome(success=True, already_viewed=True, charged=False,
                                   message="Already viewed"), None

            if not accounts.exists(viewer_account_id):
                raise AccountNotFoundError(f"Account {viewer_account_id} not found")

            is_self_view = pricing.owner_account_id == viewer_account_id
            if pricing.star_price == 0 or is_self_view:
                views.insert(content_id, viewer_account_id, stars_spent=0)
                if not is_self_view:
                    contents.increment_view_count(content_id)
                return ViewOutcome(success=True, charged=False, message="Free view"), None

            balance = accounts.get_star_balance(viewer_account_id) or 0
            if balance < pricing.star_price:
                raise InsufficientStarsError(required=pricing.star_price, available=balance)

            split = compute_split(pricing.star_price)
            self._apply_charge(session, pricing, viewer_account_id, split)

        logger.info(
            f"Charged {split.stars_spent} stars for {pricing.kind.value} {content_id}: "
            f"owner {pricing.owner_account_id} +{split.owner_earn}, viewer {viewer_account_id} "
            f"+{split.viewer_earn}, platform {split.platform_earn}"
        )
        outcome = ViewOutcome(
            success=True,
            charged=True,
            stars_spent=split.stars_spent,
            owner_earn=split.owner_earn,
            viewer_earn=split.viewer_earn,
            message="View charged",
        )
        return outcome, _Charge(pricing, viewer_account_id, split)

    def _apply_charge(self, session, pricing: ContentPricing, viewer_account_id: UUID, split: RevenueSplit) -> None:
        accounts = AccountStore(session)

        if not accounts.adjust_star_balance(viewer_account_id, -split.stars_spent):
            available = accounts.get_star_balance(viewer_account_id) or 0
            raise InsufficientStarsError(required=split.stars_spent, available=available)
        accounts.adjust_wallet_balance(pricing.owner_account_id, split.owner_earn, earned=True)
        accounts.adjust_wallet_balance(viewer_account_id, split.viewer_earn)

        ViewRecordStore(session).insert(pricing.content_id, viewer_account_id, stars_spent=split.stars_spent)

        session.add(tables.LedgerTransaction(
            content_id=pricing.content_id,
            owner_account_id=pricing.owner_account_id,
            viewer_account_id=viewer_account_id,
            stars_spent=split.stars_spent,
            owner_earn_ngn=split.owner_earn,
            viewer_earn_ngn=split.viewer_earn,
            platform_earn_ngn=split.platform_earn,
        ))

        owner_entry, viewer_entry, fee_entry = _EARN_ENTRY_TYPES[pricing.kind]
        meta = {f"{pricing.kind.value}_id": pricing.content_id, "stars_spent": split.stars_spent}
        session.add_all([
            tables.WalletHistory(
                account_id=pricing.owner_account_id,
                entry_type=owner_entry.value,
                amount=split.owner_earn,
                currency="NGN",
                meta=meta,
            ),
            tables.WalletHistory(
                account_id=viewer_account_id,
                entry_type=viewer_entry.value,
                amount=split.viewer_earn,
                currency="NGN",
                meta=meta,
            ),
        ])
        _record_star_movement(session, viewer_account_id, fee_entry, -split.stars_spent, meta)

        ContentStore(session).increment_view_count(pricing.content_id)
        session.flush()

    def _send_view_notifications(self, charge: _Charge) -> None:
        pricing, split = charge.pricing, charge.split
        kind = pricing.kind.value
        owner_category, viewer_category = _NOTIFICATION_CATEGORIES[pricing.kind]

        messages = [
            (pricing.owner_account_id, NotificationMessage(
                title=f"{kind.title()} View Earned!",
                message=f"You earned ₦{split.owner_earn:,.2f} from your {kind}! {split.stars_spent} stars spent.",
                category=owner_category,
                action_data={
                    "content_id": pricing.content_id,
                    "viewer_id": str(charge.viewer_account_id),
                    "amount": str(split.owner_earn),
                    "stars": split.stars_spent,
                },
            )),
            (charge.viewer_account_id, NotificationMessage(
                title=f"{kind.title()} Cashback!",
                message=f"You earned ₦{split.viewer_earn:,.2f} cashback from viewing this {kind}!",
                category=viewer_category,
                action_data={"content_id": pricing.content_id, "amount": str(split.viewer_earn)},
            )),
        ]

        for account_id, message in messages:
            try:
                self.notifier.notify(account_id, message)
            except Exception:
                logger.exception(f"Failed to deliver {message.category.value} notification to {account_id}")

    def get_view_record(self, content_id: str, viewer_account_id: UUID) -> Optional[ViewRecord]:
        with self.database.transaction(write=False) as session:
            view = ViewRecordStore(session).get(content_id, viewer_account_id)
            return ViewRecord.model_validate(view) if view else None

    # Accounts

    def create_account(self, request: CreateAccountRequest) -> AccountBalance:
        with self.database.transaction() as session:
            account = tables.Account(
                display_name=request.display_name,
                star_balance=request.star_balance,
                wallet_balance=Decimal("0.00"),
                total_earned=Decimal("0.00"),
            )
            session.add(account)
            session.flush()
            if request.star_balance:
                _record_star_movement(
                    session, account.id, WalletEntryType.STAR_TOPUP, request.star_balance,
                    {"reference": "opening_balance"},
                )
            return AccountBalance.model_validate(account)

    def get_balance(self, account_id: UUID) -> AccountBalance:
        with self.database.transaction(write=False) as session:
            account = AccountStore(session).get(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            return AccountBalance.model_validate(account)

    def credit_stars(self, account_id: UUID, request: CreditStarsRequest) -> AccountBalance:
        with self.database.transaction() as session:
            accounts = AccountStore(session)
            if not accounts.adjust_star_balance(account_id, request.stars):
                raise AccountNotFoundError(f"Account {account_id} not found")
            _record_star_movement(
                session, account_id, WalletEntryType.STAR_TOPUP, request.stars,
                {"reference": request.reference} if request.reference else {},
            )
            session.flush()
            account = accounts.get(account_id)
            session.refresh(account)
            logger.info(f"Credited {request.stars} stars to {account_id}")
            return AccountBalance.model_validate(account)

    # Content

    def create_content(self, request: CreateContentRequest) -> ContentItem:
        validate_star_price(request.star_price)
        with self.database.transaction() as session:
            if not AccountStore(session).exists(request.owner_account_id):
                raise AccountNotFoundError(f"Account {request.owner_account_id} not found")
            item = tables.ContentItem(
                kind=request.kind.value,
                owner_account_id=request.owner_account_id,
                star_price=request.star_price,
                status=ContentStatus.ACTIVE.value,
                caption=request.caption,
                view_count=0,
            )
            session.add(item)
            session.flush()
            return ContentItem.model_validate(item)

    def get_content(self, content_id: str) -> ContentItem:
        with self.database.transaction(write=False) as session:
            item = ContentStore(session).get(content_id)
            if item is None:
                raise ContentNotFoundError(f"Content {content_id} not found")
            return ContentItem.model_validate(item)

    def suspend_content(self, content_id: str, request: SuspendContentRequest) -> ContentItem:
        with self.database.transaction() as session:
            item = ContentStore(session).get(content_id)
            if item is None:
                raise ContentNotFoundError(f"Content {content_id} not found")
            item.status = ContentStatus.SUSPENDED.value
            item.suspended_at = datetime.now(timezone.utc)
            item.suspension_reason = request.reason
            session.flush()
            logger.info(f"Suspended content {content_id}: {request.reason}")
            return ContentItem.model_validate(item)

    def reactivate_content(self, content_id: str) -> ContentItem:
        with self.database.transaction() as session:
            item = ContentStore(session).get(content_id)
            if item is None:
                raise ContentNotFoundError(f"Content {content_id} not found")
            item.status = ContentStatus.ACTIVE.value
            item.suspended_at = None
            item.suspension_reason = None
            session.flush()
            logger.info(f"Reactivated content {content_id}")
            return ContentItem.model_validate(item)

    # Reporting

    def get_ledger_history(self, account_id: UUID, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        involved = or_(
            tables.LedgerTransaction.owner_account_id == account_id,
            tables.LedgerTransaction.viewer_account_id == account_id,
        )
        with self.database.transaction(write=False) as session:
            total = session.scalar(
                select(func.count()).select_from(tables.LedgerTransaction).where(involved)
            )
            rows = session.scalars(
                select(tables.LedgerTransaction)
                .where(involved)
                .order_by(tables.LedgerTransaction.created_at.desc())
                .limit(limit)
                .offset(offset)
            ).all()
            return LedgerHistoryResponse(
                account_id=account_id,
                transactions=[LedgerTransaction.model_validate(r) for r in rows],
                total_count=total or 0,
            )

    def get_wallet_history(self, account_id: UUID, limit: int = 50, offset: int = 0) -> WalletHistoryResponse:
        with self.database.transaction(write=False) as session:
            account = AccountStore(session).get(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            total = session.scalar(
                select(func.count())
                .select_from(tables.WalletHistory)
                .where(tables.WalletHistory.account_id == account_id)
            )
            rows = session.scalars(
                select(tables.WalletHistory)
                .where(tables.WalletHistory.account_id == account_id)
                .order_by(tables.WalletHistory.created_at.desc())
                .limit(limit)
                .offset(offset)
            ).all()
            return WalletHistoryResponse(
                account_id=account_id,
                entries=[WalletHistoryEntry.model_validate(r) for r in rows],
                total_count=total or 0,
                wallet_balance=account.wallet_balance,
            )

    def list_notifications(self, account_id: UUID, limit: int = 50) -> list[Notification]:
        with self.database.transaction(write=False) as session:
            rows = session.scalars(
                select(tables.Notification)
                .where(tables.Notification.account_id == account_id)
                .order_by(tables.Notification.created_at.desc())
                .limit(limit)
            ).all()
            return [Notification.model_validate(r) for r in rows]

    def get_platform_revenue(self) -> PlatformRevenue:
        with self.database.transaction(write=False) as session:
            total, count = session.execute(
                select(
                    func.coalesce(func.sum(tables.LedgerTransaction.platform_earn_ngn), 0),
                    func.count(tables.LedgerTransaction.id),
                )
            ).one()
            return PlatformRevenue(
                total_ngn=Decimal(str(total)).quantize(Decimal("0.01")),
                charged_views=count,
            )


__all__ = [
    "LedgerService",
    "LedgerServiceError",
    "ContentUnavailableError",
    "ContentNotFoundError",
    "InsufficientStarsError",
    "AccountNotFoundError",
    "InvalidStarPriceError",
]

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

from .split import MAX_STAR_PRICE, MIN_STAR_PRICE


class ContentKind(str, Enum):
    STORY = "story"
    POST = "post"


class ContentStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class ViewError(str, Enum):
    CONTENT_UNAVAILABLE = "ContentUnavailable"
    INSUFFICIENT_STARS = "InsufficientStars"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    STORAGE_FAILURE = "StorageFailure"


class WalletEntryType(str, Enum):
    STORY_EARN = "story_earn"
    STORY_CASHBACK = "story_cashback"
    UPLOAD_EARN = "upload_earn"
    VIEW_EARN = "view_earn"
    STAR_TOPUP = "star_topup"
    STORY_VIEW_FEE = "story_view_fee"
    POST_VIEW_FEE = "post_view_fee"


class NotificationCategory(str, Enum):
    STORY_EARN = "story_earn"
    STORY_CASHBACK = "story_cashback"
    POST_EARN = "post_earn"
    POST_CASHBACK = "post_cashback"


class CreateAccountRequest(BaseModel):
    display_name: str = Field(default="", max_length=120)
    star_balance: int = Field(default=0, ge=0)


class CreditStarsRequest(BaseModel):
    stars: int = Field(..., gt=0, description="Number of stars to add")
    reference: Optional[str] = Field(default=None, description="Payment or admin reference")


class CreateContentRequest(BaseModel):
    owner_account_id: UUID
    kind: ContentKind = ContentKind.STORY
    star_price: int = Field(default=0, ge=MIN_STAR_PRICE, le=MAX_STAR_PRICE)
    caption: Optional[str] = None

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "owner_account_id": "550e8400-e29b-41d4-a716-446655440000",
            "kind": "story",
            "star_price": 3,
            "caption": "Behind the scenes"
        }
    })


class RecordViewRequest(BaseModel):
    viewer_account_id: UUID


class SuspendContentRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Reason shown to the owner")


class ContentPricing(BaseModel):
    content_id: str
    kind: ContentKind
    owner_account_id: UUID
    star_price: int
    status: ContentStatus

    @property
    def is_available(self) -> bool:
        return self.status == ContentStatus.ACTIVE


class ContentItem(BaseModel):
    id: str
    kind: ContentKind
    owner_account_id: UUID
    star_price: int
    status: ContentStatus
    caption: Optional[str] = None
    view_count: int = 0
    created_at: datetime
    suspended_at: Optional[datetime] = None
    suspension_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AccountBalance(BaseModel):
    account_id: UUID = Field(validation_alias="id")
    display_name: str
    star_balance: int
    wallet_balance: Decimal
    total_earned: Decimal
    currency: str = "NGN"

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ViewRecord(BaseModel):
    id: UUID
    content_id: str
    viewer_account_id: UUID
    stars_spent: int
    viewed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerTransaction(BaseModel):
    id: UUID
    content_id: str
    owner_account_id: UUID
    viewer_account_id: UUID
    stars_spent: int
    owner_earn_ngn: Decimal
    viewer_earn_ngn: Decimal
    platform_earn_ngn: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletHistoryEntry(BaseModel):
    id: UUID
    account_id: UUID
    entry_type: WalletEntryType
    amount: Decimal
    currency: str
    meta: dict = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationMessage(BaseModel):
    title: str
    message: str
    category: NotificationCategory
    action_data: dict = Field(default_factory=dict)


class Notification(NotificationMessage):
    id: UUID
    account_id: UUID
    created_at: datetime
    read_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ViewOutcome(BaseModel):
    success: bool
    error: Optional[ViewError] = None
    already_viewed: bool = False
    charged: bool = False
    stars_spent: int = 0
    owner_earn: Optional[Decimal] = None
    viewer_earn: Optional[Decimal] = None
    message: Optional[str] = None


class LedgerHistoryResponse(BaseModel):
    account_id: UUID
    transactions: list[LedgerTransaction]
    total_count: int


class WalletHistoryResponse(BaseModel):
    account_id: UUID
    entries: list[WalletHistoryEntry]
    total_count: int
    wallet_balance: Decimal


class PlatformRevenue(BaseModel):
    total_ngn: Decimal
    charged_views: int
    currency: str = "NGN"

from functools import lru_cache
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from .log import configure_logging
from .models import (
    AccountBalance, ContentItem, CreateAccountRequest, CreateContentRequest,
    CreditStarsRequest, LedgerHistoryResponse, Notification, PlatformRevenue,
    RecordViewRequest, SuspendContentRequest, ViewError, ViewOutcome,
    WalletHistoryResponse,
)
from .service import (
    AccountNotFoundError, ContentNotFoundError, InvalidStarPriceError,
    LedgerService,
)
from .settings import settings

_VIEW_ERROR_STATUS = {
    ViewError.CONTENT_UNAVAILABLE: status.HTTP_404_NOT_FOUND,
    ViewError.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ViewError.INSUFFICIENT_STARS: status.HTTP_402_PAYMENT_REQUIRED,
    ViewError.STORAGE_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@lru_cache
def get_ledger_service() -> LedgerService:
    return LedgerService()


def create_app(root_path: str = "") -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Star Ledger API",
        description="Star-priced content views with a 60/20/20 revenue split and single-charge semantics",
        version="1.0.0",
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "star-ledger"}

    @app.post("/accounts", response_model=AccountBalance, status_code=status.HTTP_201_CREATED, tags=["Accounts"])
    def create_account(request: CreateAccountRequest,
                       service: LedgerService = Depends(get_ledger_service)) -> AccountBalance:
        return service.create_account(request)

    @app.get("/accounts/{account_id}/balance", response_model=AccountBalance, tags=["Accounts"])
    def get_balance(account_id: UUID, service: LedgerService = Depends(get_ledger_service)) -> AccountBalance:
        try:
            return service.get_balance(account_id)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/accounts/{account_id}/stars", response_model=AccountBalance, tags=["Accounts"])
    def credit_stars(account_id: UUID, request: CreditStarsRequest,
                     service: LedgerService = Depends(get_ledger_service)) -> AccountBalance:
        try:
            return service.credit_stars(account_id, request)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/accounts/{account_id}/ledger", response_model=LedgerHistoryResponse, tags=["Accounts"])
    def get_ledger(account_id: UUID, limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
                   service: LedgerService = Depends(get_ledger_service)) -> LedgerHistoryResponse:
        return service.get_ledger_history(account_id, limit, offset)

    @app.get("/accounts/{account_id}/wallet-history", response_model=WalletHistoryResponse, tags=["Accounts"])
    def get_wallet_history(account_id: UUID, limit: int = Query(50, ge=1, le=200), offset: int = Query(0, ge=0),
                           service: LedgerService = Depends(get_ledger_service)) -> WalletHistoryResponse:
        try:
            return service.get_wallet_history(account_id, limit, offset)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/accounts/{account_id}/notifications", response_model=list[Notification], tags=["Accounts"])
    def list_notifications(account_id: UUID, limit: int = Query(50, ge=1, le=200),
                           service: LedgerService = Depends(get_ledger_service)) -> list[Notification]:
        return service.list_notifications(account_id, limit)

    @app.post("/content", response_model=ContentItem, status_code=status.HTTP_201_CREATED, tags=["Content"])
    def create_content(request: CreateContentRequest,
                       service: LedgerService = Depends(get_ledger_service)) -> ContentItem:
        try:
            return service.create_content(request)
        except AccountNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except InvalidStarPriceError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/content/{content_id}", response_model=ContentItem, tags=["Content"])
    def get_content(content_id: str, service: LedgerService = Depends(get_ledger_service)) -> ContentItem:
        try:
            return service.get_content(content_id)
        except ContentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/content/{content_id}/views", response_model=ViewOutcome, tags=["Content"])
    def record_view(content_id: str, request: RecordViewRequest,
                    service: LedgerService = Depends(get_ledger_service)) -> ViewOutcome:
        outcome = service.record_view(content_id, request.viewer_account_id)
        if not outcome.success:
            raise HTTPException(
                status_code=_VIEW_ERROR_STATUS[outcome.error],
                detail=outcome.model_dump(mode="json", exclude_none=True),
            )
        return outcome

    @app.post("/admin/content/{content_id}/suspend", response_model=ContentItem, tags=["Admin"])
    def suspend_content(content_id: str, request: SuspendContentRequest,
                        service: LedgerService = Depends(get_ledger_service)) -> ContentItem:
        try:
            return service.suspend_content(content_id, request)
        except ContentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/admin/content/{content_id}/reactivate", response_model=ContentItem, tags=["Admin"])
    def reactivate_content(content_id: str, service: LedgerService = Depends(get_ledger_service)) -> ContentItem:
        try:
            return service.reactivate_content(content_id)
        except ContentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/admin/platform-revenue", response_model=PlatformRevenue, tags=["Admin"])
    def get_platform_revenue(service: LedgerService = Depends(get_ledger_service)) -> PlatformRevenue:
        return service.get_platform_revenue()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

import pytest

from star_ledger.db import Database
from star_ledger.models import ContentKind, CreateAccountRequest, CreateContentRequest
from star_ledger.retry import RetryConfig
from star_ledger.service import LedgerService, TRANSIENT_STORAGE_ERRORS


class RecordingNotificationSink:
    def __init__(self):
        self.sent = []

    def notify(self, account_id, message):
        self.sent.append((account_id, message))


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def notifier():
    return RecordingNotificationSink()


@pytest.fixture
def retry_config():
    return RetryConfig(
        max_attempts=3,
        base_delay=0,
        max_delay=0,
        jitter=False,
        retryable_exceptions=TRANSIENT_STORAGE_ERRORS,
    )


@pytest.fixture
def service(database, notifier, retry_config):
    return LedgerService(database=database, notifier=notifier, retry_config=retry_config)


@pytest.fixture
def owner(service):
    return service.create_account(CreateAccountRequest(display_name="Ada Owner"))


@pytest.fixture
def viewer(service):
    return service.create_account(CreateAccountRequest(display_name="Vic Viewer", star_balance=5))


@pytest.fixture
def make_content(service, owner):
    def _make(star_price=3, kind=ContentKind.STORY, owner_account_id=None):
        return service.create_content(CreateContentRequest(
            owner_account_id=owner_account_id or owner.account_id,
            kind=kind,
            star_price=star_price,
        ))
    return _make

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import island_rewards.main as main_module
from island_rewards.config import settings
from island_rewards.database import Base, get_db
from island_rewards.dependencies import get_btcpay_transport, get_pull_payment_config
from island_rewards.main import app
from island_rewards.middleware.rate_limit import limiter
from tests.test_utils import ADMIN_KEY, FakeBTCPay, dynamic_config


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def btcpay():
    """Fake BTCPay Server answering pull payment calls."""
    return FakeBTCPay()


@pytest.fixture
def client(db_session, btcpay, monkeypatch):
    """Test client on the test database, fake BTCPay, and no rate limiting."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pull_payment_config] = dynamic_config
    app.dependency_overrides[get_btcpay_transport] = lambda: btcpay.transport

    monkeypatch.setattr(settings, "internal_api_key", ADMIN_KEY)

    # Disable rate limiting for tests
    limiter.enabled = False

    # Point check_database_tables() at the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine

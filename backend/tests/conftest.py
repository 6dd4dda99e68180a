"""Shared fixtures for the streamgate test suite."""

import pytest
import pytest_asyncio

from streamgate.core.config import Settings
from streamgate.core.database import create_engine, create_session_maker, init_db
from streamgate.modules.catalog.service import CatalogUpdater
from streamgate.modules.signing.config import TokenSigningConfig

TEST_SECRET = "test-primary-secret-0123456789abcdef"


@pytest.fixture
def signing_config() -> TokenSigningConfig:
    """Signing configuration with the default claim values."""
    return TokenSigningConfig(primary_secret=TEST_SECRET)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every directory and the catalog store at tmp_path."""
    return Settings(
        JWT_PRIMARY_SECRET=TEST_SECRET,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        PUBLIC_DIR=str(tmp_path / "public"),
        TEMP_UPLOAD_DIR=str(tmp_path / "temp-uploads"),
        LOG_JSON=False,
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Async engine on a fresh SQLite catalog file."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest.fixture
def catalog_updater(session_maker) -> CatalogUpdater:
    return CatalogUpdater(session_maker)

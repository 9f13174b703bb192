"""Tests for DatabaseConnection."""

import pytest
from sqlalchemy import text, update

from reviewflow.config import DatabaseSettings
from reviewflow.db.connection import DatabaseConnection, normalize_url
from reviewflow.db.models import Account


@pytest.mark.unit
@pytest.mark.parametrize(
    "url,expected",
    [
        ("postgresql://u:p@db/reviewflow", "postgresql+asyncpg://u:p@db/reviewflow"),
        ("postgres://u:p@db/reviewflow", "postgresql+asyncpg://u:p@db/reviewflow"),
        ("sqlite:///tmp/x.db", "sqlite+aiosqlite:///tmp/x.db"),
        ("postgresql+asyncpg://u:p@db/reviewflow", "postgresql+asyncpg://u:p@db/reviewflow"),
    ],
)
def test_normalize_url(url, expected):
    assert normalize_url(url) == expected


@pytest.mark.unit
def test_from_settings():
    db = DatabaseConnection.from_settings(
        DatabaseSettings(url="postgresql://u:p@db/reviewflow", pool_size=3)
    )

    assert db.url == "postgresql+asyncpg://u:p@db/reviewflow"
    assert db.is_sqlite is False


@pytest.mark.integration
class TestSession:
    """Commit and rollback behaviour of DatabaseConnection.session."""

    async def test_connect_and_foreign_keys(self, db):
        await db.connect()

        async with db.session() as session:
            result = await session.execute(text("PRAGMA foreign_keys"))
            assert result.scalar() == 1

    async def test_rolls_back_on_error(self, db, account):
        with pytest.raises(RuntimeError):
            async with db.session() as session:
                await session.execute(
                    update(Account)
                    .where(Account.account_id == account.account_id)
                    .values(credits_remaining=0)
                )
                raise RuntimeError("boom")

        async with db.session() as session:
            stored = await session.get(Account, account.account_id)
            assert stored.credits_remaining == 15

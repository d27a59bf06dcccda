"""Unit and database tests for the link persistence service."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from linktracker.config import get_settings
from linktracker.link_service import MAX_SHORT_CODE_ATTEMPTS, LinkService
from linktracker.models import Click, Link
from linktracker.schemas import ClickCreate, LocationData

# ============================================================================
# FIXTURES
# ============================================================================


def _context(database) -> Mock:
    ctx = Mock()
    ctx.database = database
    ctx.logger = MagicMock()
    ctx.settings = get_settings()
    return ctx


@pytest.fixture
def mock_database() -> AsyncMock:
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def mocked_service(mock_database) -> LinkService:
    return LinkService.from_context(_context(mock_database))


@pytest.fixture
def service(db_session: AsyncSession) -> LinkService:
    return LinkService.from_context(_context(db_session))


def _visit(**location) -> ClickCreate:
    return ClickCreate(
        ip_address="203.0.113.5",
        location=LocationData(**location),
        user_agent="pytest",
        referer="https://ref.com/",
    )


# ============================================================================
# MOCKED SESSION
# ============================================================================


class TestLinkServiceUnit:
    @pytest.mark.asyncio
    async def test_create_link_regenerates_taken_code(self, mocked_service):
        existing = Link(id="x", name="x", original_url="https://x.com", short_code="taken000")
        with patch.object(
            mocked_service, "get_link_by_short_code", AsyncMock(side_effect=[existing, None])
        ), patch.object(mocked_service, "generate_short_code", side_effect=["taken000", "free0000"]):
            link = await mocked_service.create_link("Blog", "https://example.com")

        assert link.short_code == "free0000"
        mocked_service._db.add.assert_called_once()
        mocked_service._db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_link_retries_after_integrity_error(self, mocked_service):
        mocked_service._db.commit.side_effect = [IntegrityError("INSERT", {}, Exception("unique")), None]
        with patch.object(mocked_service, "get_link_by_short_code", AsyncMock(return_value=None)):
            link = await mocked_service.create_link("Blog", "https://example.com")

        assert link.name == "Blog"
        assert mocked_service._db.commit.await_count == 2
        mocked_service._db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_link_gives_up(self, mocked_service):
        taken = Link(id="x", name="x", original_url="https://x.com", short_code="taken000")
        lookup = AsyncMock(return_value=taken)
        with patch.object(mocked_service, "get_link_by_short_code", lookup):
            with pytest.raises(RuntimeError, match="unique short code"):
                await mocked_service.create_link("Blog", "https://example.com")

        assert mocked_service._db.add.call_count == 0
        assert lookup.await_count == MAX_SHORT_CODE_ATTEMPTS

    @pytest.mark.asyncio
    async def test_record_click_rolls_back_on_failure(self, mocked_service):
        mocked_service._db.commit.side_effect = OperationalError("COMMIT", {}, Exception("locked"))
        link = Link(id="abc", name="n", original_url="https://x.com", short_code="abcdefgh")

        with pytest.raises(OperationalError):
            await mocked_service.record_click(link, _visit(country="Local"))

        mocked_service._db.rollback.assert_awaited_once()

    def test_generate_short_code_length(self, mocked_service):
        assert len(mocked_service.generate_short_code()) == get_settings().SHORT_CODE_LENGTH


# ============================================================================
# REAL DATABASE
# ============================================================================


class TestLinkServiceDatabase:
    @pytest.mark.asyncio
    async def test_created_link_is_retrievable(self, service):
        link = await service.create_link("Blog", "https://example.com")

        assert len(link.short_code) == 8
        assert len(link.id) == get_settings().LINK_ID_LENGTH
        assert (await service.get_link_by_short_code(link.short_code)).id == link.id
        assert (await service.get_link_by_id(link.id)).short_code == link.short_code

    @pytest.mark.asyncio
    async def test_record_click_stores_row_and_increments_counter(self, service, db_session):
        link = await service.create_link("Blog", "https://example.com")

        click = await service.record_click(link, _visit(country="Peru", city="Lima", latitude=-12.05))
        await service.record_click(link, _visit())

        assert click.id is not None
        assert click.country == "Peru"
        assert click.latitude == -12.05
        refreshed = await service.get_link_by_id(link.id)
        await db_session.refresh(refreshed)
        assert refreshed.click_count == 2
        assert len(await service.get_clicks_for_link(link.id)) == 2

    @pytest.mark.asyncio
    async def test_increment_click_count_is_staged_until_commit(self, service, db_session):
        link = await service.create_link("Blog", "https://example.com")
        link_id = link.id

        await service.increment_click_count(link_id)
        await db_session.rollback()

        count = await db_session.scalar(select(Link.click_count).where(Link.id == link_id))
        assert count == 0

    @pytest.mark.asyncio
    async def test_delete_link_cascades_clicks(self, service, db_session):
        keep = await service.create_link("Keep", "https://keep.example.com")
        drop = await service.create_link("Drop", "https://drop.example.com")
        for _ in range(3):
            await service.record_click(drop, _visit())
        await service.record_click(keep, _visit())

        assert await service.delete_link(drop.id) is True

        assert await service.get_link_by_id(drop.id) is None
        assert await service.get_clicks_for_link(drop.id) == []
        total = await db_session.scalar(select(func.count()).select_from(Click))
        assert total == 1
        assert [c.link_id for c in await service.list_clicks()] == [keep.id]

    @pytest.mark.asyncio
    async def test_delete_missing_link(self, service):
        assert await service.delete_link("does-not-exist") is False

    @pytest.mark.asyncio
    async def test_list_links_newest_first(self, service):
        first = await service.create_link("First", "https://one.example.com")
        second = await service.create_link("Second", "https://two.example.com")

        assert [link.id for link in await service.list_links()] == [second.id, first.id]

"""Persistence layer for links and clicks.

This module owns every read and write against the ``links`` and ``clicks``
tables. Route handlers and the tracking service go through it rather than
issuing queries themselves.

Flow Diagram — Link Creation
============================
::
    ┌─────────────┐
    │ POST /api/  │
    │ links       │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Generate    │
    │ nanoid id + │
    │ short code  │
    └──────┬──────┘
    TAKEN? │
    ┌─────┴─────┐
    │ YES        │ NO
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Retry   │  │ INSERT  │
│ new code│  │ + commit│
└─────────┘  └─────────┘

Flow Diagram — Click Recording
==============================
::
    ┌─────────────┐
    │ INSERT click│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ UPDATE link │
    │ click_count │
    │ + 1         │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ single      │
    │ COMMIT      │
    └─────────────┘

Key Behaviours
===============
- Short codes are nanoid strings from the URL-safe alphabet.
- A colliding short code is regenerated, both on the pre-check and on an
  IntegrityError from the unique constraint.
- Deleting a link removes its clicks first, in the same transaction.
- The click row and the counter increment commit together or not at all.

Classes:
    LinkService:  CRUD and click persistence bound to one request's session.
"""

import time
from typing import TYPE_CHECKING

from nanoid import generate
from prometheus_client import Counter
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from linktracker.enums import RequestStatus
from linktracker.models import Click, Link
from linktracker.schemas import ClickCreate

if TYPE_CHECKING:
    from linktracker.dependencies import RequestContext

__all__ = ["LinkService", "MAX_SHORT_CODE_ATTEMPTS"]

MAX_SHORT_CODE_ATTEMPTS = 5

LINKS_CREATED_TOTAL = Counter(
    "link_tracker_links_created_total",
    "Link creation attempts by outcome",
    ["status"],
)
LINKS_DELETED_TOTAL = Counter(
    "link_tracker_links_deleted_total",
    "Links deleted together with their clicks",
)
CLICKS_RECORDED_TOTAL = Counter(
    "link_tracker_clicks_recorded_total",
    "Click rows committed by the tracking endpoint",
)


class LinkService:
    """CRUD operations over links and their clicks.

    Example:
        >>> service = LinkService.from_context(ctx)
        >>> link = await service.create_link("Blog", "https://example.com")
        >>> await service.get_link_by_short_code(link.short_code)
    """

    def __init__(self, ctx: "RequestContext"):
        self._db = ctx.database
        self._logger = ctx.logger
        self._settings = ctx.settings

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        return cls(ctx)

    # ========================================================================
    # LINKS
    # ========================================================================

    async def create_link(self, name: str, original_url: str) -> Link:
        """Create a link with a fresh id and a short code unique among all links.

        Raises:
            RuntimeError: If no free short code was found within the attempt budget.
        """
        for attempt in range(1, MAX_SHORT_CODE_ATTEMPTS + 1):
            short_code = self.generate_short_code()
            if await self.get_link_by_short_code(short_code) is not None:
                self._logger.debug(f"Short code {short_code} taken, regenerating (attempt {attempt})")
                continue

            link = Link(
                id=generate(size=self._settings.LINK_ID_LENGTH),
                name=name,
                original_url=original_url,
                short_code=short_code,
                click_count=0,
            )
            self._db.add(link)
            try:
                await self._db.commit()
            except IntegrityError:
                await self._db.rollback()
                self._logger.warning(f"Short code collision on insert: {short_code}")
                continue

            await self._db.refresh(link)
            LINKS_CREATED_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
            self._logger.info(f"Link created: {link.id} -> {short_code}")
            return link

        LINKS_CREATED_TOTAL.labels(status=RequestStatus.ERROR).inc()
        raise RuntimeError("Could not allocate a unique short code")

    def generate_short_code(self) -> str:
        return generate(size=self._settings.SHORT_CODE_LENGTH)

    async def list_links(self) -> list[Link]:
        result = await self._db.execute(select(Link).order_by(Link.created_at.desc()))
        return list(result.scalars().all())

    async def get_link_by_id(self, link_id: str) -> Link | None:
        result = await self._db.execute(select(Link).where(Link.id == link_id))
        return result.scalar_one_or_none()

    async def get_link_by_short_code(self, short_code: str) -> Link | None:
        result = await self._db.execute(select(Link).where(Link.short_code == short_code))
        return result.scalar_one_or_none()

    async def delete_link(self, link_id: str) -> bool:
        """Delete a link and all of its clicks. Returns False if the link did not exist."""
        await self._db.execute(delete(Click).where(Click.link_id == link_id))
        result = await self._db.execute(delete(Link).where(Link.id == link_id))
        await self._db.commit()

        deleted = result.rowcount > 0
        if deleted:
            LINKS_DELETED_TOTAL.inc()
            self._logger.info(f"Link deleted: {link_id}")
        return deleted

    async def increment_click_count(self, link_id: str) -> None:
        """Stage a +1 on the denormalized counter; the caller commits."""
        await self._db.execute(
            update(Link).where(Link.id == link_id).values(click_count=Link.click_count + 1)
        )

    # ========================================================================
    # CLICKS
    # ========================================================================

    async def record_click(self, link: Link, visit: ClickCreate) -> Click:
        start_time = time.perf_counter()
        location = visit.location
        click = Click(
            link_id=link.id,
            ip_address=visit.ip_address,
            country=location.country,
            city=location.city,
            region=location.region,
            latitude=location.latitude,
            longitude=location.longitude,
            user_agent=visit.user_agent,
            referer=visit.referer,
        )
        self._db.add(click)
        try:
            await self._db.flush()
            await self.increment_click_count(link.id)
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

        CLICKS_RECORDED_TOTAL.inc()
        self._logger.debug(
            f"Click {click.id} recorded for {link.short_code} in {time.perf_counter() - start_time:.3f}s"
        )
        return click

    async def get_clicks_for_link(self, link_id: str) -> list[Click]:
        result = await self._db.execute(
            select(Click)
            .where(Click.link_id == link_id)
            .order_by(Click.clicked_at.desc(), Click.id.desc())
        )
        return list(result.scalars().all())

    async def list_clicks(self) -> list[Click]:
        result = await self._db.execute(select(Click).order_by(Click.clicked_at.desc(), Click.id.desc()))
        return list(result.scalars().all())

"""Click analytics: per-link and global summaries.

Every figure is computed by a grouped query at request time; nothing is
precomputed or cached. Time windows are measured back from "now" in UTC.

Per-link summary
================
::
    totalClicks   number of clicks in ``clicks``
    clicks        every click, most recent first
    countryStats  clicks per non-null country, descending
    cityStats     clicks per (city, country) with non-null city, top N
    dailyStats    clicks per calendar date over the trailing window, ascending
    browserStats / osStats / deviceStats
                  user-agent breakdowns, descending

Global summary
==============
::
    totalLinks    COUNT(links)
    totalClicks   COUNT(clicks)
    recentClicks  latest clicks joined with link name and short code
    topLinks      links by clicks in the trailing week, then by all-time count
"""

import datetime
from collections import Counter
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import and_, func, select

from linktracker.client_info import parse_user_agent
from linktracker.models import Click, Link, utcnow
from linktracker.schemas import (
    BreakdownStat,
    CityStat,
    ClickOut,
    CountryStat,
    DailyStat,
    GlobalAnalytics,
    LinkAnalytics,
    RecentClickOut,
    TopLinkOut,
)

if TYPE_CHECKING:
    from linktracker.dependencies import RequestContext

__all__ = ["AnalyticsService"]


def _breakdown(values: Iterable[str]) -> list[BreakdownStat]:
    counts = Counter(values)
    return [BreakdownStat(name=name, count=count) for name, count in counts.most_common()]


class AnalyticsService:
    def __init__(self, ctx: "RequestContext"):
        self._db = ctx.database
        self._logger = ctx.logger
        self._settings = ctx.settings

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "AnalyticsService":
        return cls(ctx)

    def _since(self, days: int) -> datetime.datetime:
        return utcnow() - datetime.timedelta(days=days)

    async def get_link_analytics(self, link_id: str) -> LinkAnalytics:
        """Summarize one link. An unknown id yields an all-zero summary."""
        clicks_result = await self._db.execute(
            select(Click)
            .where(Click.link_id == link_id)
            .order_by(Click.clicked_at.desc(), Click.id.desc())
        )
        clicks = list(clicks_result.scalars().all())

        click_count = func.count().label("count")

        country_rows = await self._db.execute(
            select(Click.country, click_count)
            .where(Click.link_id == link_id, Click.country.is_not(None))
            .group_by(Click.country)
            .order_by(click_count.desc(), Click.country)
        )

        city_rows = await self._db.execute(
            select(Click.city, Click.country, click_count)
            .where(Click.link_id == link_id, Click.city.is_not(None))
            .group_by(Click.city, Click.country)
            .order_by(click_count.desc(), Click.city)
            .limit(self._settings.ANALYTICS_TOP_CITIES)
        )

        day = func.date(Click.clicked_at)
        daily_rows = await self._db.execute(
            select(day.label("date"), click_count)
            .where(
                Click.link_id == link_id,
                Click.clicked_at >= self._since(self._settings.ANALYTICS_DAILY_WINDOW_DAYS),
            )
            .group_by(day)
            .order_by(day)
        )

        agents = [info for info in (parse_user_agent(c.user_agent) for c in clicks) if info is not None]

        return LinkAnalytics(
            total_clicks=len(clicks),
            clicks=[ClickOut.model_validate(c) for c in clicks],
            country_stats=[CountryStat(country=row.country, count=row.count) for row in country_rows],
            city_stats=[CityStat(city=row.city, country=row.country, count=row.count) for row in city_rows],
            # SQLite returns the date as text, PostgreSQL as a date object.
            daily_stats=[DailyStat(date=str(row.date), count=row.count) for row in daily_rows],
            browser_stats=_breakdown(info.browser.value for info in agents),
            os_stats=_breakdown(info.os.value for info in agents),
            device_stats=_breakdown(info.device.value for info in agents),
        )

    async def get_global_analytics(self) -> GlobalAnalytics:
        total_links = await self._db.scalar(select(func.count()).select_from(Link))
        total_clicks = await self._db.scalar(select(func.count()).select_from(Click))

        recent_rows = await self._db.execute(
            select(Click, Link.name, Link.short_code)
            .join(Link, Click.link_id == Link.id)
            .order_by(Click.clicked_at.desc(), Click.id.desc())
            .limit(self._settings.ANALYTICS_RECENT_CLICKS)
        )
        recent_clicks = [
            RecentClickOut(
                **ClickOut.model_validate(click).model_dump(),
                link_name=name,
                short_code=short_code,
            )
            for click, name, short_code in recent_rows
        ]

        recent_count = func.count(Click.id).label("recent_clicks")
        top_rows = await self._db.execute(
            select(Link, recent_count)
            .outerjoin(
                Click,
                and_(
                    Click.link_id == Link.id,
                    Click.clicked_at >= self._since(self._settings.ANALYTICS_TOP_LINKS_WINDOW_DAYS),
                ),
            )
            .group_by(Link.id)
            .order_by(recent_count.desc(), Link.click_count.desc())
            .limit(self._settings.ANALYTICS_TOP_LINKS)
        )
        top_links = [
            TopLinkOut(
                id=link.id,
                name=link.name,
                original_url=link.original_url,
                short_code=link.short_code,
                created_at=link.created_at,
                click_count=link.click_count,
                recent_clicks=count,
            )
            for link, count in top_rows
        ]

        self._logger.debug(f"Global analytics: {total_links} links, {total_clicks} clicks")
        return GlobalAnalytics(
            total_links=total_links or 0,
            total_clicks=total_clicks or 0,
            recent_clicks=recent_clicks,
            top_links=top_links,
        )

"""Pydantic schemas for request/response validation in the link tracker.

This module defines Pydantic models for API input validation and output serialization,
ensuring type safety and automatic OpenAPI documentation generation.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ name: str (1-100 chars)
    └─ originalUrl: str (validated URL)

    LinkOut / ClickOut (Output, ORM rows)
    ├─ TopLinkOut      (+ recent_clicks)
    └─ RecentClickOut  (+ link_name, short_code)

    LocationData (Resolver output)
    └─ country, city, region, latitude, longitude (each nullable)

    LinkAnalytics / GlobalAnalytics (Output, camelCase keys)

    Envelopes
    ├─ LinkListResponse      {success, data: [LinkOut]}
    ├─ LinkCreatedResponse   {success, data: LinkOut, trackingUrl}
    ├─ LinkAnalyticsResponse {success, data: {link, analytics}}
    └─ GlobalAnalyticsResponse {success, data: GlobalAnalytics}

Key Behaviours
===============
- URL validation uses the validators library for RFC compliance.
- Output models are configured for ORM attribute mapping.
- Analytics keys are serialized in camelCase through serialization aliases.
- Every response carries a ``success`` flag, matching the error envelope.
"""

import datetime

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator

from linktracker.enums import HealthStatus

__all__ = [
    "LinkCreate",
    "LinkOut",
    "ClickOut",
    "ClickCreate",
    "LocationData",
    "CountryStat",
    "CityStat",
    "DailyStat",
    "BreakdownStat",
    "RecentClickOut",
    "TopLinkOut",
    "LinkAnalytics",
    "GlobalAnalytics",
    "LinkWithAnalytics",
    "LinkListResponse",
    "LinkCreatedResponse",
    "LinkAnalyticsResponse",
    "GlobalAnalyticsResponse",
    "SuccessResponse",
    "HealthResponse",
]


class LinkCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    original_url: str = Field(..., alias="originalUrl")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("original_url")
    @classmethod
    def validate_original_url(cls, v: str) -> str:
        # URL parsers percent-encode spaces.
        if not validators.url(v.strip().replace(" ", "%20"), simple_host=True, strict_query=False):
            raise ValueError("Invalid URL format")
        return v


class LinkOut(BaseModel):
    id: str
    name: str
    original_url: str
    short_code: str
    created_at: datetime.datetime
    click_count: int

    model_config = ConfigDict(from_attributes=True)


class ClickOut(BaseModel):
    id: int
    link_id: str
    ip_address: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    user_agent: str | None = None
    referer: str | None = None
    clicked_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class LocationData(BaseModel):
    """Best-effort location of a visitor; every field may be missing."""

    country: str | None = None
    city: str | None = None
    region: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def local(cls) -> "LocationData":
        return cls(country="Local", city="Local", region="Local")

    @classmethod
    def unknown(cls) -> "LocationData":
        return cls(country="Unknown", city="Unknown", region="Unknown")


class ClickCreate(BaseModel):
    """Everything the tracking handler knows about a visit before it is stored."""

    ip_address: str | None = None
    location: LocationData = Field(default_factory=LocationData)
    user_agent: str | None = None
    referer: str | None = None


class CountryStat(BaseModel):
    country: str
    count: int


class CityStat(BaseModel):
    city: str
    country: str | None = None
    count: int


class DailyStat(BaseModel):
    date: str
    count: int


class BreakdownStat(BaseModel):
    name: str
    count: int


class RecentClickOut(ClickOut):
    link_name: str
    short_code: str


class TopLinkOut(LinkOut):
    recent_clicks: int


class LinkAnalytics(BaseModel):
    total_clicks: int = Field(..., serialization_alias="totalClicks")
    clicks: list[ClickOut]
    country_stats: list[CountryStat] = Field(..., serialization_alias="countryStats")
    city_stats: list[CityStat] = Field(..., serialization_alias="cityStats")
    daily_stats: list[DailyStat] = Field(..., serialization_alias="dailyStats")
    browser_stats: list[BreakdownStat] = Field(default_factory=list, serialization_alias="browserStats")
    os_stats: list[BreakdownStat] = Field(default_factory=list, serialization_alias="osStats")
    device_stats: list[BreakdownStat] = Field(default_factory=list, serialization_alias="deviceStats")


class GlobalAnalytics(BaseModel):
    total_links: int = Field(..., serialization_alias="totalLinks")
    total_clicks: int = Field(..., serialization_alias="totalClicks")
    recent_clicks: list[RecentClickOut] = Field(..., serialization_alias="recentClicks")
    top_links: list[TopLinkOut] = Field(..., serialization_alias="topLinks")


class LinkWithAnalytics(BaseModel):
    link: LinkOut
    analytics: LinkAnalytics


class SuccessResponse(BaseModel):
    success: bool = True


class LinkListResponse(SuccessResponse):
    data: list[LinkOut]


class LinkCreatedResponse(SuccessResponse):
    data: LinkOut
    tracking_url: str = Field(..., serialization_alias="trackingUrl")


class LinkAnalyticsResponse(SuccessResponse):
    data: LinkWithAnalytics


class GlobalAnalyticsResponse(SuccessResponse):
    data: GlobalAnalytics


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus

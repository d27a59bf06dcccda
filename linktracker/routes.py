"""FastAPI route definitions for the link tracking REST API.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200 / 503)

    GET    /api/links
        └─ LinkListResponse (200), newest first

    POST   /api/links
        ├─ LinkCreate (request body)
        └─ LinkCreatedResponse (201) or 400

    DELETE /api/links?id=<id>
        └─ SuccessResponse (200) or 400/404

    GET    /api/analytics
        └─ GlobalAnalyticsResponse (200)

    GET    /api/analytics/:link_id
        └─ LinkAnalyticsResponse (200) or 404

    GET    /track/:short_code
        └─ 302 Redirect, 404 or 500

Key Behaviours
===============
- Database and settings are injected via the RequestContext dependency.
- Database errors on CRUD and analytics endpoints become 500s with an
  endpoint-specific message; the original error is logged.
- Tracking never shows the visitor an error page for an existing link: if
  recording the click fails, the visitor is redirected without it.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from prometheus_client import Counter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from linktracker.analytics_service import AnalyticsService
from linktracker.dependencies import (
    RequestContext,
    get_analytics_service,
    get_link_service,
    get_request_context,
    get_tracking_service,
)
from linktracker.enums import HealthStatus, RequestStatus
from linktracker.link_service import LinkService
from linktracker.models import Link
from linktracker.schemas import (
    GlobalAnalyticsResponse,
    HealthResponse,
    LinkAnalyticsResponse,
    LinkCreate,
    LinkCreatedResponse,
    LinkListResponse,
    LinkOut,
    LinkWithAnalytics,
    SuccessResponse,
)
from linktracker.tracking import TrackingService, generate_tracking_url

__all__ = ["router"]

router = APIRouter()

TRACK_REQUESTS_TOTAL = Counter(
    "link_tracker_track_requests_total",
    "Tracking endpoint requests by outcome",
    ["status"],
)


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)):
    db_status = HealthStatus.HEALTHY
    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    body = HealthResponse(status=db_status, database=db_status)
    if db_status is HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))
    return body


# ============================================================================
# LINKS
# ============================================================================


@router.get("/api/links", response_model=LinkListResponse, tags=["links"])
async def list_links(
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkListResponse:
    try:
        links = await service.list_links()
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error fetching links: {exc}")
        raise HTTPException(status_code=500, detail="Failed to fetch links") from exc

    return LinkListResponse(data=[LinkOut.model_validate(link) for link in links])


@router.post("/api/links", response_model=LinkCreatedResponse, status_code=201, tags=["links"])
async def create_link(
    payload: LinkCreate,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> LinkCreatedResponse:
    ctx.add_tag("link_creation")
    try:
        link = await service.create_link(payload.name, payload.original_url)
    except (SQLAlchemyError, RuntimeError) as exc:
        ctx.logger.error(f"Error creating link: {exc}")
        raise HTTPException(status_code=500, detail="Failed to create link") from exc

    base_url = ctx.settings.BASE_URL or str(request.base_url)
    ctx.logger.info(
        f"Link created: {link.short_code} -> {link.original_url}",
        extra={"operation": "create_link", "link_id": link.id, "duration_ms": ctx.get_duration()},
    )
    return LinkCreatedResponse(
        data=LinkOut.model_validate(link),
        tracking_url=generate_tracking_url(link.short_code, base_url),
    )


@router.delete("/api/links", response_model=SuccessResponse, tags=["links"])
async def delete_link(
    link_id: str | None = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
) -> SuccessResponse:
    if not link_id:
        raise HTTPException(status_code=400, detail="Link ID is required")

    try:
        deleted = await service.delete_link(link_id)
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error deleting link {link_id}: {exc}")
        raise HTTPException(status_code=500, detail="Failed to delete link") from exc

    if not deleted:
        raise HTTPException(status_code=404, detail="Link not found")
    return SuccessResponse()


# ============================================================================
# ANALYTICS
# ============================================================================


@router.get("/api/analytics", response_model=GlobalAnalyticsResponse, tags=["analytics"])
async def global_analytics(
    ctx: RequestContext = Depends(get_request_context),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> GlobalAnalyticsResponse:
    try:
        summary = await analytics.get_global_analytics()
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error fetching global analytics: {exc}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics") from exc
    return GlobalAnalyticsResponse(data=summary)


@router.get("/api/analytics/{link_id}", response_model=LinkAnalyticsResponse, tags=["analytics"])
async def link_analytics(
    link_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> LinkAnalyticsResponse:
    try:
        link = await service.get_link_by_id(link_id)
        if link is None:
            raise HTTPException(status_code=404, detail="Link not found")
        summary = await analytics.get_link_analytics(link_id)
    except SQLAlchemyError as exc:
        ctx.logger.error(f"Error fetching analytics for {link_id}: {exc}")
        raise HTTPException(status_code=500, detail="Failed to fetch analytics") from exc

    return LinkAnalyticsResponse(
        data=LinkWithAnalytics(link=LinkOut.model_validate(link), analytics=summary)
    )


# ============================================================================
# TRACKING
# ============================================================================


@router.get("/track/{short_code}", tags=["tracking"])
async def track_click(
    short_code: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkService = Depends(get_link_service),
    tracker: TrackingService = Depends(get_tracking_service),
):
    ctx.add_tag("redirect")
    try:
        link = await tracker.track_visit(short_code, request.headers)
    except Exception as exc:
        ctx.logger.error(
            f"Error tracking click for {short_code}: {exc}",
            extra={"operation": "track", "short_code": short_code, "duration_ms": ctx.get_duration()},
        )
        return await _redirect_without_tracking(short_code, ctx, service)

    if link is None:
        TRACK_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
        ctx.logger.warning(f"Tracking failed - short code not found: {short_code}")
        return JSONResponse(status_code=404, content={"success": False, "error": "Link not found"})

    TRACK_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
    ctx.logger.info(
        f"Redirect successful: {short_code} -> {link.original_url}",
        extra={"operation": "track", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=link.original_url, status_code=302)


async def _redirect_without_tracking(short_code: str, ctx: RequestContext, service: LinkService):
    """Second chance after a failed visit: redirect if the link can still be read.

    The click of this visit is dropped.
    """
    link: Link | None = None
    try:
        await ctx.database.rollback()
        link = await service.get_link_by_short_code(short_code)
    except Exception as exc:
        ctx.logger.error(f"Fallback lookup failed for {short_code}: {exc}")

    if link is not None:
        TRACK_REQUESTS_TOTAL.labels(status=RequestStatus.FALLBACK).inc()
        ctx.logger.warning(f"Redirected {short_code} without recording the click")
        return RedirectResponse(url=link.original_url, status_code=302)

    TRACK_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
    return JSONResponse(status_code=500, content={"success": False, "error": "Tracking failed"})

"""Sync trigger, status and telemetry endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from solarsync.config.settings import Settings
from solarsync.sync.alerts import AlertSyncService
from solarsync.sync.context import SyncContext
from solarsync.sync.plants import PlantSyncService
from solarsync.sync.status import get_vendor_sync_status
from solarsync.sync.telemetry import TelemetryService
from solarsync.utils.exceptions import (
    APIError,
    InvalidRequestError,
    NotFoundError,
    SyncError,
    UnsupportedCapabilityError,
    UnsupportedVendorError,
)
from solarsync.web.auth import (
    SessionUser,
    get_app_settings,
    require_cron_secret,
    require_session,
    require_superadmin,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


def get_plant_service(request: Request) -> PlantSyncService:
    state = request.app.state
    return PlantSyncService(state.engine, state.settings, state.registry)


def get_alert_service(request: Request) -> AlertSyncService:
    state = request.app.state
    return AlertSyncService(state.engine, state.settings, state.registry)


def get_telemetry_service(request: Request) -> TelemetryService:
    state = request.app.state
    return TelemetryService(state.engine, state.settings, state.registry)


def error_response(error: Exception | str, status_code: int = 500) -> JSONResponse:
    message = str(error) or "Internal server error"
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def user_context(operation: str, user: SessionUser) -> SyncContext:
    context = SyncContext.for_user(operation, user.account_id, user.account_type)
    return context.child(org_id=user.org_id)


# Plant sync


@router.get("/cron/sync-plants", dependencies=[Depends(require_cron_secret)])
async def cron_sync_plants(
    settings: Settings = Depends(get_app_settings),
    service: PlantSyncService = Depends(get_plant_service),
) -> Any:
    """Scheduled plant sync across all due organizations."""
    if not settings.enable_plant_sync_cron:
        return {"success": False, "message": "Plant sync cron is disabled"}

    context = SyncContext.for_cron("sync-plants")
    context.bind(logger).info("Plant sync cron triggered")
    try:
        summary = await service.sync_all(context)
    except Exception as e:
        context.bind(logger).exception("Plant sync cron error", error=str(e))
        return error_response(e)
    return {"success": True, "message": "Plant sync completed", "summary": summary.to_dict()}


@router.post("/cron/sync-plants")
async def manual_sync_plants(
    user: SessionUser = Depends(require_superadmin),
    service: PlantSyncService = Depends(get_plant_service),
) -> Any:
    """Manual plant sync of every active vendor, ignoring organization intervals."""
    context = user_context("sync-plants-manual", user)
    context.bind(logger).info("Manual plant sync triggered")
    try:
        summary = await service.sync_all(context, force=True)
    except Exception as e:
        context.bind(logger).exception("Manual plant sync error", error=str(e))
        return error_response(e)
    return {"success": True, "message": "Plant sync completed", "summary": summary.to_dict()}


@router.post("/vendors/{vendor_id}/sync-plants")
async def sync_vendor_plants(
    vendor_id: int,
    user: SessionUser = Depends(require_superadmin),
    service: PlantSyncService = Depends(get_plant_service),
) -> Any:
    """Manual plant sync of a single vendor."""
    context = user_context("sync-vendor-plants", user)
    try:
        result = await service.sync_vendor(vendor_id, context)
    except NotFoundError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)
    except SyncError as e:
        return error_response(e, status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        context.bind(logger).exception("Vendor plant sync error", vendor_id=vendor_id, error=str(e))
        return error_response(e)
    return {"success": result.success, "message": "Plant sync completed", "result": result.to_dict()}


# Alert sync


@router.get("/cron/sync-alerts", dependencies=[Depends(require_cron_secret)])
async def cron_sync_alerts(
    settings: Settings = Depends(get_app_settings),
    service: AlertSyncService = Depends(get_alert_service),
) -> Any:
    """Scheduled alert sync across all vendors with alert support."""
    if not settings.enable_alert_sync_cron:
        return {"success": False, "message": "Alert sync cron is disabled"}

    context = SyncContext.for_cron("sync-alerts")
    context.bind(logger).info("Alert sync cron triggered")
    try:
        summary = await service.sync_all(context)
    except Exception as e:
        context.bind(logger).exception("Alert sync cron error", error=str(e))
        return error_response(e)
    return {"success": True, "message": "Alert sync completed", "summary": summary.to_dict()}


@router.post("/cron/sync-alerts")
async def manual_sync_alerts(
    user: SessionUser = Depends(require_superadmin),
    service: AlertSyncService = Depends(get_alert_service),
) -> Any:
    """Manual alert sync across all vendors with alert support."""
    context = user_context("sync-alerts-manual", user)
    context.bind(logger).info("Manual alert sync triggered")
    try:
        summary = await service.sync_all(context)
    except Exception as e:
        context.bind(logger).exception("Manual alert sync error", error=str(e))
        return error_response(e)
    return {"success": True, "message": "Alert sync completed", "summary": summary.to_dict()}


@router.post("/vendors/{vendor_id}/sync-alerts")
async def sync_vendor_alerts(
    vendor_id: int,
    user: SessionUser = Depends(require_superadmin),
    service: AlertSyncService = Depends(get_alert_service),
) -> Any:
    """Manual alert sync of a single vendor."""
    context = user_context("sync-vendor-alerts", user)
    try:
        result = await service.sync_vendor(vendor_id, context)
    except NotFoundError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)
    except Exception as e:
        context.bind(logger).exception("Vendor alert sync error", vendor_id=vendor_id, error=str(e))
        return error_response(e)
    return {"success": result.success, "message": "Alert sync completed", "result": result.to_dict()}


# Status and telemetry


@router.get("/vendors/sync-status")
async def vendor_sync_status(
    request: Request,
    _user: SessionUser = Depends(require_superadmin),
) -> Any:
    """Last sync times of every vendor."""
    try:
        vendors = get_vendor_sync_status(request.app.state.engine)
    except Exception as e:
        logger.exception("Sync status error", error=str(e))
        return error_response(e)
    return {"success": True, "vendors": vendors}


def _parse_int(value: str | None, message: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidRequestError(message) from None


@router.get("/plants/{plant_id}/telemetry")
async def plant_telemetry(
    plant_id: int,
    period: str = "day",
    year: str | None = None,
    month: str | None = None,
    day: str | None = None,
    start_year: str | None = None,
    end_year: str | None = None,
    _user: SessionUser = Depends(require_session),
    service: TelemetryService = Depends(get_telemetry_service),
) -> Any:
    """Telemetry for a plant, fetched live from its vendor."""
    try:
        data = await service.get_plant_telemetry(
            plant_id,
            period=period,
            year=_parse_int(year, "Invalid date parameters"),
            month=_parse_int(month, "Invalid date parameters"),
            day=_parse_int(day, "Invalid date parameters"),
            start_year=_parse_int(start_year, "Invalid date parameters"),
            end_year=_parse_int(end_year, "Invalid date parameters"),
        )
    except InvalidRequestError as e:
        return error_response(e, status.HTTP_400_BAD_REQUEST)
    except NotFoundError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)
    except (UnsupportedCapabilityError, UnsupportedVendorError) as e:
        return error_response(e, status.HTTP_501_NOT_IMPLEMENTED)
    except APIError as e:
        logger.error("Vendor telemetry request failed", plant_id=plant_id, error=str(e))
        return error_response(e, status.HTTP_502_BAD_GATEWAY)
    except Exception as e:
        logger.exception("Plant telemetry error", plant_id=plant_id, error=str(e))
        return error_response(e)
    return {"success": True, "plant_id": plant_id, **data}

"""
Fire report pipeline: validate the report, find nearby devices, notify them.
"""

from typing import Any, Callable, Dict, Optional

from firebase_functions import logger
from firebase_admin import firestore

from config.loader import AlertSettings, get_settings

from .filter_utils import filter_candidates
from .geo_utils import is_valid_coordinate, to_finite_float
from .geohash_utils import geohash_query_bounds
from .models import Report, ReportOutcome
from .notification_utils import build_alert_content, dispatch_notifications
from .presence_utils import collect_candidates


def _optional_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def parse_report(data: Optional[Dict[str, Any]], settings: AlertSettings) -> Optional[Report]:
    """
    Validate a report document.

    Returns None when latitude/longitude are missing, non-numeric, non-finite
    or out of range. An unusable radius falls back to the configured default,
    and a description or reporterUid that is not a non-empty string is dropped.
    """
    if not data:
        return None

    lat = to_finite_float(data.get("latitude"))
    lon = to_finite_float(data.get("longitude"))
    if not is_valid_coordinate(lat, lon):
        logger.warn(f"❌ Invalid coordinates - lat: {data.get('latitude')}, lon: {data.get('longitude')}")
        return None

    radius = to_finite_float(data.get("radiusMeters"))
    if radius is None or radius <= 0:
        if data.get("radiusMeters") is not None:
            logger.warn(f"⚠️ Unusable radiusMeters {data.get('radiusMeters')!r}, "
                        f"using default {settings.default_radius_meters}m")
        radius = settings.default_radius_meters

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        logger.warn(f"⚠️ Non-text description {description!r}, using default description")

    return Report(
        latitude=lat,
        longitude=lon,
        radius_meters=radius,
        reporter_uid=_optional_text(data.get("reporterUid")),
        description=_optional_text(description),
    )


def process_fire_report(
    report_id: str,
    data: Optional[Dict[str, Any]],
    db=None,
    send: Optional[Callable] = None,
    settings: Optional[AlertSettings] = None,
) -> ReportOutcome:
    """
    Notify every registered device near a newly created fire report.

    Args:
        report_id: Id of the created report document
        data: Report document fields
        db: Firestore client, defaults to firestore.client()
        send: FCM sender, defaults to firebase_admin.messaging.send
        settings: AlertSettings, defaults to the loaded configuration

    Returns:
        ReportOutcome with candidate, recipient and delivery counts

    Raises:
        CandidateQueryError: if a presence index query fails; nothing is sent
    """
    if settings is None:
        settings = get_settings()
    logger.info(f"🔥 Fire report pipeline started for reportId: {report_id}")

    report = parse_report(data, settings)
    if report is None:
        logger.info(f"❌ Report {report_id} has no usable location - no notifications sent")
        return ReportOutcome(report_id=report_id, status="invalid_report")

    logger.info(f"📍 Fire location: ({report.latitude}, {report.longitude}), "
                f"radius: {report.radius_meters}m, reporter: {report.reporter_uid}")

    if db is None:
        db = firestore.client()
    center = report.center

    bounds = geohash_query_bounds(center, report.radius_meters)
    logger.info(f"📐 Geohash bounds: {len(bounds)} bounds generated")

    collected = collect_candidates(db, bounds, center, report.radius_meters, settings)

    recipients = filter_candidates(collected.records, center, report.radius_meters, report.reporter_uid)
    logger.info(f"🎯 Final notification targets: {len(recipients)} users "
                f"(discarded: {recipients.discarded})")

    outcome = ReportOutcome(
        report_id=report_id,
        status="no_recipients",
        candidates_found=len(collected.records),
        used_fallback=collected.used_fallback,
        recipients=len(recipients),
    )
    if not recipients.tokens:
        logger.info("❌ No users found within radius - no notifications sent")
        return outcome

    content = build_alert_content(report_id, report, settings)
    outcome.dispatch = dispatch_notifications(recipients.tokens, content, settings, send=send)
    outcome.status = "sent"

    logger.info(f"🏁 Fire notification pipeline completed for {report_id}: "
                f"{outcome.dispatch.success_count} sent, {outcome.dispatch.failure_count} failed")
    return outcome
